# sheetvault/services/auth_utils.py
from __future__ import annotations

from flask import current_app
from flask_jwt_extended import get_jwt_identity

from sheetvault.errors import UnauthorizedError, error_response
from sheetvault.extensions import jwt


# ─────────────────────────────────────────────────────────────
# JWT failures all surface as 401 (flask-jwt-extended defaults some to 422)
# ─────────────────────────────────────────────────────────────
@jwt.unauthorized_loader
def _missing_token(reason: str):
    return error_response("Not authorized, no token", 401)


@jwt.invalid_token_loader
def _invalid_token(reason: str):
    current_app.logger.info("Rejected invalid token: %s", reason)
    return error_response("Not authorized, token failed", 401)


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return error_response("Not authorized, token expired", 401)


@jwt.token_verification_failed_loader
def _verification_failed(jwt_header, jwt_payload):
    return error_response("Not authorized, token failed", 401)


def current_owner_id() -> str:
    """Owner id of the caller; must run under @jwt_required()."""
    ident = get_jwt_identity()
    if ident is None or str(ident).strip() == "":
        raise UnauthorizedError("Not authorized, token has no subject")
    return str(ident)
