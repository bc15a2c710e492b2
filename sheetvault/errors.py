# sheetvault/errors.py
"""
Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``register_error_handlers`` renders them as JSON:
    {"ok": false, "error": "<message>", "message": "<message>"}
``message`` is what the web client reads off a failed response.
"""
from __future__ import annotations

from flask import Flask, current_app, jsonify
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 500
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class UnauthorizedError(ApiError):
    status_code = 401
    default_message = "Not authorized, no token"


class ForbiddenError(ApiError):
    status_code = 403
    default_message = "Not authorized to access this file"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "The file was changed by another request. Reload and try again."


class StoreError(ApiError):
    status_code = 500
    default_message = "Storage failure. See server logs."


def error_response(message: str, status: int):
    return jsonify(ok=False, error=message, message=message), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):
        return error_response(e.message, e.status_code)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        return error_response(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        current_app.logger.exception("Unhandled error: %s", e)
        return error_response("Internal server error", 500)
