# sheetvault/routes/upload_routes.py
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from sheetvault.errors import ValidationError
from sheetvault.services import history_service
from sheetvault.services.auth_utils import current_owner_id
from sheetvault.services.workbook_parser import load_upload

upload_bp = Blueprint("upload", __name__, url_prefix="/api/upload")

# the web client posts the workbook as "excelFile"
_FILE_FIELDS = ("excelFile", "file")


# ---------- helpers ----------

def _uploaded_file():
    for field in _FILE_FIELDS:
        f = request.files.get(field)
        if f:
            return f
    return None


def _display_name(raw: str) -> str:
    # keep the user's name for display; only strip any client-side path
    name = (raw or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    return name[:255]


# ---------- routes ----------

@upload_bp.post("")
@jwt_required()
def upload():
    """
    Form-data:
      - excelFile: Excel workbook (.xls / .xlsx)
    """
    owner_id = current_owner_id()
    f = _uploaded_file()
    if f is None:
        raise ValidationError("Please select an Excel file to upload.")

    filename = _display_name(f.filename)
    if not filename:
        raise ValidationError("Invalid filename")

    content = f.read()
    workbook = load_upload(filename, content)

    record = history_service.create_record(
        owner_id,
        filename,
        workbook.parsed_data,
        workbook.sheet_names,
        workbook.column_headers,
    )
    current_app.logger.info("Upload %s parsed: sheets=%s", filename, workbook.sheet_names)
    return jsonify({
        "message": "File uploaded and parsed successfully",
        "file": record.to_dict(),
    }), 201


@upload_bp.get("/history")
@jwt_required()
def history():
    """Caller's uploads, newest first."""
    owner_id = current_owner_id()
    rows = history_service.list_history(owner_id)
    return jsonify([r.to_summary() for r in rows])


@upload_bp.get("/<file_id>")
@jwt_required()
def get_file(file_id: str):
    record = history_service.get_file(current_owner_id(), file_id)
    return jsonify(record.to_dict())


@upload_bp.get("/<file_id>/sheet/<path:sheet_name>")
@jwt_required()
def get_sheet(file_id: str, sheet_name: str):
    return jsonify(history_service.get_sheet(current_owner_id(), file_id, sheet_name))


@upload_bp.put("/<file_id>/sheet/<path:sheet_name>")
@jwt_required()
def delete_sheet(file_id: str, sheet_name: str):
    """
    Removes one sheet. If it was the file's last sheet the whole file is
    removed and the response says so (action == "file_deleted").
    """
    result = history_service.request_sheet_deletion(current_owner_id(), file_id, sheet_name)
    body = result.to_dict()
    if result.file_deleted:
        body["message"] = f'Sheet "{sheet_name}" was the last sheet; file deleted'
    else:
        body["message"] = f'Sheet "{sheet_name}" deleted'
    return jsonify(body)


@upload_bp.delete("/<file_id>")
@jwt_required()
def delete_file(file_id: str):
    result = history_service.request_file_deletion(current_owner_id(), file_id)
    body = result.to_dict()
    body["message"] = "File deleted"
    return jsonify(body)
