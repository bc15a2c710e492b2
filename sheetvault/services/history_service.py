# sheetvault/services/history_service.py
"""
Upload history and the deletion rules.

Invariants kept here, not in the client:
  * a record's sheet_names is never empty; removing the last sheet removes
    the whole record instead
  * sheet_names, parsed_data and column_headers change together, in one UPDATE
  * every read and delete is gated on owner_id

Concurrent writers are caught by the row version (see UploadedFile.version):
a stale UPDATE/DELETE raises ConflictError, or NotFoundError when the row
is already gone. Nothing is retried here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from sheetvault.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from sheetvault.extensions import db
from sheetvault.models import UploadedFile

FILE_DELETED = "file_deleted"
SHEET_DELETED = "sheet_deleted"


@dataclass
class DeletionResult:
    action: str
    file_id: str
    sheet_names: List[str] = field(default_factory=list)
    record: Optional[UploadedFile] = None

    @property
    def file_deleted(self) -> bool:
        return self.action == FILE_DELETED

    def to_dict(self) -> dict:
        out: Dict[str, Any] = {"action": self.action, "fileId": self.file_id, "_id": self.file_id}
        if not self.file_deleted:
            out["sheetNames"] = list(self.sheet_names)
            if self.record is not None:
                out["file"] = self.record.to_summary()
        return out


# ---------- helpers ----------

def _load_owned(owner_id: str, file_id: str) -> UploadedFile:
    """Existence is checked before ownership."""
    record = UploadedFile.query.filter_by(id=str(file_id)).first()
    if record is None:
        raise NotFoundError("File not found")
    if str(record.owner_id) != str(owner_id):
        raise ForbiddenError("Not authorized to access this file")
    return record


def _exists(file_id: str) -> bool:
    return db.session.query(UploadedFile.id).filter_by(id=str(file_id)).first() is not None


def _commit(action: str, file_id: str) -> None:
    try:
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        # a concurrent delete already removed the row
        if not _exists(file_id):
            current_app.logger.info("%s on %s: row already deleted", action, file_id)
            raise NotFoundError("File not found") from e
        current_app.logger.warning("%s on %s lost a concurrent update: %s", action, file_id, e)
        raise ConflictError() from e
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("%s on %s failed", action, file_id)
        raise StoreError() from e


# ---------- reads ----------

def list_history(owner_id: str) -> List[UploadedFile]:
    try:
        return (
            UploadedFile.query
            .filter_by(owner_id=str(owner_id))
            .order_by(UploadedFile.created_at.desc(), UploadedFile.id.asc())
            .all()
        )
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception("list_history failed for %s", owner_id)
        raise StoreError() from e


def get_file(owner_id: str, file_id: str) -> UploadedFile:
    return _load_owned(owner_id, file_id)


def get_sheet(owner_id: str, file_id: str, sheet_name: str) -> dict:
    record = _load_owned(owner_id, file_id)
    if sheet_name not in (record.sheet_names or []):
        raise NotFoundError(f'Sheet "{sheet_name}" not found in this file')
    return record.sheet_dict(sheet_name)


# ---------- writes ----------

def create_record(
    owner_id: str,
    original_file_name: str,
    parsed_data: Dict[str, Any],
    sheet_names: List[str],
    column_headers: Dict[str, Any],
) -> UploadedFile:
    names = [str(n) for n in (sheet_names or [])]
    if not names:
        raise ValidationError("A file must contain at least one sheet")
    if len(set(names)) != len(names):
        raise ValidationError("Sheet names must be unique within a file")

    parsed_data = parsed_data or {}
    column_headers = column_headers or {}
    missing = [n for n in names if n not in parsed_data or n not in column_headers]
    if missing:
        raise ValidationError(f"Missing parsed data for sheet(s): {', '.join(missing)}")

    record = UploadedFile(
        owner_id=str(owner_id),
        original_file_name=original_file_name,
        sheet_names=names,
        parsed_data={n: parsed_data[n] for n in names},
        column_headers={n: column_headers[n] for n in names},
    )
    db.session.add(record)
    _commit("create", original_file_name)
    current_app.logger.info(
        "Stored %s for owner %s (%d sheet(s)) as %s",
        original_file_name, owner_id, len(names), record.id,
    )
    return record


def request_file_deletion(owner_id: str, file_id: str) -> DeletionResult:
    record = _load_owned(owner_id, file_id)
    return _delete_record(record)


def _delete_record(record: UploadedFile) -> DeletionResult:
    file_id, name = record.id, record.original_file_name
    db.session.delete(record)
    _commit("delete file", file_id)
    current_app.logger.info("Deleted file %s (%s)", file_id, name)
    return DeletionResult(action=FILE_DELETED, file_id=file_id)


def request_sheet_deletion(owner_id: str, file_id: str, sheet_name: str) -> DeletionResult:
    record = _load_owned(owner_id, file_id)
    names = list(record.sheet_names or [])
    if sheet_name not in names:
        raise NotFoundError(f'Sheet "{sheet_name}" not found in this file')

    # last sheet: the record goes with it
    if len(names) == 1:
        current_app.logger.info("Sheet %r is the last one in %s; deleting the file", sheet_name, record.id)
        return _delete_record(record)

    record.sheet_names = [n for n in names if n != sheet_name]
    record.parsed_data = {k: v for k, v in (record.parsed_data or {}).items() if k != sheet_name}
    record.column_headers = {k: v for k, v in (record.column_headers or {}).items() if k != sheet_name}
    _commit("delete sheet", record.id)

    current_app.logger.info("Deleted sheet %r from %s", sheet_name, record.id)
    return DeletionResult(
        action=SHEET_DELETED,
        file_id=record.id,
        sheet_names=list(record.sheet_names),
        record=record,
    )
