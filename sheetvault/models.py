from __future__ import annotations

import uuid
from datetime import datetime

from sheetvault.extensions import db


def _new_id() -> str:
    return uuid.uuid4().hex


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


# ------------------ UploadedFile Model ------------------
class UploadedFile(db.Model):
    """
    One uploaded spreadsheet and its parsed contents.

    parsed_data    -> {sheet name: [ {header: value, ...}, ... ]}
    column_headers -> {sheet name: [header, ...]}

    The JSON columns are never mutated in place; callers assign new objects
    so the change is flushed in a single UPDATE.
    """
    __tablename__ = "uploaded_files"

    id       = db.Column(db.String(32), primary_key=True, default=_new_id)
    owner_id = db.Column(db.String(64), nullable=False, index=True)

    original_file_name = db.Column(db.String(255), nullable=False)

    parsed_data    = db.Column(db.JSON, nullable=False)
    sheet_names    = db.Column(db.JSON, nullable=False)
    column_headers = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    # compare-and-swap column: every UPDATE/DELETE is filtered on (id, version)
    version = db.Column(db.Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "_id": self.id,  # key the web client reads
            "originalFileName": self.original_file_name,
            "sheetNames": list(self.sheet_names or []),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def to_dict(self) -> dict:
        out = self.to_summary()
        out["parsedData"] = self.parsed_data or {}
        out["columnHeaders"] = self.column_headers or {}
        return out

    def sheet_dict(self, sheet_name: str) -> dict:
        rows = (self.parsed_data or {}).get(sheet_name) or []
        return {
            "fileId": self.id,
            "originalFileName": self.original_file_name,
            "sheetName": sheet_name,
            "columnHeaders": (self.column_headers or {}).get(sheet_name) or [],
            "rows": rows,
            "rowCount": len(rows),
        }

    def __repr__(self):
        return f"<UploadedFile {self.id} {self.original_file_name!r} sheets={self.sheet_names!r}>"
