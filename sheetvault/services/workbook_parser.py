# sheetvault/services/workbook_parser.py
from __future__ import annotations

import io
import math
import os
import zipfile
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Dict, List

import pandas as pd

from sheetvault.errors import ValidationError

ALLOWED_EXTENSIONS = {".xls", ".xlsx"}

OLE2_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"  # legacy .xls (BIFF in a compound document)
ZIP_MAGIC = b"PK\x03\x04"                          # .xlsx (OOXML package)

_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}


@dataclass
class ParsedWorkbook:
    sheet_names: List[str]
    parsed_data: Dict[str, List[Dict[str, Any]]]
    column_headers: Dict[str, List[str]]


# ---------------------- format checks ----------------------
def extension_of(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def sniff_format(content: bytes) -> str | None:
    """Return '.xlsx' / '.xls' from the leading bytes, or None if neither."""
    if content.startswith(ZIP_MAGIC):
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as zf:
                if "xl/workbook.xml" in set(zf.namelist()):
                    return ".xlsx"
        except zipfile.BadZipFile:
            return None
        return None
    if content[:8] == OLE2_MAGIC:
        return ".xls"
    return None


def validate_workbook(filename: str, content: bytes) -> str:
    """
    Checks the upload by extension AND by content signature.
    Returns the format to parse with.
    """
    ext = extension_of(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError("Only Excel files (.xls, .xlsx) are allowed.")
    if not content:
        raise ValidationError("Uploaded file is empty.")

    detected = sniff_format(content)
    if detected is None:
        raise ValidationError("Uploaded file is not a valid Excel workbook.")
    if detected != ext:
        raise ValidationError(f"File content does not match its extension ({ext}).")
    return detected


# ---------------------- cell normalisation ----------------------
def _json_cell(v: Any) -> Any:
    if v is None:
        return None
    if isinstance(v, float) and not math.isfinite(v):
        return None
    if v is pd.NaT:
        return None
    if isinstance(v, (pd.Timestamp, datetime, date, time)):
        return v.isoformat()
    if isinstance(v, pd.Timedelta):
        return str(v)
    # numpy scalars
    if hasattr(v, "item") and not isinstance(v, (str, bytes)):
        try:
            return _json_cell(v.item())
        except (TypeError, ValueError):
            return str(v)
    if isinstance(v, (str, int, float, bool)):
        return v
    return str(v)


def _frame_to_rows(df: pd.DataFrame) -> tuple[list[str], list[dict]]:
    headers = [str(c) for c in df.columns]
    df = df.copy()
    df.columns = headers
    df = df.astype(object).where(pd.notna(df), None)
    rows = [
        {h: _json_cell(v) for h, v in record.items()}
        for record in df.to_dict(orient="records")
    ]
    return headers, rows


# ---------------------- parse ----------------------
def parse_workbook(content: bytes, fmt: str) -> ParsedWorkbook:
    """
    Reads every sheet. First row is the header row; each following row becomes
    a {header: value} object.
    """
    engine = _ENGINES.get(fmt)
    if engine is None:
        raise ValidationError(f"Unsupported type: {fmt}")

    try:
        frames = pd.read_excel(io.BytesIO(content), sheet_name=None, engine=engine)
    except Exception as e:
        raise ValidationError(f"Excel file could not be parsed: {e}") from e

    sheet_names: List[str] = []
    parsed: Dict[str, List[Dict[str, Any]]] = {}
    headers: Dict[str, List[str]] = {}
    for name, df in frames.items():
        name = str(name)
        cols, rows = _frame_to_rows(df)
        sheet_names.append(name)
        parsed[name] = rows
        headers[name] = cols

    if not sheet_names:
        raise ValidationError("Excel file contains no sheets.")

    return ParsedWorkbook(sheet_names=sheet_names, parsed_data=parsed, column_headers=headers)


def load_upload(filename: str, content: bytes) -> ParsedWorkbook:
    return parse_workbook(content, validate_workbook(filename, content))
