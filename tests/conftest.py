import io

import pytest
from flask_jwt_extended import create_access_token
from openpyxl import Workbook

from app import create_app
from sheetvault.config import TestConfig
from sheetvault.extensions import db


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def file_app(tmp_path):
    """App on a SQLite file, so a second connection can commit behind the session."""
    config = type("FileTestConfig", (TestConfig,), {
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'vault.db'}",
    })
    app = create_app(config)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def _headers(owner_id="user-1"):
        token = create_access_token(identity=owner_id)
        return {"Authorization": f"Bearer {token}"}
    return _headers


def build_xlsx(sheets: dict) -> bytes:
    """sheets: {name: [header_row, row, ...]} -> .xlsx bytes"""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def xlsx_bytes():
    return build_xlsx
