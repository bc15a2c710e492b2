# app.py
import logging
import os
from pathlib import Path

from flask import Flask, jsonify
from flask_cors import CORS

from sheetvault.config import Config
from sheetvault.errors import register_error_handlers
from sheetvault.extensions import init_extensions, db

# ===== Blueprints =====
from sheetvault.routes.upload_routes import upload_bp


# =========================
#   Database bootstrap
# =========================
def _auto_db_bootstrap(app: Flask) -> None:
    """
    1) Run Alembic upgrade if migrations/ exists
    2) Otherwise create tables
    """
    migrations_dir = Path(__file__).resolve().parent / "migrations"
    with app.app_context():
        if migrations_dir.is_dir():
            from flask_migrate import upgrade
            upgrade(directory=str(migrations_dir))
        else:
            db.create_all()


def _normalize_sqlite_uri(app: Flask) -> None:
    """
    If SQLALCHEMY_DATABASE_URI points at a *relative* SQLite file, rewrite it to an
    absolute path under app.instance_path.
    """
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if uri.startswith("sqlite:///") and uri != "sqlite:///:memory:":
        rel = uri[len("sqlite:///"):]
        if not os.path.isabs(rel):
            os.makedirs(app.instance_path, exist_ok=True)
            abs_path = os.path.join(app.instance_path, rel)
            app.config["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{abs_path}"
            app.logger.info("Normalized SQLite path -> %s", app.config["SQLALCHEMY_DATABASE_URI"])


def _configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.logger.setLevel(level)


# ---------- app factory ----------
def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)
    _configure_logging(app)

    # Normalize SQLite path (avoid multiple relative files) BEFORE init db
    _normalize_sqlite_uri(app)

    # Initialize db/migrate/jwt once
    init_extensions(app)

    # Import models BEFORE DB bootstrap so metadata is loaded
    import sheetvault.models  # noqa: F401

    _auto_db_bootstrap(app)

    CORS(
        app,
        supports_credentials=True,
        resources={r"/*": {"origins": app.config.get("CORS_ALLOWED_ORIGINS", [])}},
        allow_headers=["Content-Type", "Authorization"],
        methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    )

    @app.get("/")
    def index():
        return "API is running"

    @app.get("/health")
    def health():
        return jsonify(status="ok")

    app.register_blueprint(upload_bp)
    register_error_handlers(app)

    app.logger.info("SQLALCHEMY_DATABASE_URI: %s", app.config.get("SQLALCHEMY_DATABASE_URI"))
    for rule in app.url_map.iter_rules():
        app.logger.debug("%s -> %s", sorted(rule.methods), rule.rule)

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(host="localhost", port=int(os.getenv("PORT", "5000")), debug=True)
