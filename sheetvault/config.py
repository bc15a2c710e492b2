# sheetvault/config.py
import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def _csv_list(env_name: str, default: str) -> list[str]:
    raw = os.getenv(env_name, default) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me")

    # Tokens are issued by the auth service; we only verify them.
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", os.getenv("SECRET_KEY", "change-me"))
    JWT_TOKEN_LOCATION = ["headers"]
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=int(os.getenv("JWT_EXPIRES_HOURS", "12")))

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///sheetvault.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    CORS_ALLOWED_ORIGINS = _csv_list("CORS_ALLOWED_ORIGINS", "http://localhost:3000")

    # Flask rejects larger request bodies with 413
    MAX_CONTENT_LENGTH = int(os.getenv("UPLOAD_MAX_MB", "10")) * 1024 * 1024

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    JWT_SECRET_KEY = "test-jwt-secret-with-enough-length-for-hs256"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024
    LOG_LEVEL = "WARNING"
