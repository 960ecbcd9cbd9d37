"""
Application configuration — environment-aware settings.

All environment variables are documented here. See .env.example for a template.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent

load_dotenv(BASE_DIR / ".env")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name) or ""
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None


class BaseConfig:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    # SQLite file; study material is stored inline, so this is the only persistent state
    DATABASE = os.environ.get("DATABASE_URL") or str(BASE_DIR / "studysync.db")

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 86400
    REMEMBER_COOKIE_HTTPONLY = True

    # Largest PDF accepted by POST /api/files
    MAX_UPLOAD_MB = _env_int("MAX_UPLOAD_MB", 16)
    MAX_CONTENT_LENGTH = MAX_UPLOAD_MB * 1024 * 1024

    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Rate limiting (in-memory unless RATELIMIT_STORAGE_URI points at a shared store)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI") or "memory://"
    LOGIN_RATE_LIMIT = os.environ.get("LOGIN_RATE_LIMIT") or "5 per 15 minutes"
    REGISTER_RATE_LIMIT = os.environ.get("REGISTER_RATE_LIMIT") or "3 per hour"


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.MAX_UPLOAD_MB <= 0:
            errors.append("MAX_UPLOAD_MB must be positive.")

        db_dir = Path(cls.DATABASE).parent
        if not db_dir.is_dir():
            errors.append(f"Database directory does not exist: {db_dir}")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    RATELIMIT_ENABLED = False


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
