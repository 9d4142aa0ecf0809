"""
Application configuration — environment-aware settings.

Config classes are selected by FLASK_ENV and loaded into ``app.config``.
The result is then frozen into a ``Settings`` object which is what the
authenticator and the database layer actually receive.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).parent

AUTH_MODE_JWT = "jwt"
AUTH_MODE_INSECURE_DEV = "insecure-dev"

_INSECURE_SECRETS = ("dev-key-change-in-production", "dev-jwt-secret-change-me", "")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    # Connection string for the document store (a SQLite path by default)
    DATABASE = os.environ.get("DATABASE_URL", str(BASE_DIR / "academic.db"))

    # Token auth
    JWT_SECRET = os.environ.get("JWT_SECRET", "dev-jwt-secret-change-me")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_SECONDS = int(os.environ.get("JWT_EXPIRES_SECONDS", "3600"))
    AUTH_MODE = os.environ.get("AUTH_MODE", AUTH_MODE_JWT)

    # Error bodies for 500s carry the raw error text only when enabled
    EXPOSE_ERROR_DETAIL = _env_bool("EXPOSE_ERROR_DETAIL", False)

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Rate limiting (defaults to in-memory; set REDIS_URL for Redis-backed)
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "") or "memory://"
    SIGNIN_RATE_LIMIT = os.environ.get("SIGNIN_RATE_LIMIT", "10 per 15 minutes")

    MAX_CONTENT_LENGTH = 1 * 1024 * 1024  # 1 MB


class DevelopmentConfig(BaseConfig):
    ENV_NAME = "development"
    DEBUG = True
    EXPOSE_ERROR_DETAIL = _env_bool("EXPOSE_ERROR_DETAIL", True)


class ProductionConfig(BaseConfig):
    ENV_NAME = "production"
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in _INSECURE_SECRETS:
            errors.append("SECRET_KEY must be set to a secure value in production.")
        if cls.JWT_SECRET in _INSECURE_SECRETS:
            errors.append("JWT_SECRET must be set to a secure value in production.")
        if cls.AUTH_MODE != AUTH_MODE_JWT:
            errors.append(f"AUTH_MODE={cls.AUTH_MODE!r} is not allowed in production.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    ENV_NAME = "testing"
    TESTING = True


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}


@dataclass(frozen=True)
class Settings:
    """Immutable view of the configuration, built once per app."""

    env: str
    secret_key: str
    database: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_expires_seconds: int = 3600
    auth_mode: str = AUTH_MODE_JWT
    expose_error_detail: bool = False
    log_format: str = "text"
    log_level: str = "INFO"
    signin_rate_limit: str = "10 per 15 minutes"

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> Settings:
        env = config.get("ENV_NAME") or ("testing" if config.get("TESTING") else "development")
        return cls(
            env=env,
            secret_key=config.get("SECRET_KEY", BaseConfig.SECRET_KEY),
            database=config.get("DATABASE", BaseConfig.DATABASE),
            jwt_secret=config.get("JWT_SECRET", BaseConfig.JWT_SECRET),
            jwt_algorithm=config.get("JWT_ALGORITHM", BaseConfig.JWT_ALGORITHM),
            jwt_expires_seconds=int(config.get("JWT_EXPIRES_SECONDS", BaseConfig.JWT_EXPIRES_SECONDS)),
            auth_mode=config.get("AUTH_MODE", AUTH_MODE_JWT),
            expose_error_detail=bool(config.get("EXPOSE_ERROR_DETAIL", False)),
            log_format=config.get("LOG_FORMAT", "text"),
            log_level=config.get("LOG_LEVEL", "INFO"),
            signin_rate_limit=config.get("SIGNIN_RATE_LIMIT", BaseConfig.SIGNIN_RATE_LIMIT),
        )
