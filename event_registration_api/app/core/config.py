"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
service starts with a local SQLite file and no further setup.  In a
production deployment you should override at least ``SECRET_KEY`` and
``DATABASE_URL``.
"""

import os
from dataclasses import dataclass


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in {"1", "true", "yes"}


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Event Registration API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = _env_bool("DEBUG", "false")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    # Optional path of a log file; console logging is always enabled.
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Path or connection string for the SQLite database.  A relative
    # path is resolved against the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "event_registration.db")

    # Seconds a connection waits for the write lock held by a concurrent
    # registration before giving up with ``database is locked``.
    db_timeout_seconds: float = float(os.getenv("DB_TIMEOUT_SECONDS", "10"))

    # Credentials of the bootstrap administrator.  When both are set the
    # account is created on startup if it does not exist yet.
    admin_email: str = os.getenv("ADMIN_EMAIL", "")
    admin_password: str = os.getenv("ADMIN_PASSWORD", "")

    # Issue a ticket after each successful registration.
    tickets_enabled: bool = _env_bool("TICKETS_ENABLED", "true")


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables must
# be set before importing this module.
settings = Settings()
