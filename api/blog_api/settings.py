"""Centralized environment-driven settings.

Keep this module lightweight: no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _list_env(name: str, default: str) -> list[str]:
    raw = os.getenv(name) or default
    return [item.strip() for item in raw.split(",") if item.strip()]


LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
PORT: int = _int_env("PORT", 3000)

# Connection pool. db.t3.micro has limited connections, so no overflow.
DB_POOL_SIZE: int = _int_env("DB_POOL_SIZE", 10)
DB_POOL_TIMEOUT_SECONDS: int = _int_env("DB_POOL_TIMEOUT_SECONDS", 5)
DB_CONNECT_TIMEOUT_SECONDS: int = _int_env("DB_CONNECT_TIMEOUT_SECONDS", 5)
DB_POOL_RECYCLE_SECONDS: int = _int_env("DB_POOL_RECYCLE_SECONDS", 30)

CORS_ORIGINS: list[str] = _list_env("CORS_ORIGIN", "*")
CORS_METHODS: list[str] = _list_env("CORS_METHODS", "GET,POST,PUT,DELETE")

# Cognito. Both ids must be set for the auth gate to enforce tokens.
COGNITO_USER_POOL_ID: str | None = os.getenv("COGNITO_USER_POOL_ID") or None
COGNITO_CLIENT_ID: str | None = os.getenv("COGNITO_CLIENT_ID") or None
COGNITO_REGION: str | None = os.getenv("COGNITO_REGION") or None

RUN_MIGRATIONS: bool = _bool_env("RUN_MIGRATIONS", False)
SEED_ADMIN_EMAIL: str = os.getenv("SEED_ADMIN_EMAIL", "admin@localhost")
SEED_ADMIN_NAME: str = os.getenv("SEED_ADMIN_NAME", "Admin")


def get_database_url() -> str:
    """Get the async database URL for the API connection pool."""
    url = os.getenv("DATABASE_URL")
    if url:
        # Accept the libpq-style URLs Kubernetes secrets usually carry
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+psycopg://" + url[len(prefix):]
        return url

    db_user = os.getenv("DB_USER")
    db_pass = os.getenv("DB_PASSWORD")
    db_name = os.getenv("DB_DATABASE")
    db_host = os.getenv("DB_HOST", "localhost")
    db_port = os.getenv("DB_PORT", "5432")

    if db_user and db_pass and db_name:
        # URL-encode the password in case it contains special characters
        encoded_pass = quote_plus(db_pass)
        return f"postgresql+psycopg://{db_user}:{encoded_pass}@{db_host}:{db_port}/{db_name}"

    raise RuntimeError(
        "DATABASE_URL must be set, or DB_USER, DB_PASSWORD, and DB_DATABASE must all be set."
    )
