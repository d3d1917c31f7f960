"""PostgreSQL access for the blog API.

Every statement goes through :func:`query`, which only accepts a ``text()``
template plus named bind parameters. Values are never interpolated into the
SQL string.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from . import settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None


class DatabaseUnavailable(Exception):
    """Raised when a statement cannot be executed (pool, network, or SQL error)."""


@dataclass
class QueryResult:
    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    command: str = ""

    def first(self) -> dict[str, Any] | None:
        return self.rows[0] if self.rows else None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_async_engine(
            settings.get_database_url(),
            echo=settings.LOG_LEVEL == "DEBUG",
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=0,
            # Fail fast instead of queueing forever when the pool is exhausted
            pool_timeout=settings.DB_POOL_TIMEOUT_SECONDS,
            pool_recycle=settings.DB_POOL_RECYCLE_SECONDS,
            pool_pre_ping=True,
            connect_args={"connect_timeout": settings.DB_CONNECT_TIMEOUT_SECONDS},
        )
    return _engine


async def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def _command_tag(sql: str) -> str:
    parts = sql.split(None, 1)
    return parts[0].upper() if parts else ""


async def query(sql: str, params: Mapping[str, Any] | None = None) -> QueryResult:
    """
    Execute one parameterized statement and return its rows.

    Usage:
        result = await query("SELECT * FROM posts WHERE id = :id", {"id": 1})
        posts = result.rows

    Each call borrows a pooled connection for the duration of the statement
    and commits on success.
    """
    try:
        async with get_engine().begin() as conn:
            result = await conn.execute(text(sql), dict(params or {}))
            rows = [dict(row) for row in result.mappings().all()] if result.returns_rows else []
            row_count = result.rowcount if result.rowcount is not None and result.rowcount >= 0 else len(rows)
    except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
        logger.error(f"Database error: {e}")
        raise DatabaseUnavailable("Database unavailable") from e

    return QueryResult(rows=rows, row_count=row_count, command=_command_tag(sql))
