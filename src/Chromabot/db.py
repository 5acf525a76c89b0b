# src/Chromabot/db.py
"""Async SQLAlchemy engine and sessions for the user-data tables.

SQLite (aiosqlite) is the default; Postgres goes through asyncpg. Sync DSNs
are upgraded to their async driver so one ``DATABASE_URL`` serves both the
service and Alembic.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import AsyncIterator
from typing import Any

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from Chromabot.config import load_settings

log = structlog.get_logger()

_ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite://": "sqlite+aiosqlite://",
}


def to_async_url(url: str) -> str:
    for prefix, replacement in _ASYNC_DRIVERS.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix) :]
    return url


DATABASE_URL = to_async_url(load_settings().database_url)


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None
_schema_initialized: bool = False


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite+aiosqlite://") and ":memory:" in url


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite+aiosqlite://"):
        opts: dict[str, Any] = {"connect_args": {"timeout": 30}}
        # A private in-memory database lives and dies with its one connection
        if _is_memory_sqlite(url) or os.environ.get("CHROMABOT_SQLITE_STATIC_POOL") == "1":
            opts["poolclass"] = StaticPool
        return opts
    if url.startswith("postgresql+asyncpg://"):
        return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10, "pool_timeout": 30}
    return {}


def get_engine() -> AsyncEngine:
    global _engine, _sessionmaker
    if _engine is None:
        _engine = create_async_engine(DATABASE_URL, **_engine_options(DATABASE_URL))
        _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False)
        url = make_url(DATABASE_URL)
        log.info(
            "db.engine.created",
            driver=url.drivername,
            host=url.host or "",
            database=url.database or "",
        )
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    if _sessionmaker is None:
        get_engine()
    assert _sessionmaker is not None
    return _sessionmaker


async def init_schema() -> None:
    """Create any missing tables. Safe to call on every startup."""
    from Chromabot import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@contextlib.asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session that commits on exit and rolls back on error."""
    global _schema_initialized
    if not _schema_initialized:
        if _is_memory_sqlite(DATABASE_URL):
            await init_schema()
        _schema_initialized = True
    async with get_sessionmaker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            log.error("db.session.rolled_back", exc_info=True)
            raise
