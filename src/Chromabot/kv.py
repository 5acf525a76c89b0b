"""Key-value storage used for quotas, usage counters and user collections."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from datetime import datetime, timedelta, timezone
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from Chromabot import models
from Chromabot.db import session_scope


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def put(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...


def _as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


class SqlKeyValueStore:
    """KeyValueStore backed by the ``kv_entries`` table.

    Writes are last-writer-wins; there is no compare-and-swap.
    """

    def __init__(
        self,
        session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]] = session_scope,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get(self, key: str) -> str | None:
        async with self._session_factory() as s:
            row = await s.get(models.KVEntry, key)
            if row is None:
                return None
            if row.expires_at is not None and _as_utc(row.expires_at) <= self._clock():
                return None
            return row.value

    async def put(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        expires_at = None
        if ttl_seconds is not None:
            expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        async with self._session_factory() as s:
            await s.merge(models.KVEntry(key=key, value=value, expires_at=expires_at))

    async def delete(self, key: str) -> None:
        async with self._session_factory() as s:
            row = await s.get(models.KVEntry, key)
            if row is not None:
                await s.delete(row)
