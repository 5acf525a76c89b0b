"""Per-user favorite dyes, stored as one JSON list of item ids per user."""

from __future__ import annotations

from enum import Enum

import orjson
from pydantic import TypeAdapter

from Chromabot.kv import KeyValueStore

KEY_PREFIX = "favorites:"
MAX_FAVORITES = 20

_ids_adapter = TypeAdapter(list[int])


class FavoriteError(str, Enum):
    ALREADY_EXISTS = "already_exists"
    LIMIT_REACHED = "limit_reached"


def _key(user_id: str) -> str:
    return f"{KEY_PREFIX}{user_id}"


class FavoriteStore:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def list(self, user_id: str) -> list[int]:
        raw = await self.store.get(_key(user_id))
        if not raw:
            return []
        return _ids_adapter.validate_json(raw)

    async def _save(self, user_id: str, item_ids: list[int]) -> None:
        await self.store.put(_key(user_id), orjson.dumps(item_ids).decode())

    async def add(self, user_id: str, item_id: int) -> FavoriteError | None:
        favorites = await self.list(user_id)
        if item_id in favorites:
            return FavoriteError.ALREADY_EXISTS
        if len(favorites) >= MAX_FAVORITES:
            return FavoriteError.LIMIT_REACHED
        favorites.append(item_id)
        await self._save(user_id, favorites)
        return None

    async def remove(self, user_id: str, item_id: int) -> bool:
        favorites = await self.list(user_id)
        if item_id not in favorites:
            return False
        favorites.remove(item_id)
        await self._save(user_id, favorites)
        return True

    async def clear(self, user_id: str) -> int:
        """Drop every favorite; returns how many there were."""
        count = len(await self.list(user_id))
        await self.store.delete(_key(user_id))
        return count
