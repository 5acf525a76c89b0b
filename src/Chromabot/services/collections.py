"""Per-user dye collections, stored as one JSON document per user."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

import orjson
from pydantic import BaseModel, Field, TypeAdapter

from Chromabot.kv import KeyValueStore

KEY_PREFIX = "collections:"
MAX_COLLECTIONS = 50
MAX_ITEMS_PER_COLLECTION = 20
MAX_NAME_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 200


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Collection(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str
    description: str | None = None
    dyes: list[int] = Field(default_factory=list)
    created_at: str = Field(default_factory=_now_iso)
    updated_at: str = Field(default_factory=_now_iso)


_collections_adapter = TypeAdapter(list[Collection])


class CollectionError(str, Enum):
    ALREADY_EXISTS = "already_exists"
    LIMIT_REACHED = "limit_reached"
    NOT_FOUND = "not_found"
    INVALID_NAME = "invalid_name"


def _key(user_id: str) -> str:
    return f"{KEY_PREFIX}{user_id}"


def _clean_name(name: str) -> str:
    # Collapse whitespace and strip control characters
    text = "".join(ch for ch in (name or "") if ch.isprintable())
    return " ".join(text.split())[:MAX_NAME_LENGTH]


class CollectionStore:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def list(self, user_id: str) -> list[Collection]:
        raw = await self.store.get(_key(user_id))
        if not raw:
            return []
        return _collections_adapter.validate_json(raw)

    async def _save(self, user_id: str, collections: list[Collection]) -> None:
        await self.store.put(
            _key(user_id), orjson.dumps([c.model_dump() for c in collections]).decode()
        )

    async def get(self, user_id: str, name: str) -> Collection | None:
        wanted = _clean_name(name).lower()
        for c in await self.list(user_id):
            if c.name.lower() == wanted:
                return c
        return None

    async def create(
        self, user_id: str, name: str, description: str | None = None
    ) -> Collection | CollectionError:
        clean = _clean_name(name)
        if not clean:
            return CollectionError.INVALID_NAME
        collections = await self.list(user_id)
        if len(collections) >= MAX_COLLECTIONS:
            return CollectionError.LIMIT_REACHED
        if any(c.name.lower() == clean.lower() for c in collections):
            return CollectionError.ALREADY_EXISTS
        desc = (description or "").strip()[:MAX_DESCRIPTION_LENGTH] or None
        created = Collection(name=clean, description=desc)
        collections.append(created)
        await self._save(user_id, collections)
        return created

    async def delete(self, user_id: str, name: str) -> bool:
        collections = await self.list(user_id)
        wanted = _clean_name(name).lower()
        kept = [c for c in collections if c.name.lower() != wanted]
        if len(kept) == len(collections):
            return False
        await self._save(user_id, kept)
        return True

    async def add_item(self, user_id: str, name: str, item_id: int) -> CollectionError | None:
        collections = await self.list(user_id)
        wanted = _clean_name(name).lower()
        for c in collections:
            if c.name.lower() != wanted:
                continue
            if item_id in c.dyes:
                return CollectionError.ALREADY_EXISTS
            if len(c.dyes) >= MAX_ITEMS_PER_COLLECTION:
                return CollectionError.LIMIT_REACHED
            c.dyes.append(item_id)
            c.updated_at = _now_iso()
            await self._save(user_id, collections)
            return None
        return CollectionError.NOT_FOUND

    async def remove_item(self, user_id: str, name: str, item_id: int) -> CollectionError | None:
        collections = await self.list(user_id)
        wanted = _clean_name(name).lower()
        for c in collections:
            if c.name.lower() != wanted:
                continue
            if item_id not in c.dyes:
                return CollectionError.NOT_FOUND
            c.dyes.remove(item_id)
            c.updated_at = _now_iso()
            await self._save(user_id, collections)
            return None
        return CollectionError.NOT_FOUND
