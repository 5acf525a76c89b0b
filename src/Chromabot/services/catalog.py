"""Bundled dye catalog used by lookups and autocomplete."""

from __future__ import annotations

from functools import lru_cache
from importlib import resources

import orjson
from pydantic import BaseModel

# Items in these categories exist in the data but cannot be picked by users
NON_SELECTABLE_CATEGORIES = frozenset({"Facewear"})


class Item(BaseModel):
    id: int
    name: str
    hex: str
    category: str

    @property
    def selectable(self) -> bool:
        return self.category not in NON_SELECTABLE_CATEGORIES

    @property
    def hex_upper(self) -> str:
        return self.hex.upper()


class ItemCatalog:
    def __init__(self, items: list[Item]):
        self._items = list(items)
        self._by_id = {i.id: i for i in self._items}

    @classmethod
    def from_json(cls, raw: bytes | str) -> ItemCatalog:
        return cls([Item.model_validate(entry) for entry in orjson.loads(raw)])

    def all_items(self) -> list[Item]:
        return list(self._items)

    def get(self, item_id: int) -> Item | None:
        return self._by_id.get(item_id)

    def find_by_name(self, name: str) -> Item | None:
        wanted = name.strip().lower()
        for item in self._items:
            if item.name.lower() == wanted:
                return item
        return None

    def search_by_name(self, query: str) -> list[Item]:
        """Case-insensitive substring search; names starting with the query rank first."""
        q = query.strip().lower()
        if not q:
            return self.all_items()
        hits = [i for i in self._items if q in i.name.lower()]
        hits.sort(key=lambda i: (not i.name.lower().startswith(q), i.name))
        return hits

    def names_for(self, item_ids: list[int]) -> list[str]:
        out = []
        for item_id in item_ids:
            item = self.get(item_id)
            out.append(item.name if item else str(item_id))
        return out


@lru_cache(maxsize=1)
def default_catalog() -> ItemCatalog:
    raw = resources.files("Chromabot").joinpath("data/items.json").read_bytes()
    return ItemCatalog.from_json(raw)
