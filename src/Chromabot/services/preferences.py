"""Per-user language preference kept in the key-value store."""

from __future__ import annotations

import structlog

from Chromabot.i18n import DEFAULT_LOCALE, locale_info, match_locale
from Chromabot.kv import KeyValueStore
from Chromabot.metrics import inc_counter

log = structlog.get_logger()

KEY_PREFIX = "i18n:user:"


def _key(user_id: str) -> str:
    return f"{KEY_PREFIX}{user_id}"


class LanguagePreferences:
    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self, user_id: str) -> str | None:
        """Stored preference, ignoring values that are no longer supported."""
        raw = await self.store.get(_key(user_id))
        if raw and locale_info(raw) is not None:
            return raw
        return None

    async def set(self, user_id: str, locale: str) -> bool:
        if locale_info(locale) is None:
            return False
        await self.store.put(_key(user_id), locale)
        return True

    async def clear(self, user_id: str) -> None:
        await self.store.delete(_key(user_id))

    async def resolve(self, user_id: str | None, discord_locale: str | None) -> str:
        """Language for a reply: stored preference, then Discord locale, then English.

        A store failure degrades to the Discord locale.
        """
        if user_id:
            try:
                preferred = await self.get(user_id)
            except Exception:
                inc_counter("i18n.preference_lookup_failed")
                log.warning("i18n.preference_lookup_failed", user_id=user_id, exc_info=True)
                preferred = None
            if preferred is not None:
                return preferred
        return match_locale(discord_locale) or DEFAULT_LOCALE
