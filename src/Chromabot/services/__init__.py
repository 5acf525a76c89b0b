"""Feature collaborators handed to command, button and form handlers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from functools import partial
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from Chromabot.config import Settings
from Chromabot.db import session_scope
from Chromabot.kv import KeyValueStore
from Chromabot.outcomes import OutcomeRecorder
from Chromabot.responder import send_channel_message
from Chromabot.services.catalog import ItemCatalog, default_catalog
from Chromabot.services.collections import CollectionStore
from Chromabot.services.favorites import FavoriteStore
from Chromabot.services.preferences import LanguagePreferences
from Chromabot.services.preset_api import PresetApiClient

ChannelSender = Callable[[str, dict[str, Any]], Awaitable[dict[str, Any]]]


@dataclass
class AppServices:
    catalog: ItemCatalog
    collections: CollectionStore
    favorites: FavoriteStore
    preferences: LanguagePreferences
    presets: PresetApiClient
    stats: OutcomeRecorder
    session_factory: Callable[[], AbstractAsyncContextManager[AsyncSession]]
    send_channel: ChannelSender


def build_services(
    settings: Settings,
    store: KeyValueStore,
    outcomes: OutcomeRecorder,
    *,
    presets: PresetApiClient | None = None,
    send_channel: ChannelSender | None = None,
) -> AppServices:
    return AppServices(
        catalog=default_catalog(),
        collections=CollectionStore(store),
        favorites=FavoriteStore(store),
        preferences=LanguagePreferences(store),
        presets=presets or PresetApiClient(settings),
        stats=outcomes,
        session_factory=session_scope,
        send_channel=send_channel or partial(send_channel_message, settings=settings),
    )
