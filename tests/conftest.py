# tests/conftest.py

import os
from collections.abc import AsyncIterator
from datetime import datetime, timedelta, timezone

import nacl.encoding
import nacl.signing
import pytest

# Point the app at a process-local database and test credentials before any
# Chromabot module reads its settings.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CHROMABOT_SQLITE_STATIC_POOL"] = "1"

# Fixed seed: test modules import helpers from here, so the key must not vary
SIGNING_KEY = nacl.signing.SigningKey(b"chromabot-test-signing-key-seed!")
PUBLIC_KEY_HEX = SIGNING_KEY.verify_key.encode(encoder=nacl.encoding.HexEncoder).decode()

MODERATOR_ID = "111111111111111111"
STATS_USER_ID = "222222222222222222"

os.environ["DISCORD_PUBLIC_KEY"] = PUBLIC_KEY_HEX
os.environ["DISCORD_BOT_TOKEN"] = "bot-token"
os.environ["DISCORD_APP_ID"] = "123456789012345678"
os.environ["INTERNAL_WEBHOOK_SECRET"] = "hook-secret"
os.environ["PRESETS_API_URL"] = "https://presets.test"
os.environ["BOT_API_SECRET"] = "api-secret"
os.environ["LOGGING_CONSOLE"] = "NONE"

import Chromabot.db as _db  # noqa: E402

_db.DATABASE_URL = os.environ["DATABASE_URL"]
_db._engine = None
_db._sessionmaker = None
_db._schema_initialized = False

from Chromabot import models as _models  # noqa: F401,E402
from Chromabot.config import Settings, reset_settings_check  # noqa: E402
from Chromabot.db import Base, get_engine  # noqa: E402
from Chromabot.metrics import reset_counters  # noqa: E402


class MemoryStore:
    """Dict-backed KeyValueStore; honours TTLs against an injectable clock."""

    def __init__(self) -> None:
        self.data: dict[str, tuple[str, datetime | None]] = {}
        self.now = datetime.now(timezone.utc)
        self.puts: list[tuple[str, str, int | None]] = []

    async def get(self, key: str) -> str | None:
        entry = self.data.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at is not None and expires_at <= self.now:
            return None
        return value

    async def put(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        self.puts.append((key, value, ttl_seconds))
        expires_at = self.now + timedelta(seconds=ttl_seconds) if ttl_seconds else None
        self.data[key] = (value, expires_at)

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class BrokenStore:
    async def get(self, key: str) -> str | None:
        raise ConnectionError("kv unavailable")

    async def put(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        raise ConnectionError("kv unavailable")

    async def delete(self, key: str) -> None:
        raise ConnectionError("kv unavailable")


class SpySender:
    """Records follow-ups instead of calling the interaction webhook."""

    def __init__(self, *, fail: bool = False) -> None:
        self.calls: list[tuple[str, str, object]] = []
        self.fail = fail

    async def __call__(self, application_id, token, followup, *, settings):  # noqa: ANN001
        self.calls.append((application_id, token, followup))
        if self.fail:
            raise RuntimeError("token expired")


class SpyChannel:
    def __init__(self) -> None:
        self.messages: list[tuple[str, dict]] = []

    async def __call__(self, channel_id, payload):  # noqa: ANN001
        self.messages.append((channel_id, payload))
        return {"id": "m1", "channel_id": channel_id}


def sign(body: bytes, timestamp: str = "1700000000") -> dict[str, str]:
    signature = SIGNING_KEY.sign(timestamp.encode() + body).signature.hex()
    return {
        "X-Signature-Ed25519": signature,
        "X-Signature-Timestamp": timestamp,
        "Content-Type": "application/json",
    }


@pytest.fixture(autouse=True)
def _fresh_process_state():
    reset_settings_check()
    reset_counters()
    yield


@pytest.fixture
def settings() -> Settings:
    return Settings(
        discord_public_key=PUBLIC_KEY_HEX,
        discord_bot_token="bot-token",
        discord_app_id="123456789012345678",
        internal_webhook_secret="hook-secret",
        presets_api_url="https://presets.test",
        bot_api_secret="api-secret",
        moderator_ids=MODERATOR_ID,
        stats_authorized_users=STATS_USER_ID,
        moderation_channel_id="900000000000000001",
        submission_log_channel_id="900000000000000002",
    )


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def broken_store() -> BrokenStore:
    return BrokenStore()


@pytest.fixture
async def db() -> AsyncIterator[None]:
    """Fresh in-memory schema on an engine bound to this test's event loop."""
    _db._engine = None
    _db._sessionmaker = None
    _db._schema_initialized = False
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _db._schema_initialized = True
    try:
        yield None
    finally:
        await engine.dispose()
        _db._engine = None
        _db._sessionmaker = None
        _db._schema_initialized = False
