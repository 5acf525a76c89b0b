from datetime import datetime, timedelta, timezone

import pytest

from Chromabot.kv import SqlKeyValueStore


@pytest.mark.asyncio
async def test_put_get_overwrite_delete(db):
    kv = SqlKeyValueStore()
    assert await kv.get("k") is None
    await kv.put("k", "1")
    await kv.put("k", "2")
    assert await kv.get("k") == "2"
    await kv.delete("k")
    assert await kv.get("k") is None
    # Deleting a missing key is a no-op
    await kv.delete("k")


@pytest.mark.asyncio
async def test_expired_entries_read_as_absent(db):
    now = [datetime(2025, 1, 1, tzinfo=timezone.utc)]
    kv = SqlKeyValueStore(clock=lambda: now[0])
    await kv.put("stats:total", "5", ttl_seconds=60)
    assert await kv.get("stats:total") == "5"
    now[0] += timedelta(seconds=61)
    assert await kv.get("stats:total") is None
