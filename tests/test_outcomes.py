from datetime import datetime, timezone

import pytest

from Chromabot.deferred import TaskSupervisor
from Chromabot.metrics import get_counter
from Chromabot.outcomes import STATS_TTL_SECONDS, CommandOutcome, OutcomeRecorder


def _outcome(name="dye", user="u1", success=True) -> CommandOutcome:
    return CommandOutcome(command_name=name, user_id=user, guild_id="g1", success=success)


@pytest.mark.asyncio
async def test_record_persists_counters_after_response(store):
    rec = OutcomeRecorder(
        store, TaskSupervisor(), clock=lambda: datetime(2025, 1, 2, tzinfo=timezone.utc)
    )
    rec.record(_outcome())
    rec.record(_outcome(user="u2", success=False))
    rec.record(_outcome(name="preset"))
    # Nothing is written until the scheduled tasks run
    assert store.puts == []
    await rec.supervisor.drain()

    stats = await rec.get_stats(["dye", "preset", "about"])
    assert stats.total_commands == 3
    assert stats.success_count == 2
    assert stats.failure_count == 1
    assert stats.command_breakdown == {"dye": 2, "preset": 1}
    assert stats.unique_users_today == 2
    assert round(stats.success_rate, 1) == 66.7
    assert await store.get("stats:users:2025-01-02") == "u1,u2"
    assert all(ttl == STATS_TTL_SECONDS for _, _, ttl in store.puts)


@pytest.mark.asyncio
async def test_record_never_raises_when_store_rejects(broken_store):
    rec = OutcomeRecorder(broken_store, TaskSupervisor())
    rec.record(_outcome())
    await rec.supervisor.drain()
    assert get_counter("outcome.record_failed") == 1


def test_record_outside_event_loop_is_swallowed(store):
    rec = OutcomeRecorder(store, TaskSupervisor())
    # No running loop: scheduling fails, but the caller never sees it
    rec.record(_outcome())
    assert get_counter("outcome.record_failed") == 1


@pytest.mark.asyncio
async def test_empty_stats(store):
    stats = await OutcomeRecorder(store, TaskSupervisor()).get_stats(["dye"])
    assert stats.total_commands == 0
    assert stats.success_rate == 0.0
    assert stats.command_breakdown == {}
