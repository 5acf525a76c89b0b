"""Usage statistics recorded after each command, off the response path."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from Chromabot.deferred import TaskSupervisor
from Chromabot.kv import KeyValueStore
from Chromabot.metrics import inc_counter

log = structlog.get_logger()

STATS_PREFIX = "stats:"
STATS_TTL_SECONDS = 30 * 24 * 60 * 60


@dataclass(frozen=True)
class CommandOutcome:
    command_name: str
    user_id: str
    guild_id: str | None
    success: bool


@dataclass(frozen=True)
class UsageStats:
    total_commands: int
    success_count: int
    failure_count: int
    command_breakdown: dict[str, int]
    unique_users_today: int

    @property
    def success_rate(self) -> float:
        if self.total_commands <= 0:
            return 0.0
        return self.success_count / self.total_commands * 100


def _today(now: datetime) -> str:
    return now.date().isoformat()


class OutcomeRecorder:
    """Fire-and-forget command telemetry.

    :meth:`record` only schedules the write on the task supervisor, so it
    returns before any storage I/O happens and never raises.
    """

    def __init__(
        self,
        store: KeyValueStore,
        supervisor: TaskSupervisor,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.supervisor = supervisor
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def record(self, outcome: CommandOutcome) -> None:
        persist = self._persist(outcome)
        try:
            self.supervisor.spawn(persist, name=f"outcome:{outcome.command_name}")
        except Exception:
            persist.close()
            inc_counter("outcome.record_failed")
            log.error("outcome.schedule_failed", command_name=outcome.command_name, exc_info=True)

    async def _persist(self, outcome: CommandOutcome) -> None:
        try:
            await self._increment("total")
            await self._increment(f"cmd:{outcome.command_name}")
            await self._increment("success" if outcome.success else "failure")
            await self._track_user(outcome.user_id)
        except Exception:
            inc_counter("outcome.record_failed")
            log.error(
                "outcome.record_failed",
                command_name=outcome.command_name,
                user_id=outcome.user_id,
                exc_info=True,
            )

    async def _counter(self, name: str) -> int:
        raw = await self.store.get(f"{STATS_PREFIX}{name}")
        try:
            return int(raw or 0)
        except ValueError:
            return 0

    async def _increment(self, name: str) -> None:
        current = await self._counter(name)
        await self.store.put(
            f"{STATS_PREFIX}{name}", str(current + 1), ttl_seconds=STATS_TTL_SECONDS
        )

    async def _users_today(self) -> set[str]:
        raw = await self.store.get(f"{STATS_PREFIX}users:{_today(self._clock())}")
        return {u for u in (raw or "").split(",") if u}

    async def _track_user(self, user_id: str) -> None:
        users = await self._users_today()
        if user_id in users:
            return
        users.add(user_id)
        await self.store.put(
            f"{STATS_PREFIX}users:{_today(self._clock())}",
            ",".join(sorted(users)),
            ttl_seconds=STATS_TTL_SECONDS,
        )

    async def get_stats(self, command_names: Iterable[str]) -> UsageStats:
        breakdown: dict[str, int] = {}
        for name in command_names:
            count = await self._counter(f"cmd:{name}")
            if count > 0:
                breakdown[name] = count
        return UsageStats(
            total_commands=await self._counter("total"),
            success_count=await self._counter("success"),
            failure_count=await self._counter("failure"),
            command_breakdown=breakdown,
            unique_users_today=len(await self._users_today()),
        )
