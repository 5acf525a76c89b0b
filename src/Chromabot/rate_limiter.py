"""Fixed-window per-user, per-command quotas.

Each (user, command) pair keeps ``{"count", "window_start"}`` in the key-value
store. A window opens on the first request after the previous one has fully
elapsed and the counter restarts from zero at that moment. Reads and writes
are not atomic, so concurrent requests from one user may slip a little past
the cap; the store's own eviction policy decides when stale records go away.

Store failures fail open: the request is allowed and the result is flagged so
callers can alert on it.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

import orjson
import structlog

from Chromabot.i18n import t
from Chromabot.kv import KeyValueStore
from Chromabot.metrics import inc_counter

log = structlog.get_logger()

KEY_PREFIX = "ratelimit:user:"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    # Epoch seconds at which the current window ends
    reset_at: float
    retry_after: int = 0
    kv_error: bool = False


@dataclass
class RateLimitRecord:
    count: int
    window_start: float

    def to_json(self) -> str:
        return orjson.dumps({"count": self.count, "window_start": self.window_start}).decode()

    @classmethod
    def from_json(cls, raw: str) -> RateLimitRecord:
        data = orjson.loads(raw)
        return cls(count=int(data["count"]), window_start=float(data["window_start"]))


class RateLimiter:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        window_seconds: int = 60,
        default_limit: int = 15,
        limits: Mapping[str, int] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.window_seconds = window_seconds
        self.default_limit = default_limit
        self.limits = dict(limits or {})
        self._clock = clock

    @classmethod
    def from_settings(cls, store: KeyValueStore, settings) -> RateLimiter:
        return cls(
            store,
            window_seconds=settings.rate_limit_window_seconds,
            default_limit=settings.rate_limit_default,
            limits=settings.rate_limit_overrides,
        )

    def limit_for(self, command_name: str | None) -> int:
        if not command_name:
            return self.default_limit
        return self.limits.get(command_name, self.default_limit)

    @staticmethod
    def key_for(user_id: str, command_name: str | None) -> str:
        return f"{KEY_PREFIX}{user_id}:{command_name or 'global'}"

    async def check(self, user_id: str, command_name: str | None = None) -> RateLimitResult:
        limit = self.limit_for(command_name)
        key = self.key_for(user_id, command_name)
        now = self._clock()

        try:
            raw = await self.store.get(key)
            record = RateLimitRecord.from_json(raw) if raw else None
            if record is None or now >= record.window_start + self.window_seconds:
                record = RateLimitRecord(count=0, window_start=now)
            record.count += 1

            reset_at = record.window_start + self.window_seconds
            await self.store.put(key, record.to_json())
        except Exception:
            inc_counter("rate_limit.kv_error")
            log.warning(
                "rate_limit.store_unavailable",
                user_id=user_id,
                command_name=command_name,
                exc_info=True,
            )
            return RateLimitResult(
                allowed=True,
                remaining=limit,
                reset_at=now + self.window_seconds,
                kv_error=True,
            )

        if record.count > limit:
            inc_counter("rate_limit.denied")
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_at=reset_at,
                retry_after=max(1, math.ceil(reset_at - now)),
            )
        return RateLimitResult(allowed=True, remaining=limit - record.count, reset_at=reset_at)


def format_rate_limit_message(
    result: RateLimitResult, locale: str | None = None, *, now: float | None = None
) -> str:
    seconds = result.retry_after
    if not seconds:
        current = time.time() if now is None else now
        seconds = max(1, math.ceil(result.reset_at - current))
    unit = t(locale, "unit.second" if seconds == 1 else "unit.seconds")
    return t(locale, "rate_limit.wait", seconds=seconds, unit=unit)
