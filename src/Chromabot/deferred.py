"""Acknowledge-now, complete-later support for slow interaction handlers.

The platform gives a few seconds to answer an interaction. Handlers that need
longer return a deferred acknowledgment immediately and hand their real work
to :class:`DeferredCompletionCoordinator`, which runs it on a supervised
background task and replaces the placeholder with exactly one follow-up: the
work's result, or a localized failure notice if the work raised.

Interaction tokens expire (about 15 minutes after the acknowledgment). A
follow-up sent after that fails; the failure is logged and not retried.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, Protocol

import structlog
from starlette.background import BackgroundTask

from Chromabot.config import Settings
from Chromabot.discord_schemas import Interaction
from Chromabot.i18n import t
from Chromabot.metrics import inc_counter, observe_histogram
from Chromabot.responder import (
    FollowUp,
    edit_original_response,
    error_embed,
    respond_deferred,
    respond_deferred_update,
)

log = structlog.get_logger()


class TaskSupervisor:
    """Tracks background tasks that must outlive the request that spawned them.

    ``drain`` is the process join point: the application awaits it on
    shutdown so scheduled work settles before teardown.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            log.warning("tasks.cancelled", task=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            # Spawned coroutines handle their own errors; reaching here is a bug
            log.error("tasks.unhandled_exception", task=task.get_name(), exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        while self._tasks:
            _, not_done = await asyncio.wait(set(self._tasks), timeout=timeout)
            if not_done:
                log.warning("tasks.drain.timeout", pending=len(not_done))
                return


class FollowUpSender(Protocol):
    async def __call__(
        self, application_id: str, token: str, followup: FollowUp, *, settings: Settings
    ) -> None: ...


DeferredWork = Callable[[], Awaitable[FollowUp]]


async def _release(event: asyncio.Event) -> None:
    # Async so Starlette runs it on the loop rather than in a worker thread
    event.set()


class DeferredCompletionCoordinator:
    def __init__(
        self,
        supervisor: TaskSupervisor,
        *,
        settings: Settings,
        sender: FollowUpSender = edit_original_response,
        ack_timeout: float = 3.0,
    ) -> None:
        self.supervisor = supervisor
        self.settings = settings
        self._send = sender
        # Longest wait for the acknowledgment to go out before following up anyway
        self.ack_timeout = ack_timeout

    def defer(
        self,
        interaction: Interaction,
        work: DeferredWork,
        *,
        ephemeral: bool = False,
        update: bool = False,
        label: str = "deferred",
        locale: str | None = None,
    ):
        """Schedule ``work`` and return the acknowledgment to send right now.

        With ``update`` the follow-up edits the message a component sits on
        instead of a new placeholder.
        """
        acknowledged = asyncio.Event()
        self.supervisor.spawn(
            self.complete(
                interaction, work, label=label, acknowledged=acknowledged, locale=locale
            ),
            name=f"{label}:{interaction.id}",
        )
        inc_counter("deferred.scheduled")
        response = respond_deferred_update() if update else respond_deferred(ephemeral=ephemeral)
        # Starlette runs this once the acknowledgment has been sent
        response.background = BackgroundTask(_release, acknowledged)
        return response

    async def complete(
        self,
        interaction: Interaction,
        work: DeferredWork,
        *,
        label: str,
        acknowledged: asyncio.Event | None = None,
        locale: str | None = None,
    ) -> bool:
        """Run ``work`` and send its single follow-up. Never raises.

        The follow-up waits for ``acknowledged`` (bounded by ``ack_timeout``) so
        it cannot overtake the deferred response. Returns True when the
        follow-up carrying the work's result was delivered.
        """
        start = time.perf_counter()
        succeeded = True
        try:
            followup = await work()
        except Exception:
            succeeded = False
            inc_counter("deferred.work_failed")
            log.error(
                "deferred.work_failed",
                label=label,
                interaction_id=interaction.id,
                exc_info=True,
            )
            followup = self.failure_followup(locale or interaction.locale)
        observe_histogram("deferred.work_ms", int((time.perf_counter() - start) * 1000))

        if acknowledged is not None and not acknowledged.is_set():
            try:
                await asyncio.wait_for(acknowledged.wait(), timeout=self.ack_timeout)
            except asyncio.TimeoutError:
                log.warning("deferred.ack_wait_timeout", label=label, interaction_id=interaction.id)

        try:
            await self._send(
                interaction.application_id,
                interaction.token,
                followup,
                settings=self.settings,
            )
        except Exception:
            # Usually an expired token; the placeholder stays unresolved
            inc_counter("deferred.followup_failed")
            log.error(
                "deferred.followup_failed",
                label=label,
                interaction_id=interaction.id,
                exc_info=True,
            )
            return False
        inc_counter("deferred.completed" if succeeded else "deferred.failure_reported")
        return succeeded

    @staticmethod
    def failure_followup(locale: str | None) -> FollowUp:
        return FollowUp(
            embeds=[error_embed(t(locale, "error.deferred.title"), t(locale, "error.deferred.body"))]
        )
