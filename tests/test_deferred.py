import asyncio

import pytest

from Chromabot.deferred import DeferredCompletionCoordinator, TaskSupervisor
from Chromabot.discord_schemas import Interaction
from Chromabot.metrics import get_counter
from Chromabot.responder import FollowUp
from conftest import SpySender


def _interaction(locale: str | None = None) -> Interaction:
    return Interaction.model_validate(
        {
            "id": "i1",
            "type": 2,
            "token": "tok-123",
            "application_id": "app-1",
            "locale": locale,
            "user": {"id": "u1", "username": "alice"},
            "data": {"name": "preset"},
        }
    )


def _coordinator(settings, sender, ack_timeout=1.0):
    return DeferredCompletionCoordinator(
        TaskSupervisor(), settings=settings, sender=sender, ack_timeout=ack_timeout
    )


@pytest.mark.asyncio
async def test_success_sends_exactly_one_followup(settings):
    sender = SpySender()
    coord = _coordinator(settings, sender)

    async def work():
        return FollowUp(content="done")

    resp = coord.defer(_interaction(), work)
    assert resp.body == b'{"type":5}'
    # Starlette runs the background hook after sending the acknowledgment
    await resp.background()
    await coord.supervisor.drain()

    assert len(sender.calls) == 1
    app_id, token, followup = sender.calls[0]
    assert (app_id, token) == ("app-1", "tok-123")
    assert followup.content == "done"
    assert get_counter("deferred.completed") == 1


@pytest.mark.asyncio
async def test_failure_sends_one_localized_failure(settings):
    sender = SpySender()
    coord = _coordinator(settings, sender)

    async def work():
        raise RuntimeError("collaborator down")

    resp = coord.defer(_interaction("de"), work, ephemeral=True)
    assert resp.body == b'{"type":5,"data":{"flags":64}}'
    await resp.background()
    await coord.supervisor.drain()

    assert len(sender.calls) == 1
    followup = sender.calls[0][2]
    assert followup.embeds[0]["title"] == "❌ Etwas ist schiefgelaufen"
    assert get_counter("deferred.work_failed") == 1
    assert get_counter("deferred.failure_reported") == 1


@pytest.mark.asyncio
async def test_followup_waits_for_acknowledgment(settings):
    sender = SpySender()
    coord = _coordinator(settings, sender)

    async def work():
        return FollowUp(content="fast")

    resp = coord.defer(_interaction(), work)
    await asyncio.sleep(0.05)
    assert sender.calls == []
    await resp.background()
    await coord.supervisor.drain()
    assert len(sender.calls) == 1


@pytest.mark.asyncio
async def test_missing_acknowledgment_still_completes(settings):
    sender = SpySender()
    coord = _coordinator(settings, sender, ack_timeout=0.01)

    async def work():
        return FollowUp(content="late")

    coord.defer(_interaction(), work)
    await coord.supervisor.drain()
    assert len(sender.calls) == 1


@pytest.mark.asyncio
async def test_failed_send_is_logged_not_retried(settings):
    sender = SpySender(fail=True)
    coord = _coordinator(settings, sender)

    async def work():
        return FollowUp(content="expired")

    delivered = await coord.complete(_interaction(), work, label="preset:show")
    assert delivered is False
    assert len(sender.calls) == 1
    assert get_counter("deferred.followup_failed") == 1


@pytest.mark.asyncio
async def test_update_acknowledgment(settings):
    sender = SpySender()
    coord = _coordinator(settings, sender)

    async def work():
        return FollowUp(embeds=[{"title": "edited"}], components=[])

    resp = coord.defer(_interaction(), work, update=True)
    assert resp.body == b'{"type":6}'
    await resp.background()
    await coord.supervisor.drain()
    assert sender.calls[0][2].components == []


@pytest.mark.asyncio
async def test_supervisor_drain_waits_for_tasks():
    sup = TaskSupervisor()
    done = []

    async def job():
        await asyncio.sleep(0.01)
        done.append(True)

    sup.spawn(job())
    assert sup.pending == 1
    await sup.drain()
    assert done == [True]
    assert sup.pending == 0
