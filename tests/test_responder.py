import httpx
import orjson
import pytest

from Chromabot.responder import (
    Attachment,
    FollowUp,
    edit_original_response,
    respond_autocomplete,
    respond_message,
    send_channel_message,
)


def test_ephemeral_flag_and_autocomplete_cap():
    body = orjson.loads(respond_message("hi", ephemeral=True).body)
    assert body == {"type": 4, "data": {"content": "hi", "flags": 64}}
    choices = [{"name": str(i), "value": str(i)} for i in range(40)]
    body = orjson.loads(respond_autocomplete(choices).body)
    assert body["type"] == 8
    assert len(body["data"]["choices"]) == 25


@pytest.mark.asyncio
async def test_followup_patches_original_message(settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "m1"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await edit_original_response(
            "app-1", "tok-1", FollowUp(content="done"), settings=settings, client=client
        )

    req = seen[0]
    assert req.method == "PATCH"
    assert str(req.url) == "https://discord.com/api/v10/webhooks/app-1/tok-1/messages/@original"
    assert orjson.loads(req.content) == {"content": "done"}


@pytest.mark.asyncio
async def test_followup_with_file_is_multipart(settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={})

    followup = FollowUp(
        embeds=[{"title": "Palette", "image": {"url": "attachment://image.png"}}],
        file=Attachment(filename="palette.png", data=b"\x89PNG"),
    )
    assert followup.payload()["embeds"][0]["image"]["url"] == "attachment://palette.png"
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await edit_original_response("app", "tok", followup, settings=settings, client=client)

    req = seen[0]
    assert req.headers["content-type"].startswith("multipart/form-data")
    raw = req.read()
    assert b'name="payload_json"' in raw
    assert b'filename="palette.png"' in raw


@pytest.mark.asyncio
async def test_expired_token_raises_to_caller(settings):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Unknown Webhook"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await edit_original_response(
                "app", "tok", FollowUp(content="late"), settings=settings, client=client
            )


@pytest.mark.asyncio
async def test_override_base_url(settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    local = settings.model_copy(update={"discord_webhook_url_override": "http://sink.local/"})
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        await edit_original_response("a", "t", FollowUp(content="x"), settings=local, client=client)
    assert str(seen[0].url) == "http://sink.local/webhooks/a/t/messages/@original"


@pytest.mark.asyncio
async def test_channel_message_uses_bot_token(settings):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "m9"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        created = await send_channel_message(
            "c1", {"content": "hello"}, settings=settings, client=client
        )
    assert created == {"id": "m9"}
    assert seen[0].headers["Authorization"] == "Bot bot-token"
    assert seen[0].url.path == "/api/v10/channels/c1/messages"
