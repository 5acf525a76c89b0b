from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import orjson
import structlog
from fastapi import Response

from Chromabot.config import Settings
from Chromabot.discord_schemas import EPHEMERAL_FLAG, MAX_AUTOCOMPLETE_CHOICES, ResponseType

__all__ = [
    "Attachment",
    "FollowUp",
    "orjson_response",
    "error_response",
    "respond_pong",
    "respond_message",
    "respond_ephemeral",
    "respond_deferred",
    "respond_deferred_update",
    "respond_update",
    "respond_autocomplete",
    "respond_modal",
    "error_embed",
    "edit_original_response",
    "send_channel_message",
]

log = structlog.get_logger()

ERROR_COLOR = 0xED4245


def orjson_response(data: dict, status_code: int = 200) -> Response:
    return Response(content=orjson.dumps(data), media_type="application/json", status_code=status_code)


def error_response(status_code: int, message: str) -> Response:
    return orjson_response({"error": message}, status_code=status_code)


def respond_pong() -> Response:
    return orjson_response({"type": ResponseType.PONG})


def _message_data(
    content: str | None,
    embeds: list[dict] | None,
    components: list[dict] | None,
    ephemeral: bool,
) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if content is not None:
        data["content"] = content
    if embeds:
        data["embeds"] = embeds
    if components is not None:
        data["components"] = components
    if ephemeral:
        data["flags"] = EPHEMERAL_FLAG
    return data


def respond_message(
    content: str | None = None,
    *,
    embeds: list[dict] | None = None,
    components: list[dict] | None = None,
    ephemeral: bool = False,
) -> Response:
    return orjson_response(
        {
            "type": ResponseType.CHANNEL_MESSAGE_WITH_SOURCE,
            "data": _message_data(content, embeds, components, ephemeral),
        }
    )


def respond_ephemeral(content: str, *, embeds: list[dict] | None = None) -> Response:
    return respond_message(content, embeds=embeds, ephemeral=True)


def respond_deferred(*, ephemeral: bool = False) -> Response:
    body: dict[str, Any] = {"type": ResponseType.DEFERRED_CHANNEL_MESSAGE_WITH_SOURCE}
    if ephemeral:
        body["data"] = {"flags": EPHEMERAL_FLAG}
    return orjson_response(body)


def respond_deferred_update() -> Response:
    """Acknowledge a component now and edit its message later."""
    return orjson_response({"type": ResponseType.DEFERRED_UPDATE_MESSAGE})


def respond_update(
    content: str | None = None,
    *,
    embeds: list[dict] | None = None,
    components: list[dict] | None = None,
) -> Response:
    """Edit the message a component is attached to."""
    return orjson_response(
        {
            "type": ResponseType.UPDATE_MESSAGE,
            "data": _message_data(content, embeds, components, False),
        }
    )


def respond_autocomplete(choices: list[dict[str, str]]) -> Response:
    return orjson_response(
        {
            "type": ResponseType.APPLICATION_COMMAND_AUTOCOMPLETE_RESULT,
            "data": {"choices": choices[:MAX_AUTOCOMPLETE_CHOICES]},
        }
    )


def respond_modal(custom_id: str, title: str, components: list[dict]) -> Response:
    return orjson_response(
        {
            "type": ResponseType.MODAL,
            "data": {"custom_id": custom_id, "title": title, "components": components},
        }
    )


def error_embed(title: str, description: str) -> dict[str, Any]:
    return {"title": f"❌ {title}", "description": description, "color": ERROR_COLOR}


@dataclass
class Attachment:
    filename: str
    data: bytes
    content_type: str = "image/png"


@dataclass
class FollowUp:
    """Final content that replaces a deferred acknowledgment."""

    content: str | None = None
    embeds: list[dict[str, Any]] = field(default_factory=list)
    components: list[dict[str, Any]] | None = None
    file: Attachment | None = None

    def payload(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.content is not None:
            body["content"] = self.content
        embeds = self.embeds
        if self.file is not None:
            # Point placeholder image references at the real attachment name
            embeds = [
                {**e, "image": {"url": f"attachment://{self.file.filename}"}}
                if (e.get("image") or {}).get("url") == "attachment://image.png"
                else e
                for e in embeds
            ]
            body["attachments"] = [{"id": 0, "filename": self.file.filename}]
        if embeds:
            body["embeds"] = embeds
        if self.components is not None:
            body["components"] = self.components
        return body


def _webhook_base(settings: Settings) -> tuple[str, str]:
    if settings.discord_webhook_url_override:
        return settings.discord_webhook_url_override, "settings_override"
    return settings.discord_api_base, "default"


async def edit_original_response(
    application_id: str,
    token: str,
    followup: FollowUp,
    *,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> None:
    """Replace the deferred placeholder via the interaction webhook.

    Raises httpx errors after logging them; callers decide whether to swallow.
    """
    base_url, base_url_source = _webhook_base(settings)
    url = f"{base_url.rstrip('/')}/webhooks/{application_id}/{token}/messages/@original"
    payload = followup.payload()

    request_kwargs: dict[str, Any]
    if followup.file is not None:
        request_kwargs = {
            "files": {
                "payload_json": (None, orjson.dumps(payload), "application/json"),
                "files[0]": (
                    followup.file.filename,
                    followup.file.data,
                    followup.file.content_type,
                ),
            }
        }
    else:
        request_kwargs = {
            "content": orjson.dumps(payload),
            "headers": {"Content-Type": "application/json"},
        }

    log.info(
        "discord.followup.send",
        target_url=url.replace(token, token[:8] + "..."),
        content_len=len(followup.content or ""),
        embeds=len(followup.embeds),
        has_file=followup.file is not None,
        base_url_source=base_url_source,
    )

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=settings.followup_timeout_seconds)
    try:
        r = await http.patch(url, **request_kwargs)
        r.raise_for_status()
        log.info("discord.followup.sent", http_status_code=r.status_code)
    except httpx.RequestError as e:
        log.error("discord.followup.network_error", error=str(e), base_url_source=base_url_source)
        raise
    except httpx.HTTPStatusError as e:
        log.error(
            "discord.followup.http_error",
            http_status_code=e.response.status_code,
            text_preview=(e.response.text or "")[:200],
            base_url_source=base_url_source,
        )
        raise
    finally:
        if owns_client:
            await http.aclose()


async def send_channel_message(
    channel_id: str,
    payload: dict[str, Any],
    *,
    settings: Settings,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any]:
    """Post a bot message into a channel and return the created message."""
    token = settings.discord_bot_token.get_secret_value() if settings.discord_bot_token else ""
    url = f"{settings.discord_api_base.rstrip('/')}/channels/{channel_id}/messages"
    log.info("discord.channel_message.send", channel_id=channel_id)

    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=settings.followup_timeout_seconds)
    try:
        r = await http.post(
            url,
            content=orjson.dumps(payload),
            headers={"Content-Type": "application/json", "Authorization": f"Bot {token}"},
        )
        r.raise_for_status()
        log.info("discord.channel_message.sent", http_status_code=r.status_code)
        return r.json() if r.content else {}
    except httpx.HTTPStatusError as e:
        log.error(
            "discord.channel_message.http_error",
            channel_id=channel_id,
            http_status_code=e.response.status_code,
            text_preview=(e.response.text or "")[:200],
        )
        raise
    except httpx.RequestError as e:
        log.error("discord.channel_message.network_error", channel_id=channel_id, error=str(e))
        raise
    finally:
        if owns_client:
            await http.aclose()
