"""Button clicks, routed by ``custom_id`` prefix."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog
from fastapi import Response

from Chromabot.commanding import Invocation
from Chromabot.i18n import t
from Chromabot.notifications import STATUS_COLORS, approval_log_payload
from Chromabot.responder import FollowUp, respond_ephemeral, respond_modal, respond_update
from Chromabot.services.preset_api import PresetApiError

log = structlog.get_logger()

BLURPLE = 0x5865F2

ButtonHandler = Callable[[Invocation], Awaitable[Response]]


def original_embed(inv: Invocation) -> dict[str, Any]:
    message = inv.interaction.message
    if message is not None and message.embeds:
        return dict(message.embeds[0])
    return {}


def reason_input(custom_id: str, label: str, placeholder: str) -> list[dict[str, Any]]:
    return [
        {
            "type": 1,
            "components": [
                {
                    "type": 4,
                    "custom_id": custom_id,
                    "label": label,
                    "style": 2,
                    "min_length": 10,
                    "max_length": 500,
                    "required": True,
                    "placeholder": placeholder,
                }
            ],
        }
    ]


async def preset_approve(inv: Invocation) -> Response:
    preset_id = (inv.custom_id or "").removeprefix("preset_approve_")
    if not preset_id:
        return respond_ephemeral(t(inv.locale, "button.invalid"))
    if not inv.is_moderator:
        return respond_ephemeral(t(inv.locale, "permission.denied"))

    services = inv.services
    settings = inv.settings
    locale = inv.locale
    moderator_id, moderator_name = inv.user_id, inv.username
    embed = original_embed(inv)

    async def work() -> FollowUp:
        try:
            preset = await services.presets.moderate(preset_id, "approved", moderator_id)
        except PresetApiError as e:
            fields = [
                *embed.get("fields", []),
                {
                    "name": t(locale, "field.error"),
                    "value": t(locale, "moderation.approve_failed", error=e.message),
                    "inline": False,
                },
            ]
            return FollowUp(embeds=[{**embed, "fields": fields}])

        if settings.submission_log_channel_id:
            try:
                await services.send_channel(
                    settings.submission_log_channel_id,
                    approval_log_payload(preset, moderator_name),
                )
            except httpx.HTTPError:
                log.warning("moderation.log_channel_failed", preset_id=preset.id, exc_info=True)

        fields = [
            *embed.get("fields", []),
            {
                "name": t(locale, "field.action"),
                "value": t(locale, "moderation.approved_by", name=moderator_name),
                "inline": False,
            },
        ]
        approved = {
            **embed,
            "title": t(locale, "moderation.approved_title"),
            "color": STATUS_COLORS["approved"],
            "fields": fields,
        }
        return FollowUp(embeds=[approved], components=[])

    return inv.defer(work, update=True)


async def preset_reject(inv: Invocation) -> Response:
    preset_id = (inv.custom_id or "").removeprefix("preset_reject_")
    if not preset_id:
        return respond_ephemeral(t(inv.locale, "button.invalid"))
    if not inv.is_moderator:
        return respond_ephemeral(t(inv.locale, "permission.denied"))
    return respond_modal(
        f"preset_reject_modal_{preset_id}",
        t(inv.locale, "reject.modal_title"),
        reason_input(
            "rejection_reason",
            t(inv.locale, "reject.reason_label"),
            t(inv.locale, "reject.reason_placeholder"),
        ),
    )


async def ban_confirm(inv: Invocation) -> Response:
    if not inv.is_moderator:
        return respond_ephemeral(t(inv.locale, "permission.denied"))
    target_id = (inv.custom_id or "").removeprefix("ban_confirm_")
    if not target_id.isdigit():
        return respond_ephemeral(t(inv.locale, "button.invalid"))
    return respond_modal(
        f"ban_reason_modal_{target_id}",
        t(inv.locale, "ban.modal_title"),
        reason_input(
            "ban_reason",
            t(inv.locale, "ban.reason_label"),
            t(inv.locale, "ban.reason_placeholder"),
        ),
    )


async def ban_cancel(inv: Invocation) -> Response:
    return respond_update(
        embeds=[
            {
                "title": t(inv.locale, "ban.cancelled_title"),
                "description": t(inv.locale, "ban.cancelled_body"),
                "color": BLURPLE,
            }
        ],
        components=[],
    )


BUTTON_ROUTES: tuple[tuple[str, ButtonHandler], ...] = (
    ("preset_approve_", preset_approve),
    ("preset_reject_", preset_reject),
    ("ban_confirm_", ban_confirm),
    ("ban_cancel_", ban_cancel),
)


def find_button(custom_id: str) -> ButtonHandler | None:
    for prefix, handler in BUTTON_ROUTES:
        if custom_id.startswith(prefix):
            return handler
    return None
