"""Form submissions, matched against an ordered list of predicates."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from fastapi import Response

from Chromabot.buttons import original_embed
from Chromabot.commanding import Invocation
from Chromabot.i18n import t
from Chromabot.notifications import STATUS_COLORS
from Chromabot.responder import FollowUp, error_embed, respond_message
from Chromabot.services import ban_service
from Chromabot.services.preset_api import PresetApiError


MIN_REASON_LENGTH = 10
RED = 0xED4245

ModalHandler = Callable[[Invocation], Awaitable[Response]]


def _ephemeral_error(inv: Invocation, text: str) -> Response:
    return respond_message(embeds=[error_embed(t(inv.locale, "common.error"), text)], ephemeral=True)


def _reason(inv: Invocation, field: str) -> str:
    return inv.interaction.modal_values().get(field, "").strip()


def is_preset_rejection(custom_id: str) -> bool:
    return custom_id.startswith("preset_reject_modal_")


def is_ban_reason(custom_id: str) -> bool:
    return custom_id.startswith("ban_reason_modal_")


async def preset_rejection(inv: Invocation) -> Response:
    preset_id = (inv.custom_id or "").removeprefix("preset_reject_modal_")
    if not preset_id:
        return _ephemeral_error(inv, t(inv.locale, "modal.invalid"))
    if not inv.is_moderator:
        return _ephemeral_error(inv, t(inv.locale, "permission.denied"))
    reason = _reason(inv, "rejection_reason")
    if len(reason) < MIN_REASON_LENGTH:
        return _ephemeral_error(inv, t(inv.locale, "reject.reason_too_short", min=MIN_REASON_LENGTH))

    services = inv.services
    locale = inv.locale
    moderator_id, moderator_name = inv.user_id, inv.username
    embed = original_embed(inv)

    async def work() -> FollowUp:
        try:
            await services.presets.moderate(preset_id, "rejected", moderator_id, reason)
        except PresetApiError as e:
            fields = [
                *embed.get("fields", []),
                {
                    "name": t(locale, "field.error"),
                    "value": t(locale, "moderation.reject_failed", error=e.message),
                    "inline": False,
                },
            ]
            return FollowUp(embeds=[{**embed, "fields": fields}])
        rejected = {
            **embed,
            "title": t(locale, "moderation.rejected_title"),
            "color": STATUS_COLORS["rejected"],
            "fields": [
                *embed.get("fields", []),
                {
                    "name": t(locale, "field.action"),
                    "value": t(locale, "moderation.rejected_by", name=moderator_name),
                    "inline": True,
                },
                {"name": t(locale, "field.reason"), "value": reason, "inline": False},
            ],
        }
        return FollowUp(embeds=[rejected], components=[])

    return inv.defer(work, update=True)


async def ban_reason(inv: Invocation) -> Response:
    if not inv.is_moderator:
        return _ephemeral_error(inv, t(inv.locale, "permission.denied"))
    target_id = (inv.custom_id or "").removeprefix("ban_reason_modal_")
    if not target_id.isdigit():
        return _ephemeral_error(inv, t(inv.locale, "modal.invalid"))
    reason = _reason(inv, "ban_reason")
    if len(reason) < MIN_REASON_LENGTH:
        return _ephemeral_error(inv, t(inv.locale, "ban.reason_too_short", min=MIN_REASON_LENGTH))

    services = inv.services
    locale = inv.locale
    moderator_id = inv.user_id

    async def work() -> FollowUp:
        async with services.session_factory() as s:
            found = await ban_service.get_author(s, target_id, recent=0)
            username = found[0].username if found is not None else target_id
            outcome = await ban_service.ban_user(s, target_id, username, moderator_id, reason)
        if not outcome.success:
            return FollowUp(
                embeds=[
                    error_embed(
                        t(locale, "ban.failed_title"), outcome.error or t(locale, "ban.failed")
                    )
                ],
                components=[],
            )
        return FollowUp(
            embeds=[
                {
                    "title": t(locale, "ban.done_title"),
                    "description": t(
                        locale, "ban.done_body", username=username, count=outcome.presets_changed
                    ),
                    "color": RED,
                    "fields": [{"name": t(locale, "field.reason"), "value": reason, "inline": False}],
                }
            ],
            components=[],
        )

    return inv.defer(work, update=True)


# Identifiers are prefix-disjoint, so order never decides between two matches
MODAL_ROUTES: tuple[tuple[Callable[[str], bool], ModalHandler], ...] = (
    (is_preset_rejection, preset_rejection),
    (is_ban_reason, ban_reason),
)


def find_modal(custom_id: str) -> ModalHandler | None:
    for matches, handler in MODAL_ROUTES:
        if matches(custom_id):
            return handler
    return None
