"""Channel messages about community preset submissions and moderation."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

from Chromabot.config import Settings
from Chromabot.i18n import t
from Chromabot.services.catalog import ItemCatalog
from Chromabot.services.preset_api import CommunityPreset

STATUS_COLORS = {
    "pending": 0xFEE75C,
    "approved": 0x57F287,
    "rejected": 0xED4245,
    "flagged": 0xEB459E,
    "hidden": 0x99AAB5,
}

# category id -> (icon, display name)
CATEGORY_DISPLAY: dict[str, tuple[str, str]] = {
    "jobs": ("⚔️", "FFXIV Jobs"),
    "grand-companies": ("🏛️", "Grand Companies"),
    "seasons": ("🍂", "Seasons"),
    "events": ("🎉", "FFXIV Events"),
    "aesthetics": ("🎨", "Aesthetics"),
    "community": ("🌐", "Community"),
}


def category_label(category_id: str) -> str:
    if category_id in CATEGORY_DISPLAY:
        icon, name = CATEGORY_DISPLAY[category_id]
        return f"{icon} {name}"
    return category_id or "Uncategorized"


class SubmittedPreset(CommunityPreset):
    source: str = "web"


class SubmissionNotification(BaseModel):
    type: Literal["submission"]
    preset: SubmittedPreset


class NotificationPlan(BaseModel):
    """Where a notification goes and what it says; ``channel_id`` None means skip."""

    channel_id: str | None
    payload: dict[str, Any] = Field(default_factory=dict)


def format_dyes(catalog: ItemCatalog, dye_ids: list[int]) -> str:
    return ", ".join(catalog.names_for(dye_ids)) or "None"


def preset_embed(
    preset: CommunityPreset,
    catalog: ItemCatalog,
    *,
    title: str | None = None,
    footer: str | None = None,
) -> dict[str, Any]:
    fields: list[dict[str, Any]] = [
        {"name": "Category", "value": category_label(preset.category_id), "inline": True},
        {"name": "Author", "value": preset.author_name or "Unknown", "inline": True},
    ]
    source = getattr(preset, "source", None)
    if source is not None:
        fields.append(
            {"name": "Source", "value": "Web App" if source == "web" else "Discord", "inline": True}
        )
    fields.append({"name": "Dyes", "value": format_dyes(catalog, preset.dyes), "inline": False})
    if preset.tags:
        fields.append({"name": "Tags", "value": ", ".join(preset.tags), "inline": False})
    embed: dict[str, Any] = {
        "title": title or preset.name,
        "description": f"**{preset.name}**\n\n{preset.description}" if title else preset.description,
        "color": STATUS_COLORS.get(preset.status, STATUS_COLORS["pending"]),
        "fields": fields,
        "footer": {"text": footer or f"ID: {preset.id}"},
    }
    if preset.created_at:
        embed["timestamp"] = preset.created_at
    return embed


def moderation_buttons(preset_id: str) -> list[dict[str, Any]]:
    return [
        {
            "type": 1,
            "components": [
                {
                    "type": 2,
                    "style": 3,
                    "label": "Approve",
                    "emoji": {"name": "✅"},
                    "custom_id": f"preset_approve_{preset_id}",
                },
                {
                    "type": 2,
                    "style": 4,
                    "label": "Reject",
                    "emoji": {"name": "❌"},
                    "custom_id": f"preset_reject_{preset_id}",
                },
            ],
        }
    ]


def plan_submission_notice(
    notice: SubmissionNotification, settings: Settings, catalog: ItemCatalog
) -> NotificationPlan:
    """Pending presets go to moderators with buttons; approved ones to the log channel."""
    preset = notice.preset
    if preset.status == "pending":
        return NotificationPlan(
            channel_id=settings.moderation_channel_id,
            payload={
                "embeds": [
                    preset_embed(preset, catalog, title="🟡 Preset Awaiting Moderation")
                ],
                "components": moderation_buttons(preset.id),
            },
        )
    if preset.status == "approved":
        return NotificationPlan(
            channel_id=settings.submission_log_channel_id,
            payload={
                "embeds": [
                    preset_embed(
                        preset,
                        catalog,
                        title="🟢 New Preset Published",
                        footer=f"ID: {preset.id} • Auto-approved",
                    )
                ]
            },
        )
    return NotificationPlan(channel_id=None)


def approval_log_payload(preset: CommunityPreset, moderator_name: str) -> dict[str, Any]:
    """Submission-log entry for a preset a moderator approved."""
    return {
        "embeds": [
            {
                "title": t(None, "moderation.log_approved_title", name=preset.name),
                "description": t(None, "moderation.log_approved_body", name=moderator_name),
                "color": STATUS_COLORS["approved"],
                "footer": {"text": f"ID: {preset.id}"},
            }
        ]
    }
