from __future__ import annotations

from typing import Literal

import httpx
import structlog
from pydantic import Field

from Chromabot.commanding import Invocation, Option, slash_command
from Chromabot.i18n import t
from Chromabot.notifications import (
    CATEGORY_DISPLAY,
    SubmissionNotification,
    SubmittedPreset,
    approval_log_payload,
    category_label,
    plan_submission_notice,
    preset_embed,
)
from Chromabot.responder import FollowUp, error_embed, respond_ephemeral, respond_message
from Chromabot.services import ban_service
from Chromabot.services.catalog import ItemCatalog
from Chromabot.services.preset_api import PresetApiError, PresetSubmission

log = structlog.get_logger()

PRESETS_WEB_URL = "https://xivdyetools.com"
RED = 0xED4245
GREEN = 0x57F287
BLURPLE = 0x5865F2
ORANGE = 0xF5A623
YELLOW = 0xFEE75C

LIST_LIMIT = 10
PENDING_SHOWN = 10
MIN_DYES = 2
MAX_TAGS = 10

Category = Literal["jobs", "grand-companies", "seasons", "events", "aesthetics", "community"]


class ShowOpts(Option):
    # Autocomplete submits the preset id; free text falls back to a name search
    name: str = Field(min_length=1, max_length=100)


class ListOpts(Option):
    category: Category | None = None
    sort: Literal["popular", "recent", "name"] = "popular"


class RandomOpts(Option):
    category: Category | None = None


class SubmitOpts(Option):
    preset_name: str = Field(min_length=2, max_length=50)
    description: str = Field(min_length=10, max_length=200)
    category: Category
    dye1: str | None = Field(default=None, max_length=100)
    dye2: str | None = Field(default=None, max_length=100)
    dye3: str | None = Field(default=None, max_length=100)
    dye4: str | None = Field(default=None, max_length=100)
    dye5: str | None = Field(default=None, max_length=100)
    tags: str | None = Field(default=None, max_length=300, description="Comma-separated tags")

    def dye_names(self) -> list[str]:
        picked = (self.dye1, self.dye2, self.dye3, self.dye4, self.dye5)
        return [d.strip() for d in picked if d and d.strip()]

    def tag_list(self) -> list[str]:
        tags = [tag.strip() for tag in (self.tags or "").split(",")]
        return [tag for tag in tags if tag][:MAX_TAGS]


class VoteOpts(Option):
    preset: str = Field(min_length=1, max_length=100)


class ModerateOpts(Option):
    action: Literal["pending", "approve", "reject", "stats"]
    preset_id: str | None = Field(default=None, max_length=100)
    reason: str | None = Field(default=None, max_length=500)


class UserOpts(Option):
    user: str = Field(min_length=1, max_length=64)


def _moderation_gate(inv: Invocation, action: str):
    """Return an ephemeral refusal, or None when the caller may moderate here."""
    channel = inv.settings.moderation_channel_id
    if not channel or inv.channel_id != channel:
        return respond_ephemeral(t(inv.locale, "moderation.channel_only"))
    if not inv.is_moderator:
        return respond_ephemeral(t(inv.locale, "permission.denied_action", action=action))
    return None


def _failure(locale: str | None, text: str) -> FollowUp:
    return FollowUp(embeds=[error_embed(t(locale, "common.error"), text)])


def _success(title: str, text: str) -> FollowUp:
    return FollowUp(embeds=[{"title": f"✅ {title}", "description": text, "color": GREEN}])


def _resolve_dye(catalog: ItemCatalog, name: str) -> int | None:
    item = catalog.find_by_name(name)
    if item is None:
        hits = [i for i in catalog.search_by_name(name) if i.selectable]
        item = hits[0] if hits else None
    return item.id if item is not None and item.selectable else None


@slash_command(
    name="preset",
    subcommand="show",
    description="Show a community preset.",
    group_description="Browse, submit and moderate community presets.",
    option_model=ShowOpts,
)
async def preset_show(inv: Invocation, opts: ShowOpts):
    services = inv.services
    locale = inv.locale

    async def work() -> FollowUp:
        preset = await services.presets.get_preset(opts.name)
        if preset is None:
            matches = await services.presets.search_presets(opts.name, status="approved", limit=5)
            wanted = opts.name.lower()
            preset = next((p for p in matches if p.name.lower() == wanted), None) or (
                matches[0] if matches else None
            )
        if preset is None:
            return FollowUp(
                embeds=[
                    error_embed(
                        t(locale, "preset.not_found_title"),
                        t(locale, "preset.not_found", query=opts.name),
                    )
                ]
            )
        footer = t(locale, "preset.votes", count=preset.vote_count)
        return FollowUp(embeds=[preset_embed(preset, services.catalog, footer=footer)])

    return inv.defer(work)


@slash_command(
    name="preset",
    subcommand="list",
    description="Browse approved community presets.",
    option_model=ListOpts,
)
async def preset_list(inv: Invocation, opts: ListOpts):
    services = inv.services
    locale = inv.locale

    async def work() -> FollowUp:
        try:
            presets, total = await services.presets.list_presets(
                category=opts.category, sort=opts.sort, limit=LIST_LIMIT
            )
        except PresetApiError:
            log.warning("preset.list_failed", category=opts.category, exc_info=True)
            return _failure(locale, t(locale, "preset.load_failed"))
        title = category_label(opts.category) if opts.category else t(locale, "preset.title")
        if not presets:
            empty = "preset.none_in_category" if opts.category else "preset.none_found"
            return FollowUp(
                embeds=[{"title": title, "description": t(locale, empty), "color": BLURPLE}]
            )
        lines = []
        for i, p in enumerate(presets, 1):
            icon = CATEGORY_DISPLAY.get(p.category_id, ("🎨", ""))[0]
            author = " " + t(locale, "preset.by", name=p.author_name) if p.author_name else ""
            lines.append(f"**{i}.** {icon} {p.name} ({p.vote_count}★){author}")
        description = "\n".join(
            [
                *lines,
                "",
                t(locale, "preset.showing", shown=len(presets), total=total),
                "",
                t(locale, "preset.show_tip"),
            ]
        )
        return FollowUp(embeds=[{"title": title, "description": description, "color": BLURPLE}])

    return inv.defer(work)


@slash_command(
    name="preset",
    subcommand="random",
    description="Show a random approved preset.",
    option_model=RandomOpts,
)
async def preset_random(inv: Invocation, opts: RandomOpts):
    services = inv.services
    locale = inv.locale

    async def work() -> FollowUp:
        try:
            preset = await services.presets.random_preset(opts.category)
        except PresetApiError:
            log.warning("preset.random_failed", category=opts.category, exc_info=True)
            return _failure(locale, t(locale, "preset.load_failed"))
        if preset is None:
            empty = "preset.none_in_category" if opts.category else "preset.none_found"
            return FollowUp(
                embeds=[
                    {
                        "title": t(locale, "preset.random_title"),
                        "description": t(locale, empty),
                        "color": BLURPLE,
                    }
                ]
            )
        footer = t(locale, "preset.votes", count=preset.vote_count)
        return FollowUp(embeds=[preset_embed(preset, services.catalog, footer=footer)])

    return inv.defer(work)


@slash_command(
    name="preset",
    subcommand="submit",
    description="Submit a new community preset.",
    option_model=SubmitOpts,
)
async def preset_submit(inv: Invocation, opts: SubmitOpts):
    locale = inv.locale
    names = opts.dye_names()
    if len(names) < MIN_DYES:
        return respond_message(
            embeds=[error_embed(t(locale, "common.error"), t(locale, "preset.not_enough_dyes"))],
            ephemeral=True,
        )
    dye_ids = []
    for name in names:
        dye_id = _resolve_dye(inv.services.catalog, name)
        if dye_id is None:
            return respond_message(
                embeds=[error_embed(t(locale, "common.error"), t(locale, "dye.not_found", name=name))],
                ephemeral=True,
            )
        dye_ids.append(dye_id)

    submission = PresetSubmission(
        name=opts.preset_name.strip(),
        description=opts.description.strip(),
        category_id=opts.category,
        dyes=dye_ids,
        tags=opts.tag_list(),
    )
    services = inv.services
    settings = inv.settings
    user_id, user_name = inv.user_id, inv.username

    async def work() -> FollowUp:
        try:
            result = await services.presets.submit_preset(submission, user_id, user_name)
        except PresetApiError as e:
            return _failure(locale, e.message or t(locale, "preset.submit_failed"))

        if result.duplicate is not None:
            dup = result.duplicate
            lines = [
                t(
                    locale,
                    "preset.duplicate_body",
                    name=dup.name,
                    author=dup.author_name or t(locale, "preset.official"),
                    votes=dup.vote_count,
                )
            ]
            if result.vote_added:
                lines += ["", t(locale, "preset.duplicate_voted")]
            return FollowUp(
                embeds=[
                    {
                        "title": t(locale, "preset.duplicate_title"),
                        "description": "\n".join(lines),
                        "color": ORANGE,
                    }
                ]
            )

        preset = result.preset
        if preset is None:
            return _failure(locale, t(locale, "preset.submit_failed"))
        approved = result.moderation_status == "approved"
        embed = {
            "title": ("✅ " if approved else "⏳ ") + t(locale, "preset.submitted"),
            "description": t(
                locale, "preset.submitted_approved" if approved else "preset.submitted_pending"
            ),
            "color": GREEN if approved else YELLOW,
            "fields": [
                {"name": t(locale, "field.name"), "value": preset.name, "inline": True},
                {
                    "name": t(locale, "field.category"),
                    "value": category_label(preset.category_id),
                    "inline": True,
                },
                {
                    "name": t(locale, "field.dyes"),
                    "value": t(locale, "preset.dye_count", count=len(preset.dyes)),
                    "inline": True,
                },
            ],
        }

        notice = SubmissionNotification(
            type="submission",
            preset=SubmittedPreset(
                **preset.model_dump(exclude={"status"}),
                status=result.moderation_status,
                source="discord",
            ),
        )
        plan = plan_submission_notice(notice, settings, services.catalog)
        if plan.channel_id is not None:
            try:
                await services.send_channel(plan.channel_id, plan.payload)
            except httpx.HTTPError:
                log.warning("preset.submit_notice_failed", preset_id=preset.id, exc_info=True)
        return FollowUp(embeds=[embed])

    return inv.defer(work)


@slash_command(
    name="preset",
    subcommand="vote",
    description="Vote for a preset, or take your vote back.",
    option_model=VoteOpts,
)
async def preset_vote(inv: Invocation, opts: VoteOpts):
    services = inv.services
    locale = inv.locale
    user_id = inv.user_id

    async def work() -> FollowUp:
        try:
            if await services.presets.has_voted(opts.preset, user_id):
                count = await services.presets.remove_vote(opts.preset, user_id)
                title = t(locale, "preset.vote_removed")
            else:
                count = await services.presets.vote(opts.preset, user_id)
                title = t(locale, "preset.vote_added")
        except PresetApiError:
            log.warning("preset.vote_failed", preset_id=opts.preset, exc_info=True)
            return _failure(locale, t(locale, "preset.vote_failed"))
        return _success(title, t(locale, "preset.current_votes", count=count))

    return inv.defer(work)


@slash_command(
    name="preset",
    subcommand="moderate",
    description="Review pending presets (moderators only).",
    option_model=ModerateOpts,
)
async def preset_moderate(inv: Invocation, opts: ModerateOpts):
    locale = inv.locale
    if not inv.is_moderator:
        return respond_message(
            embeds=[
                error_embed(
                    t(locale, "common.error"),
                    t(locale, "permission.denied_action", action="moderate presets"),
                )
            ],
            ephemeral=True,
        )
    services = inv.services
    settings = inv.settings
    moderator_id, moderator_name = inv.user_id, inv.username
    preset_id = (opts.preset_id or "").strip()
    reason = (opts.reason or "").strip() or None

    async def pending() -> FollowUp:
        presets = await services.presets.pending_presets(moderator_id)
        title = t(locale, "moderation.pending_title")
        if not presets:
            return FollowUp(
                embeds=[
                    {"title": title, "description": t(locale, "moderation.no_pending"), "color": GREEN}
                ]
            )
        entries = [
            f"**{i}.** {p.name} "
            + t(locale, "preset.by", name=p.author_name or t(locale, "moderation.unknown_author"))
            + f"\n   ID: `{p.id}`"
            for i, p in enumerate(presets[:PENDING_SHOWN], 1)
        ]
        description = "\n".join(
            [t(locale, "moderation.pending_count", count=len(presets)), "", "\n\n".join(entries)]
        )
        return FollowUp(
            embeds=[
                {
                    "title": title,
                    "description": description,
                    "color": YELLOW,
                    "footer": {"text": t(locale, "moderation.pending_footer")},
                }
            ]
        )

    async def approve() -> FollowUp:
        preset = await services.presets.moderate(preset_id, "approved", moderator_id, reason)
        if settings.submission_log_channel_id:
            try:
                await services.send_channel(
                    settings.submission_log_channel_id,
                    approval_log_payload(preset, moderator_name),
                )
            except httpx.HTTPError:
                log.warning("moderation.log_channel_failed", preset_id=preset.id, exc_info=True)
        return FollowUp(
            embeds=[
                {
                    "title": t(locale, "moderation.approved_title"),
                    "description": t(locale, "moderation.approved_desc", name=preset.name),
                    "color": GREEN,
                }
            ]
        )

    async def reject() -> FollowUp:
        preset = await services.presets.moderate(preset_id, "rejected", moderator_id, reason)
        return FollowUp(
            embeds=[
                {
                    "title": t(locale, "moderation.rejected_title"),
                    "description": t(locale, "moderation.rejected_desc", name=preset.name),
                    "color": RED,
                    "fields": [{"name": t(locale, "field.reason"), "value": reason}],
                }
            ]
        )

    async def stats() -> FollowUp:
        s = await services.presets.moderation_stats(moderator_id)
        fields = [
            ("moderation.stat_pending", s.pending),
            ("moderation.stat_approved", s.approved),
            ("moderation.stat_rejected", s.rejected),
            ("moderation.stat_flagged", s.flagged),
            ("moderation.stat_actions", s.actions_last_week),
        ]
        return FollowUp(
            embeds=[
                {
                    "title": t(locale, "moderation.stats_title"),
                    "color": BLURPLE,
                    "fields": [
                        {"name": t(locale, key), "value": str(v), "inline": True}
                        for key, v in fields
                    ],
                }
            ]
        )

    actions = {"pending": pending, "approve": approve, "reject": reject, "stats": stats}

    async def work() -> FollowUp:
        if opts.action in ("approve", "reject") and not preset_id:
            return _failure(locale, t(locale, "moderation.missing_id"))
        if opts.action == "reject" and reason is None:
            return _failure(locale, t(locale, "moderation.missing_reason"))
        try:
            return await actions[opts.action]()
        except PresetApiError as e:
            log.warning("preset.moderate_failed", action=opts.action, preset_id=preset_id)
            return _failure(locale, e.message or t(locale, "moderation.failed"))

    return inv.defer(work)


@slash_command(
    name="preset",
    subcommand="ban_user",
    description="Ban a preset author (moderators only).",
    option_model=UserOpts,
)
async def preset_ban_user(inv: Invocation, opts: UserOpts):
    refusal = _moderation_gate(inv, "ban users")
    if refusal is not None:
        return refusal
    locale = inv.locale

    async with inv.services.session_factory() as s:
        found = await ban_service.get_author(s, opts.user)
    if found is None:
        return respond_ephemeral(t(locale, "ban.user_not_found"))
    author, recent = found

    links = "\n".join(f"• [{p.name}]({PRESETS_WEB_URL}/presets/{p.id})" for p in recent)
    embed = {
        "title": t(locale, "ban.confirm_title"),
        "description": t(locale, "ban.confirm_body"),
        "color": RED,
        "fields": [
            {"name": t(locale, "ban.field_username"), "value": author.username, "inline": True},
            {"name": t(locale, "ban.field_discord_id"), "value": author.discord_id, "inline": True},
            {"name": t(locale, "ban.field_total"), "value": str(author.preset_count), "inline": True},
            {
                "name": t(locale, "ban.field_recent"),
                "value": links or t(locale, "ban.no_presets"),
                "inline": False,
            },
        ],
        "footer": {"text": t(locale, "ban.confirm_footer")},
    }
    # Ids only; the username is looked up again when the ban is applied
    buttons = [
        {
            "type": 1,
            "components": [
                {
                    "type": 2,
                    "style": 4,
                    "label": t(locale, "ban.confirm_button"),
                    "emoji": {"name": "🔨"},
                    "custom_id": f"ban_confirm_{author.discord_id}",
                },
                {
                    "type": 2,
                    "style": 2,
                    "label": t(locale, "ban.cancel_button"),
                    "emoji": {"name": "❌"},
                    "custom_id": f"ban_cancel_{author.discord_id}",
                },
            ],
        }
    ]
    return respond_message(embeds=[embed], components=buttons, ephemeral=True)


@slash_command(
    name="preset",
    subcommand="unban_user",
    description="Lift a ban on a preset author (moderators only).",
    option_model=UserOpts,
)
async def preset_unban_user(inv: Invocation, opts: UserOpts):
    refusal = _moderation_gate(inv, "unban users")
    if refusal is not None:
        return refusal
    services = inv.services
    locale = inv.locale
    moderator_id = inv.user_id

    async def work() -> FollowUp:
        async with services.session_factory() as s:
            ban = await ban_service.get_active_ban(s, opts.user)
            if ban is None:
                return _failure(locale, t(locale, "ban.not_banned"))
            username = ban.username
            outcome = await ban_service.unban_user(s, opts.user, moderator_id)
        if not outcome.success:
            return _failure(locale, outcome.error or t(locale, "ban.unban_failed"))
        return FollowUp(
            embeds=[
                {
                    "title": t(locale, "ban.unbanned_title"),
                    "description": t(
                        locale,
                        "ban.unbanned_body",
                        username=username,
                        count=outcome.presets_changed,
                    ),
                    "color": GREEN,
                }
            ]
        )

    return inv.defer(work, ephemeral=True)
