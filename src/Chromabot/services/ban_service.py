# src/Chromabot/services/ban_service.py
"""Moderation bans over the preset author mirror and ``banned_users``.

Banning hides the author's approved presets; unbanning restores them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog
from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from Chromabot import models

log = structlog.get_logger()

HIDDEN_STATUS = "hidden"


@dataclass(frozen=True)
class AuthorMatch:
    discord_id: str
    username: str
    preset_count: int


@dataclass(frozen=True)
class BanOutcome:
    success: bool
    presets_changed: int = 0
    error: str | None = None


def escape_like(query: str) -> str:
    """Escape LIKE wildcards so user input only ever matches literally."""
    return query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains(query: str) -> str:
    return f"%{escape_like(query)}%"


async def is_banned(s: AsyncSession, discord_id: str) -> bool:
    q = await s.execute(
        select(models.BannedUser.id)
        .where(models.BannedUser.discord_id == discord_id)
        .where(models.BannedUser.unbanned_at.is_(None))
        .limit(1)
    )
    return q.scalar_one_or_none() is not None


async def search_preset_authors(
    s: AsyncSession, query: str, limit: int = 25
) -> list[AuthorMatch]:
    """Authors whose name matches ``query``, most prolific first, skipping active bans."""
    active_bans = (
        select(models.BannedUser.discord_id)
        .where(models.BannedUser.unbanned_at.is_(None))
        .where(models.BannedUser.discord_id.is_not(None))
    )
    preset_count = func.count(models.Preset.id).label("preset_count")
    stmt = (
        select(
            models.Preset.author_discord_id,
            func.max(models.Preset.author_name),
            preset_count,
        )
        .where(models.Preset.author_discord_id.is_not(None))
        .where(models.Preset.author_name.like(_contains(query), escape="\\"))
        .where(models.Preset.author_discord_id.not_in(active_bans))
        .group_by(models.Preset.author_discord_id)
        .order_by(preset_count.desc(), func.max(models.Preset.author_name))
        .limit(limit)
    )
    rows = (await s.execute(stmt)).all()
    return [AuthorMatch(discord_id=r[0], username=r[1] or r[0], preset_count=r[2]) for r in rows]


async def search_banned_users(
    s: AsyncSession, query: str, limit: int = 25
) -> list[models.BannedUser]:
    pattern = _contains(query)
    stmt = (
        select(models.BannedUser)
        .where(models.BannedUser.unbanned_at.is_(None))
        .where(
            or_(
                models.BannedUser.username.like(pattern, escape="\\"),
                models.BannedUser.discord_id.like(pattern, escape="\\"),
            )
        )
        .order_by(models.BannedUser.username)
        .limit(limit)
    )
    return list((await s.execute(stmt)).scalars().all())


async def ban_user(
    s: AsyncSession,
    discord_id: str,
    username: str,
    moderator_discord_id: str,
    reason: str,
) -> BanOutcome:
    if await is_banned(s, discord_id):
        return BanOutcome(False, error="User is already banned.")
    s.add(
        models.BannedUser(
            discord_id=discord_id,
            username=username,
            moderator_discord_id=moderator_discord_id,
            reason=reason,
        )
    )
    result = await s.execute(
        update(models.Preset)
        .where(models.Preset.author_discord_id == discord_id)
        .where(models.Preset.status == "approved")
        .values(status=HIDDEN_STATUS)
    )
    await s.flush()
    log.info(
        "moderation.user_banned",
        discord_id=discord_id,
        moderator_id=moderator_discord_id,
        presets_hidden=result.rowcount,
    )
    return BanOutcome(True, presets_changed=result.rowcount or 0)


async def unban_user(s: AsyncSession, discord_id: str, moderator_discord_id: str) -> BanOutcome:
    if not await is_banned(s, discord_id):
        return BanOutcome(False, error="User is not currently banned.")
    await s.execute(
        update(models.BannedUser)
        .where(models.BannedUser.discord_id == discord_id)
        .where(models.BannedUser.unbanned_at.is_(None))
        .values(
            unbanned_at=datetime.now(timezone.utc),
            unban_moderator_discord_id=moderator_discord_id,
        )
    )
    result = await s.execute(
        update(models.Preset)
        .where(models.Preset.author_discord_id == discord_id)
        .where(models.Preset.status == HIDDEN_STATUS)
        .values(status="approved")
    )
    log.info(
        "moderation.user_unbanned",
        discord_id=discord_id,
        moderator_id=moderator_discord_id,
        presets_restored=result.rowcount,
    )
    return BanOutcome(True, presets_changed=result.rowcount or 0)


async def get_active_ban(s: AsyncSession, discord_id: str) -> models.BannedUser | None:
    q = await s.execute(
        select(models.BannedUser)
        .where(models.BannedUser.discord_id == discord_id)
        .where(models.BannedUser.unbanned_at.is_(None))
        .limit(1)
    )
    return q.scalar_one_or_none()


async def get_author(
    s: AsyncSession, discord_id: str, *, recent: int = 3
) -> tuple[AuthorMatch, list[models.Preset]] | None:
    """Author summary plus their most recent presets, for ban confirmation."""
    row = (
        await s.execute(
            select(func.max(models.Preset.author_name), func.count(models.Preset.id))
            .where(models.Preset.author_discord_id == discord_id)
        )
    ).one()
    if not row[1]:
        return None
    presets = (
        await s.execute(
            select(models.Preset)
            .where(models.Preset.author_discord_id == discord_id)
            .order_by(models.Preset.created_at.desc())
            .limit(recent)
        )
    ).scalars().all()
    author = AuthorMatch(discord_id=discord_id, username=row[0] or discord_id, preset_count=row[1])
    return author, list(presets)
