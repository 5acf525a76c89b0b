# models.py

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from Chromabot.db import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class KVEntry(Base):
    """Generic key-value row used for counters, quotas and user collections."""

    __tablename__ = "kv_entries"
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text)
    # Optional store-level eviction; readers treat expired rows as absent
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )


class Preset(Base):
    """Read-side mirror of community presets, used for author lookups."""

    __tablename__ = "presets"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(120))
    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    author_discord_id: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    author_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    vote_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class BannedUser(Base):
    __tablename__ = "banned_users"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    discord_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    xivauth_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    username: Mapped[str] = mapped_column(String(120))
    reason: Mapped[str] = mapped_column(Text, default="")
    moderator_discord_id: Mapped[str] = mapped_column(String(32))
    banned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    unbanned_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    unban_moderator_discord_id: Mapped[str | None] = mapped_column(String(32), nullable=True)

    __table_args__ = (Index("ix_banned_users_discord_active", "discord_id", "unbanned_at"),)
