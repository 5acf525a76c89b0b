from __future__ import annotations

from collections import Counter

from pydantic import Field

from Chromabot.commanding import Invocation, Option, slash_command
from Chromabot.i18n import t
from Chromabot.responder import error_embed, respond_message
from Chromabot.services.catalog import Item
from Chromabot.services.favorites import MAX_FAVORITES, FavoriteError

GREEN = 0x57F287
BLURPLE = 0x5865F2


class DyeOpts(Option):
    dye: str = Field(min_length=1, max_length=100)


def _reply(embed: dict):
    return respond_message(embeds=[embed], ephemeral=True)


def _info(title: str, text: str):
    return _reply({"title": title, "description": text, "color": BLURPLE})


def _done(inv: Invocation, text: str):
    title = "✅ " + t(inv.locale, "common.success")
    return _reply({"title": title, "description": text, "color": GREEN})


def _lookup(inv: Invocation, name: str) -> Item | None:
    item = inv.services.catalog.find_by_name(name)
    return item if item is not None and item.selectable else None


def _fail(inv: Invocation, text: str):
    return _reply(error_embed(t(inv.locale, "common.error"), text))


def _not_found(inv: Invocation, name: str):
    return _fail(inv, t(inv.locale, "dye.not_found", name=name))


@slash_command(
    name="favorites",
    subcommand="add",
    description="Add a dye to your favorites.",
    group_description="Keep a short list of favorite dyes.",
    option_model=DyeOpts,
)
async def favorites_add(inv: Invocation, opts: DyeOpts):
    item = _lookup(inv, opts.dye)
    if item is None:
        return _not_found(inv, opts.dye)
    err = await inv.services.favorites.add(inv.user_id, item.id)
    locale = inv.locale
    if err is FavoriteError.ALREADY_EXISTS:
        return _info(t(locale, "favorites.title"), t(locale, "favorites.already", name=item.name))
    if err is FavoriteError.LIMIT_REACHED:
        return _fail(inv, t(locale, "favorites.limit", max=MAX_FAVORITES))
    return _done(inv, t(locale, "favorites.added", name=item.name))


@slash_command(
    name="favorites",
    subcommand="remove",
    description="Remove a dye from your favorites.",
    option_model=DyeOpts,
)
async def favorites_remove(inv: Invocation, opts: DyeOpts):
    item = inv.services.catalog.find_by_name(opts.dye)
    if item is None:
        return _not_found(inv, opts.dye)
    if not await inv.services.favorites.remove(inv.user_id, item.id):
        text = t(inv.locale, "favorites.not_in", name=item.name)
        return _info(t(inv.locale, "favorites.title"), text)
    return _done(inv, t(inv.locale, "favorites.removed", name=item.name))


@slash_command(
    name="favorites",
    subcommand="list",
    description="List your favorite dyes.",
)
async def favorites_list(inv: Invocation, opts: Option):
    ids = await inv.services.favorites.list(inv.user_id)
    catalog = inv.services.catalog
    items = [item for item in (catalog.get(i) for i in ids) if item is not None]
    title = t(inv.locale, "favorites.title")
    if not items:
        text = t(inv.locale, "favorites.empty") + "\n\n" + t(inv.locale, "favorites.add_hint")
        return _info(title, text)

    lines = [
        f"{n}. **{item.name}** (`{item.hex_upper}`) - {item.category}"
        for n, item in enumerate(items, 1)
    ]
    # Counter preserves first-seen order
    per_category = Counter(item.category for item in items)
    summary = " • ".join(f"{category}: {count}" for category, count in per_category.items())
    count = t(inv.locale, "favorites.count", count=len(items), max=MAX_FAVORITES)
    return _reply(
        {
            "title": f"{title} ({count})",
            "description": "\n".join(lines),
            "color": BLURPLE,
            "footer": {"text": summary},
        }
    )


@slash_command(
    name="favorites",
    subcommand="clear",
    description="Remove all of your favorite dyes.",
)
async def favorites_clear(inv: Invocation, opts: Option):
    cleared = await inv.services.favorites.clear(inv.user_id)
    if not cleared:
        return _info(t(inv.locale, "favorites.title"), t(inv.locale, "favorites.empty"))
    return _done(inv, t(inv.locale, "favorites.cleared", count=cleared))
