from __future__ import annotations

from pydantic import Field

from Chromabot.commanding import Invocation, Option, slash_command
from Chromabot.responder import error_embed, respond_message
from Chromabot.services.catalog import Item

MAX_SEARCH_RESULTS = 15


class DyeInfoOpts(Option):
    name: str = Field(min_length=1, max_length=100)


class DyeSearchOpts(Option):
    query: str = Field(min_length=1, max_length=100)


def _color(item: Item) -> int:
    return int(item.hex.lstrip("#"), 16)


def item_embed(item: Item) -> dict:
    return {
        "title": item.name,
        "color": _color(item),
        "fields": [
            {"name": "Hex", "value": f"`{item.hex_upper}`", "inline": True},
            {"name": "Category", "value": item.category, "inline": True},
            {"name": "ID", "value": str(item.id), "inline": True},
        ],
    }


@slash_command(
    name="dye",
    subcommand="info",
    description="Get detailed dye information.",
    group_description="Look up dyes.",
    option_model=DyeInfoOpts,
)
async def dye_info(inv: Invocation, opts: DyeInfoOpts):
    item = inv.services.catalog.find_by_name(opts.name)
    if item is None:
        return respond_message(
            embeds=[error_embed("Dye not found", f"No dye named **{opts.name}**.")],
            ephemeral=True,
        )
    return respond_message(embeds=[item_embed(item)])


@slash_command(
    name="dye",
    subcommand="search",
    description="Search dyes by name.",
    option_model=DyeSearchOpts,
)
async def dye_search(inv: Invocation, opts: DyeSearchOpts):
    hits = [i for i in inv.services.catalog.search_by_name(opts.query) if i.selectable]
    if not hits:
        return respond_message(
            embeds=[error_embed("No results", f"No dyes match **{opts.query}**.")],
            ephemeral=True,
        )
    lines = [f"• **{i.name}** `{i.hex_upper}` ({i.category})" for i in hits[:MAX_SEARCH_RESULTS]]
    if len(hits) > MAX_SEARCH_RESULTS:
        lines.append(f"…and {len(hits) - MAX_SEARCH_RESULTS} more")
    embed = {
        "title": f"Dyes matching “{opts.query}”",
        "description": "\n".join(lines),
        "color": _color(hits[0]),
    }
    return respond_message(embeds=[embed])
