from __future__ import annotations

from pydantic import Field

from Chromabot.commanding import Invocation, Option, slash_command
from Chromabot.responder import error_embed, respond_message
from Chromabot.services.collections import (
    MAX_COLLECTIONS,
    MAX_ITEMS_PER_COLLECTION,
    MAX_NAME_LENGTH,
    CollectionError,
)

GREEN = 0x57F287
BLURPLE = 0x5865F2

_ERRORS = {
    CollectionError.ALREADY_EXISTS: "That already exists.",
    CollectionError.LIMIT_REACHED: (
        f"Limit reached: {MAX_COLLECTIONS} collections, {MAX_ITEMS_PER_COLLECTION} dyes each."
    ),
    CollectionError.NOT_FOUND: "Not found.",
    CollectionError.INVALID_NAME: f"Names must be 1-{MAX_NAME_LENGTH} characters.",
}


class NameOpts(Option):
    name: str = Field(min_length=1, max_length=100)


class CreateOpts(NameOpts):
    description: str | None = Field(default=None, max_length=200)


class DyeOpts(NameOpts):
    dye: str = Field(min_length=1, max_length=100)


def _ok(text: str):
    return respond_message(embeds=[{"description": f"✅ {text}", "color": GREEN}], ephemeral=True)


def _fail(title: str, text: str):
    return respond_message(embeds=[error_embed(title, text)], ephemeral=True)


@slash_command(
    name="collection",
    subcommand="create",
    description="Create a named dye collection.",
    group_description="Manage your dye collections.",
    option_model=CreateOpts,
)
async def collection_create(inv: Invocation, opts: CreateOpts):
    result = await inv.services.collections.create(inv.user_id, opts.name, opts.description)
    if isinstance(result, CollectionError):
        return _fail("Could not create collection", _ERRORS[result])
    return _ok(f"Created collection **{result.name}**.")


@slash_command(
    name="collection",
    subcommand="add",
    description="Add a dye to a collection.",
    option_model=DyeOpts,
)
async def collection_add(inv: Invocation, opts: DyeOpts):
    item = inv.services.catalog.find_by_name(opts.dye)
    if item is None or not item.selectable:
        return _fail("Dye not found", f"No dye named **{opts.dye}**.")
    err = await inv.services.collections.add_item(inv.user_id, opts.name, item.id)
    if err is not None:
        return _fail("Could not add dye", _ERRORS[err])
    return _ok(f"Added **{item.name}** to **{opts.name}**.")


@slash_command(
    name="collection",
    subcommand="remove",
    description="Remove a dye from a collection.",
    option_model=DyeOpts,
)
async def collection_remove(inv: Invocation, opts: DyeOpts):
    item = inv.services.catalog.find_by_name(opts.dye)
    if item is None:
        return _fail("Dye not found", f"No dye named **{opts.dye}**.")
    err = await inv.services.collections.remove_item(inv.user_id, opts.name, item.id)
    if err is not None:
        return _fail("Could not remove dye", _ERRORS[err])
    return _ok(f"Removed **{item.name}** from **{opts.name}**.")


@slash_command(
    name="collection",
    subcommand="show",
    description="Show the dyes in a collection.",
    option_model=NameOpts,
)
async def collection_show(inv: Invocation, opts: NameOpts):
    found = await inv.services.collections.get(inv.user_id, opts.name)
    if found is None:
        return _fail("Collection not found", f"You have no collection named **{opts.name}**.")
    names = inv.services.catalog.names_for(found.dyes)
    embed = {
        "title": found.name,
        "description": found.description or "",
        "color": BLURPLE,
        "fields": [
            {
                "name": f"Dyes ({len(names)}/{MAX_ITEMS_PER_COLLECTION})",
                "value": "\n".join(f"• {n}" for n in names) or "Empty",
            }
        ],
    }
    return respond_message(embeds=[embed], ephemeral=True)


@slash_command(
    name="collection",
    subcommand="list",
    description="List your collections.",
)
async def collection_list(inv: Invocation, opts: Option):
    collections = await inv.services.collections.list(inv.user_id)
    lines = [f"• **{c.name}** ({len(c.dyes)} dyes)" for c in collections]
    embed = {
        "title": f"Your collections ({len(collections)}/{MAX_COLLECTIONS})",
        "description": "\n".join(lines) or "You have no collections yet.",
        "color": BLURPLE,
    }
    return respond_message(embeds=[embed], ephemeral=True)


@slash_command(
    name="collection",
    subcommand="delete",
    description="Delete a collection.",
    option_model=NameOpts,
)
async def collection_delete(inv: Invocation, opts: NameOpts):
    if not await inv.services.collections.delete(inv.user_id, opts.name):
        return _fail("Collection not found", f"You have no collection named **{opts.name}**.")
    return _ok(f"Deleted collection **{opts.name}**.")
