"""Suggestions for partially typed command options.

Routes are matched on (command, subcommand, focused option) in order; the
first match wins and commands without a route fall back to item search.
Resolution never raises: this interaction kind has no way to show an error.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

import structlog

from Chromabot.discord_schemas import MAX_AUTOCOMPLETE_CHOICES, CommandOption, Interaction
from Chromabot.metrics import inc_counter
from Chromabot.services import AppServices
from Chromabot.services import ban_service

log = structlog.get_logger()

Choice = dict[str, str]


@dataclass(frozen=True)
class AutocompleteQuery:
    interaction: Interaction
    command: str
    subcommand: str | None
    option: str | None
    value: str

    @property
    def user_id(self) -> str | None:
        return self.interaction.user_id


Search = Callable[[AppServices, AutocompleteQuery], Awaitable[list[Choice]]]


def find_focused(options: Sequence[CommandOption] | None) -> tuple[str | None, CommandOption | None]:
    """Return (subcommand, focused option), checking top level before one nested level."""
    opts = list(options or [])
    for opt in opts:
        if opt.focused:
            return None, opt
    for opt in opts:
        for sub_opt in opt.options or []:
            if sub_opt.focused:
                return opt.name, sub_opt
    return None, None


def _matches(query: str, text: str) -> bool:
    return not query or query.lower() in text.lower()


async def search_items(services: AppServices, q: AutocompleteQuery) -> list[Choice]:
    items = services.catalog.search_by_name(q.value)
    return [
        {"name": f"{i.name} ({i.hex_upper})", "value": i.name}
        for i in items
        if i.selectable
    ][:MAX_AUTOCOMPLETE_CHOICES]


async def search_collections(services: AppServices, q: AutocompleteQuery) -> list[Choice]:
    if not q.user_id:
        return []
    collections = await services.collections.list(q.user_id)
    return [
        {"name": f"{c.name} ({len(c.dyes)} dyes)", "value": c.name}
        for c in collections
        if _matches(q.value, c.name)
    ]


async def _search_presets_by_status(
    services: AppServices, q: AutocompleteQuery, status: str
) -> list[Choice]:
    presets = await services.presets.search_presets(
        q.value or None,
        status=status,
        sort=None if q.value else "popular",
        limit=MAX_AUTOCOMPLETE_CHOICES,
    )
    return [{"name": p.name[:100], "value": p.id} for p in presets]


async def search_presets(services: AppServices, q: AutocompleteQuery) -> list[Choice]:
    if q.subcommand == "moderate":
        return await _search_presets_by_status(services, q, "pending")
    return await _search_presets_by_status(services, q, "approved")


async def search_favorites(services: AppServices, q: AutocompleteQuery) -> list[Choice]:
    if q.subcommand != "remove":
        return await search_items(services, q)
    if not q.user_id:
        return []
    items = [services.catalog.get(i) for i in await services.favorites.list(q.user_id)]
    return [
        {"name": f"{i.name} ({i.hex_upper})", "value": i.name}
        for i in items
        if i is not None and _matches(q.value, i.name)
    ]


async def search_users(services: AppServices, q: AutocompleteQuery) -> list[Choice]:
    async with services.session_factory() as s:
        if q.subcommand == "ban_user":
            authors = await ban_service.search_preset_authors(s, q.value)
            return [
                {
                    "name": f"{a.username} (discord:{a.discord_id}) - {a.preset_count} presets",
                    "value": a.discord_id,
                }
                for a in authors
            ]
        if q.subcommand == "unban_user":
            banned = await ban_service.search_banned_users(s, q.value)
            out = []
            for b in banned:
                suffix = f"discord:{b.discord_id}" if b.discord_id else f"xivauth:{b.xivauth_id}"
                out.append(
                    {"name": f"{b.username} ({suffix})", "value": b.discord_id or b.xivauth_id or ""}
                )
            return out
    return []


async def _no_choices(services: AppServices, q: AutocompleteQuery) -> list[Choice]:
    return []


@dataclass(frozen=True)
class Route:
    command: str
    option: str
    search: Search
    # Match any focused option whose name starts with ``option``
    prefix: bool = False

    def matches(self, command: str, option: str | None) -> bool:
        if command != self.command or option is None:
            return False
        return option.startswith(self.option) if self.prefix else option == self.option


ROUTES: tuple[Route, ...] = (
    Route("dye", "name", search_items),
    Route("collection", "name", search_collections),
    Route("collection", "dye", search_items),
    Route("preset", "name", search_presets),
    Route("preset", "preset", search_presets),
    Route("preset", "preset_id", search_presets),
    Route("preset", "dye", search_items, prefix=True),
    Route("preset", "user", search_users),
    Route("favorites", "dye", search_favorites),
)

# Commands that only suggest through explicit routes
_ROUTED_COMMANDS = frozenset(r.command for r in ROUTES)


def route_for(command: str, option: str | None) -> Search:
    for route in ROUTES:
        if route.matches(command, option):
            return route.search
    if command in _ROUTED_COMMANDS:
        return _no_choices
    return search_items


class AutocompleteResolver:
    def __init__(self, services: AppServices):
        self.services = services

    async def resolve(self, interaction: Interaction) -> list[Choice]:
        data = interaction.data
        command = (data.name if data is not None else None) or ""
        subcommand, focused = find_focused(data.options if data is not None else None)
        value = focused.value if focused is not None else None
        query = AutocompleteQuery(
            interaction=interaction,
            command=command,
            subcommand=subcommand,
            option=focused.name if focused is not None else None,
            value=value if isinstance(value, str) else ("" if value is None else str(value)),
        )
        search = route_for(command, query.option)
        try:
            choices = await search(self.services, query)
        except Exception:
            inc_counter("autocomplete.failed")
            log.warning(
                "autocomplete.failed",
                command_name=command,
                subcommand=subcommand,
                option=query.option,
                exc_info=True,
            )
            return []
        return choices[:MAX_AUTOCOMPLETE_CHOICES]
