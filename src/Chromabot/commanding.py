"""Slash-command registry: option models, handler descriptors and lookup."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from fastapi import Response
from pydantic import BaseModel, ConfigDict

from Chromabot.config import Settings
from Chromabot.discord_schemas import Interaction

if TYPE_CHECKING:
    from Chromabot.deferred import DeferredCompletionCoordinator
    from Chromabot.services import AppServices


@dataclass
class Invocation:
    name: str
    subcommand: str | None
    options: dict[str, Any]
    user_id: str
    channel_id: str | None
    guild_id: str | None
    interaction: Interaction
    settings: Settings
    services: AppServices
    deferred: DeferredCompletionCoordinator
    locale: str | None = None
    username: str = "Unknown"
    # Components and forms: the full custom_id that routed here
    custom_id: str | None = None

    def defer(self, work, *, ephemeral: bool = False, update: bool = False) -> Response:
        label = self.name + (f":{self.subcommand}" if self.subcommand else "")
        return self.deferred.defer(
            self.interaction,
            work,
            ephemeral=ephemeral,
            update=update,
            label=label,
            locale=self.locale,
        )

    @property
    def is_moderator(self) -> bool:
        return self.user_id in self.settings.moderator_id_set()


class Option(BaseModel):
    """Validated view of a command's options; unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore")


Handler = Callable[[Invocation, Any], Awaitable[Response]]


@dataclass
class Command:
    name: str
    description: str
    option_model: type[Option]
    handler: Handler
    subcommand: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


# Keyed "name" or "name:subcommand"
_REGISTRY: dict[str, Command] = {}


def _key(name: str, subcommand: str | None) -> str:
    return name + (f":{subcommand}" if subcommand else "")


def slash_command(
    name: str,
    description: str,
    option_model: type[Option] = Option,
    subcommand: str | None = None,
    **metadata: Any,
):
    def wrap(func: Handler):
        _REGISTRY[_key(name, subcommand)] = Command(
            name, description, option_model, func, subcommand, metadata
        )
        return func

    return wrap


def all_commands() -> dict[str, Command]:
    return dict(_REGISTRY)


def command_names() -> list[str]:
    return sorted({c.name for c in _REGISTRY.values()})


def has_command(name: str) -> bool:
    return any(c.name == name for c in _REGISTRY.values())


def find_command(name: str, subcommand: str | None) -> Command | None:
    cmd = _REGISTRY.get(_key(name, subcommand))
    if cmd is not None:
        return cmd
    # Top-level handler for a command without that subcommand
    return _REGISTRY.get(name)
