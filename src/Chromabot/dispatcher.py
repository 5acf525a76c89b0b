"""Routes authenticated interactions to handlers.

Every interaction kind maps to exactly one route in ``InteractionDispatcher``;
the table is checked against ``InteractionType`` at construction. Once
authentication has passed, the only non-200 answer is a 400 for a kind outside
that enum. Handler faults become ephemeral messages instead.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import Response
from pydantic import ValidationError

from Chromabot.autocomplete import AutocompleteResolver
from Chromabot.buttons import find_button
from Chromabot.commanding import Invocation, find_command
from Chromabot.config import Settings
from Chromabot.deferred import DeferredCompletionCoordinator
from Chromabot.discord_schemas import ComponentType, Interaction, InteractionType
from Chromabot.i18n import t
from Chromabot.metrics import inc_counter, observe_histogram
from Chromabot.modals import find_modal
from Chromabot.outcomes import CommandOutcome, OutcomeRecorder
from Chromabot.rate_limiter import RateLimiter, format_rate_limit_message
from Chromabot.responder import (
    error_response,
    respond_autocomplete,
    respond_ephemeral,
    respond_pong,
)
from Chromabot.services import AppServices

log = structlog.get_logger()

Route = Callable[[Interaction], Awaitable[Response]]


class InteractionDispatcher:
    def __init__(
        self,
        *,
        settings: Settings,
        services: AppServices,
        deferred: DeferredCompletionCoordinator,
        rate_limiter: RateLimiter,
        outcomes: OutcomeRecorder,
        autocomplete: AutocompleteResolver | None = None,
    ) -> None:
        self.settings = settings
        self.services = services
        self.deferred = deferred
        self.rate_limiter = rate_limiter
        self.outcomes = outcomes
        self.autocomplete = autocomplete or AutocompleteResolver(services)
        self._routes: dict[InteractionType, Route] = {
            InteractionType.PING: self._ping,
            InteractionType.APPLICATION_COMMAND: self._command,
            InteractionType.APPLICATION_COMMAND_AUTOCOMPLETE: self._autocomplete,
            InteractionType.MESSAGE_COMPONENT: self._component,
            InteractionType.MODAL_SUBMIT: self._modal,
        }
        missing = set(InteractionType) - set(self._routes)
        assert not missing, f"unrouted interaction types: {sorted(missing)}"

    async def dispatch(self, interaction: Interaction) -> Response:
        kind = interaction.kind
        route = self._routes.get(kind) if kind is not None else None
        if route is None:
            inc_counter("discord.interaction.unknown_type")
            log.warning("discord.interaction.unknown_type", interaction_type=interaction.type)
            return error_response(400, "Unknown interaction type")
        return await route(interaction)

    def _invocation(
        self,
        interaction: Interaction,
        name: str,
        *,
        subcommand: str | None = None,
        options: dict[str, Any] | None = None,
        custom_id: str | None = None,
        locale: str | None = None,
    ) -> Invocation:
        return Invocation(
            name=name,
            subcommand=subcommand,
            options=options or {},
            user_id=interaction.user_id or "",
            channel_id=interaction.channel_id,
            guild_id=interaction.guild_id,
            interaction=interaction,
            settings=self.settings,
            services=self.services,
            deferred=self.deferred,
            locale=locale or interaction.locale,
            username=interaction.username,
            custom_id=custom_id,
        )

    async def _locale(self, interaction: Interaction) -> str:
        return await self.services.preferences.resolve(interaction.user_id, interaction.locale)

    async def _ping(self, interaction: Interaction) -> Response:
        return respond_pong()

    async def _autocomplete(self, interaction: Interaction) -> Response:
        return respond_autocomplete(await self.autocomplete.resolve(interaction))

    async def _command(self, interaction: Interaction) -> Response:
        name = (interaction.data.name if interaction.data is not None else None) or ""
        sub = interaction.subcommand
        locale = await self._locale(interaction)
        cmd = find_command(name, sub)
        if cmd is None:
            log.info("command.not_implemented", command_name=name, subcommand=sub)
            return respond_ephemeral(t(locale, "command.not_implemented", command=name))

        user_id = interaction.user_id or ""
        if name not in self.settings.rate_limit_exempt:
            limit = await self.rate_limiter.check(user_id, name)
            if not limit.allowed:
                log.info(
                    "rate_limit.denied",
                    command_name=name,
                    user_id=user_id,
                    retry_after=limit.retry_after,
                )
                return respond_ephemeral(format_rate_limit_message(limit, locale))

        options = interaction.option_values()
        try:
            opts = cmd.option_model.model_validate(options)
        except ValidationError:
            inc_counter("command.options_invalid")
            log.info("command.options_invalid", command_name=name, subcommand=sub)
            return respond_ephemeral(t(locale, "error.invalid_options", command=name))

        inv = self._invocation(
            interaction, name, subcommand=sub, options=options, locale=locale
        )
        log.info(
            "command.initiated",
            command_name=name,
            subcommand=sub,
            user_id=user_id,
            guild_id=interaction.guild_id,
        )
        start = time.perf_counter()
        success = False
        try:
            response = await cmd.handler(inv, opts)
            success = True
        except Exception:
            inc_counter("command.error")
            log.error(
                "command.error",
                command_name=name,
                subcommand=sub,
                user_id=user_id,
                guild_id=interaction.guild_id,
                exc_info=True,
            )
            response = respond_ephemeral(t(locale, "error.generic"))
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            observe_histogram("command.duration_ms", duration_ms)
            log.info(
                "command.completed",
                command_name=name,
                subcommand=sub,
                user_id=user_id,
                status="success" if success else "error",
                duration_ms=duration_ms,
            )
            self.outcomes.record(
                CommandOutcome(
                    command_name=name,
                    user_id=user_id,
                    guild_id=interaction.guild_id,
                    success=success,
                )
            )
        return response

    async def _guarded(
        self, kind: str, inv: Invocation, handler: Callable[[Invocation], Awaitable[Response]]
    ) -> Response:
        try:
            return await handler(inv)
        except Exception:
            inc_counter(f"{kind}.error")
            log.error(f"{kind}.error", custom_id=inv.custom_id, user_id=inv.user_id, exc_info=True)
            return respond_ephemeral(t(inv.locale, "error.generic"))

    async def _component(self, interaction: Interaction) -> Response:
        data = interaction.data
        custom_id = (data.custom_id if data is not None else None) or ""
        component_type = data.component_type if data is not None else None
        locale = await self._locale(interaction)
        if component_type != ComponentType.BUTTON:
            return respond_ephemeral(t(locale, "component.unsupported"))
        handler = find_button(custom_id)
        if handler is None:
            log.info("button.unknown", custom_id=custom_id)
            return respond_ephemeral(t(locale, "button.unknown"))
        inv = self._invocation(interaction, "button", custom_id=custom_id, locale=locale)
        return await self._guarded("button", inv, handler)

    async def _modal(self, interaction: Interaction) -> Response:
        custom_id = (interaction.data.custom_id if interaction.data is not None else None) or ""
        locale = await self._locale(interaction)
        handler = find_modal(custom_id)
        if handler is None:
            log.info("modal.unknown", custom_id=custom_id)
            return respond_ephemeral(t(locale, "modal.unknown"))
        inv = self._invocation(interaction, "modal", custom_id=custom_id, locale=locale)
        return await self._guarded("modal", inv, handler)
