"""FastAPI app entrypoint for Chromabot."""

import time
import uuid
from datetime import datetime, timezone

import httpx
import orjson
import structlog
from fastapi import FastAPI, Request
from pydantic import ValidationError
from structlog.contextvars import bind_contextvars, clear_contextvars

from Chromabot.autocomplete import AutocompleteResolver
from Chromabot.command_loader import load_all_commands
from Chromabot.config import Settings, check_settings_once, load_settings
from Chromabot.crypto import verify_bearer, verify_interaction_request
from Chromabot.db import init_schema
from Chromabot.deferred import DeferredCompletionCoordinator, FollowUpSender, TaskSupervisor
from Chromabot.discord_schemas import Interaction
from Chromabot.dispatcher import InteractionDispatcher
from Chromabot.kv import KeyValueStore, SqlKeyValueStore
from Chromabot.logging import redact_settings, setup_logging
from Chromabot.metrics import get_counters, inc_counter
from Chromabot.notifications import SubmissionNotification, plan_submission_notice
from Chromabot.outcomes import OutcomeRecorder
from Chromabot.rate_limiter import RateLimiter
from Chromabot.responder import edit_original_response, error_response, orjson_response
from Chromabot.services import ChannelSender, build_services
from Chromabot.services.preset_api import PresetApiClient

log = structlog.get_logger()

DISCORD_SIG_HEADER = "X-Signature-Ed25519"
DISCORD_TS_HEADER = "X-Signature-Timestamp"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
}

# Served even when the configuration is unusable
_UNCHECKED_PATHS = frozenset({"/health"})


def create_app(
    settings: Settings | None = None,
    *,
    store: KeyValueStore | None = None,
    sender: FollowUpSender = edit_original_response,
    presets: PresetApiClient | None = None,
    send_channel: ChannelSender | None = None,
    init_db: bool = True,
) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="Chromabot")

    supervisor = TaskSupervisor()
    store = store or SqlKeyValueStore()
    outcomes = OutcomeRecorder(store, supervisor)
    services = build_services(
        settings, store, outcomes, presets=presets, send_channel=send_channel
    )
    deferred = DeferredCompletionCoordinator(supervisor, settings=settings, sender=sender)
    dispatcher = InteractionDispatcher(
        settings=settings,
        services=services,
        deferred=deferred,
        rate_limiter=RateLimiter.from_settings(store, settings),
        outcomes=outcomes,
        autocomplete=AutocompleteResolver(services),
    )
    app.state.settings = settings
    app.state.supervisor = supervisor
    app.state.services = services
    app.state.dispatcher = dispatcher

    @app.on_event("startup")
    async def startup():
        log.info("app.startup", config=redact_settings(settings))
        load_all_commands()
        if init_db:
            await init_schema()

    @app.on_event("shutdown")
    async def shutdown():
        # Let acknowledged interactions deliver their follow-ups first
        await supervisor.drain()
        await services.presets.close()
        log.info("app.shutdown")

    @app.middleware("http")
    async def settings_check_middleware(request: Request, call_next):
        check, computed_now = check_settings_once(settings)
        if computed_now and not check.valid:
            for err in check.errors:
                log.error("config.invalid", error=err, critical=check.critical)
        if check.critical and request.url.path not in _UNCHECKED_PATHS:
            return error_response(500, "Service misconfigured")
        return await call_next(request)

    @app.middleware("http")
    async def security_headers_middleware(request: Request, call_next):
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers[name] = value
        return response

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Assign a request_id, bind it to structlog context, and measure duration."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()
        bind_contextvars(request_id=request_id)
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            log.info(
                "http.request.completed",
                http_path=str(request.url.path),
                http_method=request.method,
                http_status_code=status_code,
                duration_ms=int((time.perf_counter() - start) * 1000),
            )
            clear_contextvars()

    @app.post("/interactions")
    async def interactions(request: Request):
        raw = await request.body()
        sig = request.headers.get(DISCORD_SIG_HEADER)
        ts = request.headers.get(DISCORD_TS_HEADER)
        log.info(
            "discord.request.received",
            http_path=str(request.url.path),
            has_sig=bool(sig),
            has_ts=bool(ts),
        )
        verified = verify_interaction_request(raw, sig, ts, settings.discord_public_key)
        if not verified.is_valid:
            inc_counter("discord.request.unauthorized")
            # Reason is for our logs only; the caller gets a generic answer
            log.warning("discord.request.unauthorized", reason=verified.error)
            return error_response(401, "unauthorized")

        try:
            inter = Interaction.model_validate_json(verified.raw_body)
        except ValidationError:
            preview = verified.raw_body[:200].decode("utf-8", errors="replace")
            log.error("discord.request.parse_error", raw_body_preview=preview)
            return error_response(400, "invalid interaction payload")

        log.info(
            "discord.request.validated",
            interaction_id=inter.id,
            interaction_type=inter.type,
            command_name=inter.data.name if inter.data is not None else None,
        )
        return await dispatcher.dispatch(inter)

    @app.post("/webhooks/preset-submission")
    async def preset_submission(request: Request):
        bearer = verify_bearer(
            request.headers.get("Authorization"), settings.internal_webhook_secret
        )
        if not bearer.ok:
            if not bearer.misconfigured:
                log.warning("webhook.auth_failed")
            return error_response(401, "unauthorized")

        try:
            body = orjson.loads(await request.body())
        except orjson.JSONDecodeError:
            return error_response(400, "Invalid JSON body")
        try:
            notice = SubmissionNotification.model_validate(body)
        except ValidationError:
            return error_response(400, "Invalid payload")

        preset = notice.preset
        log.info(
            "webhook.preset_submission.received",
            preset_id=preset.id,
            status=preset.status,
            source=preset.source,
        )
        plan = plan_submission_notice(notice, settings, services.catalog)
        if plan.channel_id is None:
            log.info("webhook.preset_submission.skipped", preset_id=preset.id, status=preset.status)
            return orjson_response({"success": True})
        try:
            await services.send_channel(plan.channel_id, plan.payload)
        except httpx.HTTPError:
            inc_counter("webhook.preset_submission.send_failed")
            log.error("webhook.preset_submission.send_failed", preset_id=preset.id, exc_info=True)
            return orjson_response({"success": False}, status_code=502)
        return orjson_response({"success": True})

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "service": "chromabot",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/metrics")
    async def metrics():
        if not settings.metrics_endpoint_enabled:
            return error_response(404, "metrics disabled")
        return get_counters()

    return app


settings = load_settings()
setup_logging(settings)
app = create_app(settings)
