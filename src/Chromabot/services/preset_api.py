# src/Chromabot/services/preset_api.py

from __future__ import annotations

import random
from typing import Any, Literal

import httpx
import orjson
import structlog
from pydantic import BaseModel, Field

from Chromabot.config import Settings

log = structlog.get_logger()


class PresetApiError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class CommunityPreset(BaseModel):
    id: str
    name: str
    description: str = ""
    category_id: str = ""
    dyes: list[int] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    author_discord_id: str | None = None
    author_name: str | None = None
    vote_count: int = 0
    status: str = "pending"
    is_curated: bool = False
    created_at: str | None = None
    updated_at: str | None = None


class PresetSubmission(BaseModel):
    name: str
    description: str
    category_id: str
    dyes: list[int]
    tags: list[str] = Field(default_factory=list)


class SubmitResult(BaseModel):
    preset: CommunityPreset | None = None
    # Set instead of ``preset`` when the same dyes were already published
    duplicate: CommunityPreset | None = None
    vote_added: bool = False
    moderation_status: Literal["approved", "pending"] = "pending"


class ModerationStats(BaseModel):
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    flagged: int = 0
    actions_last_week: int = 0


class PresetApiClient:
    """Async client for the community presets API.

    Every call authenticates with the shared bot secret; user-scoped calls also
    forward the acting Discord user. Transport and HTTP failures surface as
    :class:`PresetApiError`.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ):
        self.base_url = (settings.presets_api_url or "").rstrip("/")
        secret = settings.bot_api_secret.get_secret_value() if settings.bot_api_secret else ""
        self.enabled = bool(self.base_url and secret)
        headers = {"Content-Type": "application/json"}
        if secret:
            headers["Authorization"] = f"Bearer {secret}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url or "http://presets.invalid",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
        user_id: str | None = None,
        user_name: str | None = None,
    ) -> dict[str, Any]:
        if not self.enabled:
            raise PresetApiError(503, "Preset API not configured")
        headers: dict[str, str] = {}
        if user_id:
            headers["X-User-Discord-ID"] = user_id
        if user_name:
            headers["X-User-Discord-Name"] = user_name
        try:
            r = await self._client.request(
                method,
                path,
                params=params,
                content=orjson.dumps(body) if body is not None else None,
                headers=headers or None,
            )
        except httpx.RequestError as e:
            log.error("presets_api.network_error", path=path, error=str(e))
            raise PresetApiError(500, "Failed to communicate with preset API") from e

        try:
            data = r.json() if r.content else {}
        except ValueError:
            data = {}
        if r.status_code >= 400:
            message = data.get("message") or data.get("error") or f"status {r.status_code}"
            log.warning(
                "presets_api.http_error", path=path, http_status_code=r.status_code, message=message
            )
            raise PresetApiError(r.status_code, message)
        return data

    async def search_presets(
        self,
        query: str | None = None,
        *,
        status: str = "approved",
        sort: str | None = None,
        limit: int = 25,
    ) -> list[CommunityPreset]:
        params: dict[str, Any] = {"status": status, "limit": limit}
        if query:
            params["search"] = query
        if sort:
            params["sort"] = sort
        data = await self._request("GET", "/api/v1/presets", params=params)
        return [CommunityPreset.model_validate(p) for p in data.get("presets", [])]

    async def get_preset(self, preset_id: str) -> CommunityPreset | None:
        try:
            data = await self._request("GET", f"/api/v1/presets/{preset_id}")
        except PresetApiError as e:
            if e.status == 404:
                return None
            raise
        return CommunityPreset.model_validate(data)

    async def moderate(
        self,
        preset_id: str,
        status: str,
        moderator_id: str,
        reason: str | None = None,
    ) -> CommunityPreset:
        body: dict[str, Any] = {"status": status}
        if reason:
            body["reason"] = reason
        data = await self._request(
            "PATCH",
            f"/api/v1/moderation/{preset_id}/status",
            body=body,
            user_id=moderator_id,
        )
        return CommunityPreset.model_validate(data.get("preset", data))

    async def list_presets(
        self,
        *,
        category: str | None = None,
        sort: str = "popular",
        status: str = "approved",
        limit: int = 10,
    ) -> tuple[list[CommunityPreset], int]:
        """One page of presets plus the total number matching the filters."""
        params: dict[str, Any] = {"status": status, "sort": sort, "limit": limit}
        if category:
            params["category"] = category
        data = await self._request("GET", "/api/v1/presets", params=params)
        presets = [CommunityPreset.model_validate(p) for p in data.get("presets", [])]
        return presets, int(data.get("total", len(presets)))

    async def random_preset(self, category: str | None = None) -> CommunityPreset | None:
        # Picks from a pool of the first 50 approved presets
        pool, _ = await self.list_presets(category=category, limit=50)
        return random.choice(pool) if pool else None

    async def submit_preset(
        self, submission: PresetSubmission, user_id: str, user_name: str
    ) -> SubmitResult:
        data = await self._request(
            "POST",
            "/api/v1/presets",
            body=submission.model_dump(),
            user_id=user_id,
            user_name=user_name,
        )
        return SubmitResult.model_validate(data)

    async def has_voted(self, preset_id: str, user_id: str) -> bool:
        try:
            data = await self._request(
                "GET", f"/api/v1/votes/{preset_id}/check", user_id=user_id
            )
        except PresetApiError:
            # Unknown vote state counts as not voted
            log.warning("presets_api.vote_check_failed", preset_id=preset_id)
            return False
        return bool(data.get("has_voted"))

    async def vote(self, preset_id: str, user_id: str) -> int:
        """Add the user's vote; returns the new vote count."""
        data = await self._request("POST", f"/api/v1/votes/{preset_id}", user_id=user_id)
        return int(data.get("new_vote_count", 0))

    async def remove_vote(self, preset_id: str, user_id: str) -> int:
        data = await self._request("DELETE", f"/api/v1/votes/{preset_id}", user_id=user_id)
        return int(data.get("new_vote_count", 0))

    async def pending_presets(self, moderator_id: str) -> list[CommunityPreset]:
        data = await self._request("GET", "/api/v1/moderation/pending", user_id=moderator_id)
        return [CommunityPreset.model_validate(p) for p in data.get("presets", [])]

    async def moderation_stats(self, moderator_id: str) -> ModerationStats:
        data = await self._request("GET", "/api/v1/moderation/stats", user_id=moderator_id)
        return ModerationStats.model_validate(data.get("stats", {}))
