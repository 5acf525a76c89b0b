import httpx
import orjson
import pytest
from fastapi.testclient import TestClient

from Chromabot.app import create_app
from Chromabot.services.preset_api import PresetApiClient
from conftest import MemoryStore, SpyChannel, SpySender, sign


def _presets_api(request: httpx.Request) -> httpx.Response:
    preset = {"id": "p1", "name": "Sunset", "status": "approved", "dyes": [1]}
    return httpx.Response(200, content=orjson.dumps(preset))


class _App:
    def __init__(self, settings, *, channel=None):
        self.store = MemoryStore()
        self.sender = SpySender()
        self.channel = channel or SpyChannel()
        self.app = create_app(
            settings,
            store=self.store,
            sender=self.sender,
            presets=PresetApiClient(settings, transport=httpx.MockTransport(_presets_api)),
            send_channel=self.channel,
            init_db=False,
        )


@pytest.fixture
def chroma(settings):
    return _App(settings)


def _interaction(type_: int, data: dict | None = None) -> bytes:
    payload = {
        "id": "i1",
        "type": type_,
        "token": "tok",
        "application_id": "app",
        "member": {"user": {"id": "u1", "username": "alice"}},
    }
    if data is not None:
        payload["data"] = data
    return orjson.dumps(payload)


def _post_signed(client: TestClient, body: bytes):
    return client.post("/interactions", content=body, headers=sign(body))


def test_signed_ping_gets_pong(chroma):
    body = b'{"id":"i1","type":1,"token":"t","application_id":"a"}'
    with TestClient(chroma.app) as client:
        r = _post_signed(client, body)
    assert r.status_code == 200
    assert r.json() == {"type": 1}


def test_missing_headers_401(chroma):
    with TestClient(chroma.app) as client:
        r = client.post("/interactions", content=b"{}")
    assert r.status_code == 401
    assert r.json() == {"error": "unauthorized"}


def test_tampered_body_401(chroma):
    body = _interaction(1)
    headers = sign(body)
    with TestClient(chroma.app) as client:
        r = client.post("/interactions", content=body + b" ", headers=headers)
    assert r.status_code == 401


def test_unknown_type_400(chroma):
    body = b'{"id":"i1","type":42,"token":"t","application_id":"a"}'
    with TestClient(chroma.app) as client:
        r = _post_signed(client, body)
    assert r.status_code == 400


def test_malformed_body_400(chroma):
    with TestClient(chroma.app) as client:
        r = _post_signed(client, b"{not json")
    assert r.status_code == 400


def test_security_and_request_id_headers(chroma):
    with TestClient(chroma.app) as client:
        r = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
    assert r.json()["service"] == "chromabot"
    assert r.headers["X-Request-ID"] == "req-42"
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"


def test_misconfigured_service_refuses_interactions(settings):
    chroma = _App(settings.model_copy(update={"discord_bot_token": None}))
    body = _interaction(1)
    with TestClient(chroma.app) as client:
        assert _post_signed(client, body).status_code == 500
        assert client.get("/health").status_code == 200


def test_rate_limit_denial_over_http(settings):
    chroma = _App(settings.model_copy(update={"rate_limit_overrides": {"dye": 1}}))
    body = _interaction(
        2,
        {
            "name": "dye",
            "options": [
                {"name": "info", "type": 1, "options": [{"name": "name", "type": 3, "value": "Snow White"}]}
            ],
        },
    )
    with TestClient(chroma.app) as client:
        first = _post_signed(client, body).json()
        second = _post_signed(client, body).json()
    assert first["data"]["embeds"][0]["title"] == "Snow White"
    assert second["data"]["flags"] == 64
    assert "seconds**" in second["data"]["content"]
    # Only the allowed call was recorded
    assert chroma.store.data["stats:total"][0] == "1"


def test_deferred_command_followup_over_http(chroma):
    body = _interaction(
        2,
        {
            "name": "preset",
            "options": [
                {"name": "show", "type": 1, "options": [{"name": "name", "type": 3, "value": "p1"}]}
            ],
        },
    )
    with TestClient(chroma.app) as client:
        r = _post_signed(client, body)
        assert r.json() == {"type": 5}
    # Shutdown drains background work
    assert len(chroma.sender.calls) == 1
    assert chroma.sender.calls[0][2].embeds[0]["title"] == "Sunset"


def test_metrics_endpoint_disabled_by_default(chroma):
    with TestClient(chroma.app) as client:
        assert client.get("/metrics").status_code == 404


def _submission(status: str) -> bytes:
    return orjson.dumps(
        {
            "type": "submission",
            "preset": {
                "id": "p7",
                "name": "Autumn Leaves",
                "description": "Warm browns",
                "category_id": "seasonal",
                "dyes": [1, 7],
                "tags": ["autumn"],
                "author_name": "bob",
                "status": status,
                "source": "bot",
            },
        }
    )


def _post_submission(client: TestClient, body: bytes, token: str = "hook-secret"):
    return client.post(
        "/webhooks/preset-submission",
        content=body,
        headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
    )


def test_submission_with_wrong_bearer_sends_nothing(chroma):
    with TestClient(chroma.app) as client:
        r = _post_submission(client, _submission("pending"), token="nope")
    assert r.status_code == 401
    assert chroma.channel.messages == []


def test_submission_without_configured_secret_fails_closed(settings):
    chroma = _App(settings.model_copy(update={"internal_webhook_secret": None}))
    with TestClient(chroma.app) as client:
        r = _post_submission(client, _submission("pending"), token="")
    assert r.status_code == 401
    assert chroma.channel.messages == []


def test_submission_rejects_bad_json_and_unknown_type(chroma):
    with TestClient(chroma.app) as client:
        assert _post_submission(client, b"{oops").status_code == 400
        unknown = orjson.dumps({"type": "vote", "preset": {"id": "p", "name": "n"}})
        assert _post_submission(client, unknown).status_code == 400
    assert chroma.channel.messages == []


def test_pending_submission_goes_to_moderators(chroma, settings):
    with TestClient(chroma.app) as client:
        r = _post_submission(client, _submission("pending"))
    assert r.status_code == 200
    assert r.json() == {"success": True}
    channel_id, payload = chroma.channel.messages[0]
    assert channel_id == settings.moderation_channel_id
    buttons = payload["components"][0]["components"]
    assert [b["custom_id"] for b in buttons] == ["preset_approve_p7", "preset_reject_p7"]
    fields = {f["name"]: f["value"] for f in payload["embeds"][0]["fields"]}
    assert fields["Dyes"] == "Snow White, Rose Pink"
    assert fields["Source"] == "Discord"


def test_approved_submission_goes_to_log_channel(chroma, settings):
    with TestClient(chroma.app) as client:
        _post_submission(client, _submission("approved"))
    channel_id, payload = chroma.channel.messages[0]
    assert channel_id == settings.submission_log_channel_id
    assert "components" not in payload


def test_other_statuses_are_acknowledged_without_message(chroma):
    with TestClient(chroma.app) as client:
        r = _post_submission(client, _submission("rejected"))
    assert r.json() == {"success": True}
    assert chroma.channel.messages == []


def test_channel_failure_reports_502(settings):
    class _Failing(SpyChannel):
        async def __call__(self, channel_id, payload):  # noqa: ANN001
            raise httpx.ConnectError("discord unreachable")

    chroma = _App(settings, channel=_Failing())
    with TestClient(chroma.app) as client:
        r = _post_submission(client, _submission("pending"))
    assert r.status_code == 502
    assert r.json() == {"success": False}
