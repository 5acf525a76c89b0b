import httpx
import orjson
import pytest

from Chromabot import models
from Chromabot.command_loader import load_all_commands
from Chromabot.commanding import Invocation, find_command
from Chromabot.db import session_scope
from Chromabot.deferred import DeferredCompletionCoordinator, TaskSupervisor
from Chromabot.discord_schemas import Interaction
from Chromabot.metrics import get_counter
from Chromabot.outcomes import CommandOutcome, OutcomeRecorder
from Chromabot.services import build_services
from Chromabot.services.preset_api import PresetApiClient
from conftest import MODERATOR_ID, STATS_USER_ID, SpyChannel, SpySender


def _no_api(request: httpx.Request) -> httpx.Response:
    return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def services(settings, store):
    return build_services(
        settings,
        store,
        OutcomeRecorder(store, TaskSupervisor()),
        presets=PresetApiClient(settings, transport=httpx.MockTransport(_no_api)),
        send_channel=SpyChannel(),
    )


async def _invoke(
    settings,
    services,
    name,
    sub=None,
    /,
    *,
    user_id="u1",
    channel_id="c1",
    locale=None,
    **options,
):
    load_all_commands()
    cmd = find_command(name, sub)
    assert cmd is not None
    interaction = Interaction.model_validate(
        {
            "id": "i1",
            "type": 2,
            "token": "tok",
            "application_id": "app",
            "channel_id": channel_id,
            "user": {"id": user_id, "username": "alice"},
            "locale": locale,
            "data": {"name": name},
        }
    )
    inv = Invocation(
        name=name,
        subcommand=sub,
        options=options,
        user_id=user_id,
        channel_id=channel_id,
        guild_id=None,
        interaction=interaction,
        settings=settings,
        services=services,
        locale=locale,
        deferred=DeferredCompletionCoordinator(
            TaskSupervisor(), settings=settings, sender=SpySender(), ack_timeout=0.01
        ),
    )
    resp = await cmd.handler(inv, cmd.option_model.model_validate(options))
    return resp, orjson.loads(resp.body)


@pytest.mark.asyncio
async def test_manual_is_ephemeral_and_compact(settings, services):
    _, body = await _invoke(settings, services, "manual")
    content = body["data"]["content"]
    assert body["data"]["flags"] == 64
    assert "Chromabot Quick Start" in content
    assert "/dye search" in content
    assert "Moderators:" not in content
    assert len(content) < 2000
    assert get_counter("manual.view") == 1


@pytest.mark.asyncio
async def test_manual_topic_and_moderator_lines(settings, services):
    _, body = await _invoke(settings, services, "manual", user_id=MODERATOR_ID, topic="Preset")
    content = body["data"]["content"]
    assert "Presets:" in content
    assert "Moderators:" in content
    assert "Dyes:" not in content


@pytest.mark.asyncio
async def test_about_lists_registered_commands(settings, services):
    _, body = await _invoke(settings, services, "about")
    value = body["data"]["embeds"][0]["fields"][0]["value"]
    assert "`/dye search`" in value
    assert "`/stats`" in value


@pytest.mark.asyncio
async def test_stats_requires_authorization(settings, services):
    _, body = await _invoke(settings, services, "stats")
    assert body["data"]["embeds"][0]["title"] == "⛔ Access Denied"


@pytest.mark.asyncio
async def test_stats_reports_usage(settings, services):
    services.stats.record(CommandOutcome("dye", "u1", None, True))
    services.stats.record(CommandOutcome("dye", "u2", None, False))
    await services.stats.supervisor.drain()
    _, body = await _invoke(settings, services, "stats", user_id=STATS_USER_ID)
    fields = body["data"]["embeds"][0]["fields"]
    assert "**Total Commands:** 2" in fields[0]["value"]
    assert "**Success Rate:** 50.0%" in fields[0]["value"]
    assert fields[1]["value"] == "1. `/dye` - 2 uses"


@pytest.mark.asyncio
async def test_dye_search_skips_non_selectable(settings, services):
    _, body = await _invoke(settings, services, "dye", "search", query="lens")
    assert body["data"]["embeds"][0]["title"] == "❌ No results"


@pytest.mark.asyncio
async def test_collection_flow(settings, services):
    await _invoke(settings, services, "collection", "create", name="Reds")
    _, added = await _invoke(settings, services, "collection", "add", name="reds", dye="Rose Pink")
    assert "Added **Rose Pink**" in added["data"]["embeds"][0]["description"]
    _, shown = await _invoke(settings, services, "collection", "show", name="Reds")
    assert shown["data"]["embeds"][0]["fields"][0]["value"] == "• Rose Pink"
    _, listed = await _invoke(settings, services, "collection", "list")
    assert "**Reds** (1 dyes)" in listed["data"]["embeds"][0]["description"]
    _, dup = await _invoke(settings, services, "collection", "create", name="REDS")
    assert dup["data"]["embeds"][0]["description"] == "That already exists."


@pytest.mark.asyncio
async def test_ban_user_outside_moderation_channel(settings, services):
    _, body = await _invoke(
        settings, services, "preset", "ban_user", user_id=MODERATOR_ID, user="100"
    )
    assert body["data"]["content"] == "This command can only be used in the moderation channel."


@pytest.mark.asyncio
async def test_ban_user_shows_confirmation(settings, services, db):
    async with session_scope() as s:
        s.add(models.Preset(id="p1", name="Sunset", status="approved", author_discord_id="100", author_name="bob_smith"))
    _, body = await _invoke(
        settings,
        services,
        "preset",
        "ban_user",
        user_id=MODERATOR_ID,
        channel_id=settings.moderation_channel_id,
        user="100",
    )
    assert body["data"]["flags"] == 64
    buttons = body["data"]["components"][0]["components"]
    assert [b["custom_id"] for b in buttons] == ["ban_confirm_100", "ban_cancel_100"]


@pytest.mark.asyncio
async def test_ban_user_requires_moderator(settings, services):
    _, body = await _invoke(
        settings,
        services,
        "preset",
        "ban_user",
        channel_id=settings.moderation_channel_id,
        user="100",
    )
    assert body["data"]["content"] == "You don't have permission to do that (ban users)."


@pytest.mark.asyncio
async def test_favorites_add_list_and_remove(settings, services, store):
    _, added = await _invoke(settings, services, "favorites", "add", dye="rose pink")
    assert added["data"]["flags"] == 64
    assert added["data"]["embeds"][0]["description"] == "Added **Rose Pink** to your favorites."
    await _invoke(settings, services, "favorites", "add", dye="Snow White")
    _, again = await _invoke(settings, services, "favorites", "add", dye="Snow White")
    assert "already in your favorites" in again["data"]["embeds"][0]["description"]
    assert await store.get("favorites:u1") == "[7,1]"

    _, listed = await _invoke(settings, services, "favorites", "list")
    embed = listed["data"]["embeds"][0]
    assert embed["title"] == "⭐ Your Favorites (2/20)"
    assert embed["description"].splitlines() == [
        "1. **Rose Pink** (`#E69F96`) - Reds",
        "2. **Snow White** (`#E4DFD0`) - Neutral",
    ]
    assert embed["footer"]["text"] == "Reds: 1 • Neutral: 1"

    _, removed = await _invoke(settings, services, "favorites", "remove", dye="Rose Pink")
    assert "Removed **Rose Pink**" in removed["data"]["embeds"][0]["description"]
    assert await services.favorites.list("u1") == [1]


@pytest.mark.asyncio
async def test_favorites_rejects_unknown_and_non_selectable(settings, services, store):
    _, body = await _invoke(settings, services, "favorites", "add", dye="Jet Black Lens Tint")
    assert body["data"]["embeds"][0]["title"] == "❌ Error"
    assert body["data"]["embeds"][0]["description"] == "No dye named **Jet Black Lens Tint**."
    assert "favorites:u1" not in store.data


@pytest.mark.asyncio
async def test_favorites_limit_and_clear(settings, services):
    for item_id in range(100, 120):
        assert await services.favorites.add("u1", item_id) is None
    _, full = await _invoke(settings, services, "favorites", "add", dye="Snow White")
    assert full["data"]["embeds"][0]["title"] == "❌ Error"
    assert "20" in full["data"]["embeds"][0]["description"]

    _, cleared = await _invoke(settings, services, "favorites", "clear")
    assert cleared["data"]["embeds"][0]["description"] == "Cleared 20 favorite(s)."
    _, empty = await _invoke(settings, services, "favorites", "list")
    assert empty["data"]["embeds"][0]["description"].startswith("You have no favorite dyes yet.")


@pytest.mark.asyncio
async def test_language_set_confirms_in_chosen_language(settings, services, store):
    _, body = await _invoke(settings, services, "language", "set", locale="ja")
    embed = body["data"]["embeds"][0]
    assert body["data"]["flags"] == 64
    assert embed["title"] == "✅ 成功"
    assert embed["description"].startswith("言語を**🇯🇵 Japanese (日本語)**に設定しました。")
    assert await store.get("i18n:user:u1") == "ja"
    assert await services.preferences.resolve("u1", "de") == "ja"


@pytest.mark.asyncio
async def test_language_set_rejects_unsupported_code(settings, services, store):
    _, body = await _invoke(settings, services, "language", "set", locale="xx")
    description = body["data"]["embeds"][0]["description"]
    assert "`en`" in description and "`zh`" in description
    assert "i18n:user:u1" not in store.data


@pytest.mark.asyncio
async def test_language_show_reports_effective_language(settings, services):
    _, body = await _invoke(settings, services, "language", "show", locale="pt-BR")
    lines = body["data"]["embeds"][0]["description"].splitlines()
    assert "**Your preference:** Not set (using Discord's language)" in lines
    assert "**Discord language:** pt-BR (not supported)" in lines
    assert "🇺🇸 `en` - English (English) ✓" in lines
    assert "🇫🇷 `fr` - French (Français)" in lines


@pytest.mark.asyncio
async def test_language_reset_falls_back_to_discord_locale(settings, services, store):
    await services.preferences.set("u1", "ja")
    _, body = await _invoke(settings, services, "language", "reset", locale="de")
    assert body["data"]["embeds"][0]["title"] == "✅ Erfolg"
    assert "i18n:user:u1" not in store.data
    assert await services.preferences.resolve("u1", "de") == "de"
