from Chromabot.command_loader import load_all_commands
from Chromabot.commanding import command_names
from Chromabot.config import (
    DEFAULT_RATE_LIMITS,
    Settings,
    check_settings_once,
    reset_settings_check,
    validate_settings,
)
from Chromabot.logging import redact_settings


def test_valid_settings_pass(settings):
    check = validate_settings(settings)
    assert check.valid
    assert check.errors == []
    assert check.critical is False


def test_missing_credentials_are_critical(settings):
    check = validate_settings(settings.model_copy(update={"discord_public_key": ""}))
    assert not check.valid
    assert check.critical
    assert "Missing or empty required secret: discord_public_key" in check.errors


def test_soft_errors_are_not_critical(settings):
    bad = settings.model_copy(
        update={"presets_api_url": "ftp//nowhere", "moderator_ids": "123, 111111111111111111"}
    )
    check = validate_settings(bad)
    assert not check.valid
    assert not check.critical
    assert "Invalid URL for presets_api_url: ftp//nowhere" in check.errors
    assert "Invalid Discord ID in moderator_ids: 123" in check.errors


def test_check_runs_once_per_process(settings):
    first, computed = check_settings_once(settings)
    assert computed
    # A later, different configuration does not trigger revalidation
    second, computed_again = check_settings_once(settings.model_copy(update={"discord_public_key": ""}))
    assert not computed_again
    assert second is first
    reset_settings_check()
    third, computed_cold = check_settings_once(settings.model_copy(update={"discord_public_key": ""}))
    assert computed_cold
    assert third.critical


def test_id_lists_are_split_and_trimmed():
    s = Settings(moderator_ids=" 1, 2 ,,3 ", stats_authorized_users="")
    assert s.moderator_id_set() == {"1", "2", "3"}
    assert s.stats_user_id_set() == set()


def test_rate_limit_defaults_have_cheap_and_expensive_classes():
    load_all_commands()
    s = Settings()
    registered = set(command_names())
    assert set(DEFAULT_RATE_LIMITS) <= registered
    assert not set(DEFAULT_RATE_LIMITS) & set(s.rate_limit_exempt)
    assert DEFAULT_RATE_LIMITS["preset"] < s.rate_limit_default < DEFAULT_RATE_LIMITS["dye"]
    assert s.rate_limit_default == 15
    assert s.rate_limit_overrides == DEFAULT_RATE_LIMITS
    assert min(DEFAULT_RATE_LIMITS.values()) < s.rate_limit_default < max(DEFAULT_RATE_LIMITS.values())
    assert "about" in s.rate_limit_exempt


def test_redaction_hides_secrets(settings):
    s = settings.model_copy(update={"database_url": "postgresql+asyncpg://user:pw@db:5432/chroma"})
    red = redact_settings(s)
    assert red["discord_bot_token"] == "[REDACTED]"
    assert red["internal_webhook_secret"] == "[REDACTED]"
    assert red["bot_api_secret"] == "[REDACTED]"
    assert red["database_url"] == "postgresql+asyncpg://db:5432/chroma"
    assert red["discord_app_id"] == settings.discord_app_id
