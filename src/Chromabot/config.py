"""Settings loader for Chromabot."""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import tomllib
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Per-command capacity inside one rate-limit window; others get rate_limit_default.
# preset calls the presets API, the rest only touch the bundled catalog or the store.
DEFAULT_RATE_LIMITS: dict[str, int] = {
    "preset": 10,
    "dye": 20,
    "collection": 20,
    "favorites": 20,
    "language": 20,
}

_SNOWFLAKE_RE = re.compile(r"^\d{17,19}$")


def _toml_settings_source() -> dict[str, Any]:
    """Load settings from config.toml with keys mapped to Settings fields.

    This source has LOWER priority than env/.env so those can override TOML.
    """
    cfg_path = Path("config.toml")
    if not cfg_path.exists():
        return {}
    with cfg_path.open("rb") as f:
        t = tomllib.load(f)
    discord_cfg = t.get("discord", {}) or {}
    rl_cfg = t.get("rate_limit", {}) or {}
    out: dict[str, Any] = {
        "env": t.get("app", {}).get("env", "dev"),
        "discord_app_id": discord_cfg.get("app_id"),
        "discord_api_base": discord_cfg.get("api_base", "https://discord.com/api/v10"),
        # When set, follow-ups are posted to this base URL instead of Discord.
        "discord_webhook_url_override": discord_cfg.get("webhook_url_override"),
        "followup_timeout_seconds": discord_cfg.get("followup_timeout_seconds", 20),
        "moderation_channel_id": discord_cfg.get("moderation_channel_id"),
        "submission_log_channel_id": discord_cfg.get("submission_log_channel_id"),
        "presets_api_url": t.get("presets", {}).get("api_url"),
        # Logging config
        "logging_enabled": t.get("logging", {}).get("enabled", True),
        "logging_level": t.get("logging", {}).get("level", "INFO"),
        "logging_console": None,
        "logging_file": None,
        "logging_file_path": t.get("logging", {}).get("file_path", "logs/chromabot.jsonl"),
        "logging_max_bytes": t.get("logging", {}).get("max_bytes", 5_000_000),
        "logging_backup_count": t.get("logging", {}).get("backup_count", 5),
    }

    # [rate_limit]
    # window_seconds = 60
    # default = 15
    # exempt = ["about", "manual", "stats"]
    # [rate_limit.commands]
    # preset = 10
    if "window_seconds" in rl_cfg:
        out["rate_limit_window_seconds"] = int(rl_cfg["window_seconds"])
    if "default" in rl_cfg:
        out["rate_limit_default"] = int(rl_cfg["default"])
    if "exempt" in rl_cfg:
        out["rate_limit_exempt"] = list(rl_cfg["exempt"])
    if rl_cfg.get("commands"):
        merged = dict(DEFAULT_RATE_LIMITS)
        merged.update({str(k): int(v) for k, v in rl_cfg["commands"].items()})
        out["rate_limit_overrides"] = merged

    log_cfg = t.get("logging", {}) or {}
    # Per-handler levels: strings INFO|DEBUG|WARNING|ERROR|CRITICAL|NONE
    # Backward-compatible: if console/to_file are bools, map True->level, False->NONE
    console_val = log_cfg.get("console", None)
    file_val = log_cfg.get("to_file", None)
    overall = out["logging_level"]

    def _norm_level(v, default):
        if isinstance(v, str):
            return v.upper()
        if isinstance(v, bool):
            return default if v else "NONE"
        return default

    out["logging_console"] = _norm_level(console_val, overall)
    out["logging_file"] = _norm_level(file_val, overall)

    ops_cfg = t.get("ops", {}) or {}
    out["metrics_endpoint_enabled"] = ops_cfg.get("metrics_endpoint_enabled", False)

    # Drop unset keys so field defaults apply
    return {k: v for k, v in out.items() if v is not None}


class Settings(BaseSettings):
    env: str = Field(default="dev")
    database_url: str = Field(default="sqlite+aiosqlite:///./chromabot.sqlite3")

    # --- Discord Credentials ---
    discord_app_id: str | None = None
    discord_public_key: str = ""
    discord_bot_token: SecretStr | None = None
    discord_api_base: str = "https://discord.com/api/v10"
    # For redirecting follow-ups to a local sink during development
    discord_webhook_url_override: str | None = None
    followup_timeout_seconds: float = 20

    # --- Internal webhooks ---
    internal_webhook_secret: SecretStr | None = None
    moderation_channel_id: str | None = None
    submission_log_channel_id: str | None = None

    # --- Presets API ---
    presets_api_url: str | None = None
    bot_api_secret: SecretStr | None = None

    # Comma-separated Discord user IDs
    moderator_ids: str = ""
    stats_authorized_users: str = ""

    # --- Rate limiting ---
    rate_limit_window_seconds: int = 60
    rate_limit_default: int = 15
    rate_limit_overrides: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_RATE_LIMITS)
    )
    rate_limit_exempt: list[str] = Field(default_factory=lambda: ["about", "manual", "stats"])

    # --- Logging ---
    logging_enabled: bool = True
    logging_level: str = "INFO"
    logging_console: str = "INFO"
    logging_file: str = "NONE"
    logging_file_path: str = "logs/chromabot.jsonl"
    logging_max_bytes: int = 5_000_000
    logging_backup_count: int = 5

    # --- Ops ---
    metrics_endpoint_enabled: bool = False

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Precedence (highest to lowest):
        # 1) init_settings (explicit overrides in code/tests)
        # 2) dotenv (.env in cwd)
        # 3) env_settings (OS env)
        # 4) TOML (config.toml)
        # 5) file_secret_settings
        return (
            init_settings,
            dotenv_settings,
            env_settings,
            _toml_settings_source,
            file_secret_settings,
        )

    def moderator_id_set(self) -> set[str]:
        return _split_ids(self.moderator_ids)

    def stats_user_id_set(self) -> set[str]:
        return _split_ids(self.stats_authorized_users)


def _split_ids(raw: str | None) -> set[str]:
    return {part.strip() for part in (raw or "").split(",") if part.strip()}


def load_settings() -> Settings:
    return Settings()


@dataclass(frozen=True)
class SettingsCheck:
    valid: bool
    errors: list[str] = field(default_factory=list)
    critical: bool = False


def _secret_value(value: SecretStr | str | None) -> str:
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    return value or ""


def validate_settings(settings: Settings) -> SettingsCheck:
    """Sanity-check the configuration.

    Missing signature/bot credentials are critical: the service cannot verify
    or answer interactions without them. Everything else only degrades
    individual features and is reported as a plain error.
    """
    errors: list[str] = []
    critical = False

    for name in ("discord_public_key", "discord_bot_token"):
        if not _secret_value(getattr(settings, name, None)).strip():
            errors.append(f"Missing or empty required secret: {name}")
            critical = True

    for name in ("discord_app_id", "presets_api_url"):
        if not (getattr(settings, name, None) or "").strip():
            errors.append(f"Missing or empty required config: {name}")

    if settings.presets_api_url:
        parsed = urlparse(settings.presets_api_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"Invalid URL for presets_api_url: {settings.presets_api_url}")

    for name in ("moderator_ids", "stats_authorized_users"):
        for uid in _split_ids(getattr(settings, name, "")):
            if not _SNOWFLAKE_RE.match(uid):
                errors.append(f"Invalid Discord ID in {name}: {uid}")

    return SettingsCheck(valid=not errors, errors=errors, critical=critical)


# Computed lazily on first use in each process; a cold start re-validates.
_settings_check: SettingsCheck | None = None


def check_settings_once(settings: Settings) -> tuple[SettingsCheck, bool]:
    """Return the cached settings check and whether this call computed it."""
    global _settings_check
    if _settings_check is not None:
        return _settings_check, False
    _settings_check = validate_settings(settings)
    return _settings_check, True


def reset_settings_check() -> None:
    global _settings_check
    _settings_check = None
