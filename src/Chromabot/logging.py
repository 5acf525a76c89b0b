# src/Chromabot/logging.py
"""JSON logging for the interactions service.

structlog events and stdlib records from uvicorn, httpx and SQLAlchemy share
one rendering chain, so every line carries ``timestamp``, ``level`` and the
bound ``request_id``. Sinks come from the ``[logging]`` table.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import structlog
from pydantic import SecretStr
from structlog.contextvars import merge_contextvars

from Chromabot.config import Settings

_ADOPTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "asyncio", "httpx", "sqlalchemy")
_SENSITIVE_SUFFIXES = ("_token", "_secret", "_key")
_REDACTED = "[REDACTED]"


def _level(name: str | None, default: int) -> int:
    value = logging.getLevelName((name or "").upper())
    return value if isinstance(value, int) else default


def _renderer() -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            merge_contextvars,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        foreign_pre_chain=[structlog.processors.add_log_level, merge_contextvars],
    )


def _sinks(settings: Settings, root_level: int) -> list[logging.Handler]:
    if not settings.logging_enabled:
        return []
    sinks: list[logging.Handler] = []
    if settings.logging_console.upper() != "NONE":
        console = logging.StreamHandler()
        console.setLevel(_level(settings.logging_console, root_level))
        sinks.append(console)
    if settings.logging_file.upper() != "NONE":
        path = Path(settings.logging_file_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            path,
            maxBytes=settings.logging_max_bytes,
            backupCount=settings.logging_backup_count,
            encoding="utf-8",
        )
        rotating.setLevel(_level(settings.logging_file, root_level))
        sinks.append(rotating)
    return sinks


def setup_logging(settings: Settings | None = None) -> None:
    settings = settings or Settings()
    root_level = _level(settings.logging_level, logging.INFO)
    logging.captureWarnings(True)

    formatter = _renderer()
    handlers = _sinks(settings, root_level) or [logging.NullHandler()]
    for handler in handlers:
        handler.setFormatter(formatter)
    logging.basicConfig(level=root_level, handlers=handlers, force=True)

    for name in _ADOPTED_LOGGERS:
        adopted = logging.getLogger(name)
        adopted.handlers.clear()
        adopted.propagate = True
    # SQLAlchemy echoes every statement at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def redact_settings(settings: Settings) -> dict:
    """Settings as a dict with secrets masked and DSN credentials dropped."""
    out: dict = {}
    for name, value in settings.model_dump().items():
        if isinstance(getattr(settings, name, None), SecretStr) or name.endswith(
            _SENSITIVE_SUFFIXES
        ):
            out[name] = _REDACTED if value is not None else None
        else:
            out[name] = value
    dsn = out.get("database_url")
    if dsn:
        scheme, _, rest = str(dsn).partition("://")
        out["database_url"] = f"{scheme}://{rest.rsplit('@', 1)[-1]}"
    return out
