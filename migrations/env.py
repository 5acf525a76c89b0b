"""Alembic environment for the Chromabot user-data tables.

Migrations run synchronously: psycopg for Postgres and the stdlib driver for
SQLite, against the same ``DATABASE_URL`` the service reads.
"""

import pathlib
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine

_ROOT = pathlib.Path(__file__).resolve().parents[1]
for env_file in (_ROOT / ".env", _ROOT / ".env.local"):
    if env_file.exists():
        load_dotenv(dotenv_path=env_file, override=env_file.name == ".env.local")

from Chromabot import models  # noqa: E402,F401
from Chromabot.db import Base, to_async_url  # noqa: E402
from Chromabot.config import load_settings  # noqa: E402

_SYNC_DRIVERS = {
    "postgresql+asyncpg://": "postgresql+psycopg://",
    "sqlite+aiosqlite://": "sqlite://",
}


def sync_url(url: str) -> str:
    url = to_async_url(url)
    for prefix, replacement in _SYNC_DRIVERS.items():
        if url.startswith(prefix):
            return replacement + url[len(prefix) :]
    return url


if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

target_metadata = Base.metadata
url = sync_url(load_settings().database_url)

if context.is_offline_mode():
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()
else:
    with create_engine(url).connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=url.startswith("sqlite"),
        )
        with context.begin_transaction():
            context.run_migrations()
