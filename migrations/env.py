"""Alembic environment for the custody tables.

The database URL comes from ``DATABASE__URL`` (see ``Settings``) unless
overridden with ``alembic -x url=... upgrade head``.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection

from custody_engine.core.config import get_settings
from custody_engine.infrastructure.database import Base, build_engine
from custody_engine.infrastructure.database import models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _database_settings():
    database = get_settings().database
    override = context.get_x_argument(as_dictionary=True).get("url")
    return database.model_copy(update={"url": override}) if override else database


def run_migrations_offline() -> None:
    # Offline SQL rendering needs a sync dialect name.
    url = _database_settings().url.replace("+aiosqlite", "")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def _apply(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = build_engine(_database_settings())
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_apply)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
