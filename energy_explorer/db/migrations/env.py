"""
Alembic environment for the measurement store.

The database URL always comes from the application settings (DATABASE_URL),
never from alembic.ini. Online runs go through an asyncpg engine; a caller
that already holds a connection can pass it as
``config.attributes["connection"]`` and migrations run on it directly.

CHANGELOG:
- 2026-10-02: Initial creation (STORY-003)
- 2026-10-20: Reuse a caller-supplied connection; compare column types (STORY-012)
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from energy_explorer.config import get_settings
from energy_explorer.db.models import Base

config = context.config
if config.config_file_name is not None and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name)

_CONFIGURE_OPTS = {"target_metadata": Base.metadata, "compare_type": True}


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **_CONFIGURE_OPTS)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_with_engine(url: str) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


def main() -> None:
    url = get_settings().DATABASE_URL
    if context.is_offline_mode():
        context.configure(
            url=url,
            literal_binds=True,
            dialect_opts={"paramstyle": "named"},
            **_CONFIGURE_OPTS,
        )
        with context.begin_transaction():
            context.run_migrations()
        return

    connection = config.attributes.get("connection")
    if connection is not None:
        _migrate(connection)
    else:
        asyncio.run(_migrate_with_engine(url))


main()
