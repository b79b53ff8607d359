"""Alembic runtime for splitbill: async (asyncpg) online runs, plain SQL output offline."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from splitbill.core.config import settings
from splitbill.core.database import Base, to_async_url
import splitbill.models  # noqa: F401  (populates Base.metadata)

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

# Migrations go straight to Postgres when a direct URL is configured, not through the pooler
MIGRATION_URL = to_async_url(settings.direct_database_url or settings.database_url)


def emit_sql() -> None:
    context.configure(
        url=MIGRATION_URL,
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, target_metadata=Base.metadata, compare_type=True)
    with context.begin_transaction():
        context.run_migrations()


async def migrate_database() -> None:
    engine = create_async_engine(MIGRATION_URL, connect_args={"statement_cache_size": 0})
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    emit_sql()
else:
    asyncio.run(migrate_database())
