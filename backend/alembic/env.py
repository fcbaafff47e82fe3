"""
Alembic environment for the Errly schema (users, phone_numbers, projects,
errors), driven through the async engine.

The URL is taken from errly.core.config so migrations and the API always
hit the same database. For a one-off target pass it on the command line:

    alembic -x dburl=postgresql+asyncpg://... upgrade head
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from errly.core.config import settings
from errly.core.database import Base

# Registers every table on Base.metadata for autogenerate
import errly.models.user  # noqa: F401
import errly.models.phone_number  # noqa: F401
import errly.models.project  # noqa: F401
import errly.models.error_event  # noqa: F401

config = context.config

_db_url = context.get_x_argument(as_dictionary=True).get("dburl", settings.DATABASE_URL)
config.set_main_option("sqlalchemy.url", _db_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:  # type: ignore[no-untyped-def]
    # compare_type catches JSON -> JSONB style changes on autogenerate
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        **kwargs,
    )


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting (alembic upgrade --sql)."""
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on_connection(connection) -> None:  # type: ignore[no-untyped-def]
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with connectable.connect() as connection:
            await connection.run_sync(_run_on_connection)
    finally:
        await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
