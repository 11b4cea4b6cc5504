"""
Marketplace Backend: Migration Environment
==========================================

What:  Applies the revisions under `alembic/versions/` to the marketplace
       database (users, profiles, projects, interests, messages).
How:   The target URL is `settings.database_url` unless one is passed with
       `alembic -x database_url=... upgrade head`; alembic.ini carries none.
       Online runs open a single unpooled async connection and hand it to
       Alembic through `run_sync`.
"""

import asyncio
import logging
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection, make_url
from sqlalchemy.ext.asyncio import create_async_engine

from marketplace.config import settings
from marketplace.database import Base

# Registers every table on Base.metadata for --autogenerate
import marketplace.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata


def migration_url() -> str:
    """`-x database_url=...` wins over DATABASE_URL from the environment."""
    overrides = context.get_x_argument(as_dictionary=True)
    return overrides.get("database_url") or settings.database_url


def configure_context(**options) -> None:
    # Budgets and timestamps carry server defaults worth diffing
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        **options,
    )


def run_migrations_offline(url: str) -> None:
    """Print the SQL instead of executing it (`alembic upgrade head --sql`)."""
    configure_context(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def apply_migrations(connection: Connection) -> None:
    configure_context(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online(url: str) -> None:
    engine = create_async_engine(url, poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(apply_migrations)
    finally:
        await engine.dispose()


url = migration_url()
logger.info("Migrating %s", make_url(url).render_as_string(hide_password=True))

if context.is_offline_mode():
    run_migrations_offline(url)
else:
    asyncio.run(run_migrations_online(url))
