"""Alembic migration environment configuration."""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import create_async_engine

from mindcare.core.config import get_settings

# Import all models to ensure they are registered with Base.metadata
from mindcare.models.db.analysis import AIAnalysis  # noqa: F401
from mindcare.models.db.base import Base
from mindcare.models.db.chat import Chat, Message  # noqa: F401
from mindcare.models.db.consent import Consent  # noqa: F401
from mindcare.models.db.report import Report  # noqa: F401
from mindcare.models.db.user import User  # noqa: F401

config = context.config

# Logging comes from alembic.ini; the app's JSON logging is not used here
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Get database URL from settings (bypass configparser to avoid % interpolation issues)
settings = get_settings()
database_url = str(settings.database_url)

# Metadata for autogenerate
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Emit migration SQL without connecting to the database."""
    context.configure(
        url=database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Run migrations with the provided connection."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations in 'online' mode with async engine."""
    connectable = create_async_engine(database_url, poolclass=pool.NullPool)

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations against the configured database."""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
