"""
Alembic environment configuration.

Connects to the database and runs migrations.
"""

from logging.config import fileConfig

from sqlalchemy import pool

from alembic import context

# Import our models so Alembic can detect them
from email_verification.core.database import Base
from email_verification.models import VerificationRecord  # noqa: F401

from email_verification.core.config import settings

# This is the Alembic Config object
config = context.config

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata for autogenerate
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """
    Run migrations in 'offline' mode.

    Configures the context with just a URL so that SQL is emitted to the
    script output without a DBAPI.
    """
    # The URL is passed directly; ConfigParser would treat % as interpolation
    context.configure(
        url=settings.database_url_sync,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """
    Run migrations in 'online' mode against a synchronous engine.
    """
    from sqlalchemy import create_engine

    connectable = create_engine(
        settings.database_url_sync,
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
