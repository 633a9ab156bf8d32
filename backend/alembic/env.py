"""
Alembic Environment Configuration for mangatrack

This module configures the Alembic migration environment, including:
- Database connection from environment variables or alembic.ini
- Autogenerate support with SQLAlchemy models
- Offline and online migration modes
"""
from logging.config import fileConfig
import os
import sys
from pathlib import Path

from sqlalchemy import engine_from_config
from sqlalchemy import pool

from alembic import context

# Make 'backend.mangatrack' importable when alembic runs from the backend directory
project_root = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(project_root))

# Import all models for autogenerate support
from backend.mangatrack.config import Config
from backend.mangatrack.models import Base, TrackerPreference, Track  # noqa: F401

config = context.config

# Interpret the config file for Python logging.
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url():
    """
    Get database URL.

    Priority:
        1. DATABASE_URL environment variable
        2. sqlalchemy.url from alembic.ini
        3. Application default (Config.DATABASE_URL)

    Returns:
        Database connection URL string
    """
    return os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url") or Config.DATABASE_URL


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode, emitting SQL to the script output."""
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = get_url()
    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=True
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
