"""Alembic migration runner bound to the portal's settings and models."""

from __future__ import annotations

import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import pool
from sqlmodel import SQLModel

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.core.config import settings  # noqa: E402
from app.core.db import build_engine, import_model_modules  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

import_model_modules()
config.set_main_option("sqlalchemy.url", settings.db_url)

# SQLite cannot ALTER most constraints in place; batch mode rebuilds tables.
MIGRATION_OPTIONS = {
    "target_metadata": SQLModel.metadata,
    "compare_type": True,
    "render_as_batch": settings.db_url.startswith("sqlite"),
}


def run_offline() -> None:
    """Emit SQL for the pending migrations without connecting."""

    context.configure(
        url=settings.db_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    """Apply pending migrations to the configured database."""

    engine = build_engine(settings.db_url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **MIGRATION_OPTIONS)
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
