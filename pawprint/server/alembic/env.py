"""Alembic environment for the pawprint schema.

The target database comes from ``PAWPRINT_DATABASE_URL`` (via
``ServerSettings``), never from ``alembic.ini``.  Offline mode
(``pawprint db upgrade --sql``) renders the DDL to stdout so it can be
reviewed or applied by hand.
"""

from __future__ import annotations

from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine, pool

from pawprint.server.db.engine import normalize_url
from pawprint.server.db.tables import Base
from pawprint.server.settings import ServerSettings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)


def database_url() -> str:
    url = ServerSettings().database_url
    if not url:
        msg = "PAWPRINT_DATABASE_URL is not set; migrations need a PostgreSQL URL."
        raise RuntimeError(msg)
    return normalize_url(url)


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    # Ignore tables that exist only in the database.
    return not (type_ == "table" and reflected and compare_to is None)


def context_options() -> dict[str, Any]:
    return {
        "target_metadata": Base.metadata,
        "include_object": include_object,
        "compare_type": True,
    }


def run_offline() -> None:
    context.configure(
        url=database_url(),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **context_options(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(database_url(), poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **context_options())
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
