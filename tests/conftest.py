"""Shared test fixtures: a PostgreSQL testcontainer for the SQL store.

Integration tests run against a real PostgreSQL container managed by
testcontainers-python.  The container is session-scoped (started once per
test run) and migrated with the packaged Alembic config.  Each test gets a
store whose sessions join one outer transaction that is rolled back at
teardown.

Tests needing the container are marked ``@pytest.mark.integration`` and are
skipped when Docker is not reachable.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator

import docker
import pytest
from docker.errors import DockerException
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from testcontainers.postgres import PostgresContainer

from pawprint.cli import ALEMBIC_INI
from pawprint.server.settings import get_settings
from pawprint.server.store.sql import SqlMonitorStore


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    get_settings.cache_clear()


def _docker_available() -> bool:
    try:
        docker.from_env().ping()
    except DockerException:
        return False
    return True


# ---------------------------------------------------------------------------
# Session-scoped: container (started once, shared across all tests)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL 17 container for the test session."""
    if not _docker_available():
        pytest.skip("Docker is not available")
    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="pawprint_test",
        driver="psycopg",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def pg_url(pg_container: PostgresContainer) -> str:
    """PostgreSQL URL (psycopg3 dialect) with Alembic migrations applied."""
    url = pg_container.get_connection_url()
    _set_env("PAWPRINT_DATABASE_URL", url)

    # Apply all migrations using the packaged alembic.ini (same config as CLI).
    from alembic import command
    from alembic.config import Config

    command.upgrade(Config(str(ALEMBIC_INI)), "head")

    return url


@pytest.fixture(scope="session")
def async_engine(pg_url: str) -> Iterator[AsyncEngine]:
    """Session-scoped async SQLAlchemy engine."""
    engine = create_async_engine(pg_url, poolclass=NullPool)
    yield engine
    engine.sync_engine.dispose()


# ---------------------------------------------------------------------------
# Function-scoped: SQL store with savepoint rollback for test isolation
# ---------------------------------------------------------------------------


@pytest.fixture
async def sql_store(async_engine: AsyncEngine) -> AsyncIterator[SqlMonitorStore]:
    """SqlMonitorStore whose writes are rolled back after the test.

    Every session the store opens joins the same outer transaction with
    ``join_transaction_mode="create_savepoint"``, so ``commit()`` inside the
    store only releases a savepoint.
    """
    async with async_engine.connect() as conn:
        await conn.begin()
        factory = async_sessionmaker(
            bind=conn,
            class_=AsyncSession,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )
        yield SqlMonitorStore(factory)
        await conn.rollback()
