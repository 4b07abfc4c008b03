"""Async SQLAlchemy engine and session factory.

Uses psycopg3 which supports both sync and async with the same
``postgresql+psycopg://`` URL.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_engine(database_url: str, **kwargs: object) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Traffic is one short INSERT per reporter run (every few minutes per
    host) plus dashboard reads, and every store call holds a session for a
    single statement or two.  Five steady connections absorb that; the
    overflow of ten covers cron-aligned bursts when many hosts report on
    the same minute.  Pre-ping and hourly recycling keep connections usable
    across the long idle gaps between those bursts.

    Any default can be overridden via *kwargs*.
    """
    defaults = {
        "echo": False,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }
    defaults.update(kwargs)  # type: ignore[arg-type]
    return create_async_engine(normalize_url(database_url), **defaults)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    ``expire_on_commit=False`` keeps ORM instances readable after commit
    without implicit IO.
    """
    return async_sessionmaker(engine, expire_on_commit=False)


def normalize_url(database_url: str) -> str:
    """Force the psycopg3 dialect on plain ``postgres://`` style URLs."""
    for prefix in ("postgresql+asyncpg://", "postgresql://", "postgres://"):
        if database_url.startswith(prefix):
            return "postgresql+psycopg://" + database_url[len(prefix) :]
    return database_url
