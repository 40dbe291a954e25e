"""
StudyNotes Backend — Database Engine & Session Factory
========================================================

What:  Async SQLAlchemy engine construction, session factory, and the ORM Base.
Why:   Centralizes all database connection logic in one place.
How:   `create_engine_from_settings()` builds an async engine with pooling
       suited to the backend (PostgreSQL via asyncpg, or SQLite via aiosqlite).
       The application lifespan owns the engine and hands a session factory
       to the DocumentStore; nothing here is a process-wide singleton.

Connection Pooling Strategy (PostgreSQL):
    pool_size:         Persistent connections for normal load
    max_overflow:      Temporary connections for traffic spikes
    pool_pre_ping:     Validates connections before use (catches stale connections)
    pool_recycle=3600: Recycles connections every hour

    SQLite gets none of these: aiosqlite uses its own pool class and rejects
    the QueuePool sizing arguments.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from studynotes.config import Settings


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so they register with one metadata
    object (used by Alembic and by `create_all` when auto_create_tables is set).
    """
    pass


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Build the async engine for the configured database URL.

    Returns:
        AsyncEngine, not yet connected (connections are opened lazily).
    """
    url = settings.database_url
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=settings.log_level == "DEBUG")

    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
        # SQL logging is noisy; only useful during development
        echo=settings.log_level == "DEBUG",
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Creates AsyncSession instances with consistent configuration.

    expire_on_commit=False: attributes stay readable after commit, which the
    DocumentStore relies on when converting rows to records.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """
    Create every table registered on Base.metadata.

    When:  Startup, only if settings.auto_create_tables is true; and in tests.
    Why:   Local runs on SQLite don't need a migration step.
    """
    # Models must be imported so they register with Base.metadata
    from studynotes import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine(engine: AsyncEngine) -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
