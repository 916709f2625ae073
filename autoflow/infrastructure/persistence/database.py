"""Persistence: async engine, session factory, and Base for SQLAlchemy ORM.

Engine and session factory are created lazily on first use (get_db /
get_db_transactional / get_session_factory) so import does not trigger
Settings validation. Any SQLAlchemy async URL works; production uses
postgresql+asyncpg, local runs and tests use sqlite+aiosqlite.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from autoflow.core.config import get_settings

logger = logging.getLogger(__name__)

# Set by _ensure_engine() on first use; avoids get_settings() at import time.
engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by requests and by the run executor."""
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def enable_sqlite_foreign_keys(bind: AsyncEngine) -> None:
    """Turn on FK enforcement (and ON DELETE CASCADE) for every new SQLite connection."""

    @event.listens_for(bind.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _ensure_engine() -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create engine and AsyncSessionLocal on first use; return both."""
    global engine, AsyncSessionLocal
    if engine is not None and AsyncSessionLocal is not None:
        return engine, AsyncSessionLocal
    settings = get_settings()
    kwargs: dict[str, Any] = {"echo": settings.database_echo}
    if settings.database_url.startswith("postgresql"):
        kwargs.update(pool_pre_ping=True, pool_size=10, max_overflow=20, pool_recycle=3600)
    engine = create_async_engine(settings.database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(engine)
    AsyncSessionLocal = build_session_factory(engine)
    return engine, AsyncSessionLocal


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the process-wide session factory (creating the engine if needed)."""
    return _ensure_engine()[1]


async def create_schema(bind: AsyncEngine | None = None) -> None:
    """Create all tables that do not exist yet."""
    # Import models so they register on Base.metadata.
    from autoflow.infrastructure.persistence import models  # noqa: F401

    if bind is None:
        bind = _ensure_engine()[0]
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured")


async def dispose_engine() -> None:
    """Dispose the engine on shutdown and reset the lazy globals."""
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
    engine = None
    AsyncSessionLocal = None


async def get_db() -> AsyncIterator[AsyncSession]:
    """Database session dependency for read operations.

    Does not commit; use get_db_transactional for writes.
    """
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def get_db_transactional() -> AsyncIterator[AsyncSession]:
    """Database session dependency for write operations.

    Begins a transaction, commits on success, rolls back on exception.
    Use for POST, PUT, PATCH, DELETE endpoints.
    """
    factory = get_session_factory()
    async with factory() as session:
        async with session.begin():
            yield session
