"""Softagon Database module.

Database models and migrations:
- SQLAlchemy 2.x ORM models
- Alembic migration configuration
- Connection pooling via psycopg

The engine is process-wide state with an explicit lifecycle: call
init_engine() at startup (opens the pool) and close_engine() at shutdown.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from softagon.core.config import DatabaseSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def to_driver_url(url: str) -> str:
    """Rewrite a postgresql:// URL to use the psycopg 3 driver.

    psycopg 3 serves both the async engine and Alembic's sync engine.
    """
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    return url


def get_database_url(database: DatabaseSettings | None = None) -> str:
    """Get the driver-qualified database URL from settings."""
    if database is None:
        from softagon.core.settings import get_settings

        database = get_settings().database
    return to_driver_url(database.dsn)


def init_engine(database: DatabaseSettings | None = None) -> AsyncEngine:
    """Initialize the database engine and session factory.

    Safe to call more than once; later calls return the existing engine.

    Args:
        database: Connection settings. Loaded from the environment if None.

    Returns:
        The process-wide AsyncEngine.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        return _engine

    if database is None:
        from softagon.core.settings import get_settings

        database = get_settings().database

    _engine = create_async_engine(
        get_database_url(database),
        pool_size=database.pool_size,
        max_overflow=database.max_overflow,
        pool_timeout=database.pool_timeout,
        pool_pre_ping=True,
        echo=database.echo,
    )
    _async_session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    logger.info(
        "Database engine initialized (pool_size=%s, max_overflow=%s)",
        database.pool_size,
        database.max_overflow,
    )
    return _engine


def get_engine() -> AsyncEngine:
    """Return the initialized engine.

    Raises:
        RuntimeError: If init_engine() has not been called.
    """
    if _engine is None:
        msg = "Database engine not initialized. Call init_engine() first."
        raise RuntimeError(msg)
    return _engine


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session.

    The session is rolled back if the block raises; committing is left to
    the caller.

    Usage:
        async with get_async_session() as session:
            users = UserRepository(session)
            await users.create(email="ana@example.com", name="Ana")
            await session.commit()

    Yields:
        AsyncSession for database operations.
    """
    if _async_session_factory is None:
        init_engine()

    if _async_session_factory is None:
        msg = "Database session factory not initialized"
        raise RuntimeError(msg)

    session = _async_session_factory()
    try:
        yield session
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def close_engine() -> None:
    """Close the database engine and release every pooled connection.

    Call this during application shutdown.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("Database engine closed")
