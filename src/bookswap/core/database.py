"""Async database engine and session management.

This module provides the core database infrastructure:
- Async SQLAlchemy engine with connection pooling
- Async session factory for request-scoped sessions
- Database lifecycle management (init/close)

Usage:
    from bookswap.core.database import init_db, close_db, get_async_session

    # At startup
    await init_db(settings)

    # In request handlers (via dependency injection)
    async for session in get_async_session():
        ...

    # At shutdown
    await close_db()
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from bookswap.config import Settings
from bookswap.core.logging import get_logger

logger = get_logger(__name__)

# Global engine and session factory (initialized at startup)
_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get the database engine.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory.

    Raises:
        RuntimeError: If database is not initialized
    """
    if _async_session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _async_session_factory


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Build the session factory used by the app and the test suite."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session.

    The session is rolled back if the consumer raises, and always closed.

    Yields:
        AsyncSession: Database session for the current context
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def init_db(settings: Settings) -> None:
    """Initialize the database engine and session factory.

    This should be called once at application startup. When
    ``database_auto_create`` is set, missing tables are created.

    Args:
        settings: Application settings containing database configuration
    """
    global _engine, _async_session_factory

    logger.info(
        "database_initializing",
        database_url=_mask_password(settings.database_url),
    )

    is_sqlite = settings.database_url.startswith("sqlite")

    engine_kwargs: dict[str, Any] = {
        "echo": settings.debug,
    }

    if is_sqlite:
        # One shared connection so in-memory databases survive across sessions
        engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_size"] = settings.database_pool_min
        engine_kwargs["max_overflow"] = (
            settings.database_pool_max - settings.database_pool_min
        )
        engine_kwargs["pool_pre_ping"] = True

    _engine = create_async_engine(
        settings.database_url,
        **engine_kwargs,
    )
    _async_session_factory = create_session_factory(_engine)

    if settings.database_auto_create:
        await create_tables(_engine)

    logger.info("database_initialized")


async def create_tables(engine: AsyncEngine) -> None:
    """Create every table known to the model metadata if it does not exist."""
    # Importing the package registers all models on Base.metadata
    from bookswap.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close the database engine and all connections.

    This should be called at application shutdown.
    """
    global _engine, _async_session_factory

    if _engine is not None:
        logger.info("database_closing")
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
        logger.info("database_closed")


async def check_db_connection() -> bool:
    """Check if the database connection is working.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return False


def _mask_password(url: str) -> str:
    """Mask password in database URL for logging.

    Args:
        url: Database URL

    Returns:
        URL with password masked
    """
    if "://" in url and "@" in url:
        prefix, rest = url.split("://", 1)
        creds, host = rest.rsplit("@", 1)
        if ":" in creds:
            user = creds.split(":")[0]
            return f"{prefix}://{user}:****@{host}"
    return url
