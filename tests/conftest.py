"""Pytest configuration and fixtures for BookSwap tests.

This module provides reusable fixtures for:
- Settings overrides
- Test database (in-memory SQLite shared through a StaticPool)
- In-memory version-tagged cache
- Async test client wired to the test database and cache
- Authentication helpers
"""

from collections.abc import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from bookswap.config import Settings
from bookswap.core.database import create_session_factory
from bookswap.dependencies import get_cache, get_db_session
from bookswap.main import create_app
from bookswap.models import Base
from bookswap.services.cache import InMemoryCacheBackend, VersionedCache

# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test-specific settings."""
    return Settings(
        app_env="development",  # type: ignore[arg-type]
        debug=False,
        log_level="DEBUG",  # type: ignore[arg-type]
        log_format="console",  # type: ignore[arg-type]
        database_url="sqlite+aiosqlite:///:memory:",
        cache_backend="memory",  # type: ignore[arg-type]
        redis_url="redis://localhost:6379/15",
        jwt_secret_key="test-jwt-secret-key",  # type: ignore[arg-type]
        summary_api_key="",  # type: ignore[arg-type]
    )


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite engine with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return create_session_factory(engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create an isolated test database session.

    Usage:
        async def test_create_user(db_session: AsyncSession):
            repo = UserRepository(db_session)
            ...
    """
    async with session_factory() as session:
        yield session


# =============================================================================
# Cache Fixtures
# =============================================================================


@pytest.fixture
def memory_backend() -> InMemoryCacheBackend:
    """In-process cache backend without a running janitor."""
    return InMemoryCacheBackend(default_ttl=10.0)


@pytest.fixture
def versioned_cache(memory_backend: InMemoryCacheBackend) -> VersionedCache:
    """Version-tagged cache over the in-process backend."""
    return VersionedCache(memory_backend, timeout=0.2)


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app(
    test_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    versioned_cache: VersionedCache,
) -> FastAPI:
    """Create a test FastAPI application.

    ASGITransport does not run the lifespan, so the database session and
    cache dependencies are pointed at the test fixtures.
    """
    app = create_app(settings=test_settings)

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_cache] = lambda: versioned_cache
    return app


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing.

    Usage:
        async def test_endpoint(async_client: AsyncClient):
            response = await async_client.get("/health/live")
            assert response.status_code == 200
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# =============================================================================
# Authentication Helpers
# =============================================================================


async def register(
    client: AsyncClient,
    email: str,
    name: str = "Reader",
    city: str = "Berlin",
) -> tuple[int, dict[str, str]]:
    """Register a user through the API.

    Returns:
        Tuple of (user ID, Authorization headers)
    """
    response = await client.post(
        "/api/v1/auth/register",
        json={
            "name": name,
            "email": email,
            "password": "secret-password",
            "city": city,
        },
    )
    assert response.status_code == 201, response.text
    data = response.json()
    return data["user_id"], {"Authorization": f"Bearer {data['access_token']}"}


@pytest.fixture
def register_user():
    """Expose the ``register`` helper as a fixture."""
    return register
