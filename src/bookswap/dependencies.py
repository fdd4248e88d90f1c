"""FastAPI dependency injection container.

This module provides dependency injection functions for use with FastAPI's
Depends() pattern. Long-lived objects (cache, summary client) are created in
the application lifespan and read from ``app.state``; request-scoped objects
(session, repositories, services) are built per request. Each function can
be replaced through ``app.dependency_overrides`` in tests.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bookswap.config import Settings, get_settings
from bookswap.core.exceptions import InvalidTokenError
from bookswap.core.security import decode_access_token
from bookswap.repositories.book import BookRepository
from bookswap.repositories.exchange import ExchangeRepository
from bookswap.repositories.genre import GenreRepository
from bookswap.repositories.review import ReviewRepository
from bookswap.repositories.user import UserRepository
from bookswap.services.cache import VersionedCache
from bookswap.services.catalog import CatalogService
from bookswap.services.exchange import ExchangeService
from bookswap.services.genre import GenreService
from bookswap.services.review import ReviewService
from bookswap.services.summary import SummaryService
from bookswap.services.user import UserService

bearer_scheme = HTTPBearer(auto_error=False)


# ========================================
# Settings Dependencies
# ========================================
def get_settings_from_request(request: Request) -> Settings:
    """Get settings from app state, falling back to the cached settings."""
    return getattr(request.app.state, "settings", None) or get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_from_request)]


# ========================================
# Database Dependencies
# ========================================
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session.

    Yields a database session that automatically handles
    commit on success and rollback on exception.

    Yields:
        AsyncSession: Database session
    """
    from bookswap.core.database import get_async_session

    async for session in get_async_session():
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


# ========================================
# Cache & External Service Dependencies
# ========================================
def get_cache(request: Request) -> VersionedCache:
    """Get the version-tagged cache built during startup.

    Raises:
        RuntimeError: If the application lifespan has not run
    """
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        raise RuntimeError("Cache not initialized. Start the app through its lifespan.")
    return cache


def get_summarizer(request: Request) -> SummaryService | None:
    """Get the summary generator, or None when no API key is configured."""
    return getattr(request.app.state, "summarizer", None)


CacheDep = Annotated[VersionedCache, Depends(get_cache)]
SummarizerDep = Annotated[SummaryService | None, Depends(get_summarizer)]


# ========================================
# Service Dependencies
# ========================================
def get_catalog_service(
    session: SessionDep,
    cache: CacheDep,
    settings: SettingsDep,
    summarizer: SummarizerDep,
) -> CatalogService:
    """Build the catalog service for this request."""
    return CatalogService(
        BookRepository(session),
        GenreRepository(session),
        cache,
        settings=settings,
        summarizer=summarizer,
    )


def get_exchange_service(session: SessionDep, cache: CacheDep) -> ExchangeService:
    """Build the exchange service for this request."""
    return ExchangeService(ExchangeRepository(session), BookRepository(session), cache)


def get_user_service(
    session: SessionDep,
    cache: CacheDep,
    settings: SettingsDep,
) -> UserService:
    """Build the user service for this request."""
    return UserService(
        UserRepository(session),
        ExchangeRepository(session),
        cache,
        settings=settings,
    )


def get_review_service(session: SessionDep) -> ReviewService:
    """Build the review service for this request."""
    return ReviewService(
        ReviewRepository(session),
        UserRepository(session),
        BookRepository(session),
    )


def get_genre_service(session: SessionDep, cache: CacheDep) -> GenreService:
    """Build the genre service for this request."""
    return GenreService(GenreRepository(session), cache)


# ========================================
# Auth Dependencies
# ========================================
async def get_current_user_id(
    session: SessionDep,
    settings: SettingsDep,
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ] = None,
) -> int:
    """Get the ID of the authenticated caller.

    Decodes the bearer token and checks that the user still exists.

    Raises:
        InvalidTokenError: If the token is missing, invalid, expired, or
            belongs to a deleted user
    """
    if credentials is None:
        raise InvalidTokenError("Missing bearer token")

    user_id = decode_access_token(credentials.credentials, settings)
    if user_id is None:
        raise InvalidTokenError()

    if not await UserRepository(session).exists(user_id):
        raise InvalidTokenError("Token user no longer exists")
    return user_id


CurrentUserId = Annotated[int, Depends(get_current_user_id)]
