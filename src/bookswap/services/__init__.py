"""Services package for BookSwap.

This module exports service classes for business logic.
"""

from bookswap.services.cache import (
    BOOK_COLLECTIONS,
    BOOKS_LIST,
    BOOKS_SEARCH,
    USERS_LIST,
    CacheBackend,
    InMemoryCacheBackend,
    RedisCacheBackend,
    VersionedCache,
    build_cache_backend,
)
from bookswap.services.catalog import CatalogService
from bookswap.services.exchange import ExchangeService
from bookswap.services.genre import GenreService
from bookswap.services.review import ReviewService
from bookswap.services.summary import SummaryService
from bookswap.services.ttl_cache import TTLCache
from bookswap.services.user import UserService

__all__ = [
    # Cache
    "BOOK_COLLECTIONS",
    "BOOKS_LIST",
    "BOOKS_SEARCH",
    "USERS_LIST",
    "CacheBackend",
    "InMemoryCacheBackend",
    "RedisCacheBackend",
    "TTLCache",
    "VersionedCache",
    "build_cache_backend",
    # Domain
    "CatalogService",
    "ExchangeService",
    "GenreService",
    "ReviewService",
    "UserService",
    # External
    "SummaryService",
]
