"""Version-tagged read cache for list and search queries.

Every cached collection has a version counter stored next to its entries.
Entry keys embed the version they were computed under:

    <collection>:ver                          -> "3"
    <collection>:v=<version>:<signature>      -> serialized result

Writes never delete entries; they increment the counter, so the next read
builds a key nobody has written yet and goes to the database. Old entries
age out through their TTL.

The cache is an optimization only. Every backend call is bounded by a short
timeout and any failure (timeout, connection error, corrupt payload) is
logged and answered from the database.

Cache Key Types:
    - books:list:v={n}:l={limit}:o={offset} - Book list pages
    - books:search:v={n}:{sha256} - Book search results
    - users:list:v={n}:l={limit}:o={offset} - User list pages

Usage:
    cache = VersionedCache(RedisCacheBackend(redis), timeout=0.2)

    page = await cache.fetch(
        BOOKS_LIST,
        VersionedCache.list_signature(limit, offset),
        loader=lambda: load_page(limit, offset),
        adapter=BOOK_PAGE_ADAPTER,
        ttl=10.0,
    )

    await cache.bump(*BOOK_COLLECTIONS)
"""

import asyncio
import hashlib
import json
import threading
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, TypeVar, runtime_checkable

import structlog
from pydantic import TypeAdapter
from redis.asyncio import Redis

from bookswap.config import CacheBackendType, Settings
from bookswap.services.ttl_cache import TTLCache

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Collection names
BOOKS_LIST = "books:list"
BOOKS_SEARCH = "books:search"
USERS_LIST = "users:list"

#: Collections invalidated by any book write
BOOK_COLLECTIONS = (BOOKS_LIST, BOOKS_SEARCH)

DEFAULT_TIMEOUT = 0.2


# -----------------------------------------------------------------------------
# Backends
# -----------------------------------------------------------------------------


@runtime_checkable
class CacheBackend(Protocol):
    """Storage capability required by VersionedCache."""

    async def get(self, key: str) -> bytes | None: ...

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None: ...

    async def incr(self, key: str) -> int: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisCacheBackend:
    """CacheBackend on a shared Redis server.

    Configuration:
        Redis should run with an eviction policy such as allkeys-lru;
        entries carry their own PX expiry and counters never expire.
    """

    def __init__(self, redis: Redis) -> None:
        """Initialize the backend.

        Args:
            redis: Async Redis client (bytes responses)
        """
        self.redis = redis

    @classmethod
    def from_url(cls, url: str) -> "RedisCacheBackend":
        """Create a backend with its own connection pool."""
        return cls(Redis.from_url(url))

    async def get(self, key: str) -> bytes | None:
        value = await self.redis.get(key)
        if isinstance(value, str):
            return value.encode()
        return value

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None:
        await self.redis.set(key, value, px=max(1, int(ttl_seconds * 1000)))

    async def incr(self, key: str) -> int:
        return int(await self.redis.incr(key))

    async def ping(self) -> bool:
        return bool(await self.redis.ping())

    async def close(self) -> None:
        await self.redis.aclose()


class InMemoryCacheBackend:
    """CacheBackend kept inside the current process.

    Entries live in a TTLCache swept by a background janitor; version
    counters live in a plain dict behind a lock and never expire.
    """

    def __init__(
        self,
        default_ttl: float = 10.0,
        sweep_interval: float = 1.0,
        entries: TTLCache[str, bytes] | None = None,
    ) -> None:
        """Initialize the backend.

        Args:
            default_ttl: TTL for entries stored without one
            sweep_interval: Seconds between janitor sweeps
            entries: Pre-built entry store (tests pass one with a fake clock)
        """
        self.entries: TTLCache[str, bytes] = (
            entries if entries is not None else TTLCache(default_ttl=default_ttl)
        )
        self.sweep_interval = sweep_interval
        self._counters: dict[str, int] = {}
        self._counters_lock = threading.Lock()

    def start(self) -> None:
        """Start the janitor on the running event loop."""
        self.entries.start_janitor(self.sweep_interval, on_sweep=self._log_sweep)

    @staticmethod
    def _log_sweep(removed: int, remaining: int) -> None:
        logger.debug("cache_swept", removed=removed, remaining=remaining)

    async def get(self, key: str) -> bytes | None:
        with self._counters_lock:
            counter = self._counters.get(key)
        if counter is not None:
            return str(counter).encode()
        return self.entries.get(key)

    async def set(self, key: str, value: bytes, ttl_seconds: float) -> None:
        self.entries.set(key, value, ttl_seconds)

    async def incr(self, key: str) -> int:
        with self._counters_lock:
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
        return value

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        await self.entries.stop_janitor()


def build_cache_backend(settings: Settings) -> CacheBackend:
    """Create the backend selected by ``settings.cache_backend``.

    The in-memory backend's janitor is not started here; call ``start()``
    from inside the event loop.
    """
    if settings.cache_backend == CacheBackendType.MEMORY:
        return InMemoryCacheBackend(
            default_ttl=settings.cache_list_ttl_seconds,
            sweep_interval=settings.cache_sweep_interval_seconds,
        )
    return RedisCacheBackend.from_url(settings.redis_url)


# -----------------------------------------------------------------------------
# Versioned cache
# -----------------------------------------------------------------------------


class VersionedCache:
    """Read-through cache whose entries are invalidated by version bumps.

    Usage with FastAPI:
        ```python
        @router.get("/books")
        async def list_books(cache: VersionedCache = Depends(get_cache)):
            ...
        ```
    """

    def __init__(self, backend: CacheBackend, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialize the cache.

        Args:
            backend: Storage backend
            timeout: Upper bound in seconds for each backend call
        """
        self.backend = backend
        self.timeout = timeout

    # -------------------------------------------------------------------------
    # Cache Key Generators
    # -------------------------------------------------------------------------

    @staticmethod
    def version_key(collection: str) -> str:
        """Key of a collection's version counter (e.g., "books:list:ver")."""
        return f"{collection}:ver"

    @staticmethod
    def build_key(collection: str, version: int, signature: str) -> str:
        """Key of one cached result (e.g., "books:list:v=3:l=20:o=0")."""
        return f"{collection}:v={version}:{signature}"

    @staticmethod
    def list_signature(limit: int, offset: int) -> str:
        """Signature of a paginated list read."""
        return f"l={limit}:o={offset}"

    @staticmethod
    def search_signature(params: Mapping[str, Any]) -> str:
        """Signature of a search read.

        The normalized parameters are serialized as canonical JSON (sorted
        keys) and hashed so arbitrary filter strings give bounded keys.

        Returns:
            SHA-256 hex digest
        """
        canonical = json.dumps(
            dict(params),
            sort_keys=True,
            separators=(",", ":"),
            default=str,
        )
        return hashlib.sha256(canonical.encode()).hexdigest()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def current_version(self, collection: str) -> int:
        """Read a collection's version; 0 when missing or unreadable."""
        key = self.version_key(collection)
        try:
            async with asyncio.timeout(self.timeout):
                raw = await self.backend.get(key)
        except Exception as e:
            logger.warning("cache_version_read_failed", cache_key=key, error=str(e))
            return 0

        if raw is None:
            return 0
        try:
            return int(raw)
        except (TypeError, ValueError):
            logger.warning("cache_version_unparsable", cache_key=key, raw=repr(raw))
            return 0

    async def fetch(
        self,
        collection: str,
        signature: str,
        loader: Callable[[], Awaitable[T]],
        adapter: TypeAdapter[T],
        ttl: float,
    ) -> T:
        """Return the cached result for ``signature`` or load and store it.

        Args:
            collection: Collection name (e.g., BOOKS_LIST)
            signature: Query signature within the collection
            loader: Coroutine factory reading from the database
            adapter: Pydantic adapter used to (de)serialize the result
            ttl: Entry lifetime in seconds

        Returns:
            The cached or freshly loaded result. Loader errors propagate;
            cache errors never do.
        """
        version = await self.current_version(collection)
        key = self.build_key(collection, version, signature)

        cached = await self._get(key)
        if cached is not None:
            try:
                value = adapter.validate_json(cached)
            except Exception as e:
                logger.warning("cache_payload_invalid", cache_key=key, error=str(e))
            else:
                logger.debug("cache_hit", cache_key=key)
                return value

        logger.debug("cache_miss", cache_key=key)
        value = await loader()
        await self._set(key, value, adapter, ttl)
        return value

    async def _get(self, key: str) -> bytes | None:
        try:
            async with asyncio.timeout(self.timeout):
                return await self.backend.get(key)
        except Exception as e:
            logger.warning("cache_get_failed", cache_key=key, error=str(e))
            return None

    async def _set(
        self,
        key: str,
        value: T,
        adapter: TypeAdapter[T],
        ttl: float,
    ) -> None:
        try:
            payload = adapter.dump_json(value)
            async with asyncio.timeout(self.timeout):
                await self.backend.set(key, payload, ttl)
            logger.debug("cache_set", cache_key=key, ttl=ttl)
        except Exception as e:
            logger.warning("cache_set_failed", cache_key=key, error=str(e))

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    async def bump(self, *collections: str) -> None:
        """Increment the version of each collection.

        Called after a successful database write. Failures are logged and
        swallowed; affected entries then live until their TTL expires.
        """
        for collection in collections:
            key = self.version_key(collection)
            try:
                async with asyncio.timeout(self.timeout):
                    version = await self.backend.incr(key)
                logger.debug(
                    "cache_version_bumped",
                    collection=collection,
                    version=version,
                )
            except Exception as e:
                logger.warning(
                    "cache_version_bump_failed",
                    collection=collection,
                    error=str(e),
                )

    async def ping(self) -> bool:
        """Check that the backend answers within the timeout."""
        try:
            async with asyncio.timeout(self.timeout):
                return await self.backend.ping()
        except Exception as e:
            logger.warning("cache_ping_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Release the backend's connections and background tasks."""
        await self.backend.close()
