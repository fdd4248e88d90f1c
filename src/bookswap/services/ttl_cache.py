"""TTLCache - sharded in-process key/value store with per-entry expiry.

Used by the in-memory cache backend when no Redis is available (single
process deployments and tests). Keys are spread over a fixed number of
shards. Each shard is a ``cachetools.TLRUCache`` guarded by its own lock,
so concurrent readers of different keys rarely contend.

Expired entries are dropped lazily on ``get`` and in bulk by ``sweep``.
``start_janitor`` runs ``sweep`` periodically as an asyncio task.

Usage:
    cache: TTLCache[str, bytes] = TTLCache(default_ttl=10.0)
    cache.set("books:list:v=0:l=20:o=0", payload)
    cache.get("books:list:v=0:l=20:o=0")

    cache.start_janitor(interval=1.0)
    ...
    await cache.stop_janitor()
"""

import asyncio
import math
import threading
import time
from collections.abc import Callable, Hashable
from contextlib import suppress
from typing import Any, Generic, NamedTuple, TypeVar

import structlog
from cachetools import TLRUCache

logger = structlog.get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

DEFAULT_SHARDS = 16
DEFAULT_TTL = 60.0
DEFAULT_MAXSIZE = 100_000


class _Entry(NamedTuple):
    value: Any
    ttl: float


def _time_to_use(key: Any, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class _Shard:
    """One lock and the entries it guards."""

    __slots__ = ("lock", "entries")

    def __init__(self, maxsize: int, clock: Callable[[], float]) -> None:
        self.lock = threading.Lock()
        self.entries: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_time_to_use, timer=clock)


class TTLCache(Generic[K, V]):
    """Generic sharded map of ``key -> (value, absolute expiry)``.

    Once ``maxsize`` entries are stored the least recently used entry of a
    shard makes room for a new one.

    Attributes:
        default_ttl: TTL in seconds used when ``set`` is called without one
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL,
        shards: int = DEFAULT_SHARDS,
        clock: Callable[[], float] = time.monotonic,
        maxsize: int = DEFAULT_MAXSIZE,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl: Default entry lifetime in seconds
            shards: Number of independently locked shards
            clock: Monotonic time source, replaceable in tests
            maxsize: Upper bound on stored entries across all shards
        """
        if shards < 1:
            raise ValueError("shards must be at least 1")
        self.default_ttl = default_ttl
        shard_maxsize = max(1, math.ceil(maxsize / shards))
        self._shards = [_Shard(shard_maxsize, clock) for _ in range(shards)]
        self._janitor: asyncio.Task[None] | None = None

    def _shard(self, key: K) -> _Shard:
        return self._shards[hash(key) % len(self._shards)]

    # -------------------------------------------------------------------------
    # Entry operations
    # -------------------------------------------------------------------------

    def get(self, key: K) -> V | None:
        """Return the stored value, or None when missing or expired.

        An expired entry is removed on the spot.
        """
        shard = self._shard(key)
        with shard.lock:
            try:
                return shard.entries[key].value
            except KeyError:
                # TLRUCache raises KeyError when deleting an expired key
                with suppress(KeyError):
                    del shard.entries[key]
                return None

    def set(self, key: K, value: V, ttl: float | None = None) -> None:
        """Store a value that expires ``ttl`` seconds from now."""
        if ttl is None:
            ttl = self.default_ttl
        shard = self._shard(key)
        with shard.lock:
            shard.entries[key] = _Entry(value, ttl)

    def delete(self, key: K) -> None:
        """Remove an entry if present."""
        shard = self._shard(key)
        with shard.lock:
            with suppress(KeyError):
                del shard.entries[key]

    def __len__(self) -> int:
        """Number of stored entries, expired ones not yet swept included."""
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.entries)
        return total

    def sweep(self) -> tuple[int, int]:
        """Remove every expired entry.

        Shards are swept one at a time; a shard's lock is never held while
        another shard is being swept.

        Returns:
            Tuple of (removed, remaining)
        """
        removed = 0
        remaining = 0
        for shard in self._shards:
            with shard.lock:
                removed += len(shard.entries.expire())
                remaining += len(shard.entries)
        return removed, remaining

    # -------------------------------------------------------------------------
    # Janitor
    # -------------------------------------------------------------------------

    @property
    def janitor_running(self) -> bool:
        """Check if the background sweeper task is alive."""
        return self._janitor is not None and not self._janitor.done()

    def start_janitor(
        self,
        interval: float,
        on_sweep: Callable[[int, int], None] | None = None,
    ) -> None:
        """Start sweeping every ``interval`` seconds on the running event loop.

        A non-positive interval falls back to one second. ``on_sweep`` is
        called with ``(removed, remaining)`` after sweeps that removed
        something. Calling this while a janitor is running does nothing.
        """
        if self.janitor_running:
            return
        if interval <= 0:
            interval = 1.0
        self._janitor = asyncio.create_task(self._run_janitor(interval, on_sweep))

    async def stop_janitor(self) -> None:
        """Cancel the sweeper task and wait for it to finish. Idempotent."""
        task, self._janitor = self._janitor, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def _run_janitor(
        self,
        interval: float,
        on_sweep: Callable[[int, int], None] | None,
    ) -> None:
        while True:
            await asyncio.sleep(interval)
            removed, remaining = self.sweep()
            if removed and on_sweep is not None:
                try:
                    on_sweep(removed, remaining)
                except Exception as e:
                    logger.warning("ttl_cache_on_sweep_failed", error=str(e))
