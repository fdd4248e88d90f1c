"""Tests for TTLCache.

Time is driven by a fake clock so expiry is deterministic.
"""

import asyncio

import pytest

from bookswap.services import ttl_cache as ttl_cache_module
from bookswap.services.ttl_cache import TTLCache


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache[str, bytes]:
    """Cache with a 10 second default TTL and four shards."""
    return TTLCache(default_ttl=10.0, shards=4, clock=clock)


# =============================================================================
# Entry Tests
# =============================================================================


class TestEntries:
    """Tests for get/set/delete."""

    def test_get_missing_returns_none(self, cache: TTLCache[str, bytes]) -> None:
        """Test that an unknown key is a miss."""
        assert cache.get("nope") is None

    def test_set_then_get(self, cache: TTLCache[str, bytes]) -> None:
        """Test that a stored value is returned before it expires."""
        cache.set("k", b"v")
        assert cache.get("k") == b"v"

    def test_entry_expires_after_ttl(
        self, cache: TTLCache[str, bytes], clock: FakeClock
    ) -> None:
        """Test that an entry is a miss once its TTL has elapsed."""
        cache.set("k", b"v", ttl=5.0)

        clock.advance(4.9)
        assert cache.get("k") == b"v"

        clock.advance(0.1)
        assert cache.get("k") is None

    def test_expired_get_removes_entry(
        self, cache: TTLCache[str, bytes], clock: FakeClock
    ) -> None:
        """Test that reading an expired entry deletes it."""
        cache.set("k", b"v", ttl=1.0)
        clock.advance(2.0)

        assert len(cache) == 1
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_default_ttl_used_when_omitted(
        self, cache: TTLCache[str, bytes], clock: FakeClock
    ) -> None:
        """Test that set() without a TTL uses the default."""
        cache.set("k", b"v")

        clock.advance(9.0)
        assert cache.get("k") == b"v"
        clock.advance(1.0)
        assert cache.get("k") is None

    def test_set_overwrites_and_extends(
        self, cache: TTLCache[str, bytes], clock: FakeClock
    ) -> None:
        """Test that setting an existing key replaces value and expiry."""
        cache.set("k", b"old", ttl=1.0)
        clock.advance(0.5)
        cache.set("k", b"new", ttl=1.0)
        clock.advance(0.8)

        assert cache.get("k") == b"new"

    def test_delete(self, cache: TTLCache[str, bytes]) -> None:
        """Test that delete removes an entry and ignores unknown keys."""
        cache.set("k", b"v")
        cache.delete("k")
        cache.delete("never-stored")

        assert cache.get("k") is None
        assert len(cache) == 0

    def test_len_counts_all_shards(self, cache: TTLCache[str, bytes]) -> None:
        """Test that len() adds up entries across shards."""
        for i in range(25):
            cache.set(f"key-{i}", b"v")
        assert len(cache) == 25

    def test_invalid_shard_count(self) -> None:
        """Test that at least one shard is required."""
        with pytest.raises(ValueError):
            TTLCache(shards=0)

    def test_maxsize_evicts_oldest(self, clock: FakeClock) -> None:
        """Test that a full shard makes room by dropping its oldest entry."""
        cache: TTLCache[str, bytes] = TTLCache(shards=1, maxsize=2, clock=clock)
        cache.set("a", b"1")
        cache.set("b", b"2")

        cache.set("c", b"3")

        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("b") == b"2"
        assert cache.get("c") == b"3"

    def test_per_entry_ttls_are_independent(
        self, cache: TTLCache[str, bytes], clock: FakeClock
    ) -> None:
        """Test that entries in the same cache keep their own lifetimes."""
        cache.set("short", b"v", ttl=1.0)
        cache.set("long", b"v", ttl=30.0)
        clock.advance(2.0)

        assert cache.get("short") is None
        assert cache.get("long") == b"v"


# =============================================================================
# Sweep Tests
# =============================================================================


class TestSweep:
    """Tests for bulk expiry."""

    def test_sweep_removes_only_expired(
        self, cache: TTLCache[str, bytes], clock: FakeClock
    ) -> None:
        """Test that sweep reports removed and remaining counts."""
        for i in range(6):
            cache.set(f"short-{i}", b"v", ttl=1.0)
        for i in range(4):
            cache.set(f"long-{i}", b"v", ttl=100.0)

        clock.advance(5.0)
        removed, remaining = cache.sweep()

        assert (removed, remaining) == (6, 4)
        assert len(cache) == 4
        assert cache.get("long-0") == b"v"

    def test_sweep_on_empty_cache(self, cache: TTLCache[str, bytes]) -> None:
        """Test that sweeping nothing returns zeros."""
        assert cache.sweep() == (0, 0)


# =============================================================================
# Janitor Tests
# =============================================================================


class TestJanitor:
    """Tests for the background sweeper task."""

    @pytest.mark.asyncio
    async def test_janitor_sweeps_and_reports(
        self, cache: TTLCache[str, bytes], clock: FakeClock
    ) -> None:
        """Test that the janitor removes expired entries and calls on_sweep."""
        reports: list[tuple[int, int]] = []
        swept = asyncio.Event()

        def on_sweep(removed: int, remaining: int) -> None:
            reports.append((removed, remaining))
            swept.set()

        cache.set("gone", b"v", ttl=1.0)
        cache.set("kept", b"v", ttl=100.0)
        clock.advance(2.0)

        cache.start_janitor(0.01, on_sweep)
        try:
            await asyncio.wait_for(swept.wait(), timeout=2.0)
        finally:
            await cache.stop_janitor()

        assert reports[0] == (1, 1)
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_on_sweep_not_called_when_nothing_removed(
        self, cache: TTLCache[str, bytes]
    ) -> None:
        """Test that the callback only fires when something expired."""
        calls: list[tuple[int, int]] = []
        cache.set("kept", b"v", ttl=100.0)

        cache.start_janitor(0.01, lambda r, n: calls.append((r, n)))
        await asyncio.sleep(0.05)
        await cache.stop_janitor()

        assert calls == []

    @pytest.mark.asyncio
    async def test_non_positive_interval_falls_back_to_one_second(
        self, cache: TTLCache[str, bytes], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that interval <= 0 sweeps once per second."""
        real_sleep = asyncio.sleep
        intervals: list[float] = []

        async def recording_sleep(delay: float) -> None:
            intervals.append(delay)
            await real_sleep(0)

        monkeypatch.setattr(ttl_cache_module.asyncio, "sleep", recording_sleep)

        cache.start_janitor(0)
        await real_sleep(0.01)
        await cache.stop_janitor()

        assert intervals
        assert intervals[0] == 1.0

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self, cache: TTLCache[str, bytes]) -> None:
        """Test that stopping twice, or without starting, is harmless."""
        await cache.stop_janitor()

        cache.start_janitor(0.01)
        assert cache.janitor_running
        await cache.stop_janitor()
        await cache.stop_janitor()

        assert not cache.janitor_running

    @pytest.mark.asyncio
    async def test_start_twice_keeps_single_task(
        self, cache: TTLCache[str, bytes]
    ) -> None:
        """Test that a second start while running does not spawn another task."""
        cache.start_janitor(0.01)
        first = cache._janitor
        cache.start_janitor(0.01)

        assert cache._janitor is first
        await cache.stop_janitor()
