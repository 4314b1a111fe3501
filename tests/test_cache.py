"""
Tests for the Result Cache.

Covers both backends with a virtual clock:
- get/put round trip and last-write-wins replacement
- expired entries are invisible to get() and stats()
- eviction removes exactly the expired entries
- the background sweeper loop and its shutdown
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from seller_radar.cache import CacheEntry, CacheStats
from seller_radar.cache.memory import InMemoryResultCache
from seller_radar.cache.sql import SqlResultCache
from seller_radar.cache.sweeper import CacheSweeper
from seller_radar.detection import ClassificationResult
from seller_radar.models import SellerCacheRow

from tests.conftest import FakeClock

TARGET = ClassificationResult(
    is_target_seller=True,
    confidence=0.85,
    evidence=("Seller name contains location keyword 'Shenzhen'",),
    details={"nameKeyword": "Shenzhen"},
)
OTHER = ClassificationResult(is_target_seller=False, confidence=0.0)


@pytest.fixture(params=["memory", "sql"])
def cache_factory(request: pytest.FixtureRequest, session_factory):
    """Build either backend bound to the given clock."""

    def build(clock: FakeClock, expiry_days: int = 7):
        if request.param == "memory":
            return InMemoryResultCache(expiry_days=expiry_days, clock=clock)
        return SqlResultCache(session_factory, expiry_days=expiry_days, clock=clock)

    return build


# ---------------------------------------------------------------------------
# Entry model
# ---------------------------------------------------------------------------

class TestCacheEntry:
    def test_expiry_is_strict(self, clock: FakeClock) -> None:
        entry = CacheEntry(seller_id="A1", result=OTHER, last_updated=clock.now)
        assert entry.is_expired(clock.now + timedelta(days=7), 7) is False
        assert entry.is_expired(clock.now + timedelta(days=7, seconds=1), 7) is True


# ---------------------------------------------------------------------------
# Backend behaviour (both backends)
# ---------------------------------------------------------------------------

class TestResultCache:
    async def test_round_trip(self, cache_factory, clock: FakeClock) -> None:
        cache = cache_factory(clock)

        await cache.put("A1SZTOP00001X", TARGET)
        entry = await cache.get("A1SZTOP00001X")

        assert entry is not None
        assert entry.seller_id == "A1SZTOP00001X"
        assert entry.result == TARGET
        assert entry.last_updated == clock.now

    async def test_missing_key(self, cache_factory, clock: FakeClock) -> None:
        assert await cache_factory(clock).get("nobody") is None

    async def test_last_write_wins(self, cache_factory, clock: FakeClock) -> None:
        cache = cache_factory(clock)
        await cache.put("A1", OTHER)

        clock.now += timedelta(hours=1)
        await cache.put("A1", TARGET)

        entry = await cache.get("A1")
        assert entry.result == TARGET
        assert entry.last_updated == clock.now

    async def test_identical_write_keeps_timestamp(self, cache_factory, clock: FakeClock) -> None:
        """Re-putting the same verdict and confidence does not refresh the entry."""
        cache = cache_factory(clock)
        await cache.put("A1", TARGET)
        written_at = clock.now

        clock.now += timedelta(days=1)
        await cache.put("A1", TARGET)

        entry = await cache.get("A1")
        assert entry.last_updated == written_at

    async def test_expired_entry_invisible(self, cache_factory, clock: FakeClock) -> None:
        cache = cache_factory(clock, expiry_days=7)
        await cache.put("A1", TARGET)

        clock.now += timedelta(days=7, minutes=1)

        assert await cache.get("A1") is None
        assert await cache.stats() == CacheStats(total=0, matched=0)

    async def test_expired_entry_rewritten(self, cache_factory, clock: FakeClock) -> None:
        cache = cache_factory(clock, expiry_days=7)
        await cache.put("A1", TARGET)

        clock.now += timedelta(days=8)
        await cache.put("A1", TARGET)

        entry = await cache.get("A1")
        assert entry is not None
        assert entry.last_updated == clock.now

    async def test_evict_removes_exactly_expired(self, cache_factory, clock: FakeClock) -> None:
        cache = cache_factory(clock, expiry_days=7)
        await cache.put("old", TARGET)
        clock.now += timedelta(days=3)
        await cache.put("recent", OTHER)
        clock.now += timedelta(days=5)

        removed = await cache.evict_expired()

        assert removed == 1
        assert await cache.get("old") is None
        assert await cache.get("recent") is not None

    async def test_evict_with_explicit_window(self, cache_factory, clock: FakeClock) -> None:
        cache = cache_factory(clock, expiry_days=7)
        await cache.put("A1", TARGET)

        assert await cache.evict_expired(now=clock.now + timedelta(days=2), expiry_days=1) == 1

    async def test_stats(self, cache_factory, clock: FakeClock) -> None:
        cache = cache_factory(clock)
        await cache.put("A1", TARGET)
        await cache.put("A2", TARGET)
        await cache.put("name:acme outdoors llc", OTHER)

        assert await cache.stats() == CacheStats(total=3, matched=2)

    async def test_clear(self, cache_factory, clock: FakeClock) -> None:
        cache = cache_factory(clock)
        await cache.put("A1", TARGET)
        await cache.put("A2", OTHER)

        assert await cache.clear() == 2
        assert await cache.get("A1") is None


# ---------------------------------------------------------------------------
# SQL specifics
# ---------------------------------------------------------------------------

class TestSqlResultCache:
    async def test_row_stored_naive_utc(self, session_factory, clock: FakeClock) -> None:
        cache = SqlResultCache(session_factory, clock=clock)
        await cache.put("A1SZTOP00001X", TARGET)

        async with session_factory() as session:
            row = await session.get(SellerCacheRow, "A1SZTOP00001X")

        assert row.last_updated.tzinfo is None
        assert row.last_updated == clock.now.replace(tzinfo=None)
        assert row.evidence == list(TARGET.evidence)
        assert row.details == {"nameKeyword": "Shenzhen"}
        assert "A1SZTOP00001X" in repr(row)


# ---------------------------------------------------------------------------
# Sweeper
# ---------------------------------------------------------------------------

class TestCacheSweeper:
    async def test_sweep_once(self, clock: FakeClock) -> None:
        cache = InMemoryResultCache(expiry_days=7, clock=clock)
        await cache.put("old", TARGET)
        clock.now += timedelta(days=8)

        sweeper = CacheSweeper(cache)
        assert await sweeper.sweep_once() == 1
        assert sweeper.sweeps == 1
        assert len(cache) == 0

    async def test_run_until_shutdown(self) -> None:
        cache = AsyncMock()
        cache.evict_expired.return_value = 0
        sweeper = CacheSweeper(cache, interval_seconds=0.01)

        task = asyncio.create_task(sweeper.run())
        for _ in range(200):
            if sweeper.sweeps >= 2:
                break
            await asyncio.sleep(0.01)
        await sweeper.shutdown()
        await asyncio.wait_for(task, timeout=1.0)

        assert sweeper.sweeps >= 2
        assert task.done()

    async def test_failed_sweep_does_not_stop_loop(self) -> None:
        cache = AsyncMock()
        cache.evict_expired.side_effect = [RuntimeError("database is locked"), 0, 0, 0, 0]
        sweeper = CacheSweeper(cache, interval_seconds=0.01)

        task = asyncio.create_task(sweeper.run())
        for _ in range(200):
            if cache.evict_expired.await_count >= 2:
                break
            await asyncio.sleep(0.01)
        await sweeper.shutdown()
        await asyncio.wait_for(task, timeout=1.0)

        assert cache.evict_expired.await_count >= 2
        assert task.exception() is None
