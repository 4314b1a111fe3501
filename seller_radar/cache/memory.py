"""
Seller Radar — In-Memory Result Cache

Dict-backed ResultCache for a single process. The clock is injectable so
expiry can be tested against virtual time.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

import structlog

from seller_radar.cache import CacheEntry, CacheStats
from seller_radar.config import settings
from seller_radar.detection import ClassificationResult

logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryResultCache:
    """
    Usage:
        cache = InMemoryResultCache()
        await cache.put("A1B2C3D4E5", result)
        entry = await cache.get("A1B2C3D4E5")
    """

    def __init__(
        self,
        expiry_days: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.expiry_days = expiry_days if expiry_days is not None else settings.CACHE_EXPIRY_DAYS
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, seller_id: str) -> CacheEntry | None:
        """Fresh entry for seller_id; expired entries read as absent."""
        entry = self._entries.get(seller_id)
        if entry is None:
            return None
        if entry.is_expired(self._clock(), self.expiry_days):
            return None
        return entry

    async def put(self, seller_id: str, result: ClassificationResult) -> None:
        existing = self._entries.get(seller_id)
        if (
            existing is not None
            and not existing.is_expired(self._clock(), self.expiry_days)
            and existing.result.is_target_seller == result.is_target_seller
            and existing.result.confidence == result.confidence
        ):
            return

        self._entries[seller_id] = CacheEntry(
            seller_id=seller_id,
            result=result,
            last_updated=self._clock(),
        )

    async def evict_expired(
        self,
        now: datetime | None = None,
        expiry_days: int | None = None,
    ) -> int:
        now = now or self._clock()
        days = expiry_days if expiry_days is not None else self.expiry_days
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now, days)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.info("cache_evicted", count=len(expired), backend="memory", source="cache")
        return len(expired)

    async def stats(self) -> CacheStats:
        now = self._clock()
        fresh = [e for e in self._entries.values() if not e.is_expired(now, self.expiry_days)]
        return CacheStats(
            total=len(fresh),
            matched=sum(1 for e in fresh if e.result.is_target_seller),
        )

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)
