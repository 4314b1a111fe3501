"""
Seller Radar — Result Cache (models and protocol)

Maps a seller identity to its most recent ClassificationResult. Entries are
whole records, replaced atomically, last write wins.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from pydantic import BaseModel

from seller_radar.detection import ClassificationResult

SECONDS_PER_DAY = 86400


class CacheEntry(BaseModel):
    model_config = {"frozen": True}

    seller_id: str
    result: ClassificationResult
    last_updated: datetime

    def is_expired(self, now: datetime, expiry_days: int) -> bool:
        """True when the entry is strictly older than expiry_days."""
        return now - self.last_updated > timedelta(seconds=expiry_days * SECONDS_PER_DAY)


class CacheStats(BaseModel):
    total: int = 0
    matched: int = 0


class ResultCache(Protocol):
    async def get(self, seller_id: str) -> CacheEntry | None: ...

    async def put(self, seller_id: str, result: ClassificationResult) -> None: ...

    async def evict_expired(
        self, now: datetime | None = None, expiry_days: int | None = None
    ) -> int: ...

    async def stats(self) -> CacheStats: ...

    async def clear(self) -> int: ...
