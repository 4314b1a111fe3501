"""
Seller Radar — SQL Result Cache

ResultCache over the seller_cache table through an async SQLAlchemy
session factory (aiosqlite locally, any async driver in general).
Timestamps are stored as naive UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from seller_radar.cache import SECONDS_PER_DAY, CacheEntry, CacheStats
from seller_radar.config import settings
from seller_radar.detection import ClassificationResult
from seller_radar.models import Base, SellerCacheRow

logger = structlog.get_logger(__name__)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _aware_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def create_schema(engine: AsyncEngine) -> None:
    """Create the cache table if missing. Alembic owns migrations beyond this."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


class SqlResultCache:
    """
    Usage:
        engine = create_async_engine(settings.DATABASE_URL)
        await create_schema(engine)
        cache = SqlResultCache(async_sessionmaker(engine, expire_on_commit=False))
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        expiry_days: int | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.session_factory = session_factory
        self.expiry_days = expiry_days if expiry_days is not None else settings.CACHE_EXPIRY_DAYS
        self._clock = clock

    def _cutoff(self, now: datetime, expiry_days: int) -> datetime:
        return _naive_utc(now) - timedelta(seconds=expiry_days * SECONDS_PER_DAY)

    @staticmethod
    def _to_entry(row: SellerCacheRow) -> CacheEntry:
        return CacheEntry(
            seller_id=row.seller_id,
            result=ClassificationResult(
                is_target_seller=row.is_target_seller,
                confidence=row.confidence,
                evidence=tuple(row.evidence or ()),
                details=dict(row.details or {}),
            ),
            last_updated=_aware_utc(row.last_updated),
        )

    async def get(self, seller_id: str) -> CacheEntry | None:
        async with self.session_factory() as session:
            row = await session.get(SellerCacheRow, seller_id)
            if row is None:
                return None
            entry = self._to_entry(row)

        if entry.is_expired(self._clock(), self.expiry_days):
            return None
        return entry

    async def put(self, seller_id: str, result: ClassificationResult) -> None:
        now = self._clock()
        async with self.session_factory() as session:
            row = await session.get(SellerCacheRow, seller_id)
            if row is None:
                session.add(
                    SellerCacheRow(
                        seller_id=seller_id,
                        is_target_seller=result.is_target_seller,
                        confidence=result.confidence,
                        evidence=list(result.evidence),
                        details=dict(result.details),
                        last_updated=_naive_utc(now),
                    )
                )
            else:
                unchanged = (
                    row.is_target_seller == result.is_target_seller
                    and row.confidence == result.confidence
                    and not self._to_entry(row).is_expired(now, self.expiry_days)
                )
                if unchanged:
                    return
                row.is_target_seller = result.is_target_seller
                row.confidence = result.confidence
                row.evidence = list(result.evidence)
                row.details = dict(result.details)
                row.last_updated = _naive_utc(now)

            await session.commit()

    async def evict_expired(
        self,
        now: datetime | None = None,
        expiry_days: int | None = None,
    ) -> int:
        now = now or self._clock()
        days = expiry_days if expiry_days is not None else self.expiry_days
        cutoff = self._cutoff(now, days)

        async with self.session_factory() as session:
            result = await session.execute(
                delete(SellerCacheRow).where(SellerCacheRow.last_updated < cutoff)
            )
            await session.commit()
            count = result.rowcount or 0

        if count:
            logger.info("cache_evicted", count=count, backend="sql", source="cache")
        return count

    async def stats(self) -> CacheStats:
        cutoff = self._cutoff(self._clock(), self.expiry_days)
        async with self.session_factory() as session:
            total = await session.scalar(
                select(func.count()).select_from(SellerCacheRow).where(
                    SellerCacheRow.last_updated >= cutoff
                )
            )
            matched = await session.scalar(
                select(func.count()).select_from(SellerCacheRow).where(
                    SellerCacheRow.last_updated >= cutoff,
                    SellerCacheRow.is_target_seller.is_(True),
                )
            )
        return CacheStats(total=total or 0, matched=matched or 0)

    async def clear(self) -> int:
        async with self.session_factory() as session:
            result = await session.execute(delete(SellerCacheRow))
            await session.commit()
            return result.rowcount or 0
