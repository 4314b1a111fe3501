"""
Seller Radar — Cache Sweeper

Background loop that evicts expired cache entries every
CACHE_SWEEP_INTERVAL_SECONDS until shut down.
"""

from __future__ import annotations

import asyncio

import structlog

from seller_radar.cache import ResultCache
from seller_radar.config import settings

logger = structlog.get_logger(__name__)


class CacheSweeper:
    """
    Periodic expiry sweep for a ResultCache.

    Usage:
        sweeper = CacheSweeper(cache)
        task = asyncio.create_task(sweeper.run())
        ...
        await sweeper.shutdown()
        await task
    """

    def __init__(
        self,
        cache: ResultCache,
        interval_seconds: float | None = None,
        expiry_days: int | None = None,
    ) -> None:
        self.cache = cache
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else settings.CACHE_SWEEP_INTERVAL_SECONDS
        )
        self.expiry_days = expiry_days
        self.sweeps = 0
        self._shutdown_event = asyncio.Event()

    async def shutdown(self) -> None:
        """Signal graceful shutdown to the sweep loop."""
        logger.info("cache_sweeper_shutdown_requested", source="sweeper")
        self._shutdown_event.set()

    async def sweep_once(self) -> int:
        """Evict expired entries now. Returns the number removed."""
        removed = await self.cache.evict_expired(expiry_days=self.expiry_days)
        self.sweeps += 1
        logger.info("cache_sweep_complete", removed=removed, sweeps=self.sweeps, source="sweeper")
        return removed

    async def run(self) -> None:
        """
        Sweep loop. Runs until shutdown() is called.

        A failed sweep is logged and retried on the next interval.
        """
        logger.info("cache_sweeper_started", interval_seconds=self.interval_seconds, source="sweeper")

        try:
            while not self._shutdown_event.is_set():
                try:
                    await self.sweep_once()
                except Exception as e:
                    logger.error(
                        "cache_sweep_failed",
                        error=str(e),
                        error_type=type(e).__name__,
                        source="sweeper",
                    )

                try:
                    await asyncio.wait_for(
                        self._shutdown_event.wait(),
                        timeout=self.interval_seconds,
                    )
                except asyncio.TimeoutError:
                    # Expected: no shutdown signal, sweep again
                    continue

        except asyncio.CancelledError:
            logger.info("cache_sweeper_cancelled", source="sweeper")
            raise
        finally:
            logger.info("cache_sweeper_stopped", sweeps=self.sweeps, source="sweeper")
