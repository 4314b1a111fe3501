"""
Seller Radar — Request Pacing

Spaces outbound page fetches with a small jittered delay, rotates the
user agent, and enforces an hourly page budget from
settings.FETCH_MAX_PAGES_PER_HOUR.
"""

from __future__ import annotations

import asyncio
import random
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import structlog

from seller_radar.config import settings

logger = structlog.get_logger(__name__)


class RequestPacer:
    """
    Politeness layer in front of every detail/profile fetch.

    Manages:
    - Random delays between FETCH_JITTER_MIN_SECONDS and FETCH_JITTER_MAX_SECONDS
    - Hourly page budget (FETCH_MAX_PAGES_PER_HOUR)
    - User-agent rotation
    """

    USER_AGENTS = [
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36",
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:127.0) Gecko/20100101 Firefox/127.0",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.5 Safari/605.1.15",
    ]

    def __init__(
        self,
        max_pages_per_hour: int | None = None,
        jitter_min: float | None = None,
        jitter_max: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._max_pages_per_hour = (
            max_pages_per_hour if max_pages_per_hour is not None else settings.FETCH_MAX_PAGES_PER_HOUR
        )
        self._jitter_min = jitter_min if jitter_min is not None else settings.FETCH_JITTER_MIN_SECONDS
        self._jitter_max = jitter_max if jitter_max is not None else settings.FETCH_JITTER_MAX_SECONDS
        if self._jitter_max < self._jitter_min:
            self._jitter_max = self._jitter_min
        self._sleep = sleep
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._rng = rng or random.Random()
        self._pages_this_hour = 0
        self._hour_start = self._clock()

    def _reset_hour_if_needed(self) -> None:
        """Reset the page counter once a new hour window has started."""
        now = self._clock()
        if (now - self._hour_start).total_seconds() >= 3600:
            self._pages_this_hour = 0
            self._hour_start = now

    def can_fetch(self) -> bool:
        """True while the hourly page budget is not spent."""
        self._reset_hour_if_needed()
        return self._pages_this_hour < self._max_pages_per_hour

    def record_fetch(self) -> None:
        self._reset_hour_if_needed()
        self._pages_this_hour += 1

    async def delay(self) -> float:
        """Sleep for a random duration inside the jitter window."""
        seconds = self._rng.uniform(self._jitter_min, self._jitter_max)
        if seconds > 0:
            logger.debug("pacer_delay", delay_seconds=round(seconds, 3), source="pacer")
            await self._sleep(seconds)
        return seconds

    def user_agent(self) -> str:
        return self._rng.choice(self.USER_AGENTS)

    @property
    def pages_remaining(self) -> int:
        """Pages remaining in the current hour window."""
        self._reset_hour_if_needed()
        return max(0, self._max_pages_per_hour - self._pages_this_hour)


class NoopPacer(RequestPacer):
    """Pacer with no delay and no budget; used for fixture-backed scans and tests."""

    def __init__(self) -> None:
        super().__init__(max_pages_per_hour=10**9, jitter_min=0.0, jitter_max=0.0)

    async def delay(self) -> float:
        return 0.0
