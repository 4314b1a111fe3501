"""
Seller Radar — Retrying Fetch

One reusable retry-with-backoff wrapper for every outbound page fetch.
Attempts are spaced base_delay × 2^(attempt-1) apart. After the last attempt
the failure degrades to None instead of raising, so the extractor can keep
whatever partial signal it already assembled.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import structlog

from seller_radar.config import settings
from seller_radar.errors import FetchError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[Any]]


def backoff_delays(max_attempts: int, base_delay: float) -> list[float]:
    """Delays slept between attempts: [base, 2×base, 4×base, ...]."""
    return [base_delay * (2 ** i) for i in range(max(0, max_attempts - 1))]


async def fetch_with_retry(
    fetch: Callable[[str], Awaitable[T]],
    url: str,
    max_attempts: int | None = None,
    base_delay: float | None = None,
    sleep: Sleeper = asyncio.sleep,
) -> T | None:
    """
    Call fetch(url) until it succeeds or the attempt budget is spent.

    Args:
        fetch: Async callable returning a parsed document.
        url: Absolute URL to fetch.
        max_attempts: Total attempts (default FETCH_MAX_ATTEMPTS).
        base_delay: First backoff delay in seconds (default FETCH_BASE_BACKOFF_SECONDS).
        sleep: Awaitable sleeper, injectable for tests.

    Returns:
        The fetched value, or None after every attempt failed.
    """
    attempts = max_attempts if max_attempts is not None else settings.FETCH_MAX_ATTEMPTS
    base = base_delay if base_delay is not None else settings.FETCH_BASE_BACKOFF_SECONDS
    attempts = max(1, attempts)

    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            return await fetch(url)
        except (FetchError, httpx.HTTPError) as e:
            last_error = e
            status_code = getattr(e, "status_code", None)
            logger.warning(
                "fetch_attempt_failed",
                url=url,
                attempt=attempt,
                max_attempts=attempts,
                status_code=status_code,
                error=str(e),
                source="retry",
            )
            if attempt < attempts:
                wait_time = base * (2 ** (attempt - 1))
                await sleep(wait_time)

    logger.error(
        "fetch_retries_exhausted",
        url=url,
        attempts=attempts,
        error=str(last_error) if last_error else None,
        source="retry",
    )
    return None
