"""
Seller Radar — Lazy Loading

Scrolls a results page to reveal cards rendered on demand. Bounded by
LAZY_LOAD_MAX_ATTEMPTS; stops early after two consecutive attempts without
growth, or once growth has been seen LAZY_LOAD_GROWTH_STREAK attempts in a
row (diminishing returns). Visible "load more" controls are clicked
opportunistically after each scroll.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from seller_radar.config import Settings, settings
from seller_radar.extraction.page import PageController
from seller_radar.scan import LazyLoadReport

logger = structlog.get_logger(__name__)

LOAD_MORE_SELECTORS: tuple[str, ...] = (
    'a[href*="load-more"]',
    'button:not([disabled])[class*="load-more"]',
    'span[class*="load-more"]',
    'div[class*="load-more"]',
    'button:not([disabled]):not([aria-disabled="true"]):not([aria-hidden="true"])[class*="pag"]',
)

NO_GROWTH_LIMIT = 2


async def trigger_lazy_loading(
    page: PageController,
    count_cards: Callable[[], Awaitable[int]],
    config: Settings | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    should_stop: Callable[[], bool] | None = None,
) -> LazyLoadReport:
    """
    Scroll until the card count stops changing.

    Args:
        page: Page to scroll.
        count_cards: Re-counts visible cards on the current page state.
        config: Settings source for attempt ceiling and settle times.
        sleep: Awaitable sleeper, injectable for tests.
        should_stop: Checked before each attempt; True aborts (cancellation).

    Returns:
        LazyLoadReport with attempts made and card counts before and after.
    """
    cfg = config or settings
    initial = await count_cards()
    previous = initial
    attempts = 0
    clicks = 0
    no_growth_streak = 0
    growth_streak = 0

    while attempts < cfg.LAZY_LOAD_MAX_ATTEMPTS:
        if should_stop is not None and should_stop():
            logger.info("lazy_load_stopped", attempts=attempts, source="lazy_load")
            break

        attempts += 1
        await page.scroll_to_bottom()
        await sleep(cfg.LAZY_LOAD_SETTLE_MS / 1000)

        if await page.click_load_more(LOAD_MORE_SELECTORS):
            clicks += 1
            await sleep(cfg.LAZY_LOAD_CLICK_SETTLE_MS / 1000)

        current = await count_cards()
        logger.debug(
            "lazy_load_attempt",
            attempt=attempts,
            max_attempts=cfg.LAZY_LOAD_MAX_ATTEMPTS,
            cards=current,
            source="lazy_load",
        )

        if current > previous:
            growth_streak += 1
            no_growth_streak = 0
        else:
            no_growth_streak += 1
            growth_streak = 0
        previous = current

        if no_growth_streak >= NO_GROWTH_LIMIT:
            break
        if growth_streak >= cfg.LAZY_LOAD_GROWTH_STREAK:
            break

    await page.scroll_to_top()

    report = LazyLoadReport(
        attempts=attempts,
        initial_count=initial,
        final_count=previous,
        clicks=clicks,
    )
    logger.info(
        "lazy_load_complete",
        attempts=report.attempts,
        initial_count=report.initial_count,
        final_count=report.final_count,
        clicks=report.clicks,
        source="lazy_load",
    )
    return report
