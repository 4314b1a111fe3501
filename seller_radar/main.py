"""
Seller Radar — Entrypoint

Configures structlog, opens the result cache, and runs one scan of a
marketplace results page fetched over HTTP. This is a thin harness; the
library is normally embedded in a page observer that supplies its own
PageController.

Run via:
    python -m seller_radar.main "https://www.amazon.com/s?k=usb+charger"
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from seller_radar.cache.sql import SqlResultCache, create_schema
from seller_radar.cache.sweeper import CacheSweeper
from seller_radar.config import ScanStatus, settings
from seller_radar.errors import FetchError
from seller_radar.extraction.document import HttpDocumentAdapter
from seller_radar.extraction.page import StaticPageController
from seller_radar.extraction.retry import fetch_with_retry
from seller_radar.scan import CardOutcome, CardRef, ScanProgress, ScanSession
from seller_radar.scan.orchestrator import ScanOrchestrator

__version__ = "0.1.0"


# ---------------------------------------------------------------------------
# Structlog Configuration
# ---------------------------------------------------------------------------


def configure_logging(log_level: str | None = None) -> None:
    """
    Set up structured logging with JSON output.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to settings.LOG_LEVEL.
    """
    level = getattr(logging, (log_level or settings.LOG_LEVEL).upper(), logging.INFO)

    # Configure stdlib logging first (for third-party libraries)
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Cache Setup
# ---------------------------------------------------------------------------


async def create_cache(
    database_url: str | None = None,
) -> tuple[Any, SqlResultCache]:
    """
    Create the async engine, ensure the cache table exists, and wrap it.

    Returns:
        (engine, cache) tuple. The caller disposes of the engine.
    """
    logger = structlog.get_logger(__name__)
    url = database_url or settings.DATABASE_URL

    logger.info("cache_engine_initializing", database_url=url)
    engine = create_async_engine(url, echo=False, pool_pre_ping=True)
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    await create_schema(engine)
    logger.info("cache_engine_ready")
    return engine, SqlResultCache(session_factory)


# ---------------------------------------------------------------------------
# One-shot scan
# ---------------------------------------------------------------------------


def _log_card(card: CardRef, outcome: CardOutcome) -> None:
    structlog.get_logger(__name__).info(
        "card_classified",
        card_key=card.key,
        seller=outcome.seller_key,
        seller_type=outcome.seller_type.value,
        confidence=outcome.result.confidence,
    )


def _log_progress(progress: ScanProgress) -> None:
    structlog.get_logger(__name__).info(
        "scan_progress",
        processed=progress.processed,
        total=progress.total,
        matched=progress.matched_count,
    )


async def scan_url(url: str, database_url: str | None = None) -> ScanSession:
    """
    Fetch a results page, scan it once, then sweep expired cache entries.

    Raises:
        FetchError: if the results page itself cannot be fetched.
    """
    logger = structlog.get_logger(__name__)
    engine, cache = await create_cache(database_url)

    try:
        async with HttpDocumentAdapter() as adapter:
            document = await fetch_with_retry(adapter.fetch_document, url)
            if document is None:
                raise FetchError(url, "results page could not be fetched")

            orchestrator = ScanOrchestrator(
                StaticPageController(url, document),
                adapter,
                cache,
                on_card=_log_card,
                on_progress=_log_progress,
            )
            session = await orchestrator.start()

        await CacheSweeper(cache).sweep_once()

        logger.info(
            "scan_summary",
            status=session.status.value,
            processed=session.processed,
            total=session.total,
            matched=session.matched_count,
            unknown=session.unknown_count,
            errors=session.error_count,
            cache_total=session.cache_total,
            cache_matched=session.cache_matched,
            message=session.message,
        )
        return session
    finally:
        await engine.dispose()


# ---------------------------------------------------------------------------
# CLI Entry
# ---------------------------------------------------------------------------


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scan a marketplace results page and flag target-country sellers.",
    )
    parser.add_argument("url", help="Search results or product page URL.")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Async SQLAlchemy URL for the result cache (default: settings.DATABASE_URL).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="DEBUG | INFO | WARNING | ERROR (default: settings.LOG_LEVEL).",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)
    logger = structlog.get_logger(__name__)
    logger.info("seller_radar_startup", version=__version__, url=args.url)

    try:
        session = await scan_url(args.url, args.database_url)
    except FetchError as e:
        logger.error("seller_radar_fetch_failed", url=e.url, error=e.reason)
        return 1
    except KeyboardInterrupt:
        logger.info("seller_radar_interrupted_by_user")
        return 130

    return 0 if session.status is ScanStatus.COMPLETED else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
