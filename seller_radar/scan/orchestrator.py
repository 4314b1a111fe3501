"""
Seller Radar — Scan Orchestrator

Drives one scan of the current page through the session state machine:

    Idle -> Preparing -> (LazyLoading)? -> Scanning -> {Completed | Cancelled | Failed} -> Idle

Preparing discovers listing cards; when none are found the page is lazily
loaded and discovery runs again. Scanning walks the cards in fixed-size
batches, each card going Extractor -> Classifier -> Cache. All work is
single-task cooperative: suspension happens only at fetches, settle waits,
and the pause between batches.

Collaborators are injected. A collaborator that cannot be constructed is a
Failed session, never a silent fallback.
"""

from __future__ import annotations

import asyncio
import inspect
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import structlog

from seller_radar.cache import ResultCache
from seller_radar.config import ScanSettings, ScanStatus, SellerType, Settings, settings
from seller_radar.detection.classifier import SellerClassifier
from seller_radar.detection.keywords import KeywordTable
from seller_radar.errors import ScanSetupError
from seller_radar.extraction.document import DocumentAdapter
from seller_radar.extraction.extractor import SignalExtractor
from seller_radar.extraction.page import PageController
from seller_radar.extraction.pacing import RequestPacer
from seller_radar.scan import (
    SCAN_IN_PROGRESS_MESSAGE,
    CardOutcome,
    CardRef,
    ScanProgress,
    ScanSession,
)
from seller_radar.scan.cards import discover_cards
from seller_radar.scan.lazy_load import trigger_lazy_loading

logger = structlog.get_logger(__name__)

ClassifierFactory = Callable[[ScanSettings], SellerClassifier]
ExtractorFactory = Callable[[DocumentAdapter, KeywordTable], SignalExtractor]
SettingsProvider = Callable[[], ScanSettings]
CardCallback = Callable[[CardRef, CardOutcome], Any]
ProgressCallback = Callable[[ScanProgress], Any]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _BatchCounts:
    """Counts for one batch; merged into the session only when the batch completes."""

    def __init__(self) -> None:
        self.processed = 0
        self.matched = 0
        self.unknown = 0
        self.errors = 0

    def add(self, outcome: CardOutcome) -> None:
        self.processed += 1
        if outcome.seller_type is SellerType.TARGET:
            self.matched += 1
        elif outcome.seller_type is SellerType.UNKNOWN:
            self.unknown += 1
        elif outcome.seller_type is SellerType.ERROR:
            self.errors += 1


class ScanOrchestrator:
    """
    Owns the scan session for one page.

    Usage:
        orchestrator = ScanOrchestrator(page, adapter, cache, on_card=render_badge)
        session = await orchestrator.start()
    """

    def __init__(
        self,
        page: PageController,
        adapter: DocumentAdapter,
        cache: ResultCache,
        classifier_factory: ClassifierFactory = SellerClassifier.from_scan_settings,
        extractor_factory: ExtractorFactory | None = None,
        settings_provider: SettingsProvider = ScanSettings.from_settings,
        on_card: CardCallback | None = None,
        on_progress: ProgressCallback | None = None,
        config: Settings | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.page = page
        self.adapter = adapter
        self.cache = cache
        self.classifier_factory = classifier_factory
        self.extractor_factory = extractor_factory or self._default_extractor
        self.settings_provider = settings_provider
        self.on_card = on_card
        self.on_progress = on_progress
        self.config = config or settings
        self._sleep = sleep
        self._clock = clock
        self._pacer = RequestPacer(sleep=sleep)

        self._session = ScanSession()
        self._last_session: ScanSession | None = None
        self._outcomes: dict[str, CardOutcome] = {}
        self._outcomes_settings: ScanSettings | None = None

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    @property
    def session(self) -> ScanSession:
        """Snapshot of the live session."""
        return self._session.snapshot()

    @property
    def last_session(self) -> ScanSession | None:
        """Terminal snapshot of the most recent finished scan."""
        return self._last_session

    @property
    def outcomes(self) -> dict[str, CardOutcome]:
        """Recorded outcome per card key; kept until the scan settings change or reset()."""
        return dict(self._outcomes)

    def reset(self) -> bool:
        """
        Forget every recorded card outcome so the next scan re-processes all cards.

        Returns False (and changes nothing) while a scan is active.
        """
        if self._session.status.is_active:
            return False
        cleared = len(self._outcomes)
        self._outcomes.clear()
        self._outcomes_settings = None
        logger.info("scan_outcomes_reset", cleared=cleared, source="orchestrator")
        return True

    def cancel(self) -> bool:
        """
        Request cancellation of the active scan.

        No further batch begins after this; the batch in flight is discarded.
        Returns False when no scan is active.
        """
        if not self._session.status.is_active:
            return False
        self._session.cancel_requested = True
        logger.info("scan_cancel_requested", processed=self._session.processed, source="orchestrator")
        return True

    async def start(self, refresh: bool = False) -> ScanSession:
        """
        Run one scan to a terminal state.

        Args:
            refresh: Clear recorded card outcomes first, as reset() does.

        Returns:
            The terminal ScanSession snapshot. Calling start() while a scan
            is active changes nothing and returns a snapshot carrying the
            message "scan already in progress".
        """
        if self._session.status.is_active:
            logger.warning(
                "scan_already_in_progress",
                status=self._session.status.value,
                source="orchestrator",
            )
            return self._session.model_copy(update={"message": SCAN_IN_PROGRESS_MESSAGE})

        if refresh:
            self.reset()

        self._session = ScanSession(status=ScanStatus.PREPARING, started_at=self._clock())
        logger.info("scan_started", url=self.page.url, source="orchestrator")

        try:
            await self._run()
        except asyncio.CancelledError:
            self._session.status = ScanStatus.CANCELLED
            self._session.message = "scan task cancelled"
            self._finish()
            raise
        except Exception as e:
            self._session.status = ScanStatus.FAILED
            self._session.message = str(e) or type(e).__name__
            logger.error(
                "scan_failed",
                error=str(e),
                error_type=type(e).__name__,
                processed=self._session.processed,
                source="orchestrator",
            )

        return self._finish()

    # -----------------------------------------------------------------------
    # Phases
    # -----------------------------------------------------------------------

    async def _run(self) -> None:
        scan_settings = self.settings_provider()
        try:
            classifier = self.classifier_factory(scan_settings)
            extractor = self.extractor_factory(self.adapter, classifier.keywords)
        except Exception as e:
            raise ScanSetupError(f"could not construct scan collaborators: {e}") from e

        if self._outcomes_settings != scan_settings:
            if self._outcomes:
                logger.info(
                    "scan_outcomes_invalidated",
                    cleared=len(self._outcomes),
                    reason="settings_changed",
                    source="orchestrator",
                )
            self._outcomes.clear()
            self._outcomes_settings = scan_settings

        cards = await self._discover()
        if not cards:
            self._session.status = ScanStatus.LAZY_LOADING
            await trigger_lazy_loading(
                self.page,
                self._count_cards,
                config=self.config,
                sleep=self._sleep,
                should_stop=lambda: self._session.cancel_requested,
            )
            cards = await self._discover()

        if self._session.cancel_requested:
            self._session.status = ScanStatus.CANCELLED
            return

        self._session.total = len(cards)
        self._session.status = ScanStatus.SCANNING
        await self._scan(cards, classifier, extractor, scan_settings)

        if self._session.status is ScanStatus.SCANNING:
            self._session.status = ScanStatus.COMPLETED
            await self._attach_cache_stats()

    async def _discover(self) -> list[CardRef]:
        document = await self.page.snapshot()
        return discover_cards(self.adapter, document, self.page.url, self.config)

    async def _count_cards(self) -> int:
        return len(await self._discover())

    async def _scan(
        self,
        cards: list[CardRef],
        classifier: SellerClassifier,
        extractor: SignalExtractor,
        scan_settings: ScanSettings,
    ) -> None:
        batch_size = scan_settings.scan_batch_size
        batch_delay = scan_settings.scan_delay_ms / 1000

        for start in range(0, len(cards), batch_size):
            if self._session.cancel_requested:
                self._mark_cancelled()
                return

            batch = cards[start:start + batch_size]
            counts = _BatchCounts()
            staged: dict[str, CardOutcome] = {}

            for card in batch:
                if self._session.cancel_requested:
                    self._mark_cancelled()
                    return

                outcome = self._reusable_outcome(card.key, staged)
                if outcome is None:
                    outcome = await self._process_card(card, classifier, extractor, scan_settings)
                    staged[card.key] = outcome

                # Results landing after cancel() belong to the discarded batch
                if self._session.cancel_requested:
                    self._mark_cancelled()
                    return

                counts.add(outcome)
                await self._notify(self.on_card, card, outcome)

            if self._session.cancel_requested:
                self._mark_cancelled()
                return

            self._session.processed += counts.processed
            self._session.matched_count += counts.matched
            self._session.unknown_count += counts.unknown
            self._session.error_count += counts.errors
            self._outcomes.update(staged)

            await self._notify(
                self.on_progress,
                ScanProgress(
                    processed=self._session.processed,
                    total=self._session.total,
                    matched_count=self._session.matched_count,
                ),
            )
            logger.debug(
                "scan_batch_complete",
                batch_start=start,
                processed=self._session.processed,
                total=self._session.total,
                matched=self._session.matched_count,
                source="orchestrator",
            )

            if start + batch_size < len(cards) and batch_delay > 0:
                await self._sleep(batch_delay)

    async def _process_card(
        self,
        card: CardRef,
        classifier: SellerClassifier,
        extractor: SignalExtractor,
        scan_settings: ScanSettings,
    ) -> CardOutcome:
        """Extractor -> Classifier -> Cache for one card. Failures become an ERROR outcome."""
        try:
            signal = await extractor.extract(card.element)
            key = signal.cache_key
            if key is None:
                return CardOutcome(seller_type=SellerType.UNKNOWN)

            prior = await self.cache.get(key)
            expiry_days = scan_settings.cache_expiry_days
            if prior is not None and prior.is_expired(self._clock(), expiry_days):
                logger.debug(
                    "scan_cache_entry_stale",
                    seller_key=key,
                    expiry_days=expiry_days,
                    source="orchestrator",
                )
                prior = None
            result = classifier.classify(signal, prior)
            if prior is None or prior.result is not result:
                await self.cache.put(key, result)

            seller_type = SellerType.TARGET if result.is_target_seller else SellerType.OTHER
            return CardOutcome(seller_type=seller_type, result=result, seller_key=key)
        except Exception as e:
            logger.warning(
                "scan_card_failed",
                card_key=card.key,
                error=str(e),
                error_type=type(e).__name__,
                source="orchestrator",
            )
            return CardOutcome(seller_type=SellerType.ERROR, error=str(e) or type(e).__name__)

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _default_extractor(self, adapter: DocumentAdapter, keywords: KeywordTable) -> SignalExtractor:
        return SignalExtractor(
            adapter,
            keywords=keywords,
            pacer=self._pacer,
            config=self.config,
            sleep=self._sleep,
        )

    def _reusable_outcome(self, key: str, staged: dict[str, CardOutcome]) -> CardOutcome | None:
        """Outcome recorded earlier for this card; ERROR outcomes are always retried."""
        outcome = self._outcomes.get(key) or staged.get(key)
        if outcome is None or outcome.seller_type is SellerType.ERROR:
            return None
        return outcome

    def _mark_cancelled(self) -> None:
        self._session.status = ScanStatus.CANCELLED
        logger.info(
            "scan_cancelled",
            processed=self._session.processed,
            total=self._session.total,
            source="orchestrator",
        )

    async def _attach_cache_stats(self) -> None:
        try:
            stats = await self.cache.stats()
        except Exception as e:
            logger.warning("scan_cache_stats_failed", error=str(e), source="orchestrator")
            return
        self._session.cache_total = stats.total
        self._session.cache_matched = stats.matched

    @staticmethod
    async def _notify(callback: Callable[..., Any] | None, *args: Any) -> None:
        if callback is None:
            return
        result = callback(*args)
        if inspect.isawaitable(result):
            await result

    def _finish(self) -> ScanSession:
        """Record the terminal snapshot and return the live session to Idle."""
        self._session.finished_at = self._clock()
        terminal = self._session.snapshot()
        self._last_session = terminal
        self._session = ScanSession()

        logger.info(
            "scan_finished",
            status=terminal.status.value,
            processed=terminal.processed,
            total=terminal.total,
            matched=terminal.matched_count,
            unknown=terminal.unknown_count,
            errors=terminal.error_count,
            message=terminal.message,
            source="orchestrator",
        )
        return terminal
