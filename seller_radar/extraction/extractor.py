"""
Seller Radar — Signal Extractor

Turns one listing card into a SellerSignal through up to three stages:

1. Card read (no network)
2. Item detail page, when the card shows an item id but no seller
3. Seller profile page, when a profile URL is known and no explicit
   country-of-origin phrase has been seen yet

Each fetch is paced and retried; an exhausted fetch ends extraction with the
partial signal gathered so far.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from seller_radar.config import Settings, settings
from seller_radar.detection.keywords import DEFAULT_TABLE, KeywordTable
from seller_radar.extraction import SellerSignal
from seller_radar.extraction.card import extract_card_seller, extract_item_id
from seller_radar.extraction.detail import detail_url, parse_detail_page
from seller_radar.extraction.document import DocumentAdapter
from seller_radar.extraction.pacing import RequestPacer
from seller_radar.extraction.profile import parse_profile_page
from seller_radar.extraction.retry import fetch_with_retry

logger = structlog.get_logger(__name__)


class SignalExtractor:
    """
    Extracts seller evidence for listing cards.

    Usage:
        extractor = SignalExtractor(adapter)
        signal = await extractor.extract(card)
    """

    def __init__(
        self,
        adapter: DocumentAdapter,
        keywords: KeywordTable | None = None,
        pacer: RequestPacer | None = None,
        config: Settings | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.adapter = adapter
        self.keywords = keywords or DEFAULT_TABLE
        self.config = config or settings
        self.pacer = pacer or RequestPacer(sleep=sleep)
        self._sleep = sleep

    async def extract(self, card: Any) -> SellerSignal:
        """
        Build a SellerSignal for one card.

        Never raises for missing data or failed fetches; those yield a
        signal with fewer fields filled.
        """
        cfg = self.config
        base_url = cfg.MARKETPLACE_BASE_URL
        brand = cfg.MARKETPLACE_OPERATOR_BRAND

        item_id = extract_item_id(self.adapter, card)
        mention = extract_card_seller(self.adapter, card, base_url, brand)
        stages = ["card"]

        fields: dict[str, Any] = {
            "item_id": item_id,
            "seller_id": mention.seller_id if mention else None,
            "seller_name": mention.name if mention else None,
            "seller_profile_url": mention.profile_url if mention else None,
        }

        # Stage 2: detail page
        if item_id and mention is None:
            document = await self._fetch(detail_url(base_url, item_id))
            if document is None:
                return self._finish(fields, stages)
            stages.append("detail")
            findings = parse_detail_page(self.adapter, document, base_url, brand, self.keywords)
            if findings.seller is not None:
                fields["seller_name"] = findings.seller.name
                fields["seller_id"] = findings.seller.seller_id
                fields["seller_profile_url"] = findings.seller.profile_url
            fields["business_name"] = findings.business_name
            fields["business_address"] = findings.business_address
            fields["country_marker"] = findings.country_marker

        # Stage 3: profile page
        profile_url = fields.get("seller_profile_url")
        if profile_url and not fields.get("country_marker"):
            document = await self._fetch(profile_url)
            if document is None:
                return self._finish(fields, stages)
            stages.append("profile")
            profile = parse_profile_page(self.adapter, document, self.keywords)
            fields["business_name"] = profile.business_name or fields.get("business_name")
            fields["business_address"] = profile.business_address or fields.get("business_address")
            fields["business_type"] = profile.business_type
            fields["phone_numbers"] = profile.phone_numbers
            fields["raw_page_text"] = profile.raw_page_text or None
            fields["country_marker"] = profile.country_marker

        return self._finish(fields, stages)

    async def _fetch(self, url: str) -> Any | None:
        """Paced, retried fetch. None when the budget is spent or every attempt failed."""
        if not self.pacer.can_fetch():
            logger.warning(
                "extractor_fetch_budget_exhausted",
                url=url,
                pages_remaining=self.pacer.pages_remaining,
                source="extractor",
            )
            return None

        await self.pacer.delay()
        if hasattr(self.adapter, "user_agent"):
            self.adapter.user_agent = self.pacer.user_agent()
        self.pacer.record_fetch()

        return await fetch_with_retry(
            self.adapter.fetch_document,
            url,
            max_attempts=self.config.FETCH_MAX_ATTEMPTS,
            base_delay=self.config.FETCH_BASE_BACKOFF_SECONDS,
            sleep=self._sleep,
        )

    def _finish(self, fields: dict[str, Any], stages: list[str]) -> SellerSignal:
        signal = SellerSignal(**fields, stages=tuple(stages))
        logger.debug(
            "extractor_signal",
            item_id=signal.item_id,
            seller_id=signal.seller_id,
            seller_name=signal.seller_name,
            stages=signal.stages,
            has_identity=signal.has_identity,
            source="extractor",
        )
        return signal
