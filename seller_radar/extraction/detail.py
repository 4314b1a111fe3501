"""
Seller Radar — Stage 2: Item Detail Page

Parses the item detail page ({base}/dp/{item_id}) for the seller the card
did not show. Parsing only; the extractor owns fetching and retries.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urljoin

import structlog
from pydantic import BaseModel

from seller_radar.detection.keywords import KeywordTable
from seller_radar.extraction import labels
from seller_radar.extraction.card import SellerMention, clean_seller_name, seller_id_from_url
from seller_radar.extraction.document import DocumentAdapter
from seller_radar.extraction.strategies import (
    DETAIL_PATH,
    DETAIL_SELLER_LINK_SELECTORS,
    DETAIL_SELLER_TEXT_PATTERNS,
    DETAIL_SELLER_TEXT_SELECTORS,
    PROFILE_PATH,
    SELLER_ID_PATTERNS,
)

logger = structlog.get_logger(__name__)


class DetailFindings(BaseModel):
    model_config = {"frozen": True}

    seller: SellerMention | None = None
    business_name: str | None = None
    business_address: str | None = None
    country_marker: str | None = None
    page_text: str = ""


def detail_url(base_url: str, item_id: str) -> str:
    return urljoin(base_url, DETAIL_PATH.format(item_id=item_id))


def profile_url(base_url: str, seller_id: str) -> str:
    return urljoin(base_url, PROFILE_PATH.format(seller_id=seller_id))


def parse_detail_page(
    adapter: DocumentAdapter,
    document: Any,
    base_url: str,
    operator_brand: str,
    keywords: KeywordTable,
) -> DetailFindings:
    """
    Read seller evidence from a parsed detail page.

    Args:
        adapter: Query adapter for the document.
        document: Parsed detail page.
        base_url: Marketplace origin used to absolutize links.
        operator_brand: Names containing this are discarded.
        keywords: Table consulted for explicit country-of-origin phrases.
    """
    page_text = adapter.document_text(document)

    seller = _seller_from_links(adapter, document, base_url, operator_brand)
    if seller is None:
        seller = _seller_from_text(adapter, document, operator_brand)

    if seller is not None and seller.profile_url is None:
        seller_id = _seller_id_from_html(adapter.html(document))
        if seller_id:
            seller = seller.model_copy(
                update={"seller_id": seller_id, "profile_url": profile_url(base_url, seller_id)}
            )

    findings = DetailFindings(
        seller=seller,
        business_name=labels.business_name(page_text),
        business_address=labels.business_address(page_text),
        country_marker=keywords.find_high_value_phrase(page_text),
        page_text=page_text,
    )

    logger.debug(
        "detail_page_parsed",
        seller_name=seller.name if seller else None,
        seller_id=seller.seller_id if seller else None,
        country_marker=findings.country_marker,
        source="detail",
    )
    return findings


def _seller_from_links(
    adapter: DocumentAdapter,
    document: Any,
    base_url: str,
    operator_brand: str,
) -> SellerMention | None:
    for selector in DETAIL_SELLER_LINK_SELECTORS:
        element = adapter.query_one(document, selector)
        if element is None:
            continue
        href = adapter.attribute(element, "href")
        name = clean_seller_name(adapter.text(element), operator_brand)
        if not href or not name:
            continue
        url = urljoin(base_url, href)
        return SellerMention(name=name, profile_url=url, seller_id=seller_id_from_url(url))
    return None


def _seller_from_text(
    adapter: DocumentAdapter,
    document: Any,
    operator_brand: str,
) -> SellerMention | None:
    for selector in DETAIL_SELLER_TEXT_SELECTORS:
        element = adapter.query_one(document, selector)
        if element is None:
            continue
        text = adapter.text(element)
        if not text:
            continue
        for pattern in DETAIL_SELLER_TEXT_PATTERNS:
            match = pattern.search(text)
            if not match:
                continue
            name = clean_seller_name(match.group(1), operator_brand)
            if name:
                return SellerMention(name=name)
    return None


def _seller_id_from_html(html: str) -> str | None:
    for pattern in SELLER_ID_PATTERNS:
        match = pattern.search(html)
        if match:
            return match.group(1)
    return None
