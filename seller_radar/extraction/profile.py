"""
Seller Radar — Stage 3: Seller Profile Page

Parses the seller's profile page for the business disclosure: legal name,
address, business type, and phone numbers, plus the raw visible text the
classifier scans for keyword frequency and platform markers.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel

from seller_radar.detection.keywords import KeywordTable
from seller_radar.extraction import labels
from seller_radar.extraction.document import DocumentAdapter
from seller_radar.extraction.strategies import (
    ADDRESS_HINTS,
    PARAGRAPH_MAX_LENGTH,
    PARAGRAPH_MIN_LENGTH,
    PROFILE_ADDRESS_SELECTORS,
    PROFILE_INFO_BLOCK_SELECTORS,
    PROFILE_NAME_SELECTORS,
    PROFILE_TITLE_SEPARATORS,
)

logger = structlog.get_logger(__name__)


class ProfileFindings(BaseModel):
    model_config = {"frozen": True}

    business_name: str | None = None
    business_address: str | None = None
    business_type: str | None = None
    phone_numbers: tuple[str, ...] = ()
    raw_page_text: str = ""
    country_marker: str | None = None


def parse_profile_page(
    adapter: DocumentAdapter,
    document: Any,
    keywords: KeywordTable,
) -> ProfileFindings:
    """Read the business disclosure from a parsed seller profile page."""
    page_text = adapter.document_text(document)

    findings = ProfileFindings(
        business_name=labels.business_name(page_text) or _name_from_page(adapter, document),
        business_address=_address(adapter, document, page_text, keywords),
        business_type=labels.business_type(page_text),
        phone_numbers=labels.phone_numbers(page_text),
        raw_page_text=page_text,
        country_marker=keywords.find_high_value_phrase(page_text),
    )

    logger.debug(
        "profile_page_parsed",
        business_name=findings.business_name,
        has_address=findings.business_address is not None,
        phone_count=len(findings.phone_numbers),
        country_marker=findings.country_marker,
        source="profile",
    )
    return findings


def _name_from_page(adapter: DocumentAdapter, document: Any) -> str | None:
    """Selector cascade, then the <title> prefix."""
    for selector in PROFILE_NAME_SELECTORS:
        text = adapter.text(adapter.query_one(document, selector))
        if text:
            return text

    title = adapter.text(adapter.query_one(document, "title"))
    if not title:
        return None
    for separator in PROFILE_TITLE_SEPARATORS:
        if separator in title:
            prefix = title.split(separator, 1)[0].strip()
            if prefix:
                return prefix
    return None


def _address(
    adapter: DocumentAdapter,
    document: Any,
    page_text: str,
    keywords: KeywordTable,
) -> str | None:
    """
    Find the business address.

    Order: the "Business Address:" label in the page text, the label inside
    known seller-info blocks, address-like elements, then the first
    paragraph that looks like an address.
    """
    labelled = labels.business_address(page_text)
    if labelled:
        return labelled

    for selector in PROFILE_INFO_BLOCK_SELECTORS:
        for block in adapter.query_all(document, selector):
            found = labels.business_address(adapter.document_text(block))
            if found:
                return found

    for selector in PROFILE_ADDRESS_SELECTORS:
        text = adapter.text(adapter.query_one(document, selector))
        if text:
            return text

    lowered_keywords = [
        k.lower() for k in keywords.location_keywords if len(k) > 3 or not k.isascii()
    ]
    for paragraph in adapter.query_all(document, "p"):
        text = adapter.text(paragraph)
        if not PARAGRAPH_MIN_LENGTH < len(text) < PARAGRAPH_MAX_LENGTH:
            continue
        lowered = text.lower()
        if ADDRESS_HINTS.search(text) or any(k in lowered for k in lowered_keywords):
            return text

    return None
