"""
Seller Radar — Stage 1: Listing Card Read

Reads what the listing card itself shows: the item identifier and, when the
card carries one, the seller name and storefront link. No network access.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urljoin

import structlog
from pydantic import BaseModel

from seller_radar.extraction.document import DocumentAdapter
from seller_radar.extraction.strategies import (
    CARD_SELLER_SELECTORS,
    CARD_SELLER_TEXT_PATTERNS,
    IMAGE_ID_PATTERN,
    ITEM_ID_ATTRIBUTES,
    ITEM_ID_PATTERN,
    ITEM_LINK_PATTERNS,
    ITEM_LINK_SELECTORS,
    SELLER_ID_PATTERNS,
    SELLER_LINK_MARKERS,
    SELLER_NAME_TAIL,
)

logger = structlog.get_logger(__name__)

MAX_SELLER_NAME_LENGTH = 120


class SellerMention(BaseModel):
    """A seller candidate found on a page."""

    model_config = {"frozen": True}

    name: str
    profile_url: str | None = None
    seller_id: str | None = None


def is_seller_link(href: str | None) -> bool:
    return bool(href) and any(marker in href for marker in SELLER_LINK_MARKERS)


def seller_id_from_url(url: str | None) -> str | None:
    """Pull a seller id out of a storefront/profile URL."""
    if not url:
        return None
    for pattern in SELLER_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def clean_seller_name(raw: str | None, operator_brand: str) -> str | None:
    """
    Normalize a captured seller name.

    Returns None for empty, overlong, or marketplace-operator names; the
    operator's own listings are never sellers of interest.
    """
    if not raw:
        return None
    name = SELLER_NAME_TAIL.sub("", " ".join(raw.split())).strip(" :,-")
    if not name or len(name) > MAX_SELLER_NAME_LENGTH:
        return None
    if operator_brand and operator_brand.lower() in name.lower():
        return None
    return name


# ---------------------------------------------------------------------------
# Item identifier
# ---------------------------------------------------------------------------

def extract_item_id(adapter: DocumentAdapter, card: Any) -> str | None:
    """
    Find the item identifier for a card.

    Order: the card's data-asin, identifier-bearing links, id-like
    attributes on the card and its descendants, then image URLs.
    """
    direct = (adapter.attribute(card, "data-asin") or "").strip()
    if direct:
        return direct

    for selector in ITEM_LINK_SELECTORS:
        for link in adapter.query_all(card, selector):
            href = adapter.attribute(link, "href")
            if not href:
                continue
            for pattern in ITEM_LINK_PATTERNS:
                match = pattern.search(href)
                if match:
                    return match.group(1)

    for name in ITEM_ID_ATTRIBUTES:
        candidates = [card] + adapter.query_all(card, f"[{name}]")
        for element in candidates:
            value = adapter.attribute(element, name)
            if not value:
                continue
            match = ITEM_ID_PATTERN.search(value)
            if match:
                return match.group(1)

    for image in adapter.query_all(card, "img"):
        for attr in ("src", "data-src", "srcset"):
            match = IMAGE_ID_PATTERN.search(adapter.attribute(image, attr) or "")
            if match:
                return match.group(1)

    return None


# ---------------------------------------------------------------------------
# Seller
# ---------------------------------------------------------------------------

def _innermost(adapter: DocumentAdapter, elements: list[Any]) -> list[Any]:
    """Drop matches that merely wrap other matches; keeps document order."""
    if len(elements) < 2:
        return elements
    wrappers: set[int] = set()
    for element in elements:
        ancestor = adapter.parent(element)
        while ancestor is not None:
            wrappers.add(id(ancestor))
            ancestor = adapter.parent(ancestor)
    return [e for e in elements if id(e) not in wrappers]


def _seller_link_within(adapter: DocumentAdapter, element: Any) -> str | None:
    if adapter.tag_name(element) == "a":
        href = adapter.attribute(element, "href")
        if is_seller_link(href):
            return href
    for link in adapter.query_all(element, "a[href]"):
        href = adapter.attribute(link, "href")
        if is_seller_link(href):
            return href
    return None


def extract_card_seller(
    adapter: DocumentAdapter,
    card: Any,
    base_url: str,
    operator_brand: str,
) -> SellerMention | None:
    """
    Walk CARD_SELLER_SELECTORS for a seller mention.

    A candidate is accepted when its text reads like "by X" / "Sold by X",
    or when it is a link into a seller storefront.
    """
    for selector in CARD_SELLER_SELECTORS:
        for element in _innermost(adapter, adapter.query_all(card, selector)):
            text = adapter.text(element)

            for pattern in CARD_SELLER_TEXT_PATTERNS:
                match = pattern.search(text)
                if not match:
                    continue
                name = clean_seller_name(match.group(1), operator_brand)
                if name:
                    href = _seller_link_within(adapter, element)
                    return _mention(name, href, base_url)

            if adapter.tag_name(element) == "a":
                href = adapter.attribute(element, "href")
                if is_seller_link(href):
                    name = clean_seller_name(text, operator_brand)
                    if name:
                        return _mention(name, href, base_url)

    return None


def _mention(name: str, href: str | None, base_url: str) -> SellerMention:
    profile_url = urljoin(base_url, href) if href else None
    return SellerMention(name=name, profile_url=profile_url, seller_id=seller_id_from_url(profile_url))
