"""
Seller Radar — Listing Card Discovery

Finds the listing cards on a results or product page. Search pages are
walked with an ordered list of strategy functions, first non-empty result
wins:

1. Structural selectors (first selector with any match)
2. Content shape: a price element and a rating element under a common
   div/li within CARD_ANCESTOR_LEVELS levels
3. Direct children of the main results container, keeping the larger ones

Product pages yield the main product block plus related-item carousel cards.
Hidden cards are dropped in every case.
"""

from __future__ import annotations

import hashlib
from typing import Any, Callable, Sequence

import structlog

from seller_radar.config import PageType, Settings, settings
from seller_radar.extraction.document import DocumentAdapter
from seller_radar.scan import CardRef

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Page type
# ---------------------------------------------------------------------------

SEARCH_URL_MARKERS: tuple[str, ...] = ("/s?", "/s/ref=", "/gp/search/")
PRODUCT_URL_MARKERS: tuple[str, ...] = ("/dp/", "/gp/product/")
# Lenient fallback for marketplace URLs that match neither list above
LENIENT_SEARCH_URL_MARKERS: tuple[str, ...] = ("ref=", "field-keywords=")
SEARCH_STRUCTURE_SELECTORS: tuple[str, ...] = ("#search", ".s-main-slot", ".s-search-results")


def detect_page_type(
    url: str,
    adapter: DocumentAdapter | None = None,
    document: Any = None,
    config: Settings | None = None,
) -> PageType:
    """
    Classify a page as search results, product detail, or other.

    Search and product URLs are recognised first. Any other URL still counts
    as a search page when it is a marketplace URL carrying a search-style
    query marker, or when the document (if given) has a results container.
    """
    if any(marker in url for marker in SEARCH_URL_MARKERS):
        return PageType.SEARCH
    if any(marker in url for marker in PRODUCT_URL_MARKERS):
        return PageType.PRODUCT

    cfg = config or settings
    lowered = url.lower()
    if cfg.MARKETPLACE_OPERATOR_BRAND.lower() in lowered and any(
        marker in lowered for marker in LENIENT_SEARCH_URL_MARKERS
    ):
        logger.debug("page_type_lenient_match", url=url, reason="url_marker", source="cards")
        return PageType.SEARCH

    if adapter is not None and document is not None:
        for selector in SEARCH_STRUCTURE_SELECTORS:
            if adapter.query_one(document, selector) is not None:
                logger.debug(
                    "page_type_lenient_match", url=url, reason=selector, source="cards"
                )
                return PageType.SEARCH

    return PageType.OTHER


# ---------------------------------------------------------------------------
# Strategy tables
# ---------------------------------------------------------------------------

STRUCTURAL_SELECTORS: tuple[str, ...] = (
    '.s-result-item[data-asin]:not([data-asin=""])',
    '[data-component-type="s-search-result"]',
    ".sg-col-4-of-12.s-result-item",
    ".sg-col-4-of-16.s-result-item",
    'div[data-asin]:not([data-asin=""]):not(.AdHolder)',
    ".s-asin",
    ".s-result-item:not(.AdHolder)",
    '[cel_widget_id*="MAIN-SEARCH_RESULTS"]',
    ".s-card-container",
    ".puis-card-container",
    '[data-csa-c-type="item"]',
    "[data-csa-c-item-id]",
    'div[data-cel-widget*="search_result"]',
)

PRICE_SELECTORS = ".a-price, .a-offscreen, .a-price-whole, .a-price-fraction"
RATING_SELECTORS = ".a-star-rating, .a-icon-star, .a-icon-star-small, i[class*='star']"
CARD_CONTAINER_TAGS = {"div", "li"}

MAIN_CONTAINER_SELECTORS: tuple[str, ...] = (
    "#search .s-main-slot",
    ".s-main-slot",
    ".s-search-results",
    "#search",
    '[data-cel-widget="search_results"]',
    "#search-results",
    "main",
)
EXCLUDED_CHILD_MARKERS: tuple[str, ...] = ("pagination", "a-section-footer", "footer")

PRODUCT_MAIN_SELECTORS: tuple[str, ...] = ("#dp", "#ppd")
PRODUCT_RELATED_SELECTORS: tuple[str, ...] = (
    "#sims-consolidated-1_feature_div .a-carousel-card",
    "#sims-consolidated-2_feature_div .a-carousel-card",
    "#purchase-sims-feature .a-carousel-card",
    ".sims-fbt-rows .sims-fbt-image-box",
    ".a-carousel-card",
)

HIDDEN_STYLE_MARKERS: tuple[str, ...] = (
    "display:none",
    "visibility:hidden",
    "opacity:0",
)

KEY_ATTRIBUTES: tuple[str, ...] = ("data-asin", "data-uuid", "data-csa-c-item-id", "id")

Strategy = Callable[[DocumentAdapter, Any, Settings], list[Any]]


# ---------------------------------------------------------------------------
# Search-page strategies
# ---------------------------------------------------------------------------

def by_structural_selectors(adapter: DocumentAdapter, document: Any, config: Settings) -> list[Any]:
    for selector in STRUCTURAL_SELECTORS:
        found = adapter.query_all(document, selector)
        if found:
            logger.debug("cards_structural_match", selector=selector, count=len(found), source="cards")
            return found
    return []


def by_content_shape(adapter: DocumentAdapter, document: Any, config: Settings) -> list[Any]:
    cards: list[Any] = []
    seen: set[int] = set()
    for price in adapter.query_all(document, PRICE_SELECTORS):
        current = price
        for _ in range(config.CARD_ANCESTOR_LEVELS):
            current = adapter.parent(current)
            if current is None:
                break
            if adapter.tag_name(current) not in CARD_CONTAINER_TAGS:
                continue
            if adapter.query_one(current, RATING_SELECTORS) is not None:
                if id(current) not in seen:
                    seen.add(id(current))
                    cards.append(current)
                break
    return cards


def by_main_container(adapter: DocumentAdapter, document: Any, config: Settings) -> list[Any]:
    container = None
    for selector in MAIN_CONTAINER_SELECTORS:
        container = adapter.query_one(document, selector)
        if container is not None:
            break
    if container is None:
        return []

    children = []
    for child in adapter.children(container):
        if adapter.tag_name(child) != "div":
            continue
        marker_text = " ".join(
            filter(None, (adapter.attribute(child, "id"), adapter.attribute(child, "class")))
        ).lower()
        if any(marker in marker_text for marker in EXCLUDED_CHILD_MARKERS):
            continue
        children.append(child)
    if not children:
        return []

    sizes = [len(adapter.query_all(child, "*")) for child in children]
    largest = max(sizes)
    return [child for child, size in zip(children, sizes) if size * 2 >= largest and size > 0]


SEARCH_STRATEGIES: tuple[Strategy, ...] = (
    by_structural_selectors,
    by_content_shape,
    by_main_container,
)


def run_strategies(
    adapter: DocumentAdapter,
    document: Any,
    strategies: Sequence[Strategy],
    config: Settings,
) -> list[Any]:
    """First strategy returning any element wins."""
    for strategy in strategies:
        found = strategy(adapter, document, config)
        if found:
            logger.debug(
                "cards_strategy_matched",
                strategy=strategy.__name__,
                count=len(found),
                source="cards",
            )
            return found
    return []


# ---------------------------------------------------------------------------
# Product page
# ---------------------------------------------------------------------------

def product_page_cards(adapter: DocumentAdapter, document: Any) -> list[Any]:
    cards: list[Any] = []
    for selector in PRODUCT_MAIN_SELECTORS:
        main = adapter.query_one(document, selector)
        if main is not None:
            cards.append(main)
            break

    seen = {id(card) for card in cards}
    for selector in PRODUCT_RELATED_SELECTORS:
        for element in adapter.query_all(document, selector):
            if id(element) not in seen:
                seen.add(id(element))
                cards.append(element)
    return cards


# ---------------------------------------------------------------------------
# Visibility and keys
# ---------------------------------------------------------------------------

def is_hidden(adapter: DocumentAdapter, element: Any) -> bool:
    """True when the element or an ancestor is hidden by attribute or inline style."""
    current = element
    while current is not None:
        if adapter.attribute(current, "hidden") is not None:
            return True
        if (adapter.attribute(current, "aria-hidden") or "").lower() == "true":
            return True
        style = (adapter.attribute(current, "style") or "").replace(" ", "").lower()
        if any(marker in style for marker in HIDDEN_STYLE_MARKERS):
            return True
        current = adapter.parent(current)
    return False


def card_key(adapter: DocumentAdapter, element: Any, index: int) -> str:
    """Stable key for a card: an identifying attribute, else position plus content hash."""
    for name in KEY_ATTRIBUTES:
        value = (adapter.attribute(element, name) or "").strip()
        if value:
            return f"{name}:{value}"
    digest = hashlib.sha1(adapter.text(element).encode("utf-8")).hexdigest()[:12]
    return f"card-{index}:{digest}"


def discover_cards(
    adapter: DocumentAdapter,
    document: Any,
    url: str,
    config: Settings | None = None,
) -> list[CardRef]:
    """
    Locate the visible listing cards on a page.

    Returns:
        CardRefs in document order. Empty for pages that are neither search
        results nor product pages.
    """
    cfg = config or settings
    page_type = detect_page_type(url, adapter, document, cfg)

    if page_type is PageType.SEARCH:
        elements = run_strategies(adapter, document, SEARCH_STRATEGIES, cfg)
    elif page_type is PageType.PRODUCT:
        elements = product_page_cards(adapter, document)
    else:
        elements = []

    visible = [element for element in elements if not is_hidden(adapter, element)]

    logger.info(
        "cards_discovered",
        page_type=page_type.value,
        found=len(elements),
        visible=len(visible),
        source="cards",
    )
    return [
        CardRef(key=card_key(adapter, element, index), index=index, element=element)
        for index, element in enumerate(visible)
    ]
