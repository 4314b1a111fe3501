"""
Seller Radar — Extraction Strategy Tables

Every selector and URL/text pattern the extraction stages try, in priority
order. Stages walk these tables first-match-wins, so a layout change on the
marketplace is a table edit, and every entry can be unit-tested against a
fixture without a live page.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Item identifiers (stage 1)
# ---------------------------------------------------------------------------

ITEM_LINK_SELECTORS: tuple[str, ...] = (
    'a[href*="/dp/"]',
    'a[href*="/gp/product/"]',
    'a[href*="/gp/slredirect/"]',
    'a[href*="product-reviews"]',
    'a[href*="offer-listing"]',
    'a[href*="dealID="]',
    "a.a-link-normal",
    "a[data-routing]",
)

ITEM_LINK_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"/(?:dp|gp/product|gp/slredirect)/([A-Z0-9]{10})(?:/|\?|$)"),
    re.compile(r"(?:product-reviews|offer-listing)/([A-Z0-9]{10})(?:/|\?|$)"),
    re.compile(r"asin(?:=|%3D)([A-Z0-9]{10})(?:&|$)"),
    re.compile(r"(?:/|%2F)([A-Z0-9]{10})(?:/|%2F|\?|$)"),
)

ITEM_ID_ATTRIBUTES: tuple[str, ...] = (
    "data-asin",
    "data-cel-widget",
    "data-csa-c-item-id",
    "id",
    "data-uuid",
    "data-id",
    "data-component-id",
)

# Ten uppercase alphanumerics with at least one digit, so words like
# "SEARCHITEM" never pass as identifiers.
ITEM_ID_PATTERN = re.compile(r"(?<![A-Z0-9])(?=[A-Z]*[0-9])([A-Z0-9]{10})(?![A-Z0-9])")

IMAGE_ID_PATTERN = re.compile(r"/images/I/([A-Z0-9]{10})")

# ---------------------------------------------------------------------------
# Seller on the listing card (stage 1)
# ---------------------------------------------------------------------------

CARD_SELLER_SELECTORS: tuple[str, ...] = (
    '.a-row.a-size-base a:not([href*="field-lbr_brands"])',
    '[data-cy="seller-name"] a',
    '.a-size-base.a-link-normal:not([href*="field-lbr_brands"])',
    ".a-size-small.a-color-secondary",
    ".a-size-small:not(.a-color-price)",
    ".puis-seller-name-with-icon .a-row",
    ':-soup-contains("Sold by ")',
    ':-soup-contains("Ships from ")',
    ':-soup-contains("by ")',
    ':-soup-contains("from ")',
    ':-soup-contains("Brand: ")',
    ".a-row.a-size-small",
    '.a-row a[href*="/s?i=merchant-items"]',
    '.a-row a[href*="/shops/"]',
    'a[href*="/s?marketplaceID="]',
    'a[href*="seller="]',
    "span.rush-component",
)

CARD_SELLER_TEXT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bsold by:?\s+([^|.$€£]+)", re.IGNORECASE),
    re.compile(r"\bby:?\s+([^|.$€£]+)", re.IGNORECASE),
    re.compile(r"\bbrand:\s+([^|.$€£]+)", re.IGNORECASE),
    re.compile(r"\bfrom:?\s+([^|.$€£]+)", re.IGNORECASE),
)

SELLER_LINK_MARKERS: tuple[str, ...] = (
    "/s?i=merchant-items",
    "/shops/",
    "seller=",
    "marketplaceID",
)

# ---------------------------------------------------------------------------
# Detail page (stage 2)
# ---------------------------------------------------------------------------

DETAIL_PATH = "/dp/{item_id}"
PROFILE_PATH = "/sp?seller={seller_id}"

DETAIL_SELLER_LINK_SELECTORS: tuple[str, ...] = (
    "#merchant-info a",
    "#sellerProfileTriggerId",
    ".offer-display-feature-text a",
    '#tabular-buybox a[href*="seller="]',
    '.tabular-buybox-container a[href*="seller="]',
    'a[href*="/sp?seller="]',
    'a[href*="&seller="]',
    'a[href*="seller="]',
    '[id*="merchant"] a',
    '[class*="seller"] a',
    '[class*="merchant"] a',
)

DETAIL_SELLER_TEXT_SELECTORS: tuple[str, ...] = (
    "#merchant-info",
    ".tabular-buybox-text",
    '[class*="byline"]',
    '[class*="seller"]',
    '[class*="merchant"]',
)

DETAIL_SELLER_TEXT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:Sold|Ships) by[:\s]+([^.]+)", re.IGNORECASE),
    re.compile(r"(?:Sold|Ships) from[:\s]+([^.]+)", re.IGNORECASE),
    re.compile(r"Seller:?\s+([^.]+)", re.IGNORECASE),
    re.compile(r"\bfrom\s+([^.]+)", re.IGNORECASE),
)

SELLER_ID_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"seller=([A-Z0-9]{10,16})", re.IGNORECASE),
    re.compile(r"merchantId=([A-Z0-9]{10,16})", re.IGNORECASE),
    re.compile(r"merchant=([A-Z0-9]{10,16})", re.IGNORECASE),
    re.compile(r"sellerId=([A-Z0-9]{10,16})", re.IGNORECASE),
)

# ---------------------------------------------------------------------------
# Labelled business fields (stages 2 and 3)
# ---------------------------------------------------------------------------

BUSINESS_NAME_LABEL = re.compile(r"Business Name:?\s*([^\n]+)", re.IGNORECASE)
BUSINESS_ADDRESS_LABEL = re.compile(
    r"Business Address:?\s*((?:[^\n]+\n?){1,6})", re.IGNORECASE
)
BUSINESS_TYPE_LABEL = re.compile(r"Business Type:?\s*([^\n]+)", re.IGNORECASE)
PHONE_LABEL = re.compile(
    r"(?:Phone(?: number)?|Tel(?:ephone)?|Customer Service Phone):?[ \t]*(\+?\d[\d \t\-()]{6,20}\d)",
    re.IGNORECASE,
)
# Phone numbers never span lines
INTERNATIONAL_PHONE = re.compile(r"(?:\+|00)[ \t]*86[ \t\-()]*\d[\d \t\-]{6,16}\d")

# Lines that end a multi-line address block
ADDRESS_STOP_LABELS = re.compile(
    r"^(?:Business Name|Business Type|Trade Register|VAT|Phone|Email|Customer Service|"
    r"Detailed Seller Information|Feedback|Return|Shipping)\b",
    re.IGNORECASE,
)

# ---------------------------------------------------------------------------
# Profile page (stage 3)
# ---------------------------------------------------------------------------

PROFILE_NAME_SELECTORS: tuple[str, ...] = (
    "#seller-name",
    "#sellerName",
    "h1#seller-name",
    ".seller-name",
    "#page-section-detail-seller-info h1",
    "h1",
)

PROFILE_TITLE_SEPARATORS: tuple[str, ...] = (" - ", " | ", ": ")

PROFILE_INFO_BLOCK_SELECTORS: tuple[str, ...] = (
    '.a-row:-soup-contains("Business Address")',
    '.a-section:-soup-contains("Business Address")',
    "#page-section-detail-seller-info",
    ".seller-information",
    "h1 + div",
)

PROFILE_ADDRESS_SELECTORS: tuple[str, ...] = (
    '[class*="address"]',
    '[class*="location"]',
    "address",
)

PARAGRAPH_MIN_LENGTH = 10
PARAGRAPH_MAX_LENGTH = 500

ADDRESS_HINTS = re.compile(
    r"\b(?:street|st\.|road|rd\.|district|city|province|building|room|floor|"
    r"located|address|zip|postal)\b|\d{5,6}",
    re.IGNORECASE,
)

# Trailing clauses stripped from captured seller names
# ("Acme and Fulfilled by Amazon" -> "Acme")
SELLER_NAME_TAIL = re.compile(
    r"(?:^|\s+)(?:and\s+)?(?:is\s+)?(?:fulfilled|ships|shipped|sold)\b.*$", re.IGNORECASE
)
