"""
Seller Radar — Labelled Business Fields

Marketplace seller disclosures are printed as "Label: value" lines
("Business Name:", "Business Address:", ...). These helpers read them out
of a document's visible text, one block per line.
"""

from __future__ import annotations

import re

from seller_radar.extraction.strategies import (
    ADDRESS_STOP_LABELS,
    BUSINESS_ADDRESS_LABEL,
    BUSINESS_NAME_LABEL,
    BUSINESS_TYPE_LABEL,
    INTERNATIONAL_PHONE,
    PHONE_LABEL,
)

MAX_ADDRESS_LINES = 6


def _first_line_value(pattern: re.Pattern[str], text: str) -> str | None:
    match = pattern.search(text)
    if not match:
        return None
    value = " ".join(match.group(1).split())
    return value or None


def business_name(text: str) -> str | None:
    return _first_line_value(BUSINESS_NAME_LABEL, text)


def business_type(text: str) -> str | None:
    return _first_line_value(BUSINESS_TYPE_LABEL, text)


def business_address(text: str) -> str | None:
    """
    Read the address following "Business Address:".

    Addresses are often printed one component per line; consecutive lines
    are joined with ", " until another label starts.
    """
    match = BUSINESS_ADDRESS_LABEL.search(text)
    if not match:
        return None

    parts: list[str] = []
    for line in match.group(1).splitlines():
        cleaned = " ".join(line.split()).strip(" ,")
        if not cleaned:
            continue
        if ADDRESS_STOP_LABELS.match(cleaned):
            break
        parts.append(cleaned)
        if len(parts) >= MAX_ADDRESS_LINES:
            break
    return ", ".join(parts) or None


def phone_numbers(text: str) -> tuple[str, ...]:
    """Labelled phone numbers plus any international-format numbers, de-duplicated."""
    found: list[str] = []
    for pattern in (PHONE_LABEL, INTERNATIONAL_PHONE):
        for match in pattern.finditer(text):
            value = " ".join((match.group(1) if match.groups() else match.group(0)).split())
            if value and value not in found:
                found.append(value)
    return tuple(found)
