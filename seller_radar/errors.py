"""
Seller Radar — Error Taxonomy

Extraction misses are not errors and have no exception type. Network and
parse failures are retried and then degrade to partial signals; only
session-level failures reach the orchestrator's caller, and then only as a
Failed session, never as a raised exception.
"""

from __future__ import annotations


class SellerRadarError(Exception):
    """Base class for all Seller Radar errors."""


class FetchError(SellerRadarError):
    """A page fetch was rejected or returned a non-success status."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"fetch failed for {url}: {reason}")


class DocumentParseError(FetchError):
    """Fetched content could not be parsed into a document."""


class ScanSetupError(SellerRadarError):
    """A scan collaborator (classifier, extractor) could not be constructed."""
