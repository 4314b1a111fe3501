"""Seller Radar — Scan Layer (session state and per-card records)."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from seller_radar.config import ScanStatus, SellerType
from seller_radar.detection import ClassificationResult

SCAN_IN_PROGRESS_MESSAGE = "scan already in progress"


class ScanSession(BaseModel):
    """
    State of one scan. The orchestrator owns the live instance; callers only
    ever receive snapshots.
    """

    status: ScanStatus = ScanStatus.IDLE
    processed: int = 0
    total: int = 0
    matched_count: int = 0
    unknown_count: int = 0
    error_count: int = 0
    cancel_requested: bool = False
    message: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None
    cache_total: int | None = None
    cache_matched: int | None = None

    def snapshot(self) -> ScanSession:
        return self.model_copy()


class ScanProgress(BaseModel):
    """Per-batch progress tuple for the presentation layer."""

    model_config = {"frozen": True}

    processed: int
    total: int
    matched_count: int


class CardRef(BaseModel):
    """Handle on one discovered listing card."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    key: str
    index: int
    element: Any = Field(default=None, repr=False, exclude=True)


class CardOutcome(BaseModel):
    """What one card resolved to."""

    model_config = {"frozen": True}

    seller_type: SellerType
    result: ClassificationResult = Field(default_factory=ClassificationResult.unknown)
    seller_key: str | None = None
    error: str | None = None


class LazyLoadReport(BaseModel):
    model_config = {"frozen": True}

    attempts: int = 0
    initial_count: int = 0
    final_count: int = 0
    clicks: int = 0
