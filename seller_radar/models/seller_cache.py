"""
Seller Radar — Seller Cache Model

Persistent scope of the result cache: one row per seller identity holding
its most recent classification. Rows are replaced whole on every write.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from seller_radar.models.base import Base


class SellerCacheRow(Base):
    """
    Cached classification for one seller.

    seller_id is the marketplace seller id, or "name:<normalized name>" for
    sellers seen without an id.
    """

    __tablename__ = "seller_cache"
    __table_args__ = (
        Index("idx_seller_cache_last_updated", "last_updated"),
    )

    seller_id: Mapped[str] = mapped_column(
        String, primary_key=True, comment="Seller id or name:<normalized name>"
    )
    is_target_seller: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, comment="Verdict at write time"
    )
    confidence: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0, comment="Confidence in [0, 1]"
    )
    evidence: Mapped[list[str]] = mapped_column(
        JSON, nullable=False, default=list, comment="Human-readable justifications"
    )
    details: Mapped[dict[str, str]] = mapped_column(
        JSON, nullable=False, default=dict, comment="Signal kind -> matched value"
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, comment="UTC write time, stored naive"
    )

    def __repr__(self) -> str:
        return (
            f"<SellerCacheRow seller_id={self.seller_id!r} "
            f"target={self.is_target_seller} confidence={self.confidence:.2f}>"
        )
