"""Seller Radar — Extraction Layer (seller signal model)."""

from __future__ import annotations

from pydantic import BaseModel

UNKNOWN_SELLER_ID = "unknown"


class SellerSignal(BaseModel):
    """Everything discovered about one seller candidate in one extraction pass."""

    model_config = {"frozen": True}

    item_id: str | None = None
    seller_id: str | None = None
    seller_name: str | None = None
    seller_profile_url: str | None = None
    business_name: str | None = None
    business_address: str | None = None
    business_type: str | None = None
    phone_numbers: tuple[str, ...] = ()
    raw_page_text: str | None = None
    country_marker: str | None = None   # explicit country-of-origin phrase seen verbatim
    stages: tuple[str, ...] = ()        # "card", "detail", "profile"

    @property
    def has_seller_id(self) -> bool:
        return bool(self.seller_id) and self.seller_id != UNKNOWN_SELLER_ID

    @property
    def has_identity(self) -> bool:
        return self.has_seller_id or bool(self.seller_name and self.seller_name.strip())

    @property
    def cache_key(self) -> str | None:
        """Key used in the result cache: the seller id, else the normalized name."""
        if self.has_seller_id:
            return self.seller_id
        if self.seller_name and self.seller_name.strip():
            return "name:" + " ".join(self.seller_name.lower().split())
        return None
