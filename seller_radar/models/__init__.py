"""
Models package: exports all SQLAlchemy models.
"""

from seller_radar.models.base import Base
from seller_radar.models.seller_cache import SellerCacheRow

__all__ = ["Base", "SellerCacheRow"]
