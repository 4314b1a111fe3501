"""
Seller Radar — Configuration & Constants

Every threshold, weight, delay, and magic number lives here. No hardcoded
values in business logic.

The classifier weights are empirically tuned defaults, not exact truths: the
shape of the scoring model (additive, clamped, category-weighted) is what
matters, so all of them are overridable via environment variables.

Usage:
    from seller_radar.config import settings
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ScanStatus(str, Enum):
    """Scan session lifecycle states."""
    IDLE = "idle"
    PREPARING = "preparing"
    LAZY_LOADING = "lazy_loading"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        return self in (ScanStatus.PREPARING, ScanStatus.LAZY_LOADING, ScanStatus.SCANNING)


class SignalKind(str, Enum):
    """Stable detail tags recorded on a ClassificationResult."""
    NAME_KEYWORD = "nameKeyword"
    NAME_PATTERN = "namePattern"
    ADDRESS_KEYWORD = "addressKeyword"
    ZIP_CODE = "zipCode"
    PHONE_PREFIX = "chinesePhonePrefix"
    BUSINESS_TYPE = "businessTypeKeyword"
    HIGH_VALUE_PHRASE = "highValuePhrase"
    PAGE_KEYWORDS = "pageKeywordFrequency"
    PLATFORM_DOMAIN = "chineseDomain"
    COUNTRY_MARKER = "countryMarker"
    CORROBORATION = "corroboration"


class SellerType(str, Enum):
    """Per-card verdict reported to the presentation layer."""
    TARGET = "target"
    OTHER = "other"
    UNKNOWN = "unknown"
    ERROR = "error"


class PageType(str, Enum):
    """Marketplace page families the scanner knows how to walk."""
    SEARCH = "search"
    PRODUCT = "product"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Central configuration for Seller Radar.

    Loads from environment variables with fallback defaults.
    """

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # -----------------------------------------------------------------------
    # Marketplace
    # -----------------------------------------------------------------------
    MARKETPLACE_BASE_URL: str = "https://www.amazon.com"
    MARKETPLACE_OPERATOR_BRAND: str = "amazon"   # first-party listings are never sellers of interest

    # -----------------------------------------------------------------------
    # Classifier: verdict threshold
    # Two defaults circulated historically (0.4 and 0.5); 0.5 is used here.
    # -----------------------------------------------------------------------
    CONFIDENCE_THRESHOLD: float = Field(default=0.5, gt=0.0, le=1.0)
    CUSTOM_KEYWORDS: list[str] = Field(default_factory=list)

    # -----------------------------------------------------------------------
    # Classifier: additive weights (each category applied at most once)
    # -----------------------------------------------------------------------
    WEIGHT_NAME_KEYWORD: float = 0.4
    WEIGHT_NAME_PATTERN: float = 0.3
    WEIGHT_ADDRESS_KEYWORD: float = 0.5
    WEIGHT_POSTAL_CODE: float = 0.6          # near-definitive evidence
    WEIGHT_PHONE_PREFIX: float = 0.45
    WEIGHT_BUSINESS_TYPE: float = 0.5

    # -----------------------------------------------------------------------
    # Classifier: floors: confidence = max(current, floor)
    # -----------------------------------------------------------------------
    FLOOR_HIGH_VALUE_PHRASE: float = 0.9
    FLOOR_PLATFORM_MARKER: float = 0.85
    FLOOR_COUNTRY_MARKER: float = 0.95

    # -----------------------------------------------------------------------
    # Classifier: page keyword frequency (logarithmic in distinct hits)
    # bonus = base × (1 + log2(hits / min_hits)), capped at max
    # -----------------------------------------------------------------------
    PAGE_KEYWORD_MIN_HITS: int = 3
    PAGE_KEYWORD_BASE_BONUS: float = 0.1
    PAGE_KEYWORD_MAX_BONUS: float = 0.3

    # -----------------------------------------------------------------------
    # Classifier: corroboration bonus for many weak agreeing signals
    # -----------------------------------------------------------------------
    CORROBORATION_MIN_EVIDENCE: int = 4
    CORROBORATION_CEILING: float = 0.8
    CORROBORATION_BONUS: float = 0.1
    EVIDENCE_CAP: int = 6

    # -----------------------------------------------------------------------
    # Result cache
    # -----------------------------------------------------------------------
    CACHE_EXPIRY_DAYS: int = 7
    CACHE_SWEEP_INTERVAL_SECONDS: int = 3600      # hourly background eviction
    DATABASE_URL: str = "sqlite+aiosqlite:///seller_radar_cache.db"

    # -----------------------------------------------------------------------
    # Fetching: retry budget and pacing
    # -----------------------------------------------------------------------
    FETCH_MAX_ATTEMPTS: int = 3
    FETCH_BASE_BACKOFF_SECONDS: float = 0.5       # doubles each attempt
    FETCH_TIMEOUT_SECONDS: float = 15.0
    FETCH_JITTER_MIN_SECONDS: float = 0.2
    FETCH_JITTER_MAX_SECONDS: float = 0.8
    FETCH_MAX_PAGES_PER_HOUR: int = 600

    # -----------------------------------------------------------------------
    # Scanning
    # -----------------------------------------------------------------------
    SCAN_BATCH_SIZE: int = 5
    SCAN_DELAY_MS: int = 50                       # pause between batches
    LAZY_LOAD_MAX_ATTEMPTS: int = 10
    LAZY_LOAD_SETTLE_MS: int = 1000
    LAZY_LOAD_CLICK_SETTLE_MS: int = 1500
    LAZY_LOAD_GROWTH_STREAK: int = 3
    CARD_ANCESTOR_LEVELS: int = 6

    # -----------------------------------------------------------------------
    # Logging
    # -----------------------------------------------------------------------
    LOG_LEVEL: str = "INFO"


class ScanSettings(BaseModel):
    """
    Per-scan configuration snapshot, read once when a scan starts.

    Mirrors the user-facing options; everything else stays in Settings.
    """

    model_config = {"frozen": True}

    confidence_threshold: float = Field(default=0.5, gt=0.0, le=1.0)
    cache_expiry_days: int = Field(default=7, ge=1)
    custom_keywords: tuple[str, ...] = ()
    scan_batch_size: int = Field(default=5, ge=1)
    scan_delay_ms: int = Field(default=50, ge=0)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> ScanSettings:
        cfg = source or settings
        return cls(
            confidence_threshold=cfg.CONFIDENCE_THRESHOLD,
            cache_expiry_days=cfg.CACHE_EXPIRY_DAYS,
            custom_keywords=tuple(cfg.CUSTOM_KEYWORDS),
            scan_batch_size=cfg.SCAN_BATCH_SIZE,
            scan_delay_ms=cfg.SCAN_DELAY_MS,
        )


# Singleton instance
settings = Settings()
