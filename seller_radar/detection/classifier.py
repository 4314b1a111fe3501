"""
Seller Radar — Seller Classifier

Scores a SellerSignal into a ClassificationResult by combining independent
heuristic checks:

| Category                        | Effect                                   |
|---------------------------------|------------------------------------------|
| Name location keyword           | + WEIGHT_NAME_KEYWORD                    |
| Name structural pattern         | + WEIGHT_NAME_PATTERN                    |
| Address location keyword        | + WEIGHT_ADDRESS_KEYWORD                 |
| Address 6-digit postal code     | + WEIGHT_POSTAL_CODE                     |
| Phone dialing pattern           | + WEIGHT_PHONE_PREFIX                    |
| Business type keyword           | + WEIGHT_BUSINESS_TYPE                   |
| Explicit country marker         | max(current, FLOOR_COUNTRY_MARKER)       |
| High-value page phrase          | max(current, FLOOR_HIGH_VALUE_PHRASE)    |
| >= 3 distinct page keywords     | + logarithmic bonus, capped              |
| Platform marker / ccTLD         | max(current, FLOOR_PLATFORM_MARKER)      |
| >= 4 evidence items, below 0.8  | + CORROBORATION_BONUS                    |

Pure function of (signal, prior cache entry, configuration): no I/O, no
clock, no randomness.
"""

from __future__ import annotations

import math
import re

import structlog

from seller_radar.cache import CacheEntry
from seller_radar.config import ScanSettings, Settings, SignalKind, settings
from seller_radar.detection import ClassificationResult
from seller_radar.detection.keywords import DEFAULT_TABLE, KeywordTable, keyword_regex
from seller_radar.detection.scoring import ConfidenceAccumulator
from seller_radar.extraction import SellerSignal

logger = structlog.get_logger(__name__)


class SellerClassifier:
    """
    Target-country seller classifier.

    Usage:
        classifier = SellerClassifier(confidence_threshold=0.5)
        result = classifier.classify(signal)
    """

    def __init__(
        self,
        confidence_threshold: float | None = None,
        keywords: KeywordTable | None = None,
        config: Settings | None = None,
    ) -> None:
        self.config = config or settings
        threshold = (
            confidence_threshold
            if confidence_threshold is not None
            else self.config.CONFIDENCE_THRESHOLD
        )
        # Thresholds exclude 0 so unknown results (confidence 0) never match.
        if not 0.0 < threshold <= 1.0:
            raise ValueError(f"confidence_threshold must be within (0, 1], got {threshold}")

        self.confidence_threshold = threshold
        self.keywords = keywords or DEFAULT_TABLE

        self._keyword_matchers = [(k, keyword_regex(k)) for k in self.keywords.location_keywords]
        self._name_patterns = [(p.name, p.compile()) for p in self.keywords.name_patterns]
        self._postal_code = re.compile(self.keywords.postal_code_pattern)
        self._phone_patterns = [re.compile(p) for p in self.keywords.phone_patterns]
        self._cctld = re.compile(self.keywords.cctld_pattern, re.IGNORECASE)

    @classmethod
    def from_scan_settings(cls, scan_settings: ScanSettings) -> SellerClassifier:
        """Build a classifier for one scan, merging the scan's custom keywords."""
        table = DEFAULT_TABLE.with_custom_keywords(scan_settings.custom_keywords)
        return cls(confidence_threshold=scan_settings.confidence_threshold, keywords=table)

    # -----------------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------------

    def classify(
        self,
        signal: SellerSignal,
        prior_cache_entry: CacheEntry | None = None,
    ) -> ClassificationResult:
        """
        Classify one seller signal.

        Args:
            signal: Extracted seller evidence.
            prior_cache_entry: Fresh cache entry for this seller, if any. When it
                belongs to the same seller, its confidence, evidence and details
                are reused and the verdict is re-derived from this classifier's
                threshold.

        Returns:
            ClassificationResult with confidence in [0, 1] and
            is_target_seller == (confidence >= threshold).
        """
        if not signal.has_identity:
            logger.debug("classifier_no_identity", item_id=signal.item_id, source="classifier")
            return ClassificationResult.unknown()

        if prior_cache_entry is not None and prior_cache_entry.seller_id == signal.cache_key:
            logger.debug(
                "classifier_cache_reuse",
                seller_id=prior_cache_entry.seller_id,
                confidence=prior_cache_entry.result.confidence,
                source="classifier",
            )
            prior = prior_cache_entry.result
            is_target = prior.confidence >= self.confidence_threshold
            if prior.is_target_seller == is_target:
                return prior
            return prior.model_copy(update={"is_target_seller": is_target})

        cfg = self.config
        acc = ConfidenceAccumulator(evidence_cap=cfg.EVIDENCE_CAP)

        self._check_names(signal, acc)
        self._check_address(signal, acc)
        self._check_phones(signal, acc)
        self._check_business_type(signal, acc)

        if signal.country_marker:
            acc.floor(
                SignalKind.COUNTRY_MARKER,
                cfg.FLOOR_COUNTRY_MARKER,
                signal.country_marker,
                f"Seller page states '{signal.country_marker}'",
            )

        self._check_page_text(signal, acc)

        if (
            len(acc.evidence) >= cfg.CORROBORATION_MIN_EVIDENCE
            and acc.confidence < cfg.CORROBORATION_CEILING
        ):
            acc.bump(cfg.CORROBORATION_BONUS)

        confidence = round(acc.confidence, 6)
        result = ClassificationResult(
            is_target_seller=confidence >= self.confidence_threshold,
            confidence=confidence,
            evidence=acc.evidence,
            details=acc.details,
        )

        logger.debug(
            "classifier_result",
            seller_id=signal.seller_id,
            seller_name=signal.seller_name,
            confidence=result.confidence,
            is_target_seller=result.is_target_seller,
            evidence_count=len(result.evidence),
            source="classifier",
        )
        return result

    # -----------------------------------------------------------------------
    # Category checks
    # -----------------------------------------------------------------------

    def _check_names(self, signal: SellerSignal, acc: ConfidenceAccumulator) -> None:
        """Seller name first, then the business name from the profile page."""
        for name in (signal.seller_name, signal.business_name):
            if not name:
                continue

            keyword = self._find_keyword(name)
            if keyword is not None:
                acc.add(
                    SignalKind.NAME_KEYWORD,
                    self.config.WEIGHT_NAME_KEYWORD,
                    keyword,
                    f"Seller name contains location keyword '{keyword}'",
                )

            for pattern_name, pattern in self._name_patterns:
                if pattern.search(name.strip()):
                    acc.add(
                        SignalKind.NAME_PATTERN,
                        self.config.WEIGHT_NAME_PATTERN,
                        pattern_name,
                        f"Seller name matches naming pattern '{pattern_name}'",
                    )
                    break

    def _check_address(self, signal: SellerSignal, acc: ConfidenceAccumulator) -> None:
        address = signal.business_address
        if not address:
            return

        keyword = self._find_keyword(address)
        if keyword is not None:
            acc.add(
                SignalKind.ADDRESS_KEYWORD,
                self.config.WEIGHT_ADDRESS_KEYWORD,
                keyword,
                f"Business address contains '{keyword}'",
            )

        match = self._postal_code.search(address)
        if match:
            acc.add(
                SignalKind.ZIP_CODE,
                self.config.WEIGHT_POSTAL_CODE,
                match.group(0),
                f"Business address contains postal code {match.group(0)}",
            )

    def _check_phones(self, signal: SellerSignal, acc: ConfidenceAccumulator) -> None:
        for phone in signal.phone_numbers:
            for pattern in self._phone_patterns:
                if pattern.search(phone):
                    acc.add(
                        SignalKind.PHONE_PREFIX,
                        self.config.WEIGHT_PHONE_PREFIX,
                        phone,
                        f"Phone number {phone} uses the target dialing pattern",
                    )
                    return

    def _check_business_type(self, signal: SellerSignal, acc: ConfidenceAccumulator) -> None:
        if not signal.business_type:
            return
        keyword = self._find_keyword(signal.business_type)
        if keyword is not None:
            acc.add(
                SignalKind.BUSINESS_TYPE,
                self.config.WEIGHT_BUSINESS_TYPE,
                keyword,
                f"Business type mentions '{keyword}'",
            )

    def _check_page_text(self, signal: SellerSignal, acc: ConfidenceAccumulator) -> None:
        text = signal.raw_page_text
        if not text:
            return
        cfg = self.config

        phrase = self.keywords.find_high_value_phrase(text)
        if phrase is not None:
            acc.floor(
                SignalKind.HIGH_VALUE_PHRASE,
                cfg.FLOOR_HIGH_VALUE_PHRASE,
                phrase,
                f"Page text states '{phrase}'",
            )

        hits = self._distinct_keyword_hits(text)
        if len(hits) >= cfg.PAGE_KEYWORD_MIN_HITS:
            bonus = cfg.PAGE_KEYWORD_BASE_BONUS * (
                1 + math.log2(len(hits) / cfg.PAGE_KEYWORD_MIN_HITS)
            )
            bonus = min(bonus, cfg.PAGE_KEYWORD_MAX_BONUS)
            acc.add(
                SignalKind.PAGE_KEYWORDS,
                bonus,
                ",".join(hits),
                f"Page text mentions {len(hits)} distinct location keywords",
            )

        marker = self._find_platform_marker(text)
        if marker is not None:
            acc.floor(
                SignalKind.PLATFORM_DOMAIN,
                cfg.FLOOR_PLATFORM_MARKER,
                marker,
                f"Page references '{marker}'",
            )

    # -----------------------------------------------------------------------
    # Matching helpers
    # -----------------------------------------------------------------------

    def _find_keyword(self, text: str) -> str | None:
        for keyword, matcher in self._keyword_matchers:
            if matcher.search(text):
                return keyword
        return None

    def _distinct_keyword_hits(self, text: str) -> list[str]:
        hits: list[str] = []
        seen: set[str] = set()
        for keyword, matcher in self._keyword_matchers:
            if keyword.lower() in seen:
                continue
            if matcher.search(text):
                hits.append(keyword)
                seen.add(keyword.lower())
        return hits

    def _find_platform_marker(self, text: str) -> str | None:
        lowered = text.lower()
        for marker in self.keywords.platform_markers:
            if marker.lower() in lowered:
                return marker
        match = self._cctld.search(text)
        if match:
            return match.group(0)
        return None
