"""
Tests for the Detection Layer.

Covers:
- KeywordTable: custom keyword merge, high-value phrases, short keyword matching
- ConfidenceAccumulator: monotonic, clamped, once-per-category accumulation
- SellerClassifier: category checks, floors, thresholds, cache reuse
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from seller_radar.cache import CacheEntry
from seller_radar.config import ScanSettings, Settings, SignalKind
from seller_radar.detection import ClassificationResult
from seller_radar.detection.classifier import SellerClassifier
from seller_radar.detection.keywords import DEFAULT_TABLE, keyword_regex
from seller_radar.detection.scoring import ConfidenceAccumulator, clamp_confidence
from seller_radar.extraction import SellerSignal


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def classifier() -> SellerClassifier:
    return SellerClassifier(confidence_threshold=0.5)


# ---------------------------------------------------------------------------
# KeywordTable tests
# ---------------------------------------------------------------------------

class TestKeywordTable:
    def test_custom_keywords_are_appended(self) -> None:
        """Custom keywords extend the location list without replacing defaults."""
        table = DEFAULT_TABLE.with_custom_keywords(["Shantou", "Chaozhou"])
        assert table.location_keywords[: len(DEFAULT_TABLE.location_keywords)] == (
            DEFAULT_TABLE.location_keywords
        )
        assert table.location_keywords[-2:] == ("Shantou", "Chaozhou")
        assert table.custom_keywords == ("Shantou", "Chaozhou")

    def test_custom_keywords_deduplicated_case_insensitively(self) -> None:
        """Blank keywords and existing keywords in any case are ignored."""
        table = DEFAULT_TABLE.with_custom_keywords(["shenzhen", "  ", "Shantou", "SHANTOU"])
        assert table.custom_keywords == ("Shantou",)

    def test_no_new_keywords_returns_same_table(self) -> None:
        """Nothing to add leaves the table (and its version) unchanged."""
        assert DEFAULT_TABLE.with_custom_keywords(["China", ""]) is DEFAULT_TABLE

    def test_version_marks_customization(self) -> None:
        table = DEFAULT_TABLE.with_custom_keywords(["Shantou"])
        assert table.version != DEFAULT_TABLE.version
        assert table.version.startswith(DEFAULT_TABLE.version)

    def test_default_table_is_not_mutated(self) -> None:
        before = DEFAULT_TABLE.location_keywords
        DEFAULT_TABLE.with_custom_keywords(["Shantou"])
        assert DEFAULT_TABLE.location_keywords == before

    def test_find_high_value_phrase_case_insensitive(self) -> None:
        assert DEFAULT_TABLE.find_high_value_phrase("Our warehouse is Located in China.") == (
            "located in china"
        )

    def test_find_high_value_phrase_none(self) -> None:
        assert DEFAULT_TABLE.find_high_value_phrase("Ships from Denver, Colorado") is None
        assert DEFAULT_TABLE.find_high_value_phrase(None) is None

    def test_short_keyword_matches_whole_word_only(self) -> None:
        """'CN' must not match inside other words."""
        matcher = keyword_regex("CN")
        assert matcher.search("Shenzhen, CN")
        assert matcher.search("country: cn")
        assert not matcher.search("CNC machining parts")
        assert not matcher.search("ACNE cream")

    def test_long_keyword_matches_substring(self) -> None:
        matcher = keyword_regex("Shenzhen")
        assert matcher.search("SHENZHENSHI TOP CO")


# ---------------------------------------------------------------------------
# ConfidenceAccumulator tests
# ---------------------------------------------------------------------------

class TestConfidenceAccumulator:
    def test_add_accumulates(self) -> None:
        acc = ConfidenceAccumulator()
        acc.add(SignalKind.NAME_KEYWORD, 0.4, "Shenzhen", "name keyword")
        acc.add(SignalKind.NAME_PATTERN, 0.3, "company_suffix", "name pattern")
        assert acc.confidence == pytest.approx(0.7)

    def test_each_kind_counted_once(self) -> None:
        acc = ConfidenceAccumulator()
        assert acc.add(SignalKind.NAME_KEYWORD, 0.4, "Shenzhen", "first") is True
        assert acc.add(SignalKind.NAME_KEYWORD, 0.4, "Guangdong", "second") is False
        assert acc.confidence == pytest.approx(0.4)
        assert acc.details == {"nameKeyword": "Shenzhen"}

    def test_saturates_at_one(self) -> None:
        acc = ConfidenceAccumulator()
        acc.add(SignalKind.ADDRESS_KEYWORD, 0.5, "Shenzhen", "a")
        acc.add(SignalKind.ZIP_CODE, 0.6, "518000", "b")
        acc.bump(0.5)
        assert acc.confidence == 1.0

    def test_floor_never_lowers(self) -> None:
        acc = ConfidenceAccumulator()
        acc.add(SignalKind.ADDRESS_KEYWORD, 0.5, "x", "a")
        acc.add(SignalKind.ZIP_CODE, 0.6, "y", "b")
        acc.floor(SignalKind.PLATFORM_DOMAIN, 0.85, "taobao", "c")
        assert acc.confidence == 1.0

    def test_negative_weight_rejected(self) -> None:
        acc = ConfidenceAccumulator()
        acc.add(SignalKind.NAME_KEYWORD, 0.4, "x", "a")
        assert acc.add(SignalKind.NAME_PATTERN, -0.3, "y", "b") is False
        assert acc.confidence == pytest.approx(0.4)

    def test_history_is_non_decreasing(self) -> None:
        acc = ConfidenceAccumulator()
        acc.add(SignalKind.NAME_KEYWORD, 0.4, "x", "a")
        acc.floor(SignalKind.HIGH_VALUE_PHRASE, 0.2, "y", "b")
        acc.bump(-1.0)
        acc.add(SignalKind.ZIP_CODE, 0.6, "z", "c")
        history = acc.history
        assert all(later >= earlier for earlier, later in zip(history, history[1:]))

    def test_evidence_capped(self) -> None:
        acc = ConfidenceAccumulator(evidence_cap=2)
        acc.add(SignalKind.NAME_KEYWORD, 0.1, "a", "one")
        acc.add(SignalKind.NAME_PATTERN, 0.1, "b", "two")
        acc.add(SignalKind.ZIP_CODE, 0.1, "c", "three")
        assert acc.evidence == ("one", "two")
        assert len(acc.details) == 3

    def test_clamp_confidence(self) -> None:
        assert clamp_confidence(1.7) == 1.0
        assert clamp_confidence(0.25) == 0.25
        assert clamp_confidence(-0.1) == 0.0
        assert clamp_confidence(math.nan) == 0.0


# ---------------------------------------------------------------------------
# SellerClassifier tests
# ---------------------------------------------------------------------------

class TestSellerClassifier:
    def test_no_identity_is_unknown(self, classifier: SellerClassifier) -> None:
        """No name and no id: confidence 0, not a target seller, no scoring."""
        result = classifier.classify(
            SellerSignal(item_id="B0ABCDEFGH", business_address="518000, Futian, Shenzhen")
        )
        assert result.confidence == 0.0
        assert result.is_target_seller is False
        assert result.evidence == ()

    def test_unknown_sentinel_id_is_no_identity(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(SellerSignal(seller_id="unknown"))
        assert result == ClassificationResult.unknown()

    def test_shenzhen_trading_company(self, classifier: SellerClassifier) -> None:
        """Location keyword plus company pattern crosses the threshold."""
        result = classifier.classify(SellerSignal(seller_name="Shenzhen Top Trading Co Ltd"))
        assert result.confidence >= 0.65
        assert result.is_target_seller is True
        assert result.details[SignalKind.NAME_KEYWORD.value] == "Shenzhen"
        assert SignalKind.NAME_PATTERN.value in result.details

    def test_us_seller_scores_zero(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Acme Outdoors LLC", business_address="Denver, CO, USA")
        )
        assert result.confidence == 0.0
        assert result.is_target_seller is False

    def test_postal_code_and_city_saturate(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", business_address="518000, Futian, Shenzhen")
        )
        assert result.confidence == 1.0
        assert result.is_target_seller is True
        assert result.details[SignalKind.ZIP_CODE.value] == "518000"
        assert result.details[SignalKind.ADDRESS_KEYWORD.value] == "Shenzhen"

    def test_han_characters_in_name(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(SellerSignal(seller_name="深圳市优品科技有限公司"))
        assert result.details[SignalKind.NAME_PATTERN.value] == "han_characters"
        assert result.is_target_seller is True

    def test_phone_prefix(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", phone_numbers=("+86 755 8888 6666",))
        )
        assert result.confidence == pytest.approx(0.45)
        assert result.is_target_seller is False

    def test_high_value_phrase_floor(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", raw_page_text="Our company is located in China.")
        )
        assert result.confidence == pytest.approx(0.9)
        assert result.is_target_seller is True

    def test_country_marker_floor(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", country_marker="ships from china")
        )
        assert result.confidence == pytest.approx(0.95)

    def test_platform_marker_floor(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", raw_page_text="Contact us: lumina@163.com")
        )
        assert result.confidence == pytest.approx(0.85)

    def test_cctld_floor(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", raw_page_text="Visit www.lumina.com.cn")
        )
        assert result.details[SignalKind.PLATFORM_DOMAIN.value] == "www.lumina.com.cn"

    def test_page_keyword_frequency_bonus(self, classifier: SellerClassifier) -> None:
        """Three distinct keywords earn the base bonus; six earn double, capped."""
        three = classifier.classify(
            SellerSignal(seller_name="Lumina", raw_page_text="Fujian Xiamen Quanzhou")
        )
        assert three.confidence == pytest.approx(0.1)

        six = classifier.classify(
            SellerSignal(
                seller_name="Lumina",
                raw_page_text="Fujian Xiamen Quanzhou Ningbo Wenzhou Suzhou",
            )
        )
        assert six.confidence == pytest.approx(0.2)

    def test_page_keywords_below_minimum_ignored(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", raw_page_text="Fujian Xiamen")
        )
        assert result.confidence == 0.0

    def test_business_type_keyword(self, classifier: SellerClassifier) -> None:
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", business_type="PRC limited company")
        )
        assert result.details[SignalKind.BUSINESS_TYPE.value] == "PRC"

    def test_corroboration_applied_below_ceiling(self) -> None:
        """With small weights, four categories get the bump on top of their sum."""
        config = Settings(
            WEIGHT_NAME_KEYWORD=0.1,
            WEIGHT_NAME_PATTERN=0.1,
            WEIGHT_ADDRESS_KEYWORD=0.1,
            WEIGHT_POSTAL_CODE=0.1,
        )
        classifier = SellerClassifier(confidence_threshold=0.5, config=config)
        result = classifier.classify(
            SellerSignal(
                seller_name="Shenzhen Top Trading Co Ltd",
                business_address="518000 Shenzhen",
            )
        )
        assert len(result.evidence) == 4
        assert result.confidence == pytest.approx(0.5)
        assert result.is_target_seller is True

    def test_threshold_boundary_inclusive(self) -> None:
        """is_target_seller is confidence >= threshold, equality included."""
        classifier = SellerClassifier(confidence_threshold=0.45)
        result = classifier.classify(
            SellerSignal(seller_name="Lumina", phone_numbers=("+86 755 8888 6666",))
        )
        assert result.confidence == pytest.approx(0.45)
        assert result.is_target_seller is True

    @pytest.mark.parametrize("threshold", [0.0, -0.1, 1.5])
    def test_threshold_out_of_range_rejected(self, threshold: float) -> None:
        with pytest.raises(ValueError):
            SellerClassifier(confidence_threshold=threshold)

    def test_zero_threshold_rejected_by_scan_settings(self) -> None:
        """Confidence 0 (unknown seller) must stay below every threshold."""
        with pytest.raises(ValueError):
            ScanSettings(confidence_threshold=0.0)

    def test_classify_is_idempotent(self, classifier: SellerClassifier) -> None:
        signal = SellerSignal(
            seller_name="Yiwu Huamei Crafts",
            business_address="Room 3, Yiwu, Zhejiang 322000",
            raw_page_text="Contact via WeChat",
        )
        first = classifier.classify(signal)
        second = classifier.classify(signal)
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_verdict_consistent_with_threshold(self) -> None:
        signals = [
            SellerSignal(seller_name="Shenzhen Top Trading Co Ltd"),
            SellerSignal(seller_name="Acme Outdoors LLC"),
            SellerSignal(seller_name="Lumina", phone_numbers=("+86 20 1234 5678",)),
            SellerSignal(seller_name="Lumina", business_address="518000"),
        ]
        for threshold in (0.01, 0.3, 0.5, 0.7, 1.0):
            classifier = SellerClassifier(confidence_threshold=threshold)
            for signal in signals:
                result = classifier.classify(signal)
                assert 0.0 <= result.confidence <= 1.0
                assert result.is_target_seller == (result.confidence >= threshold)

    def test_prior_cache_entry_reused(self, classifier: SellerClassifier) -> None:
        cached = ClassificationResult(is_target_seller=True, confidence=0.88, evidence=("cached",))
        entry = CacheEntry(
            seller_id="A1SZTOP00001X",
            result=cached,
            last_updated=datetime.now(timezone.utc),
        )
        signal = SellerSignal(seller_id="A1SZTOP00001X", seller_name="Acme Outdoors LLC")
        assert classifier.classify(signal, entry) is cached

    def test_prior_verdict_follows_current_threshold(self) -> None:
        """A result cached under 0.5 becomes a match when the threshold drops to 0.4."""
        signal = SellerSignal(seller_id="A1GZLIGHT0001", seller_name="Guangzhou Light")
        cached = SellerClassifier(confidence_threshold=0.5).classify(signal)
        assert cached.confidence == pytest.approx(0.4)
        assert cached.is_target_seller is False

        entry = CacheEntry(
            seller_id="A1GZLIGHT0001",
            result=cached,
            last_updated=datetime.now(timezone.utc),
        )
        result = SellerClassifier(confidence_threshold=0.4).classify(signal, entry)

        assert result.is_target_seller is True
        assert result.is_target_seller == (result.confidence >= 0.4)
        assert result.confidence == cached.confidence
        assert result.evidence == cached.evidence
        assert result.details == cached.details

    def test_prior_verdict_revoked_when_threshold_rises(self) -> None:
        cached = ClassificationResult(is_target_seller=True, confidence=0.55, evidence=("cached",))
        entry = CacheEntry(
            seller_id="A1SZTOP00001X",
            result=cached,
            last_updated=datetime.now(timezone.utc),
        )
        signal = SellerSignal(seller_id="A1SZTOP00001X", seller_name="Shenzhen Top")

        result = SellerClassifier(confidence_threshold=0.7).classify(signal, entry)

        assert result.is_target_seller is False
        assert result.confidence == 0.55

    def test_prior_entry_for_other_seller_ignored(self, classifier: SellerClassifier) -> None:
        cached = ClassificationResult(is_target_seller=True, confidence=0.88)
        entry = CacheEntry(
            seller_id="SOMEONEELSE01",
            result=cached,
            last_updated=datetime.now(timezone.utc),
        )
        signal = SellerSignal(seller_id="A1SZTOP00001X", seller_name="Acme Outdoors LLC")
        assert classifier.classify(signal, entry).confidence == 0.0

    def test_from_scan_settings_merges_custom_keywords(self) -> None:
        classifier = SellerClassifier.from_scan_settings(
            ScanSettings(confidence_threshold=0.4, custom_keywords=("Shantou",))
        )
        result = classifier.classify(SellerSignal(seller_name="Shantou Lumina"))
        assert classifier.confidence_threshold == 0.4
        assert result.details[SignalKind.NAME_KEYWORD.value] == "Shantou"
        assert result.is_target_seller is True
