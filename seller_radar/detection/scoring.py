"""
Seller Radar — Confidence Accumulator

Saturating, monotonic accumulation of classifier evidence:
- confidence never decreases within one evaluation
- confidence is clamped to [0, 1] after every step
- each SignalKind is recorded at most once
- the evidence list is capped
"""

from __future__ import annotations

import structlog

from seller_radar.config import SignalKind

logger = structlog.get_logger(__name__)


def clamp_confidence(value: float) -> float:
    """
    Clamp to [0, 1].

    Values above 1 are ordinary saturation. NaN or negative values can only
    come from a programming error, so they are logged as unexpected.
    """
    if value != value or value < 0.0:
        logger.warning(
            "classifier_invariant_violation",
            value=value,
            source="scoring",
        )
        return 0.0
    return min(1.0, value)


class ConfidenceAccumulator:
    """
    Collects weighted contributions for a single classification.

    Usage:
        acc = ConfidenceAccumulator(evidence_cap=6)
        if acc.add(SignalKind.NAME_KEYWORD, 0.4, "Shenzhen", "Seller name mentions 'Shenzhen'"):
            ...
    """

    def __init__(self, evidence_cap: int = 6) -> None:
        self._confidence: float = 0.0
        self._evidence: list[str] = []
        self._details: dict[str, str] = {}
        self._evidence_cap = evidence_cap
        self._history: list[float] = [0.0]

    @property
    def confidence(self) -> float:
        return self._confidence

    @property
    def evidence(self) -> tuple[str, ...]:
        return tuple(self._evidence)

    @property
    def details(self) -> dict[str, str]:
        return dict(self._details)

    @property
    def history(self) -> tuple[float, ...]:
        """Every confidence value assigned during this evaluation, in order."""
        return tuple(self._history)

    def has(self, kind: SignalKind) -> bool:
        return kind.value in self._details

    def add(self, kind: SignalKind, weight: float, matched: str, reason: str) -> bool:
        """
        Add a weighted contribution for a category not seen yet.

        Returns False (and changes nothing) when the category was already
        recorded or the weight is negative.
        """
        if self.has(kind):
            return False
        if weight < 0:
            logger.warning(
                "classifier_invariant_violation",
                kind=kind.value,
                weight=weight,
                reason="negative_weight",
                source="scoring",
            )
            return False

        self._record(kind, matched, reason)
        self._assign(self._confidence + weight)
        return True

    def floor(self, kind: SignalKind, minimum: float, matched: str, reason: str) -> bool:
        """Raise confidence to at least `minimum` for a category not seen yet."""
        if self.has(kind):
            return False

        self._record(kind, matched, reason)
        self._assign(max(self._confidence, minimum))
        return True

    def bump(self, amount: float) -> None:
        """Uncategorized nudge (corroboration); still monotonic and clamped."""
        self._assign(self._confidence + max(0.0, amount))

    def _record(self, kind: SignalKind, matched: str, reason: str) -> None:
        self._details[kind.value] = matched
        if len(self._evidence) < self._evidence_cap:
            self._evidence.append(reason)

    def _assign(self, value: float) -> None:
        clamped = clamp_confidence(value)
        # Monotonic: a lower value is never assigned.
        self._confidence = max(self._confidence, clamped)
        self._history.append(self._confidence)
