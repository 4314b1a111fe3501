"""Seller Radar — Detection Layer (classifier output model)."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ClassificationResult(BaseModel):
    """Verdict for one seller. Never mutated after creation."""

    model_config = {"frozen": True}

    is_target_seller: bool = False
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    evidence: tuple[str, ...] = ()
    details: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def unknown(cls) -> ClassificationResult:
        """
        Result for a signal with no usable seller identity.

        Confidence 0 sits below every valid threshold, which lies in (0, 1],
        so the verdict rule holds here too.
        """
        return cls(is_target_seller=False, confidence=0.0)
