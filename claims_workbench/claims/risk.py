"""
Risk & Confidence Aggregator

Aggregates per-part confidences and derives risk flags and image-quality
advisories for a claim. Confidence values are not clamped here; out-of-range
values are surfaced by assessment validation instead.
"""

from __future__ import annotations

import statistics
from typing import Optional, Sequence

from claims_workbench.config import PolicyConfig
from claims_workbench.constants import (
    SEVERITY_SCORES,
    PartSeverity,
    RiskFlag,
    VehiclePart,
)
from claims_workbench.claims.costing import round_half_up
from claims_workbench.claims.models import DamagedPart, PhotoMeta, PolicyContext


def calculate_overall_confidence(parts: Sequence[DamagedPart]) -> float:
    """Mean part confidence rounded to 2 decimals; 0 for no parts."""
    if not parts:
        return 0.0
    average = sum(p.confidence for p in parts) / len(parts)
    return round_half_up(average * 100) / 100


def has_structural_damage(parts: Sequence[DamagedPart]) -> bool:
    """Any structural severity, or any frame part, counts as structural."""
    return any(
        p.severity == PartSeverity.STRUCTURAL or p.part_id == VehiclePart.FRAME
        for p in parts
    )


def severity_spread(parts: Sequence[DamagedPart]) -> Optional[float]:
    """
    Population standard deviation of severity scores across parts.

    Returns None with fewer than two scorable parts. Unknown severities are
    not scored.
    """
    scores = [SEVERITY_SCORES[p.severity] for p in parts if p.severity in SEVERITY_SCORES]
    if len(scores) < 2:
        return None
    return statistics.pstdev(scores)


class RiskAggregator:
    """Collects risk flags and advisory notes from configured thresholds."""

    def __init__(self, config: Optional[PolicyConfig] = None) -> None:
        self._config = config or PolicyConfig()

    def collect_risk_flags(
        self,
        parts: Sequence[DamagedPart],
        total_max: float,
        overall_confidence: float,
        context: Optional[PolicyContext] = None,
    ) -> tuple[RiskFlag, ...]:
        """
        Derive the ordered, de-duplicated set of risk flags.

        Order: STRUCTURAL_DAMAGE, HIGH_EXPOSURE, LOW_CONFIDENCE,
        INCONSISTENT_DAMAGE, MISSING_ANGLES.
        """
        context = context or PolicyContext()
        escalation = self._config.escalation
        fraud = self._config.fraud
        flags: list[RiskFlag] = []

        def add(flag: RiskFlag) -> None:
            if flag not in flags:
                flags.append(flag)

        if has_structural_damage(parts):
            add(RiskFlag.STRUCTURAL_DAMAGE)

        if total_max > escalation.high_exposure_threshold:
            add(RiskFlag.HIGH_EXPOSURE)

        if overall_confidence < escalation.min_confidence:
            add(RiskFlag.LOW_CONFIDENCE)

        if context.historical_data is not None:
            if context.historical_data.standard_deviation > fraud.inconsistent_damage_sd_threshold:
                add(RiskFlag.INCONSISTENT_DAMAGE)
        else:
            spread = severity_spread(parts)
            if spread is not None and spread > fraud.severity_spread_threshold:
                add(RiskFlag.INCONSISTENT_DAMAGE)

        photo_count = context.effective_photo_count
        if photo_count is not None and photo_count < self._config.photo.min_photos_recommended:
            add(RiskFlag.MISSING_ANGLES)

        return tuple(flags)

    def image_quality_notes(
        self,
        parts: Sequence[DamagedPart],
        context: Optional[PolicyContext] = None,
    ) -> tuple[str, ...]:
        """Advisory strings about photo and detection quality."""
        context = context or PolicyContext()
        quality = self._config.image_quality
        notes: list[str] = []

        if any(p.confidence < quality.low_part_confidence for p in parts):
            notes.append(
                "One or more parts have low model confidence; "
                "request clearer photos or additional angles."
            )

        if not parts:
            notes.append("No parts detected; verify that photos clearly show the vehicle.")

        photo_count = context.effective_photo_count
        if photo_count is not None and photo_count < self._config.photo.min_photos_recommended:
            notes.append("Limited photo set; add more angles for better assessment.")

        if any(p.width and p.width < quality.min_width for p in context.photos):
            notes.append(
                "Some photos appear low-resolution; "
                "higher resolution images are recommended."
            )

        if any(p.issues for p in context.photos):
            notes.append("Certain photos have flagged quality issues; review before approval.")

        return tuple(notes)

    def photo_quality_score(self, photo: PhotoMeta) -> float:
        """
        Quality score for a photo in [0, 1].

        An explicit score wins (clamped); otherwise resolution decides.
        """
        quality = self._config.image_quality
        if photo.quality_score is not None:
            return max(0.0, min(1.0, photo.quality_score))

        width = photo.width or 0
        height = photo.height or 0
        if width == 0 or height == 0:
            return quality.default_score
        if width >= quality.ideal_width and height >= quality.ideal_height:
            return quality.high_score
        if width >= quality.min_width and height >= quality.min_height:
            return quality.good_score
        return quality.fair_score

    def confidence_badge(self, confidence: float) -> tuple[str, str]:
        """Display label and color for a confidence value."""
        badge = self._config.confidence_badge
        if confidence >= badge.excellent:
            return ("Excellent", "green")
        if confidence >= badge.good:
            return ("Good", "green")
        if confidence >= badge.fair:
            return ("Fair", "amber")
        return ("Low", "red")
