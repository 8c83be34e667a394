"""
Recommendation & Routing Engine

Maps confidence, exposure and risk flags to a recommendation code, then maps
the code to routing instructions.

The recommendation checks run in a fixed order and the first match wins:

1. STRUCTURAL_DAMAGE flag          -> ESCALATE_STRUCTURAL
2. fast-track window, no HIGH_EXPOSURE / LOW_CONFIDENCE flag
                                   -> FAST_TRACK_REVIEW
3. low confidence or high exposure -> ESCALATE_SENIOR
4. otherwise                       -> MANUAL_REVIEW
"""

from __future__ import annotations

from typing import Optional, Sequence

from claims_workbench.config import PolicyConfig
from claims_workbench.constants import (
    RECOMMENDATION_PRIORITY,
    AssigneeRole,
    ClaimPriority,
    RecommendationCode,
    RiskFlag,
)
from claims_workbench.claims.models import Recommendation, RoutingInstructions


RECOMMENDATION_TEXT = {
    RecommendationCode.ESCALATE_STRUCTURAL: "Escalate for structural review",
    RecommendationCode.FAST_TRACK_REVIEW: "Fast-track approval recommended",
    RecommendationCode.ESCALATE_SENIOR: "Escalate to senior adjuster",
    RecommendationCode.MANUAL_REVIEW: "Manual review recommended",
}

DEFAULT_ROUTING = RoutingInstructions(
    assign_to=AssigneeRole.AGENT,
    priority=3,
    estimated_time_minutes=30,
    required_actions=("Initial review", "Cost confirmation"),
)

ROUTING_TABLE = {
    RecommendationCode.FAST_TRACK_REVIEW: RoutingInstructions(
        assign_to=AssigneeRole.AGENT,
        priority=2,
        estimated_time_minutes=15,
        required_actions=("Quick validation", "Fast-track approval"),
    ),
    RecommendationCode.ESCALATE_STRUCTURAL: RoutingInstructions(
        assign_to=AssigneeRole.STRUCTURAL_ENGINEER,
        priority=5,
        estimated_time_minutes=120,
        required_actions=("Structural assessment", "Safety inspection", "Detailed report"),
    ),
    RecommendationCode.ESCALATE_SENIOR: RoutingInstructions(
        assign_to=AssigneeRole.SENIOR_ADJUSTER,
        priority=4,
        estimated_time_minutes=60,
        required_actions=("Comprehensive review", "Cost validation", "Approval decision"),
    ),
    RecommendationCode.MANUAL_REVIEW: DEFAULT_ROUTING,
}


def _recommendation(code: RecommendationCode) -> Recommendation:
    return Recommendation(
        code=code,
        text=RECOMMENDATION_TEXT[code],
        priority=RECOMMENDATION_PRIORITY[code],
    )


def determine_routing(code: Optional[RecommendationCode]) -> RoutingInstructions:
    """Routing instructions for a recommendation code; unknown codes get the default."""
    return ROUTING_TABLE.get(code, DEFAULT_ROUTING)


class RecommendationEngine:
    """Decides the recommendation from configured thresholds."""

    def __init__(self, config: Optional[PolicyConfig] = None) -> None:
        self._config = config or PolicyConfig()

    def determine_recommendation(
        self,
        confidence: float,
        total_max: float,
        flags: Sequence[RiskFlag],
    ) -> Recommendation:
        fast_track = self._config.fast_track
        escalation = self._config.escalation

        if RiskFlag.STRUCTURAL_DAMAGE in flags:
            return _recommendation(RecommendationCode.ESCALATE_STRUCTURAL)

        if (
            confidence >= fast_track.min_confidence
            and total_max <= fast_track.max_cost
            and RiskFlag.HIGH_EXPOSURE not in flags
            and RiskFlag.LOW_CONFIDENCE not in flags
        ):
            return _recommendation(RecommendationCode.FAST_TRACK_REVIEW)

        if (
            confidence < escalation.min_confidence
            or total_max > escalation.high_exposure_threshold
        ):
            return _recommendation(RecommendationCode.ESCALATE_SENIOR)

        return _recommendation(RecommendationCode.MANUAL_REVIEW)

    def is_fast_track_eligible(self, total_cost: float, confidence: float) -> bool:
        """Threshold-only fast-track check, ignoring risk flags."""
        fast_track = self._config.fast_track
        return confidence >= fast_track.min_confidence and total_cost <= fast_track.max_cost

    def determine_priority(
        self,
        injuries: bool = False,
        drivable: bool = True,
        total_cost: Optional[float] = None,
    ) -> ClaimPriority:
        """Handling priority from claim attributes."""
        if injuries:
            return ClaimPriority.URGENT
        if not drivable:
            return ClaimPriority.HIGH
        if total_cost and total_cost > self._config.escalation.high_exposure_threshold:
            return ClaimPriority.HIGH
        return ClaimPriority.MEDIUM
