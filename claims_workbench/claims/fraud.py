"""
Fraud Risk Scorer

Additive heuristic producing a score in [0, 1]. The score is an indicator
for routing and compliance notes, not a fraud determination.

Rules (weights from FraudConfig):
- minor severity priced above the minor-severity cost threshold
- more parts than the fragmentation threshold
- estimate deviating from similar historical claims by more than
  ``historical_anomaly_multiplier`` standard deviations
"""

from __future__ import annotations

from typing import Optional, Sequence

from claims_workbench.config import PolicyConfig
from claims_workbench.constants import PartSeverity
from claims_workbench.claims.costing import format_cost
from claims_workbench.claims.models import DamagedPart, PolicyContext


class FraudRiskScorer:
    """Scores fraud risk from cost/severity mismatches and history."""

    def __init__(self, config: Optional[PolicyConfig] = None) -> None:
        self._fraud = (config or PolicyConfig()).fraud

    def _evaluate(
        self, parts: Sequence[DamagedPart], context: PolicyContext
    ) -> list[tuple[float, str]]:
        fraud = self._fraud
        triggered: list[tuple[float, str]] = []

        mismatched = [
            p for p in parts
            if p.severity == PartSeverity.MINOR
            and (p.estimated_cost_max or 0) > fraud.minor_severity_cost_threshold
        ]
        if mismatched:
            labels = ", ".join(p.part_label for p in mismatched)
            triggered.append((
                fraud.severity_mismatch_weight,
                f"Minor severity priced above {format_cost(fraud.minor_severity_cost_threshold)}: {labels}",
            ))

        if len(parts) > fraud.max_parts_threshold:
            triggered.append((
                fraud.fragmentation_weight,
                f"{len(parts)} damaged parts reported (more than {fraud.max_parts_threshold})",
            ))

        history = context.historical_data
        if history is not None:
            estimate_total = sum(p.estimated_cost_max or 0 for p in parts)
            deviation = abs(history.average_final_cost - estimate_total)
            if deviation > fraud.historical_anomaly_multiplier * history.standard_deviation:
                triggered.append((
                    fraud.historical_deviation_weight,
                    f"Estimate {format_cost(estimate_total)} deviates from similar claims "
                    f"average {format_cost(history.average_final_cost)}",
                ))

        return triggered

    def score(
        self,
        parts: Sequence[DamagedPart],
        context: Optional[PolicyContext] = None,
    ) -> float:
        """Sum of triggered rule weights, capped at 1.0."""
        triggered = self._evaluate(parts, context or PolicyContext())
        return min(1.0, sum(weight for weight, _ in triggered))

    def indicators(
        self,
        parts: Sequence[DamagedPart],
        context: Optional[PolicyContext] = None,
    ) -> list[str]:
        """Descriptions of the triggered fraud rules, carried on the PolicyDecision."""
        return [reason for _, reason in self._evaluate(parts, context or PolicyContext())]
