"""
Compliance Notes Generator

Free-text advisory notes for the audit trail, and the per-part cost
breakdown narrative. Notes are independent and may all apply at once.
"""

from __future__ import annotations

from typing import Optional, Sequence

from claims_workbench.config import PolicyConfig
from claims_workbench.constants import RiskFlag, enum_value
from claims_workbench.claims.models import CostBreakdownItem, DamagedPart


def _whole_dollars(cents: Optional[float]) -> str:
    return f"{(cents or 0) / 100:.0f}"


def generate_cost_breakdown(parts: Sequence[DamagedPart]) -> tuple[CostBreakdownItem, ...]:
    """Severity, range and repair action lines for each part."""
    return tuple(
        CostBreakdownItem(
            label=p.part_label,
            details=(
                f"Severity: {enum_value(p.severity)}",
                f"Range: ${_whole_dollars(p.estimated_cost_min)} - "
                f"${_whole_dollars(p.estimated_cost_max)}",
                f"Action: {p.repair_action}" if p.repair_action
                else "Action: assess/confirm with shop",
            ),
        )
        for p in parts
    )


class ComplianceNotesGenerator:
    """Produces regulatory advisory notes from configured thresholds."""

    def __init__(self, config: Optional[PolicyConfig] = None) -> None:
        self._config = config or PolicyConfig()

    def generate(
        self,
        confidence: float,
        total_max: float,
        flags: Sequence[RiskFlag],
        fraud_risk_score: Optional[float] = None,
    ) -> tuple[str, ...]:
        escalation = self._config.escalation
        notes: list[str] = []

        if confidence < escalation.very_low_confidence:
            notes.append(
                "Low model confidence: full manual verification required before payout."
            )

        if total_max > escalation.inspection_threshold:
            notes.append(
                "High value claim: ensure enhanced approval workflow and compliance review."
            )

        if RiskFlag.STRUCTURAL_DAMAGE in flags:
            notes.append(
                "Structural damage indicated: ensure safety standards "
                "and OEM repair guidelines are followed."
            )

        if (
            fraud_risk_score is not None
            and fraud_risk_score > self._config.fraud.compliance_notes_threshold
        ):
            notes.append(
                f"Elevated fraud risk score ({fraud_risk_score:.2f}): "
                "document justification and consider SIU review."
            )

        return tuple(notes)
