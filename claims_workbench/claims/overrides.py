"""
Adjuster overrides, assessment history and audit trail.

Overrides never edit an assessment in place: each operation returns a new
Assessment whose totals are recomputed through the same cost estimator
contract used by the engine. Flags and the recommendation are left as they
were; re-run ``apply_policy`` on the edited parts for a fresh decision.

History keeps whole-assessment snapshots, so undo/redo is a matter of
moving an index over immutable values.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Optional

from claims_workbench.config import OverrideConfig, PolicyConfig
from claims_workbench.constants import AuditActionType
from claims_workbench.exceptions import OverrideError
from claims_workbench.claims.compliance import generate_cost_breakdown
from claims_workbench.claims.costing import CostEstimator
from claims_workbench.claims.models import Assessment, DamagedPart
from claims_workbench.claims.risk import calculate_overall_confidence


# =============================================================================
# Part edits
# =============================================================================


def _rebuild(
    assessment: Assessment,
    parts: list[DamagedPart],
    estimator: CostEstimator,
) -> Assessment:
    filled = tuple(estimator.with_estimated_costs(p) for p in parts)
    totals = estimator.compute_totals_from_parts(filled)
    return replace(
        assessment,
        damaged_parts=filled,
        total_min=totals.total_min,
        total_max=totals.total_max,
        overall_confidence=calculate_overall_confidence(filled),
        cost_breakdown=generate_cost_breakdown(filled),
    )


def _check_index(assessment: Assessment, index: int) -> None:
    if not 0 <= index < len(assessment.damaged_parts):
        raise OverrideError(
            f"Part index {index} out of range for "
            f"{len(assessment.damaged_parts)} damaged part(s)"
        )


def override_part(
    assessment: Assessment,
    index: int,
    part: DamagedPart,
    estimator: Optional[CostEstimator] = None,
) -> Assessment:
    """
    Replace the part at ``index`` and recompute totals.

    Raises:
        OverrideError: If ``index`` does not address an existing part.
    """
    _check_index(assessment, index)
    parts = list(assessment.damaged_parts)
    parts[index] = part
    return _rebuild(assessment, parts, estimator or CostEstimator())


def add_part(
    assessment: Assessment,
    part: DamagedPart,
    estimator: Optional[CostEstimator] = None,
) -> Assessment:
    """Append a part and recompute totals."""
    parts = list(assessment.damaged_parts) + [part]
    return _rebuild(assessment, parts, estimator or CostEstimator())


def remove_part(
    assessment: Assessment,
    index: int,
    estimator: Optional[CostEstimator] = None,
) -> Assessment:
    """Remove the part at ``index`` and recompute totals."""
    _check_index(assessment, index)
    parts = list(assessment.damaged_parts)
    del parts[index]
    return _rebuild(assessment, parts, estimator or CostEstimator())


# =============================================================================
# Significance
# =============================================================================


def is_significant_override(
    original_cost: float,
    new_cost: float,
    config: Optional[PolicyConfig] = None,
) -> bool:
    """
    True when an override is large enough to be high-value training data.

    Either the absolute delta or the relative change (0 when the original
    cost is 0) must exceed its threshold.
    """
    override: OverrideConfig = (config or PolicyConfig()).override
    delta = abs(new_cost - original_cost)
    percent_change = delta / original_cost if original_cost > 0 else 0
    return (
        delta > override.significant_delta_abs
        or percent_change > override.significant_delta_pct
    )


def requires_override_approval(
    original_cost: float,
    new_cost: float,
    config: Optional[PolicyConfig] = None,
) -> bool:
    """True when an override moves cost by more than adjusters may approve alone."""
    override = (config or PolicyConfig()).override
    return abs(new_cost - original_cost) > override.max_override_without_approval


# =============================================================================
# History
# =============================================================================


class AssessmentHistory:
    """
    Bounded undo/redo over assessment snapshots.

    Pushing after an undo discards the redo branch. The oldest snapshots are
    dropped once ``max_entries`` is exceeded.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        self._max_entries = max_entries or PolicyConfig().override.max_history
        self._snapshots: list[tuple[str, Assessment]] = []
        self._index = -1

    def __len__(self) -> int:
        return len(self._snapshots)

    @property
    def current(self) -> Optional[Assessment]:
        if self._index < 0:
            return None
        return self._snapshots[self._index][1]

    @property
    def descriptions(self) -> list[str]:
        return [description for description, _ in self._snapshots]

    def push(self, assessment: Assessment, description: str = "") -> None:
        del self._snapshots[self._index + 1:]
        self._snapshots.append((description, assessment))
        if len(self._snapshots) > self._max_entries:
            del self._snapshots[: len(self._snapshots) - self._max_entries]
        self._index = len(self._snapshots) - 1

    def can_undo(self) -> bool:
        return self._index > 0

    def can_redo(self) -> bool:
        return self._index < len(self._snapshots) - 1

    def undo(self) -> Optional[Assessment]:
        if self.can_undo():
            self._index -= 1
        return self.current

    def redo(self) -> Optional[Assessment]:
        if self.can_redo():
            self._index += 1
        return self.current


# =============================================================================
# Audit trail
# =============================================================================


@dataclass(frozen=True)
class AuditLogEntry:
    """One recorded action on a claim."""

    id: str
    claim_id: str
    timestamp: str
    user_id: str
    action_type: AuditActionType
    description: str
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "claim_id": self.claim_id,
            "timestamp": self.timestamp,
            "user_id": self.user_id,
            "action_type": self.action_type.value,
            "description": self.description,
            "metadata": self.metadata,
        }


class AuditTrail:
    """Append-only, in-memory list of audit entries for one claim."""

    def __init__(self, claim_id: str = "", user_id: str = "user") -> None:
        self.claim_id = claim_id
        self.user_id = user_id
        self._entries: list[AuditLogEntry] = []

    @property
    def entries(self) -> tuple[AuditLogEntry, ...]:
        return tuple(self._entries)

    def record(
        self,
        action_type: AuditActionType,
        description: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            id=uuid.uuid4().hex,
            claim_id=self.claim_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            user_id=self.user_id,
            action_type=action_type,
            description=description,
            metadata=dict(metadata or {}),
        )
        self._entries.append(entry)
        return entry

    def export_json(self) -> str:
        return json.dumps([e.to_dict() for e in self._entries], indent=2)
