"""
Constants and enums for automotive damage assessment.

Recommendation codes and risk flags are a closed vocabulary: the UI, routing
and audit consumers match on these literal values.
"""

from enum import Enum
from typing import Any, Union


class PartSeverity(str, Enum):
    """Categorical damage intensity for a single part."""
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"
    REPLACE = "replace"
    STRUCTURAL = "structural"


class VehiclePart(str, Enum):
    """Known vehicle part identifiers."""
    REAR_BUMPER = "rear_bumper"
    TRUNK_LID = "trunk_lid"
    REAR_RIGHT_TAILLIGHT = "rear_right_taillight"
    REAR_LEFT_TAILLIGHT = "rear_left_taillight"
    LEFT_QUARTER_PANEL = "left_quarter_panel"
    FRAME = "frame"


class RecommendationCode(str, Enum):
    """Handling recommendation for a claim."""
    FAST_TRACK_REVIEW = "FAST_TRACK_REVIEW"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    ESCALATE_SENIOR = "ESCALATE_SENIOR"
    ESCALATE_STRUCTURAL = "ESCALATE_STRUCTURAL"


class RiskFlag(str, Enum):
    """Risk flags raised during evaluation."""
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    HIGH_EXPOSURE = "HIGH_EXPOSURE"
    STRUCTURAL_DAMAGE = "STRUCTURAL_DAMAGE"
    MISSING_ANGLES = "MISSING_ANGLES"
    INCONSISTENT_DAMAGE = "INCONSISTENT_DAMAGE"


class AssigneeRole(str, Enum):
    """Roles a claim can be routed to."""
    AGENT = "agent"
    SENIOR_ADJUSTER = "senior_adjuster"
    STRUCTURAL_ENGINEER = "structural_engineer"
    SIU = "siu"  # Special Investigations Unit


class ClaimPriority(str, Enum):
    """Handling priority derived from claim attributes."""
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AuditActionType(str, Enum):
    """Actions recorded in the claim audit trail."""
    ASSESSMENT_RUN = "assessment_run"
    APPROVE = "approve"
    REQUEST_PHOTOS = "request_photos"
    ESCALATE = "escalate"
    OVERRIDE = "override"
    ADD_PART = "add_part"
    REMOVE_PART = "remove_part"
    UNDO = "undo"
    REDO = "redo"


# Severity ordinal used for the damage-consistency spread check
SEVERITY_SCORES = {
    PartSeverity.MINOR: 1.0,
    PartSeverity.MODERATE: 2.0,
    PartSeverity.SEVERE: 3.0,
    PartSeverity.REPLACE: 3.5,
    PartSeverity.STRUCTURAL: 4.0,
}

# Recommendation priority labels shown alongside the code
RECOMMENDATION_PRIORITY = {
    RecommendationCode.FAST_TRACK_REVIEW: "low",
    RecommendationCode.MANUAL_REVIEW: "medium",
    RecommendationCode.ESCALATE_SENIOR: "high",
    RecommendationCode.ESCALATE_STRUCTURAL: "high",
}


SeverityValue = Union[PartSeverity, str]
PartIdValue = Union[VehiclePart, str]


def _normalize(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    return str(value).strip().lower()


def parse_severity(value: Any) -> SeverityValue:
    """
    Normalize a severity label.

    Returns the matching PartSeverity member, or the original string when the
    label is not recognised. Unknown severities are tolerated and later cost
    with a neutral multiplier.
    """
    if isinstance(value, PartSeverity):
        return value
    try:
        return PartSeverity(_normalize(value))
    except ValueError:
        return "" if value is None else str(value)


def parse_part_id(value: Any) -> PartIdValue:
    """Normalize a part identifier to a VehiclePart, or keep the free text."""
    if isinstance(value, VehiclePart):
        return value
    try:
        return VehiclePart(_normalize(value))
    except ValueError:
        return "" if value is None else str(value)


def is_known_severity(value: Any) -> bool:
    """Check whether a severity resolves to a known PartSeverity."""
    return isinstance(parse_severity(value), PartSeverity)


def enum_value(value: Any) -> Any:
    """Return the plain value of an enum member, or the value unchanged."""
    return value.value if isinstance(value, Enum) else value
