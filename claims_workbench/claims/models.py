"""
Damage Assessment Models

Value objects exchanged with the policy engine. Every object is built fresh
per evaluation and never mutated afterwards; changes go through
``dataclasses.replace`` or the override helpers, which return new values.

Money is always integer cents. Severity and part id are a tagged union of the
known enum member or the raw string the detector supplied.

The ``from_dict``/``to_dict`` helpers speak the JSON shapes used by the
workbench frontend (``_meta``, ``assignTo``, ``requiredActions``, ...).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from claims_workbench.constants import (
    AssigneeRole,
    PartIdValue,
    RecommendationCode,
    RiskFlag,
    SeverityValue,
    enum_value,
    parse_part_id,
    parse_severity,
)
from claims_workbench.exceptions import InvalidPartsError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _optional_number(value: Any) -> Optional[float]:
    return value if _is_number(value) else None


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first key present, so snake_case and camelCase both work."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _required_number(data: Mapping[str, Any], path: str, *keys: str) -> float:
    """Like ``_pick`` with a default of 0, but a present value must be numeric."""
    value = _pick(data, *keys, default=0)
    if not _is_number(value):
        raise InvalidPartsError(f"{path} must be a number, got {value!r}")
    return value


# =============================================================================
# Damaged parts
# =============================================================================


@dataclass(frozen=True)
class DamageTypeDetail:
    """A damage type observed on a part, refining its cost multiplier."""

    type: str
    severity: str = ""
    area_percentage: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DamageTypeDetail":
        return cls(
            type=str(data.get("type") or ""),
            severity=str(data.get("severity") or ""),
            area_percentage=_optional_number(data.get("area_percentage")),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "severity": self.severity}
        if self.area_percentage is not None:
            result["area_percentage"] = self.area_percentage
        return result


@dataclass(frozen=True)
class DamagedPart:
    """
    One detected or asserted damage instance.

    ``estimated_cost_min``/``estimated_cost_max`` may be absent; the cost
    estimator derives them when they are missing or inverted.
    """

    part_id: PartIdValue
    part_label: str
    severity: SeverityValue
    confidence: float
    estimated_cost_min: Optional[float] = None
    estimated_cost_max: Optional[float] = None
    repair_action: Optional[str] = None
    damage_types: tuple[DamageTypeDetail, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "part_id", parse_part_id(self.part_id))
        object.__setattr__(self, "severity", parse_severity(self.severity))
        object.__setattr__(self, "damage_types", tuple(self.damage_types))

    @property
    def has_valid_cost_range(self) -> bool:
        """True when both bounds are numbers and max >= min."""
        return (
            _is_number(self.estimated_cost_min)
            and _is_number(self.estimated_cost_max)
            and self.estimated_cost_max >= self.estimated_cost_min
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DamagedPart":
        """
        Build a part from a detector payload.

        Raises:
            InvalidPartsError: If required fields are missing or confidence
                is not a number.
        """
        if not isinstance(data, Mapping):
            raise InvalidPartsError(
                f"Damaged part must be an object, got {type(data).__name__}"
            )
        missing = [k for k in ("part_label", "severity", "confidence") if k not in data]
        if missing:
            raise InvalidPartsError(
                f"Damaged part is missing required field(s): {', '.join(missing)}"
            )
        confidence = data["confidence"]
        if not _is_number(confidence):
            raise InvalidPartsError(
                f"Damaged part confidence must be a number, got {confidence!r}"
            )

        damage_types = data.get("damage_types") or []
        if not isinstance(damage_types, list):
            raise InvalidPartsError("damage_types must be a list")
        if not all(isinstance(d, (Mapping, DamageTypeDetail)) for d in damage_types):
            raise InvalidPartsError("damage_types entries must be objects")

        return cls(
            part_id=data.get("part_id") or "",
            part_label=str(data["part_label"]),
            severity=data["severity"],
            confidence=confidence,
            estimated_cost_min=_optional_number(data.get("estimated_cost_min")),
            estimated_cost_max=_optional_number(data.get("estimated_cost_max")),
            repair_action=data.get("repair_action"),
            damage_types=tuple(
                d if isinstance(d, DamageTypeDetail) else DamageTypeDetail.from_dict(d)
                for d in damage_types
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "part_id": enum_value(self.part_id),
            "part_label": self.part_label,
            "severity": enum_value(self.severity),
            "confidence": self.confidence,
            "estimated_cost_min": self.estimated_cost_min,
            "estimated_cost_max": self.estimated_cost_max,
        }
        if self.repair_action is not None:
            result["repair_action"] = self.repair_action
        if self.damage_types:
            result["damage_types"] = [d.to_dict() for d in self.damage_types]
        return result


@dataclass(frozen=True)
class CostRange:
    """A cost range in cents."""

    min: int
    max: int


@dataclass(frozen=True)
class ClaimTotals:
    """Claim totals in cents, including the labor surcharge."""

    total_min: int = 0
    total_max: int = 0
    labor_min: int = 0
    labor_max: int = 0


# =============================================================================
# Assessment
# =============================================================================


@dataclass(frozen=True)
class Recommendation:
    """Recommendation code with display text."""

    code: Optional[RecommendationCode]
    text: str
    priority: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Recommendation":
        raw_code = data.get("code")
        try:
            code = RecommendationCode(raw_code) if raw_code else None
        except ValueError:
            code = None
        return cls(code=code, text=str(data.get("text") or ""), priority=data.get("priority"))

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": enum_value(self.code), "text": self.text}
        if self.priority is not None:
            result["priority"] = self.priority
        return result


@dataclass(frozen=True)
class CostBreakdownItem:
    """Per-part cost narrative."""

    label: str
    details: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"label": self.label, "details": list(self.details)}


@dataclass(frozen=True)
class AssessmentMeta:
    """Provenance for an assessment. Not used by any decision rule."""

    model_version: Optional[str] = None
    processing_time_ms: Optional[float] = None
    timestamp: Optional[str] = None
    batch_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssessmentMeta":
        return cls(
            model_version=data.get("model_version"),
            processing_time_ms=data.get("processing_time_ms"),
            timestamp=data.get("timestamp"),
            batch_id=data.get("batch_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        result = {
            "model_version": self.model_version,
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp,
        }
        if self.batch_id is not None:
            result["batch_id"] = self.batch_id
        return result


@dataclass(frozen=True)
class Assessment:
    """
    The engine's output record for one claim evaluation.

    Built once per ``apply_policy`` call. The only sanctioned change is an
    override, which produces a new Assessment with recomputed totals.
    """

    damaged_parts: tuple[DamagedPart, ...]
    total_min: int
    total_max: int
    overall_confidence: float
    recommendation: Recommendation
    flags: tuple[RiskFlag, ...] = ()
    image_quality: tuple[str, ...] = ()
    cost_breakdown: tuple[CostBreakdownItem, ...] = ()
    fraud_risk_score: Optional[float] = None
    meta: Optional[AssessmentMeta] = None

    def has_flag(self, flag: RiskFlag) -> bool:
        return flag in self.flags

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Assessment":
        """
        Rebuild an assessment from its JSON form.

        Unknown flag names are dropped; an unknown recommendation code leaves
        ``recommendation.code`` empty so validation can report it.
        """
        if not isinstance(data, Mapping):
            raise InvalidPartsError("Assessment must be an object")
        parts = data.get("damaged_parts")
        if not isinstance(parts, list):
            raise InvalidPartsError("Assessment damaged_parts must be a list")

        flags = []
        for raw in data.get("flags") or []:
            try:
                flag = RiskFlag(raw)
            except ValueError:
                continue
            if flag not in flags:
                flags.append(flag)

        meta = data.get("_meta")
        return cls(
            damaged_parts=tuple(DamagedPart.from_dict(p) for p in parts),
            total_min=data.get("total_min", 0),
            total_max=data.get("total_max", 0),
            overall_confidence=data.get("overall_confidence", 0),
            recommendation=Recommendation.from_dict(data.get("recommendation") or {}),
            flags=tuple(flags),
            image_quality=tuple(data.get("image_quality") or ()),
            cost_breakdown=tuple(
                CostBreakdownItem(label=str(item.get("label", "")),
                                  details=tuple(item.get("details") or ()))
                for item in data.get("cost_breakdown") or []
            ),
            fraud_risk_score=_optional_number(data.get("fraud_risk_score")),
            meta=AssessmentMeta.from_dict(meta) if isinstance(meta, Mapping) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "damaged_parts": [p.to_dict() for p in self.damaged_parts],
            "total_min": self.total_min,
            "total_max": self.total_max,
            "overall_confidence": self.overall_confidence,
            "recommendation": self.recommendation.to_dict(),
            "flags": [f.value for f in self.flags],
            "image_quality": list(self.image_quality),
            "cost_breakdown": [c.to_dict() for c in self.cost_breakdown],
        }
        if self.fraud_risk_score is not None:
            result["fraud_risk_score"] = self.fraud_risk_score
        if self.meta is not None:
            result["_meta"] = self.meta.to_dict()
        return result


# =============================================================================
# Context
# =============================================================================


@dataclass(frozen=True)
class HistoricalData:
    """Statistics for similar past claims."""

    similar_claims_count: int = 0
    average_final_cost: float = 0  # cents
    standard_deviation: float = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoricalData":
        """
        Raises:
            InvalidPartsError: If ``data`` is not an object or a statistic is
                not a number.
        """
        if not isinstance(data, Mapping):
            raise InvalidPartsError(
                f"historicalData must be an object, got {type(data).__name__}"
            )
        return cls(
            similar_claims_count=_required_number(
                data, "historicalData.similarClaimsCount",
                "similarClaimsCount", "similar_claims_count",
            ),
            average_final_cost=_required_number(
                data, "historicalData.averageFinalCost",
                "averageFinalCost", "average_final_cost",
            ),
            standard_deviation=_required_number(
                data, "historicalData.standardDeviation",
                "standardDeviation", "standard_deviation",
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "similarClaimsCount": self.similar_claims_count,
            "averageFinalCost": self.average_final_cost,
            "standardDeviation": self.standard_deviation,
        }


@dataclass(frozen=True)
class PhotoMeta:
    """Quality signals for one uploaded photo."""

    id: str = ""
    filename: str = ""
    width: Optional[int] = None
    height: Optional[int] = None
    quality_score: Optional[float] = None
    angle: Optional[str] = None
    issues: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PhotoMeta":
        if not isinstance(data, Mapping):
            raise InvalidPartsError(
                f"photos entries must be objects, got {type(data).__name__}"
            )
        # Dimensions may sit at the top level or under "meta"
        meta = data.get("meta") or {}
        if not isinstance(meta, Mapping):
            raise InvalidPartsError("photo meta must be an object")
        issues = data.get("issues") or []
        if not isinstance(issues, (list, tuple)):
            raise InvalidPartsError("photo issues must be a list")
        return cls(
            id=str(data.get("id") or ""),
            filename=str(data.get("filename") or ""),
            width=_optional_number(_pick(data, "width", default=meta.get("width"))),
            height=_optional_number(_pick(data, "height", default=meta.get("height"))),
            quality_score=_optional_number(_pick(data, "qualityScore", "quality_score")),
            angle=data.get("angle"),
            issues=tuple(str(i) for i in issues),
        )


@dataclass(frozen=True)
class PolicyContext:
    """
    Optional inputs that adjust flags and the fraud score.

    None of the fields are required for a valid evaluation. Photo coverage
    is only checked when either ``photo_count`` or ``photos`` is supplied.
    """

    claim: Optional[Mapping[str, Any]] = None
    historical_data: Optional[HistoricalData] = None
    user_id: Optional[str] = None
    photos: tuple[PhotoMeta, ...] = ()
    photo_count: Optional[int] = None
    injuries: bool = False

    @property
    def claim_id(self) -> Optional[str]:
        if self.claim is None:
            return None
        return self.claim.get("id")

    @property
    def effective_photo_count(self) -> Optional[int]:
        if self.photo_count is not None:
            return self.photo_count
        if self.photos:
            return len(self.photos)
        return None

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "PolicyContext":
        """
        Build a context from a request payload.

        Raises:
            InvalidPartsError: If a supplied field has the wrong shape.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise InvalidPartsError(f"context must be an object, got {type(data).__name__}")

        # An empty object means no history, not a history of zeros
        historical = _pick(data, "historicalData", "historical_data")
        if historical is not None and not isinstance(historical, Mapping):
            raise InvalidPartsError(
                f"historicalData must be an object, got {type(historical).__name__}"
            )

        photos = data.get("photos")
        if photos is None:
            photos = []
        if not isinstance(photos, (list, tuple)):
            raise InvalidPartsError(f"photos must be a list, got {type(photos).__name__}")

        photo_count = _pick(data, "photoCount", "photo_count")
        if photo_count is not None and (
            isinstance(photo_count, bool) or not isinstance(photo_count, int) or photo_count < 0
        ):
            raise InvalidPartsError(
                f"photoCount must be a non-negative integer, got {photo_count!r}"
            )

        claim = data.get("claim")
        if claim is not None and not isinstance(claim, Mapping):
            raise InvalidPartsError(f"claim must be an object, got {type(claim).__name__}")
        injuries = data.get("injuries")
        if injuries is None and claim is not None:
            injuries = claim.get("injuries")

        return cls(
            claim=claim,
            historical_data=HistoricalData.from_dict(historical) if historical else None,
            user_id=_pick(data, "userId", "user_id"),
            photos=tuple(PhotoMeta.from_dict(p) for p in photos),
            photo_count=photo_count,
            injuries=bool(injuries),
        )


# =============================================================================
# Decision
# =============================================================================


@dataclass(frozen=True)
class RoutingInstructions:
    """Who handles the claim, how urgently and what they must do."""

    assign_to: AssigneeRole
    priority: int  # 1..5, 5 = highest
    estimated_time_minutes: int
    required_actions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "assignTo": self.assign_to.value,
            "priority": self.priority,
            "estimatedTimeMinutes": self.estimated_time_minutes,
            "requiredActions": list(self.required_actions),
        }


@dataclass(frozen=True)
class PolicyDecision:
    """Result of ``apply_policy``."""

    assessment: Assessment
    routing_instructions: RoutingInstructions
    compliance_notes: tuple[str, ...] = ()
    fraud_indicators: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "assessment": self.assessment.to_dict(),
            "routingInstructions": self.routing_instructions.to_dict(),
            "complianceNotes": list(self.compliance_notes),
            "fraudIndicators": list(self.fraud_indicators),
        }


@dataclass
class ValidationResult:
    """Outcome of ``validate_assessment``."""

    valid: bool
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}
