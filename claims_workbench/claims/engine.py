"""
Claims Policy Engine

Turns AI-generated damage observations into a routed, auditable decision.
The engine composes the cost estimator, risk aggregator, fraud scorer,
recommendation/routing engine and compliance notes generator into a single
``apply_policy`` call.

Evaluation is synchronous and side-effect free: every call gets its inputs
and returns fresh values, so one engine instance can be shared between
threads. Persisting or logging the result is up to the caller.

Usage:
    from claims_workbench.claims.engine import ClaimsPolicyEngine

    engine = ClaimsPolicyEngine()
    decision = engine.apply_policy(parts, context)
    result = engine.validate_assessment(decision.assessment)
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Union

from claims_workbench.config import PolicyConfig
from claims_workbench.constants import PartSeverity, RiskFlag, enum_value
from claims_workbench.exceptions import InvalidPartsError
from claims_workbench.claims.compliance import (
    ComplianceNotesGenerator,
    generate_cost_breakdown,
)
from claims_workbench.claims.costing import CostEstimator
from claims_workbench.claims.fraud import FraudRiskScorer
from claims_workbench.claims.models import (
    Assessment,
    AssessmentMeta,
    DamagedPart,
    PolicyContext,
    PolicyDecision,
    ValidationResult,
)
from claims_workbench.claims.risk import RiskAggregator, calculate_overall_confidence
from claims_workbench.claims.routing import RecommendationEngine, determine_routing

logger = logging.getLogger(__name__)

PartInput = Union[DamagedPart, Mapping[str, Any]]
ContextInput = Union[PolicyContext, Mapping[str, Any], None]


def coerce_parts(parts: Any) -> tuple[DamagedPart, ...]:
    """
    Convert raw input into DamagedPart values, preserving order.

    Raises:
        InvalidPartsError: If ``parts`` is not a list/tuple or an element is
            neither a DamagedPart nor a valid part mapping.
    """
    if parts is None or not isinstance(parts, (list, tuple)):
        raise InvalidPartsError(
            f"parts must be a list of damaged parts, got {type(parts).__name__}"
        )

    result = []
    for index, part in enumerate(parts):
        if isinstance(part, DamagedPart):
            result.append(part)
        elif isinstance(part, Mapping):
            try:
                result.append(DamagedPart.from_dict(part))
            except InvalidPartsError as e:
                raise InvalidPartsError(f"Invalid part at index {index}: {e}") from e
        else:
            raise InvalidPartsError(
                f"Invalid part at index {index}: expected an object, "
                f"got {type(part).__name__}"
            )
    return tuple(result)


def coerce_context(context: ContextInput) -> PolicyContext:
    if context is None:
        return PolicyContext()
    if isinstance(context, PolicyContext):
        return context
    if isinstance(context, Mapping):
        return PolicyContext.from_dict(context)
    raise InvalidPartsError(
        f"context must be a PolicyContext or mapping, got {type(context).__name__}"
    )


class ClaimsPolicyEngine:
    """
    Applies business rules, routing logic and compliance checks to
    AI-generated damage assessments.

    All thresholds come from the injected PolicyConfig, so tests and
    deployments can vary them without touching module state.
    """

    def __init__(
        self,
        config: Optional[PolicyConfig] = None,
        enable_fraud_detection: bool = True,
    ) -> None:
        self._config = config or PolicyConfig()
        self._enable_fraud_detection = enable_fraud_detection
        self.estimator = CostEstimator(self._config)
        self.risk = RiskAggregator(self._config)
        self.fraud = FraudRiskScorer(self._config)
        self.recommender = RecommendationEngine(self._config)
        self.compliance = ComplianceNotesGenerator(self._config)

    @property
    def config(self) -> PolicyConfig:
        return self._config

    def apply_policy(
        self,
        parts: Sequence[PartInput],
        context: ContextInput = None,
    ) -> PolicyDecision:
        """
        Evaluate a claim's damaged parts.

        Args:
            parts: Detected damaged parts, as DamagedPart values or mappings.
            context: Optional claim reference, historical statistics, user id
                and photo signals.

        Returns:
            PolicyDecision with the assessment, routing instructions and
            compliance notes.

        Raises:
            InvalidPartsError: If ``parts`` is structurally invalid.
        """
        started = time.perf_counter()
        parts = coerce_parts(parts)
        context = coerce_context(context)

        filled = []
        for part in parts:
            if (
                part.estimated_cost_min is not None
                and part.estimated_cost_max is not None
                and not part.has_valid_cost_range
            ):
                logger.warning(
                    "Inverted cost range for part %r (%s > %s); re-estimating",
                    part.part_label, part.estimated_cost_min, part.estimated_cost_max,
                )
            filled.append(self.estimator.with_estimated_costs(part))
        parts = tuple(filled)

        totals = self.estimator.compute_totals_from_parts(parts)
        overall_confidence = calculate_overall_confidence(parts)
        flags = self.risk.collect_risk_flags(
            parts, totals.total_max, overall_confidence, context
        )
        recommendation = self.recommender.determine_recommendation(
            overall_confidence, totals.total_max, flags
        )
        if self._enable_fraud_detection:
            fraud_risk_score = self.fraud.score(parts, context)
            fraud_indicators = tuple(self.fraud.indicators(parts, context))
        else:
            fraud_risk_score, fraud_indicators = None, ()
        image_quality = self.risk.image_quality_notes(parts, context)
        cost_breakdown = generate_cost_breakdown(parts)
        compliance_notes = self.compliance.generate(
            overall_confidence, totals.total_max, flags, fraud_risk_score
        )
        routing = determine_routing(recommendation.code)

        assessment = Assessment(
            damaged_parts=parts,
            total_min=totals.total_min,
            total_max=totals.total_max,
            overall_confidence=overall_confidence,
            recommendation=recommendation,
            flags=flags,
            image_quality=image_quality,
            cost_breakdown=cost_breakdown,
            fraud_risk_score=fraud_risk_score,
            meta=AssessmentMeta(
                model_version=self._config.model_version,
                processing_time_ms=round((time.perf_counter() - started) * 1000, 3),
                timestamp=datetime.now(timezone.utc).isoformat(),
                batch_id=f"user:{context.user_id}" if context.user_id else None,
            ),
        )

        logger.debug(
            "Evaluated claim %s: %d part(s), total %s-%s, confidence %.2f, %s, flags=%s",
            context.claim_id or "-",
            len(parts),
            totals.total_min,
            totals.total_max,
            overall_confidence,
            enum_value(recommendation.code),
            [f.value for f in flags],
        )
        if fraud_indicators:
            logger.info(
                "Fraud indicators for claim %s (score %.2f): %s",
                context.claim_id or "-",
                fraud_risk_score,
                "; ".join(fraud_indicators),
            )

        return PolicyDecision(
            assessment=assessment,
            routing_instructions=routing,
            compliance_notes=compliance_notes,
            fraud_indicators=fraud_indicators,
        )

    def validate_assessment(self, assessment: Assessment) -> ValidationResult:
        """
        Surface semantic problems in an assessment.

        Never raises for semantic issues; callers should treat an invalid
        assessment as provisional and block approval rather than discard it.
        """
        errors: list[str] = []

        if not assessment.damaged_parts:
            errors.append("Assessment must include at least one damaged part.")

        if assessment.total_min > assessment.total_max:
            errors.append("Minimum cost cannot exceed maximum cost.")

        if not 0 <= assessment.overall_confidence <= 1:
            errors.append("Confidence must be between 0 and 1.")

        if not assessment.recommendation.code:
            errors.append("Assessment must include a recommendation code.")

        if assessment.fraud_risk_score is not None and not 0 <= assessment.fraud_risk_score <= 1:
            errors.append("Fraud risk score must be between 0 and 1.")

        for index, part in enumerate(assessment.damaged_parts):
            name = f"Part {index} ({part.part_label})"
            if not 0 <= part.confidence <= 1:
                errors.append(f"{name}: confidence {part.confidence} is outside [0, 1].")
            if part.estimated_cost_min is None or part.estimated_cost_max is None:
                errors.append(f"{name}: cost estimate is missing.")
            elif part.estimated_cost_min > part.estimated_cost_max:
                errors.append(f"{name}: minimum cost exceeds maximum cost.")
            if not isinstance(part.severity, PartSeverity):
                errors.append(f"{name}: unrecognized severity '{part.severity}'.")

        return ValidationResult(valid=not errors, errors=errors)

    def requires_senior_approval(self, assessment: Assessment) -> bool:
        """Senior approval for high exposure, low confidence, structure or fraud."""
        escalation = self._config.escalation
        return (
            assessment.total_max >= escalation.high_exposure_threshold
            or assessment.overall_confidence < escalation.min_confidence
            or RiskFlag.STRUCTURAL_DAMAGE in assessment.flags
            or (
                assessment.fraud_risk_score is not None
                and assessment.fraud_risk_score > self._config.fraud.senior_approval_threshold
            )
        )

    def should_auto_escalate(self, assessment: Assessment, injuries: bool = False) -> bool:
        """Auto-escalate for reported injuries, structural damage or high fraud risk."""
        if injuries:
            return True
        if RiskFlag.STRUCTURAL_DAMAGE in assessment.flags:
            return True
        return (
            assessment.fraud_risk_score is not None
            and assessment.fraud_risk_score > self._config.fraud.auto_escalation_threshold
        )


def apply_policy(
    parts: Sequence[PartInput],
    context: ContextInput = None,
    config: Optional[PolicyConfig] = None,
) -> PolicyDecision:
    """Evaluate parts with a one-off engine."""
    return ClaimsPolicyEngine(config).apply_policy(parts, context)
