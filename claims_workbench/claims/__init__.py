"""
Damage Assessment Policy Engine Package

This package converts AI-generated vehicle-damage observations into a routed,
auditable claim decision.

Modules:
- models: Value objects (parts, assessment, context, routing)
- costing: Part cost range estimation and claim totals
- risk: Overall confidence, risk flags and image-quality notes
- fraud: Heuristic fraud risk score
- routing: Recommendation decision and routing lookup
- compliance: Compliance notes and cost breakdown narrative
- engine: The ``apply_policy`` facade and assessment checks
- overrides: Adjuster overrides, history and audit trail
- api: FastAPI router (imported lazily)
"""

from claims_workbench.claims.models import (
    Assessment,
    AssessmentMeta,
    ClaimTotals,
    CostBreakdownItem,
    CostRange,
    DamagedPart,
    DamageTypeDetail,
    HistoricalData,
    PhotoMeta,
    PolicyContext,
    PolicyDecision,
    Recommendation,
    RoutingInstructions,
    ValidationResult,
)
from claims_workbench.claims.costing import (
    CostEstimator,
    format_cost,
    format_cost_range,
)
from claims_workbench.claims.risk import RiskAggregator, calculate_overall_confidence
from claims_workbench.claims.fraud import FraudRiskScorer
from claims_workbench.claims.routing import RecommendationEngine, determine_routing
from claims_workbench.claims.compliance import (
    ComplianceNotesGenerator,
    generate_cost_breakdown,
)
from claims_workbench.claims.engine import ClaimsPolicyEngine, apply_policy
from claims_workbench.claims.overrides import (
    AssessmentHistory,
    AuditLogEntry,
    AuditTrail,
    add_part,
    is_significant_override,
    override_part,
    remove_part,
    requires_override_approval,
)


# API router is imported lazily so the engine stays usable without FastAPI loaded
def get_claims_api_router():
    """Get the damage assessment API router."""
    from claims_workbench.claims.api import router
    return router


__all__ = [
    # Models
    "Assessment",
    "AssessmentMeta",
    "ClaimTotals",
    "CostBreakdownItem",
    "CostRange",
    "DamagedPart",
    "DamageTypeDetail",
    "HistoricalData",
    "PhotoMeta",
    "PolicyContext",
    "PolicyDecision",
    "Recommendation",
    "RoutingInstructions",
    "ValidationResult",
    # Components
    "CostEstimator",
    "RiskAggregator",
    "FraudRiskScorer",
    "RecommendationEngine",
    "ComplianceNotesGenerator",
    "ClaimsPolicyEngine",
    # Functions
    "apply_policy",
    "calculate_overall_confidence",
    "determine_routing",
    "format_cost",
    "format_cost_range",
    "generate_cost_breakdown",
    # Overrides
    "AssessmentHistory",
    "AuditLogEntry",
    "AuditTrail",
    "add_part",
    "override_part",
    "remove_part",
    "is_significant_override",
    "requires_override_approval",
    # API Router (lazy loading)
    "get_claims_api_router",
]
