"""
Damage Assessment API Router

Thin HTTP layer over the claims policy engine. The engine does no I/O;
persisting decisions and audit entries is left to the calling service.

Endpoints:
- POST /api/claims/assess                 Evaluate detected parts
- POST /api/claims/validate               Validate an existing assessment
- POST /api/claims/override               Replace a part and recompute totals
- GET  /api/claims/routing/{code}         Routing instructions for a code
- GET  /api/claims/health                 Health check
"""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from claims_workbench.config import load_engine_config, load_settings
from claims_workbench.constants import RecommendationCode
from claims_workbench.exceptions import InvalidPartsError, OverrideError
from claims_workbench.claims.engine import ClaimsPolicyEngine
from claims_workbench.claims.models import Assessment, DamagedPart
from claims_workbench.claims.overrides import is_significant_override, override_part
from claims_workbench.claims.routing import determine_routing
from claims_workbench.utils import setup_logging

logger = setup_logging()

router = APIRouter(prefix="/api/claims", tags=["Damage Assessment"])


# =============================================================================
# Request / response models
# =============================================================================


class AssessRequest(BaseModel):
    parts: List[Dict[str, Any]]
    context: Optional[Dict[str, Any]] = None


class ValidateRequest(BaseModel):
    assessment: Dict[str, Any]
    injuries: bool = False


class ValidateResponse(BaseModel):
    valid: bool
    errors: List[str]
    requires_senior_approval: bool
    should_auto_escalate: bool


class OverrideRequest(BaseModel):
    assessment: Dict[str, Any]
    index: int
    part: Dict[str, Any]
    notes: Optional[str] = None


class OverrideResponse(BaseModel):
    assessment: Dict[str, Any]
    significant: bool
    previous_total_max: float


# =============================================================================
# Dependencies
# =============================================================================


@lru_cache(maxsize=1)
def get_engine() -> ClaimsPolicyEngine:
    """Engine configured from the environment, built once per process."""
    settings = load_settings()
    config = load_engine_config(settings)
    logger.info(
        "Claims policy engine ready (model %s, fraud detection %s)",
        config.model_version,
        "on" if settings.enable_fraud_detection else "off",
    )
    return ClaimsPolicyEngine(config, enable_fraud_detection=settings.enable_fraud_detection)


# =============================================================================
# Routes
# =============================================================================


@router.post("/assess")
def assess_claim(
    request: AssessRequest,
    engine: ClaimsPolicyEngine = Depends(get_engine),
) -> Dict[str, Any]:
    """Run the policy engine over detected damaged parts."""
    try:
        decision = engine.apply_policy(request.parts, request.context)
    except InvalidPartsError as e:
        logger.warning("Rejected assessment request: %s", e)
        raise HTTPException(status_code=400, detail=str(e))

    assessment = decision.assessment
    logger.info(
        "Assessment complete: %s, total_max=%s, flags=%s",
        assessment.recommendation.code.value,
        assessment.total_max,
        [f.value for f in assessment.flags],
    )
    return decision.to_dict()


@router.post("/validate", response_model=ValidateResponse)
def validate_assessment(
    request: ValidateRequest,
    engine: ClaimsPolicyEngine = Depends(get_engine),
) -> ValidateResponse:
    """Validate an assessment and report approval/escalation requirements."""
    try:
        assessment = Assessment.from_dict(request.assessment)
    except InvalidPartsError as e:
        raise HTTPException(status_code=400, detail=str(e))

    result = engine.validate_assessment(assessment)
    return ValidateResponse(
        valid=result.valid,
        errors=result.errors,
        requires_senior_approval=engine.requires_senior_approval(assessment),
        should_auto_escalate=engine.should_auto_escalate(
            assessment, injuries=request.injuries
        ),
    )


@router.post("/override", response_model=OverrideResponse)
def override_assessment_part(
    request: OverrideRequest,
    engine: ClaimsPolicyEngine = Depends(get_engine),
) -> OverrideResponse:
    """Replace one part of an assessment and recompute its totals."""
    try:
        assessment = Assessment.from_dict(request.assessment)
        part = DamagedPart.from_dict(request.part)
        updated = override_part(assessment, request.index, part, engine.estimator)
    except InvalidPartsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OverrideError as e:
        raise HTTPException(status_code=404, detail=str(e))

    significant = is_significant_override(
        assessment.total_max, updated.total_max, engine.config
    )
    logger.info(
        "Part %d overridden: total_max %s -> %s%s",
        request.index,
        assessment.total_max,
        updated.total_max,
        " (significant)" if significant else "",
    )
    return OverrideResponse(
        assessment=updated.to_dict(),
        significant=significant,
        previous_total_max=assessment.total_max,
    )


@router.get("/routing/{code}")
def get_routing(code: str) -> Dict[str, Any]:
    """Routing instructions for a recommendation code."""
    try:
        recommendation = RecommendationCode(code.upper())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown recommendation code: {code}")
    return determine_routing(recommendation).to_dict()


@router.get("/health")
def health_check() -> Dict[str, Any]:
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}
