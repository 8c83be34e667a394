#!/usr/bin/env python
"""
Assess Claim Script

Runs the damage assessment policy engine over a JSON file of detected parts
and prints the decision.

Input file format:
    {
        "parts": [{"part_id": "rear_bumper", "part_label": "Rear bumper",
                   "severity": "moderate", "confidence": 0.85}],
        "context": {"userId": "adj-42", "photoCount": 4}
    }

A bare list is accepted as the parts list.

Usage:
    python scripts/assess_claim.py claim.json
    python scripts/assess_claim.py claim.json --config config/claims-policy.json --validate
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from claims_workbench.claims.engine import ClaimsPolicyEngine
from claims_workbench.config import load_engine_config, load_policy_config, load_settings
from claims_workbench.exceptions import ClaimsEngineError
from claims_workbench.utils import setup_logging

logger = setup_logging()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Evaluate detected vehicle damage against claim policy",
    )
    parser.add_argument("input", help="JSON file with parts and optional context")
    parser.add_argument(
        "--config",
        help="Policy config JSON (default: CLAIMS_POLICY_CONFIG_PATH or built-in defaults)",
    )
    parser.add_argument(
        "--validate",
        action="store_true",
        help="Also print validation and approval checks",
    )
    parser.add_argument(
        "--no-fraud",
        action="store_true",
        help="Disable fraud risk scoring",
    )
    args = parser.parse_args(argv)

    input_path = Path(args.input)
    if not input_path.exists():
        logger.error("Input file not found: %s", input_path)
        return 1

    try:
        with open(input_path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        logger.error("Invalid JSON in %s: %s", input_path, e)
        return 1

    if isinstance(payload, list):
        parts, context = payload, None
    else:
        parts, context = payload.get("parts"), payload.get("context")

    settings = load_settings()
    try:
        config = load_policy_config(args.config) if args.config else load_engine_config(settings)
        engine = ClaimsPolicyEngine(
            config,
            enable_fraud_detection=settings.enable_fraud_detection and not args.no_fraud,
        )
        decision = engine.apply_policy(parts, context)
    except (ClaimsEngineError, FileNotFoundError) as e:
        logger.error("Assessment failed: %s", e)
        return 1

    output = decision.to_dict()
    if args.validate:
        assessment = decision.assessment
        output["validation"] = engine.validate_assessment(assessment).to_dict()
        output["requiresSeniorApproval"] = engine.requires_senior_approval(assessment)
        output["shouldAutoEscalate"] = engine.should_auto_escalate(
            assessment, injuries=bool(context and context.get("injuries"))
        )

    print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
