"""
Configuration for the damage assessment policy engine.

Business thresholds live in an immutable PolicyConfig that is injected into
the engine at construction time. A deployment retunes fast-track and
escalation behaviour by pointing CLAIMS_POLICY_CONFIG_PATH at a JSON document
using the upper-case section names below, e.g.::

    {
        "FAST_TRACK": {"MIN_CONFIDENCE": 0.85, "MAX_COST": 250000},
        "ESCALATION": {"HIGH_EXPOSURE_THRESHOLD": 500000},
        "COST": {"LABOR_FRACTION": 0.35, "RANGE": {"MAX_MULTIPLIER": 1.25}}
    }

All money values are integer cents.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from claims_workbench.exceptions import PolicyConfigError


# =============================================================================
# Threshold sections
# =============================================================================


@dataclass(frozen=True)
class FastTrackConfig:
    """Claims meeting these criteria can be processed with minimal review."""

    min_confidence: float = 0.8
    max_cost: int = 300_000  # $3,000
    auto_approval_max: int = 150_000  # $1,500


@dataclass(frozen=True)
class EscalationConfig:
    """Claims crossing these values require senior review."""

    min_confidence: float = 0.6
    high_exposure_threshold: int = 300_000  # $3,000
    structural_threshold: int = 500_000  # $5,000
    inspection_threshold: int = 1_000_000  # $10,000
    very_low_confidence: float = 0.5


@dataclass(frozen=True)
class FraudConfig:
    """Heuristic fraud rules and their weights."""

    minor_severity_cost_threshold: int = 100_000  # $1,000
    max_parts_threshold: int = 5
    historical_anomaly_multiplier: float = 2.0
    inconsistent_damage_sd_threshold: float = 0.3
    severity_spread_threshold: float = 0.5
    compliance_notes_threshold: float = 0.5
    auto_escalation_threshold: float = 0.7
    senior_approval_threshold: float = 0.7
    severity_mismatch_weight: float = 0.3
    fragmentation_weight: float = 0.2
    historical_deviation_weight: float = 0.4


@dataclass(frozen=True)
class OverrideConfig:
    """Adjuster override significance thresholds."""

    significant_delta_abs: int = 30_000  # $300
    significant_delta_pct: float = 0.2
    max_override_without_approval: int = 100_000  # $1,000
    max_history: int = 20


@dataclass(frozen=True)
class PhotoConfig:
    """Photo coverage requirements."""

    max_photos: int = 6
    min_photos_recommended: int = 3
    min_photos_required: int = 2


@dataclass(frozen=True)
class ImageQualityConfig:
    """Image quality heuristics."""

    min_score: float = 0.55
    default_score: float = 0.5
    fair_score: float = 0.6
    good_score: float = 0.75
    high_score: float = 0.9
    min_width: int = 1280
    min_height: int = 720
    ideal_width: int = 1920
    ideal_height: int = 1080
    low_part_confidence: float = 0.6


@dataclass(frozen=True)
class ConfidenceBadgeConfig:
    """Display bands for confidence values."""

    excellent: float = 0.85
    good: float = 0.7
    fair: float = 0.5


def _default_base_part_costs() -> dict[str, int]:
    return {
        "rear_bumper": 50_000,
        "trunk_lid": 60_000,
        "rear_left_taillight": 20_000,
        "rear_right_taillight": 20_000,
        "left_quarter_panel": 40_000,
        "frame": 300_000,
    }


def _default_severity_multipliers() -> dict[str, float]:
    return {
        "minor": 0.6,
        "moderate": 1.0,
        "severe": 1.5,
        "replace": 1.8,
        "structural": 2.5,
    }


def _default_damage_type_multipliers() -> dict[str, float]:
    return {
        "scratch": 0.3,
        "scuff": 0.25,
        "dent": 0.6,
        "crack": 0.7,
        "crush": 1.1,
        "tear": 0.8,
        "shatter": 0.9,
        "misalignment": 0.6,
        "structural_compromise": 1.5,
    }


@dataclass(frozen=True)
class CostConfig:
    """
    Cost estimation parameters.

    Lookup tables are keyed by lowercased part ids, severities and damage
    types. Range multipliers must bracket 1.0 so that min <= max holds.
    """

    labor_fraction: float = 0.3
    default_base_part_cost: int = 40_000  # $400
    min_part_cost: int = 10_000  # $100
    range_min_multiplier: float = 0.8
    range_max_multiplier: float = 1.2
    default_damage_type_multiplier: float = 0.5
    damage_type_multiplier_min: float = 0.4
    damage_type_multiplier_max: float = 2.0
    area_normalization_percent: float = 50.0
    area_factor_min: float = 0.3
    area_factor_max: float = 1.5
    base_part_costs: dict[str, int] = field(default_factory=_default_base_part_costs)
    severity_multipliers: dict[str, float] = field(
        default_factory=_default_severity_multipliers
    )
    damage_type_multipliers: dict[str, float] = field(
        default_factory=_default_damage_type_multipliers
    )


# =============================================================================
# PolicyConfig
# =============================================================================


@dataclass(frozen=True)
class PolicyConfig:
    """Complete, immutable set of policy thresholds."""

    fast_track: FastTrackConfig = field(default_factory=FastTrackConfig)
    escalation: EscalationConfig = field(default_factory=EscalationConfig)
    fraud: FraudConfig = field(default_factory=FraudConfig)
    override: OverrideConfig = field(default_factory=OverrideConfig)
    photo: PhotoConfig = field(default_factory=PhotoConfig)
    image_quality: ImageQualityConfig = field(default_factory=ImageQualityConfig)
    confidence_badge: ConfidenceBadgeConfig = field(
        default_factory=ConfidenceBadgeConfig
    )
    cost: CostConfig = field(default_factory=CostConfig)
    model_version: str = "v2.3.1"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PolicyConfig":
        """
        Build a config from a deployment document.

        Missing keys keep their defaults and unknown keys are ignored.

        Raises:
            PolicyConfigError: If a section is not an object or a value has
                the wrong type.
        """
        if not isinstance(data, Mapping):
            raise PolicyConfigError("Policy config must be a JSON object")

        defaults = cls()
        model = _section(data, "MODEL")
        model_version = model.get("VERSION", defaults.model_version)
        if not isinstance(model_version, str):
            raise PolicyConfigError("MODEL.VERSION must be a string")

        return cls(
            fast_track=_apply(defaults.fast_track, _section(data, "FAST_TRACK"), "FAST_TRACK"),
            escalation=_apply(defaults.escalation, _section(data, "ESCALATION"), "ESCALATION"),
            fraud=_apply(defaults.fraud, _section(data, "FRAUD"), "FRAUD"),
            override=_apply(defaults.override, _section(data, "OVERRIDE"), "OVERRIDE"),
            photo=_apply(defaults.photo, _section(data, "PHOTO"), "PHOTO"),
            image_quality=_image_quality_from_dict(
                defaults.image_quality, _section(data, "IMAGE_QUALITY")
            ),
            confidence_badge=_apply(
                defaults.confidence_badge,
                _section(data, "CONFIDENCE_BADGE"),
                "CONFIDENCE_BADGE",
            ),
            cost=_cost_from_dict(defaults.cost, _section(data, "COST")),
            model_version=model_version,
        )


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, Mapping):
        raise PolicyConfigError(f"{name} must be an object")
    return value


# Fields where zero has no usable meaning
_POSITIVE_FIELDS = {"area_normalization_percent", "max_history", "min_width",
                    "min_height", "ideal_width", "ideal_height"}


def _number(value: Any, path: str, integer: bool = False, positive: bool = False) -> float:
    """
    Validate a config number.

    Every threshold is non-negative; ``positive`` also rejects zero.
    ``integer`` accepts whole floats such as ``20.0`` and returns an int.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PolicyConfigError(f"{path} must be a number, got {value!r}")
    if integer:
        if isinstance(value, float) and not value.is_integer():
            raise PolicyConfigError(f"{path} must be an integer, got {value!r}")
        value = int(value)
    if value < 0 or (positive and value == 0):
        qualifier = "positive" if positive else "non-negative"
        raise PolicyConfigError(f"{path} must be {qualifier}, got {value!r}")
    return value


def _field_number(default: Any, field_name: str, value: Any, path: str) -> float:
    """Validate ``value`` against the declared type of a section field."""
    declared = {f.name: f.type for f in fields(default)}[field_name]
    return _number(
        value,
        path,
        integer=declared in ("int", int),
        positive=field_name in _POSITIVE_FIELDS,
    )


def _apply(default: Any, section: Mapping[str, Any], name: str) -> Any:
    """Override scalar fields of a section dataclass from upper-case keys."""
    changes = {}
    for f in fields(default):
        key = f.name.upper()
        if key in section:
            changes[f.name] = _field_number(default, f.name, section[key], f"{name}.{key}")
    return replace(default, **changes)


def _table(value: Any, path: str) -> dict[str, float]:
    if not isinstance(value, Mapping):
        raise PolicyConfigError(f"{path} must be an object")
    return {str(k).lower(): _number(v, f"{path}.{k}") for k, v in value.items()}


def _image_quality_from_dict(
    default: ImageQualityConfig, section: Mapping[str, Any]
) -> ImageQualityConfig:
    changes: dict[str, Any] = {}
    for key, field_name in (
        ("MIN_SCORE", "min_score"),
        ("DEFAULT_SCORE", "default_score"),
        ("FAIR_SCORE", "fair_score"),
        ("GOOD_SCORE", "good_score"),
        ("HIGH_SCORE", "high_score"),
        ("LOW_PART_CONFIDENCE", "low_part_confidence"),
    ):
        if key in section:
            changes[field_name] = _field_number(
                default, field_name, section[key], f"IMAGE_QUALITY.{key}"
            )

    for key, prefix in (("MIN_RESOLUTION", "min"), ("IDEAL_RESOLUTION", "ideal")):
        if key in section:
            resolution = section[key]
            if not isinstance(resolution, Mapping):
                raise PolicyConfigError(f"IMAGE_QUALITY.{key} must be an object")
            for dim in ("width", "height"):
                if dim in resolution:
                    field_name = f"{prefix}_{dim}"
                    changes[field_name] = _field_number(
                        default, field_name, resolution[dim],
                        f"IMAGE_QUALITY.{key}.{dim}",
                    )
    return replace(default, **changes)


def _cost_from_dict(default: CostConfig, section: Mapping[str, Any]) -> CostConfig:
    changes: dict[str, Any] = {}
    for key, field_name in (
        ("LABOR_FRACTION", "labor_fraction"),
        ("DEFAULT_BASE_PART_COST", "default_base_part_cost"),
        ("MIN_PART_COST", "min_part_cost"),
        ("DEFAULT_DAMAGE_TYPE_MULTIPLIER", "default_damage_type_multiplier"),
    ):
        if key in section:
            changes[field_name] = _field_number(
                default, field_name, section[key], f"COST.{key}"
            )

    nested = {
        "RANGE": (("MIN_MULTIPLIER", "range_min_multiplier"),
                  ("MAX_MULTIPLIER", "range_max_multiplier")),
        "DAMAGE_TYPE_MULTIPLIER": (("MIN", "damage_type_multiplier_min"),
                                   ("MAX", "damage_type_multiplier_max")),
        "AREA_FACTOR": (("NORMALIZATION_PERCENT", "area_normalization_percent"),
                        ("MIN", "area_factor_min"),
                        ("MAX", "area_factor_max")),
    }
    for group, keys in nested.items():
        sub = _section(section, group)
        for key, field_name in keys:
            if key in sub:
                changes[field_name] = _field_number(
                    default, field_name, sub[key], f"COST.{group}.{key}"
                )

    # Tables merge over the defaults so a deployment can add single entries
    for key, field_name in (
        ("BASE_PART_COSTS", "base_part_costs"),
        ("SEVERITY_MULTIPLIERS", "severity_multipliers"),
        ("DAMAGE_TYPE_MULTIPLIERS", "damage_type_multipliers"),
    ):
        if key in section:
            merged = dict(getattr(default, field_name))
            merged.update(_table(section[key], f"COST.{key}"))
            changes[field_name] = merged

    config = replace(default, **changes)
    if config.range_min_multiplier > config.range_max_multiplier:
        raise PolicyConfigError(
            "COST.RANGE.MIN_MULTIPLIER must not exceed COST.RANGE.MAX_MULTIPLIER"
        )
    return config


def load_policy_config(path: str | Path) -> PolicyConfig:
    """
    Load policy thresholds from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        PolicyConfigError: If the file is not valid JSON or has a bad structure.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Policy config file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise PolicyConfigError(f"Invalid JSON in {path}: {e}") from e

    return PolicyConfig.from_dict(data)


# =============================================================================
# Environment settings
# =============================================================================


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class EngineSettings:
    """Runtime settings for the policy engine, loaded from the environment."""

    policy_config_path: Optional[str] = None
    enable_fraud_detection: bool = True
    model_version: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Load settings from environment variables."""
        return cls(
            policy_config_path=os.getenv("CLAIMS_POLICY_CONFIG_PATH") or None,
            enable_fraud_detection=_env_bool("CLAIMS_ENABLE_FRAUD_DETECTION", True),
            model_version=os.getenv("CLAIMS_MODEL_VERSION") or None,
            log_level=os.getenv("CLAIMS_LOG_LEVEL", "INFO"),
        )


def load_settings() -> EngineSettings:
    """Load settings, reading a local .env file first if present."""
    load_dotenv()
    return EngineSettings.from_env()


def load_engine_config(settings: Optional[EngineSettings] = None) -> PolicyConfig:
    """Resolve the PolicyConfig for the given settings."""
    settings = settings or load_settings()
    config = (
        load_policy_config(settings.policy_config_path)
        if settings.policy_config_path
        else PolicyConfig()
    )
    if settings.model_version:
        config = replace(config, model_version=settings.model_version)
    return config
