"""
Tests for Phase 1: Configuration & Constants
Feature: damage-assessment-policy-engine

Tests cover:
- PolicyConfig defaults and JSON overrides
- Policy config file loading and error handling
- EngineSettings environment variables
- Severity / part id normalization
- Logging setup
"""
import json
from pathlib import Path

import pytest

from claims_workbench.config import (
    CostConfig,
    EngineSettings,
    PolicyConfig,
    load_engine_config,
    load_policy_config,
)
from claims_workbench.constants import (
    PartSeverity,
    RecommendationCode,
    RiskFlag,
    VehiclePart,
    is_known_severity,
    parse_part_id,
    parse_severity,
)
from claims_workbench.exceptions import PolicyConfigError


PROJECT_ROOT = Path(__file__).parent.parent


# =============================================================================
# PolicyConfig
# =============================================================================


class TestPolicyConfigDefaults:
    """Tests for built-in threshold defaults."""

    def test_fast_track_defaults(self):
        """Fast-track thresholds default to 0.8 confidence and $3,000."""
        config = PolicyConfig()
        assert config.fast_track.min_confidence == 0.8
        assert config.fast_track.max_cost == 300000

    def test_escalation_defaults(self):
        """Escalation thresholds use the centralized values."""
        config = PolicyConfig()
        assert config.escalation.min_confidence == 0.6
        assert config.escalation.high_exposure_threshold == 300000
        assert config.escalation.inspection_threshold == 1000000

    def test_cost_defaults(self):
        """Cost tables include the known parts and severities."""
        cost = PolicyConfig().cost
        assert cost.base_part_costs["rear_bumper"] == 50000
        assert cost.base_part_costs["frame"] == 300000
        assert cost.severity_multipliers["structural"] == 2.5
        assert cost.labor_fraction == 0.3
        assert cost.range_min_multiplier <= 1 <= cost.range_max_multiplier

    def test_config_is_immutable(self):
        """Config sections cannot be reassigned."""
        config = PolicyConfig()
        with pytest.raises(Exception):
            config.fast_track.max_cost = 1

    def test_instances_do_not_share_tables(self):
        """Each CostConfig gets its own lookup tables."""
        assert CostConfig().base_part_costs is not CostConfig().base_part_costs


class TestPolicyConfigFromDict:
    """Tests for building config from a deployment document."""

    def test_empty_document_gives_defaults(self):
        """An empty document yields the default config."""
        assert PolicyConfig.from_dict({}) == PolicyConfig()

    def test_override_single_threshold(self):
        """A single key overrides only that threshold."""
        config = PolicyConfig.from_dict({"FAST_TRACK": {"MAX_COST": 250000}})
        assert config.fast_track.max_cost == 250000
        assert config.fast_track.min_confidence == 0.8

    def test_override_nested_cost_values(self):
        """Nested cost groups and tables are applied."""
        config = PolicyConfig.from_dict({
            "COST": {
                "RANGE": {"MAX_MULTIPLIER": 1.25},
                "AREA_FACTOR": {"MAX": 2.0},
                "SEVERITY_MULTIPLIERS": {"MINOR": 0.5},
                "BASE_PART_COSTS": {"HOOD": 70000},
            }
        })
        assert config.cost.range_max_multiplier == 1.25
        assert config.cost.area_factor_max == 2.0
        assert config.cost.severity_multipliers["minor"] == 0.5
        # Tables merge over the defaults
        assert config.cost.severity_multipliers["moderate"] == 1.0
        assert config.cost.base_part_costs["hood"] == 70000
        assert config.cost.base_part_costs["rear_bumper"] == 50000

    def test_override_resolution(self):
        """Image resolution thresholds are read from width/height objects."""
        config = PolicyConfig.from_dict(
            {"IMAGE_QUALITY": {"MIN_RESOLUTION": {"width": 1024, "height": 768}}}
        )
        assert config.image_quality.min_width == 1024
        assert config.image_quality.min_height == 768

    def test_model_version(self):
        """MODEL.VERSION sets the model version."""
        config = PolicyConfig.from_dict({"MODEL": {"VERSION": "v3.0.0"}})
        assert config.model_version == "v3.0.0"

    def test_unknown_keys_ignored(self):
        """Unknown sections and keys are ignored."""
        config = PolicyConfig.from_dict(
            {"RATE_LIMITS": {"USER_PER_MINUTE": 60}, "FAST_TRACK": {"COLOR": 1}}
        )
        assert config == PolicyConfig()

    def test_non_numeric_value_raises(self):
        """A non-numeric threshold is rejected."""
        with pytest.raises(PolicyConfigError, match="FAST_TRACK.MAX_COST"):
            PolicyConfig.from_dict({"FAST_TRACK": {"MAX_COST": "lots"}})

    def test_boolean_value_raises(self):
        """Booleans are not accepted as numbers."""
        with pytest.raises(PolicyConfigError):
            PolicyConfig.from_dict({"ESCALATION": {"MIN_CONFIDENCE": True}})

    def test_section_must_be_object(self):
        """A section that is not an object is rejected."""
        with pytest.raises(PolicyConfigError):
            PolicyConfig.from_dict({"ESCALATION": [0.6]})

    def test_inverted_range_multipliers_raise(self):
        """Range multipliers must keep min <= max."""
        with pytest.raises(PolicyConfigError):
            PolicyConfig.from_dict(
                {"COST": {"RANGE": {"MIN_MULTIPLIER": 1.3, "MAX_MULTIPLIER": 1.1}}}
            )

    def test_negative_threshold_raises(self):
        """Thresholds cannot be negative."""
        with pytest.raises(PolicyConfigError, match="FAST_TRACK.MAX_COST"):
            PolicyConfig.from_dict({"FAST_TRACK": {"MAX_COST": -1}})

    def test_zero_normalization_raises(self):
        """A zero area normalization would divide by zero."""
        with pytest.raises(PolicyConfigError, match="positive"):
            PolicyConfig.from_dict({"COST": {"AREA_FACTOR": {"NORMALIZATION_PERCENT": 0}}})

    def test_fractional_integer_field_raises(self):
        """Integer fields reject fractional values."""
        with pytest.raises(PolicyConfigError, match="OVERRIDE.MAX_HISTORY"):
            PolicyConfig.from_dict({"OVERRIDE": {"MAX_HISTORY": 2.5}})

    def test_whole_float_integer_field_accepted(self):
        """A whole float is coerced for an integer field."""
        config = PolicyConfig.from_dict({"OVERRIDE": {"MAX_HISTORY": 10.0}})
        assert config.override.max_history == 10
        assert isinstance(config.override.max_history, int)

    def test_document_must_be_object(self):
        """A top-level list is rejected."""
        with pytest.raises(PolicyConfigError):
            PolicyConfig.from_dict([])


class TestLoadPolicyConfig:
    """Tests for loading policy config files."""

    def test_shipped_config_matches_defaults(self):
        """config/claims-policy.json mirrors the built-in defaults."""
        config = load_policy_config(PROJECT_ROOT / "config" / "claims-policy.json")
        assert config == PolicyConfig()

    def test_load_from_file(self, tmp_path):
        """Thresholds are read from a JSON file."""
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"ESCALATION": {"HIGH_EXPOSURE_THRESHOLD": 500000}}))

        config = load_policy_config(path)

        assert config.escalation.high_exposure_threshold == 500000

    def test_missing_file_raises(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_policy_config(tmp_path / "missing.json")

    def test_invalid_json_raises(self, tmp_path):
        """Invalid JSON raises PolicyConfigError."""
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(PolicyConfigError):
            load_policy_config(path)


# =============================================================================
# EngineSettings
# =============================================================================


class TestEngineSettings:
    """Tests for environment-driven settings."""

    ENV_VARS = [
        "CLAIMS_POLICY_CONFIG_PATH",
        "CLAIMS_ENABLE_FRAUD_DETECTION",
        "CLAIMS_MODEL_VERSION",
        "CLAIMS_LOG_LEVEL",
    ]

    def test_defaults(self, monkeypatch):
        """Settings have sensible defaults."""
        for var in self.ENV_VARS:
            monkeypatch.delenv(var, raising=False)

        settings = EngineSettings.from_env()

        assert settings.policy_config_path is None
        assert settings.enable_fraud_detection is True
        assert settings.model_version is None
        assert settings.log_level == "INFO"

    def test_loads_from_env(self, monkeypatch):
        """Settings are read from environment variables."""
        monkeypatch.setenv("CLAIMS_POLICY_CONFIG_PATH", "/etc/claims/policy.json")
        monkeypatch.setenv("CLAIMS_ENABLE_FRAUD_DETECTION", "false")
        monkeypatch.setenv("CLAIMS_MODEL_VERSION", "v9")
        monkeypatch.setenv("CLAIMS_LOG_LEVEL", "DEBUG")

        settings = EngineSettings.from_env()

        assert settings.policy_config_path == "/etc/claims/policy.json"
        assert settings.enable_fraud_detection is False
        assert settings.model_version == "v9"
        assert settings.log_level == "DEBUG"

    def test_engine_config_from_settings(self, tmp_path):
        """load_engine_config reads the file and applies the model version."""
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"FAST_TRACK": {"MIN_CONFIDENCE": 0.9}}))
        settings = EngineSettings(policy_config_path=str(path), model_version="v4.1")

        config = load_engine_config(settings)

        assert config.fast_track.min_confidence == 0.9
        assert config.model_version == "v4.1"

    def test_engine_config_defaults_without_path(self):
        """No configured path yields the default config."""
        assert load_engine_config(EngineSettings()) == PolicyConfig()


# =============================================================================
# Constants
# =============================================================================


class TestNormalization:
    """Tests for severity and part id normalization."""

    def test_known_severity_normalized(self):
        """Severity labels are trimmed and lowercased."""
        assert parse_severity(" Moderate ") is PartSeverity.MODERATE
        assert parse_severity("STRUCTURAL") is PartSeverity.STRUCTURAL

    def test_unknown_severity_kept_as_string(self):
        """Unknown severities keep the original text."""
        assert parse_severity("cosmetic") == "cosmetic"
        assert not is_known_severity("cosmetic")

    def test_part_id_normalized(self):
        """Part ids match the enum case-insensitively."""
        assert parse_part_id("FRAME") is VehiclePart.FRAME
        assert parse_part_id("rear_bumper") is VehiclePart.REAR_BUMPER

    def test_free_text_part_id(self):
        """Unknown part ids are kept as free text."""
        assert parse_part_id("Hood") == "Hood"

    def test_closed_vocabularies(self):
        """Recommendation codes and risk flags are closed enumerations."""
        assert {c.value for c in RecommendationCode} == {
            "FAST_TRACK_REVIEW",
            "MANUAL_REVIEW",
            "ESCALATE_SENIOR",
            "ESCALATE_STRUCTURAL",
        }
        assert {f.value for f in RiskFlag} == {
            "LOW_CONFIDENCE",
            "HIGH_EXPOSURE",
            "STRUCTURAL_DAMAGE",
            "MISSING_ANGLES",
            "INCONSISTENT_DAMAGE",
        }


class TestLogging:
    """Tests for logging setup."""

    def test_setup_logging_installs_single_handler(self):
        """Repeated setup does not stack handlers."""
        from claims_workbench.utils import setup_logging

        logger = setup_logging()
        setup_logging("DEBUG")

        assert logger.name == "claims_workbench"
        ours = [h for h in logger.handlers if h.get_name() == "claims_workbench"]
        assert len(ours) == 1
        assert logger.level == 10  # DEBUG
        setup_logging("INFO")
