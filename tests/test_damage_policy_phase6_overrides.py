"""
Tests for Phase 6: Adjuster Overrides, History & Audit Trail
Feature: damage-assessment-policy-engine

Tests cover:
- Part override, add and remove with total recomputation
- Override significance and approval limits
- Undo/redo history
- Audit trail recording and export
"""
import json

import pytest

from claims_workbench.config import OverrideConfig, PolicyConfig
from claims_workbench.constants import AuditActionType, RecommendationCode, RiskFlag
from claims_workbench.exceptions import OverrideError
from claims_workbench.claims.engine import ClaimsPolicyEngine
from claims_workbench.claims.models import DamagedPart
from claims_workbench.claims.overrides import (
    AssessmentHistory,
    AuditTrail,
    add_part,
    is_significant_override,
    override_part,
    remove_part,
    requires_override_approval,
)


@pytest.fixture
def assessment():
    """Fast-tracked single rear bumper, total $520-$780."""
    decision = ClaimsPolicyEngine().apply_policy([{
        "part_id": "rear_bumper",
        "part_label": "Rear bumper",
        "severity": "moderate",
        "confidence": 0.85,
    }])
    return decision.assessment


@pytest.fixture
def trunk_lid():
    return DamagedPart("trunk_lid", "Trunk lid", "moderate", 0.75)


# =============================================================================
# Part edits
# =============================================================================


class TestOverridePart:
    """Tests for override_part."""

    def test_override_recomputes_totals(self, assessment):
        """Replacing a part recomputes totals from the new range."""
        adjusted = DamagedPart(
            "rear_bumper", "Rear bumper", "severe", 0.95,
            estimated_cost_min=100000, estimated_cost_max=150000,
        )
        updated = override_part(assessment, 0, adjusted)

        assert updated.total_min == 130000
        assert updated.total_max == 195000
        assert updated.overall_confidence == 0.95
        assert updated.cost_breakdown[0].details[1] == "Range: $1000 - $1500"

    def test_original_untouched(self, assessment, trunk_lid):
        """Overrides return a new assessment."""
        override_part(assessment, 0, trunk_lid)
        assert assessment.total_max == 78000
        assert assessment.damaged_parts[0].part_label == "Rear bumper"

    def test_decision_fields_kept(self, assessment, trunk_lid):
        """Flags and recommendation are not re-derived by an override."""
        updated = override_part(assessment, 0, trunk_lid)
        assert updated.recommendation.code == RecommendationCode.FAST_TRACK_REVIEW
        assert updated.flags == assessment.flags
        assert updated.meta == assessment.meta

    def test_override_fills_missing_costs(self, assessment, trunk_lid):
        """A part without a range is estimated on override."""
        updated = override_part(assessment, 0, trunk_lid)
        assert updated.damaged_parts[0].estimated_cost_min == 48000
        assert updated.damaged_parts[0].estimated_cost_max == 72000
        assert updated.total_max == 93600

    @pytest.mark.parametrize("index", [1, -1, 10])
    def test_index_out_of_range(self, assessment, trunk_lid, index):
        """Overriding a missing part raises OverrideError."""
        with pytest.raises(OverrideError):
            override_part(assessment, index, trunk_lid)

    def test_override_error_is_index_error(self, assessment, trunk_lid):
        with pytest.raises(IndexError):
            override_part(assessment, 3, trunk_lid)


class TestAddRemovePart:
    """Tests for add_part and remove_part."""

    def test_add_part(self, assessment, trunk_lid):
        """Adding a part adds its cost and confidence."""
        updated = add_part(assessment, trunk_lid)

        assert len(updated.damaged_parts) == 2
        assert updated.total_min == 114400
        assert updated.total_max == 171600
        assert updated.overall_confidence == 0.8
        assert [c.label for c in updated.cost_breakdown] == ["Rear bumper", "Trunk lid"]

    def test_remove_part(self, assessment, trunk_lid):
        """Removing a part subtracts its cost."""
        updated = remove_part(add_part(assessment, trunk_lid), 0)

        assert [p.part_label for p in updated.damaged_parts] == ["Trunk lid"]
        assert updated.total_max == 93600

    def test_remove_last_part(self, assessment):
        """Removing every part leaves zero totals."""
        updated = remove_part(assessment, 0)
        assert updated.damaged_parts == ()
        assert updated.total_min == 0
        assert updated.total_max == 0
        assert updated.overall_confidence == 0

    def test_remove_missing_part(self, assessment):
        with pytest.raises(OverrideError):
            remove_part(assessment, 1)


# =============================================================================
# Significance
# =============================================================================


class TestOverrideSignificance:
    """Tests for is_significant_override and requires_override_approval."""

    def test_large_absolute_change(self):
        """A change over $300 is significant."""
        assert is_significant_override(100000, 135000)

    def test_small_change(self):
        """A $100 / 10% change is not significant."""
        assert not is_significant_override(100000, 110000)

    def test_large_relative_change(self):
        """A change over 20% is significant even when small in dollars."""
        assert is_significant_override(50000, 65000)

    def test_zero_original_uses_absolute_only(self):
        """With a zero original only the absolute delta counts."""
        assert not is_significant_override(0, 20000)
        assert is_significant_override(0, 40000)

    def test_decrease_counts(self):
        """Reductions are measured by magnitude."""
        assert is_significant_override(100000, 60000)

    def test_injected_thresholds(self):
        config = PolicyConfig(override=OverrideConfig(significant_delta_abs=50000))
        assert not is_significant_override(200000, 235000, config)

    def test_requires_override_approval(self):
        """Moves over $1,000 need approval."""
        assert requires_override_approval(100000, 250000)
        assert not requires_override_approval(100000, 150000)
        assert not requires_override_approval(100000, 200000)


# =============================================================================
# History
# =============================================================================


class TestAssessmentHistory:
    """Tests for AssessmentHistory."""

    def test_empty_history(self):
        history = AssessmentHistory()
        assert history.current is None
        assert not history.can_undo()
        assert not history.can_redo()
        assert history.undo() is None

    def test_undo_redo(self, assessment, trunk_lid):
        """Undo and redo move between snapshots."""
        history = AssessmentHistory()
        added = add_part(assessment, trunk_lid)
        history.push(assessment, "Initial assessment")
        history.push(added, "Added trunk lid")

        assert history.current is added
        assert history.undo() is assessment
        assert history.can_redo()
        assert history.redo() is added
        assert not history.can_redo()

    def test_push_discards_redo_branch(self, assessment, trunk_lid):
        """Pushing after an undo drops the undone snapshots."""
        history = AssessmentHistory()
        history.push(assessment, "Initial")
        history.push(add_part(assessment, trunk_lid), "Added")
        history.undo()
        removed = remove_part(assessment, 0)
        history.push(removed, "Removed")

        assert history.descriptions == ["Initial", "Removed"]
        assert history.current is removed
        assert not history.can_redo()

    def test_bounded(self, assessment):
        """Only the newest snapshots are kept."""
        history = AssessmentHistory(max_entries=2)
        for i in range(3):
            history.push(assessment, f"step {i}")

        assert len(history) == 2
        assert history.descriptions == ["step 1", "step 2"]

    def test_default_bound(self, assessment):
        history = AssessmentHistory()
        for i in range(25):
            history.push(assessment, str(i))
        assert len(history) == 20


# =============================================================================
# Audit trail
# =============================================================================


class TestAuditTrail:
    """Tests for AuditTrail."""

    def test_record_entries(self):
        """Entries carry claim, user, action and metadata."""
        trail = AuditTrail(claim_id="CLM-1001", user_id="adj-7")
        entry = trail.record(
            AuditActionType.OVERRIDE,
            "Rear bumper changed to severe",
            {"previous_total_max": 78000, "new_total_max": 195000},
        )

        assert trail.entries == (entry,)
        assert entry.claim_id == "CLM-1001"
        assert entry.user_id == "adj-7"
        assert entry.action_type == AuditActionType.OVERRIDE
        assert entry.metadata["new_total_max"] == 195000

    def test_entry_ids_unique(self):
        trail = AuditTrail()
        first = trail.record(AuditActionType.ASSESSMENT_RUN, "Assessment run")
        second = trail.record(AuditActionType.APPROVE, "Approved")
        assert first.id != second.id

    def test_export_json(self):
        """The trail exports as a JSON list."""
        trail = AuditTrail(claim_id="CLM-1001")
        trail.record(AuditActionType.ESCALATE, "Escalated", {"flag": RiskFlag.HIGH_EXPOSURE.value})

        exported = json.loads(trail.export_json())

        assert len(exported) == 1
        assert exported[0]["action_type"] == "escalate"
        assert exported[0]["claim_id"] == "CLM-1001"
        assert exported[0]["metadata"] == {"flag": "HIGH_EXPOSURE"}
