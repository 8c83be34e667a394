"""
Cost Estimator

Derives per-part repair cost ranges and aggregates claim totals. All values
are integer cents.

A part that already carries an internally consistent range (both bounds
numeric, max >= min) is never re-estimated. Otherwise the range is derived as:

    mid = base_part_cost * severity_multiplier * damage_type_multiplier
    min = max(MIN_PART_COST, round(mid * RANGE.MIN_MULTIPLIER))
    max = round(mid * RANGE.MAX_MULTIPLIER)

Usage:
    estimator = CostEstimator(PolicyConfig())
    cost = estimator.estimate_part_cost_range(part)
    totals = estimator.compute_totals_from_parts(parts)
"""

from __future__ import annotations

import math
from dataclasses import replace
from typing import Iterable, Optional, Sequence

from claims_workbench.config import CostConfig, PolicyConfig
from claims_workbench.constants import enum_value
from claims_workbench.claims.models import (
    ClaimTotals,
    CostRange,
    DamagedPart,
    DamageTypeDetail,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class CostEstimator:
    """Estimates part cost ranges and claim totals from a CostConfig."""

    def __init__(self, config: Optional[PolicyConfig] = None) -> None:
        self._cost: CostConfig = (config or PolicyConfig()).cost

    @property
    def cost_config(self) -> CostConfig:
        return self._cost

    def base_part_cost(self, part: DamagedPart) -> int:
        """Base cost for the part id, or the default for unmapped parts."""
        key = str(enum_value(part.part_id)).lower()
        return self._cost.base_part_costs.get(key, self._cost.default_base_part_cost)

    def severity_multiplier(self, severity: object) -> float:
        """Multiplier for a severity; unknown severities are neutral (1.0)."""
        key = str(enum_value(severity)).strip().lower()
        return self._cost.severity_multipliers.get(key, 1.0)

    def area_factor(self, area_percentage: Optional[float]) -> float:
        """Scale an affected-area percentage into a clamped multiplier."""
        if area_percentage is None:
            return 1.0
        return _clamp(
            area_percentage / self._cost.area_normalization_percent,
            self._cost.area_factor_min,
            self._cost.area_factor_max,
        )

    def damage_type_multiplier(self, damage_types: Sequence[DamageTypeDetail]) -> float:
        """
        Average of type multiplier x area factor over the damage types.

        Unknown types use the configured default multiplier. The average is
        clamped to the configured band; 1.0 when no damage types are given.
        """
        if not damage_types:
            return 1.0

        total = 0.0
        for detail in damage_types:
            key = (detail.type or "").lower()
            base = self._cost.damage_type_multipliers.get(
                key, self._cost.default_damage_type_multiplier
            )
            total += base * self.area_factor(detail.area_percentage)

        average = total / len(damage_types) or 1.0
        return _clamp(
            average,
            self._cost.damage_type_multiplier_min,
            self._cost.damage_type_multiplier_max,
        )

    def estimate_part_cost_range(self, part: DamagedPart) -> CostRange:
        """
        Estimate a part's cost range in cents.

        Returns the caller-supplied range unchanged when it is consistent.
        """
        if part.has_valid_cost_range:
            return CostRange(min=part.estimated_cost_min, max=part.estimated_cost_max)

        mid = (
            self.base_part_cost(part)
            * self.severity_multiplier(part.severity)
            * self.damage_type_multiplier(part.damage_types)
        )
        low = max(
            self._cost.min_part_cost,
            round_half_up(mid * self._cost.range_min_multiplier),
        )
        high = round_half_up(mid * self._cost.range_max_multiplier)
        # The floor can lift min above a tiny midpoint; keep the range ordered
        return CostRange(min=low, max=max(low, high))

    def with_estimated_costs(self, part: DamagedPart) -> DamagedPart:
        """Return the part with its cost range filled in."""
        if part.has_valid_cost_range:
            return part
        cost = self.estimate_part_cost_range(part)
        return replace(part, estimated_cost_min=cost.min, estimated_cost_max=cost.max)

    def compute_totals_from_parts(self, parts: Iterable[DamagedPart]) -> ClaimTotals:
        """
        Sum part ranges and add labor to each bound independently.

        Labor is ``round(parts_sum * LABOR_FRACTION)``, computed separately for
        the min and max sums. No parts gives all-zero totals.
        """
        parts_min = 0
        parts_max = 0
        for part in parts:
            cost = self.estimate_part_cost_range(part)
            parts_min += cost.min
            parts_max += cost.max

        labor_min = round_half_up(parts_min * self._cost.labor_fraction)
        labor_max = round_half_up(parts_max * self._cost.labor_fraction)

        return ClaimTotals(
            total_min=parts_min + labor_min,
            total_max=parts_max + labor_max,
            labor_min=labor_min,
            labor_max=labor_max,
        )


def format_cost(cents: float) -> str:
    """Format cents as dollars, e.g. 123456 -> "$1,234.56"."""
    return f"${cents / 100:,.2f}"


def format_cost_range(min_cents: float, max_cents: float) -> str:
    """Format a cost range in whole dollars, e.g. "$400–$600"."""
    if min_cents == 0 and max_cents == 0:
        return "$0"
    return f"${min_cents / 100:,.0f}–${max_cents / 100:,.0f}"
