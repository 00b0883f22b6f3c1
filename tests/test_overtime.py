"""Tests for daily overtime tiering."""

from decimal import Decimal

import pytest

from payroll_export.calculators.overtime import split_overtime, weekly_overtime_exceeds_cap
from payroll_export.calculators.types import OvertimeRules


class TestSplitOvertime:
    """Base/tier-1/tier-2 split of a single work-date."""

    def test_at_threshold_is_all_base(self):
        split = split_overtime(Decimal("9"), OvertimeRules())
        assert split.base_hours == Decimal("9")
        assert split.tier1_hours == Decimal("0")
        assert split.tier2_hours == Decimal("0")

    def test_both_tiers(self):
        """11.5 hours: 9 base, 2 in tier 1, the remaining half hour in tier 2."""
        split = split_overtime(Decimal("11.5"), OvertimeRules())
        assert split.base_hours == Decimal("9")
        assert split.tier1_hours == Decimal("2")
        assert split.tier2_hours == Decimal("0.5")
        assert split.overtime_hours == Decimal("2.5")

    def test_partial_tier1(self):
        split = split_overtime(Decimal("10.25"), OvertimeRules())
        assert split.base_hours == Decimal("9")
        assert split.tier1_hours == Decimal("1.25")
        assert split.tier2_hours == Decimal("0")

    def test_zero_hours(self):
        split = split_overtime(Decimal("0"), OvertimeRules())
        assert split.base_hours + split.overtime_hours == Decimal("0")

    def test_parts_always_sum_to_total(self):
        for hours in ("0.5", "7.5", "9.0001", "11", "16.75"):
            split = split_overtime(Decimal(hours), OvertimeRules())
            assert split.base_hours + split.overtime_hours == Decimal(hours)

    def test_custom_thresholds(self):
        rules = OvertimeRules(
            tier1_start_hours=Decimal("7.5"), tier1_width_hours=Decimal("1")
        )
        split = split_overtime(Decimal("10"), rules)
        assert split.base_hours == Decimal("7.5")
        assert split.tier1_hours == Decimal("1")
        assert split.tier2_hours == Decimal("1.5")

    def test_negative_hours_rejected(self):
        with pytest.raises(ValueError):
            split_overtime(Decimal("-1"), OvertimeRules())

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            OvertimeRules(tier1_start_hours=Decimal("-1"))


class TestWeeklyCap:
    """Weekly cap is reported, never applied."""

    def test_no_cap_configured(self):
        splits = [split_overtime(Decimal("14"), OvertimeRules())] * 5
        assert weekly_overtime_exceeds_cap(splits, OvertimeRules()) is False

    def test_cap_exceeded(self):
        rules = OvertimeRules(max_overtime_per_week=Decimal("10"))
        splits = [split_overtime(Decimal("12"), rules)] * 4  # 3 h overtime each
        assert weekly_overtime_exceeds_cap(splits, rules) is True

    def test_cap_not_exceeded(self):
        rules = OvertimeRules(max_overtime_per_week=Decimal("10"))
        splits = [split_overtime(Decimal("11"), rules)] * 5  # 2 h overtime each
        assert weekly_overtime_exceeds_cap(splits, rules) is False
