"""Daily overtime tiering."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from payroll_export.calculators.types import OvertimeRules, OvertimeSplit

ZERO = Decimal("0")


def split_overtime(total_hours: Decimal, rules: OvertimeRules) -> OvertimeSplit:
    """Split one work-date's net hours into base, tier-1 and tier-2 hours.

    Evaluated per work-date only. Weekly and annual caps on the rules are
    not applied here.
    """
    if total_hours < 0:
        raise ValueError(f"total_hours must not be negative, got {total_hours}")

    start = rules.tier1_start_hours
    width = rules.tier1_width_hours

    base = min(total_hours, start)
    tier1 = min(max(total_hours - start, ZERO), width)
    tier2 = max(total_hours - start - width, ZERO)
    return OvertimeSplit(base_hours=base, tier1_hours=tier1, tier2_hours=tier2)


def weekly_overtime_exceeds_cap(
    splits: Iterable[OvertimeSplit], rules: OvertimeRules
) -> bool:
    """Whether a week's overtime is above the configured weekly cap.

    For compliance display only; no line is changed because of it.
    """
    if rules.max_overtime_per_week is None:
        return False
    total = sum((s.overtime_hours for s in splits), ZERO)
    return total > rules.max_overtime_per_week
