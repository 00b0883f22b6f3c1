"""Wage supplement (premium) minutes for a normalized interval."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, time

from payroll_export.calculators.types import (
    MINUTES_PER_DAY,
    NormalizedInterval,
    WageSupplementRule,
)

Span = tuple[int, int]


def _minute_of_day(value: time) -> int:
    return value.hour * 60 + value.minute


def split_at_midnight(interval: NormalizedInterval) -> list[Span]:
    """Re-express an interval as same-day [start, end) spans.

    A shift crossing one midnight gives two spans. Offsets past 24 hours
    (a clock-in after midnight filed on the previous work-date) are
    folded back onto the day they fall on.
    """
    spans: list[Span] = []
    start, end = interval.start_minute, interval.end_minute
    while start < end:
        day_end = (start // MINUTES_PER_DAY + 1) * MINUTES_PER_DAY
        stop = min(end, day_end)
        offset = day_end - MINUTES_PER_DAY
        spans.append((start - offset, stop - offset))
        start = stop
    return spans


def window_spans(rule: WageSupplementRule) -> list[Span]:
    """Rule time window as same-day spans; a wrapping window yields two."""
    if rule.window_start is None or rule.window_end is None:
        return []
    start = _minute_of_day(rule.window_start)
    end = _minute_of_day(rule.window_end)
    if end > start:
        return [(start, end)]
    # Wraps midnight; equal start and end means the whole day
    spans = [(start, MINUTES_PER_DAY)]
    if end > 0:
        spans.append((0, end))
    return spans


def overlap_minutes(spans: Iterable[Span], windows: Iterable[Span]) -> int:
    """Sum of pairwise overlaps between two sets of same-day spans."""
    windows = list(windows)
    total = 0
    for s_start, s_end in spans:
        for w_start, w_end in windows:
            total += max(0, min(s_end, w_end) - max(s_start, w_start))
    return total


class SupplementRuleEngine:
    """Computes premium minutes per category for one interval.

    Categories stack: every rule is evaluated independently against the
    full interval, so a Sunday night shift earns both night and weekend
    minutes. They are not mutually exclusive and must not be made so.
    """

    def __init__(
        self,
        rules: Iterable[WageSupplementRule],
        holidays: Iterable[date] = (),
    ):
        self.rules = [rule for rule in rules if rule.auto_calculate]
        self.holidays = frozenset(holidays)

    def compute(self, interval: NormalizedInterval) -> dict[str, int]:
        """Return {category: minutes} for all rules with a non-zero overlap."""
        result: dict[str, int] = {}
        for rule in self.rules:
            minutes = self.minutes_for_rule(interval, rule)
            if minutes > 0:
                result[rule.category] = result.get(rule.category, 0) + minutes
        return result

    def minutes_for_rule(
        self, interval: NormalizedInterval, rule: WageSupplementRule
    ) -> int:
        net = interval.net_minutes
        if net <= 0:
            return 0

        if rule.holidays_only and interval.work_date not in self.holidays:
            return 0
        if rule.days_of_week is not None and (
            interval.work_date.weekday() not in rule.days_of_week
        ):
            return 0

        if not rule.has_window:
            return net

        # Breaks have no wall-clock position, so overlap is capped at net time
        minutes = overlap_minutes(split_at_midnight(interval), window_spans(rule))
        return min(minutes, net)


def compute_supplement_minutes(
    interval: NormalizedInterval,
    rules: Iterable[WageSupplementRule],
    holidays: Iterable[date] = (),
) -> dict[str, int]:
    """Convenience wrapper around SupplementRuleEngine.compute."""
    return SupplementRuleEngine(rules, holidays).compute(interval)
