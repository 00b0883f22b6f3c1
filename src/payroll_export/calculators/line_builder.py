"""Payroll line builder with deterministic hashing."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from payroll_export.calculators.types import (
    LineCategory,
    LineSourceType,
    OvertimeSplit,
    PayrollLine,
    WageComponent,
    WageSupplementRule,
)


@dataclass
class WorkDateSummary:
    """Everything the builder needs for one employee on one work-date."""

    work_date: date
    source_ids: list[UUID] = field(default_factory=list)
    net_minutes: int = 0
    supplement_minutes: dict[str, int] = field(default_factory=dict)
    split: OvertimeSplit | None = None


class PayrollLineBuilder:
    """Builds unpriced payroll lines from computed quantities.

    Every line leaves the builder with amount 0. Pricing depends on the
    destination system and is done afterwards (see calculators.pricing),
    so the same quantities can be priced differently without redoing the
    time arithmetic.

    Ordering per work-date: base, supplements in rule order, overtime
    tier 1, overtime tier 2.
    """

    PRECISION = Decimal("0.0001")  # hours
    OUTPUT_PRECISION = Decimal("0.01")  # currency

    @staticmethod
    def hours_from_minutes(minutes: int) -> Decimal:
        """Convert minutes to hours at 4 decimal places."""
        return (Decimal(minutes) / Decimal(60)).quantize(
            PayrollLineBuilder.PRECISION, rounding=ROUND_HALF_UP
        )

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places."""
        return amount.quantize(PayrollLineBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_line_hash(line: PayrollLine) -> str:
        """Compute deterministic hash for a payroll line.

        Identical quantities for the same employee, component and date
        produce identical hashes.
        """
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def build_employee_lines(
        employee_id: UUID,
        period_start: date,
        period_end: date,
        summaries: Iterable[WorkDateSummary],
        rules: Iterable[WageSupplementRule],
        rate: Decimal | None = None,
        employee_name: str | None = None,
        department_code: str | None = None,
    ) -> list[PayrollLine]:
        """Assemble the ordered line list for one employee and period."""
        rules = list(rules)
        rule_order = {rule.category: i for i, rule in enumerate(rules)}
        rules_by_category = {rule.category: rule for rule in rules}
        lines: list[PayrollLine] = []

        def make(
            code: str,
            name: str,
            category: LineCategory,
            source_type: LineSourceType,
            summary: WorkDateSummary,
            quantity: Decimal,
        ) -> PayrollLine:
            return PayrollLine(
                employee_id=employee_id,
                component_code=code,
                component_name=name,
                category=category,
                work_date=summary.work_date,
                quantity=quantity,
                period_start=period_start,
                period_end=period_end,
                source_type=source_type,
                source_ids=tuple(summary.source_ids),
                rate=rate,
                amount=Decimal("0"),
                employee_name=employee_name,
                department_code=department_code,
            )

        for summary in sorted(summaries, key=lambda s: s.work_date):
            if summary.split is None:
                continue
            split = summary.split

            lines.append(
                make(
                    WageComponent.BASE,
                    WageComponent.NAMES[WageComponent.BASE],
                    LineCategory.BASE,
                    LineSourceType.ATTENDANCE,
                    summary,
                    split.base_hours,
                )
            )

            for category in sorted(summary.supplement_minutes, key=lambda c: rule_order.get(c, len(rules))):
                minutes = summary.supplement_minutes[category]
                rule = rules_by_category.get(category)
                if minutes <= 0 or rule is None:
                    continue
                lines.append(
                    make(
                        rule.salary_code,
                        rule.name,
                        LineCategory.SUPPLEMENT,
                        LineSourceType.CALCULATED,
                        summary,
                        PayrollLineBuilder.hours_from_minutes(minutes),
                    )
                )

            for code, hours in (
                (WageComponent.OVERTIME_TIER_1, split.tier1_hours),
                (WageComponent.OVERTIME_TIER_2, split.tier2_hours),
            ):
                if hours > 0:
                    lines.append(
                        make(
                            code,
                            WageComponent.NAMES[code],
                            LineCategory.OVERTIME,
                            LineSourceType.CALCULATED,
                            summary,
                            hours,
                        )
                    )

        return lines

    @staticmethod
    def sum_amounts(lines: Iterable[PayrollLine]) -> Decimal:
        """Total amount of the given lines, rounded to cents."""
        total = sum((line.amount for line in lines), Decimal("0"))
        return PayrollLineBuilder.round_to_cents(total)

    @staticmethod
    def sum_by_category(lines: Iterable[PayrollLine]) -> dict[LineCategory, Decimal]:
        """Sum line quantities (hours) by category."""
        totals: dict[LineCategory, Decimal] = {c: Decimal("0") for c in LineCategory}
        for line in lines:
            totals[line.category] += line.quantity
        return totals
