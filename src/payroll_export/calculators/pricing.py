"""Per-destination pricing of built payroll lines."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal

from payroll_export.calculators.line_builder import PayrollLineBuilder
from payroll_export.calculators.types import (
    PayrollLine,
    SupplementType,
    WageComponent,
    WageSupplementRule,
)

PERCENT = Decimal("100")


def _default_multipliers() -> dict[str, Decimal]:
    return {
        WageComponent.BASE: Decimal("1"),
        WageComponent.OVERTIME_TIER_1: Decimal("1.5"),
        WageComponent.OVERTIME_TIER_2: Decimal("2"),
    }


@dataclass(frozen=True)
class PricingProfile:
    """Rate table for one destination.

    multipliers: component code -> factor applied to the line's rate.
    fixed_rates: component code -> per-hour amount independent of the rate.
    A fixed rate wins over a multiplier for the same code. Components with
    neither stay unpriced (amount 0).
    """

    name: str = "default"
    multipliers: Mapping[str, Decimal] = field(default_factory=_default_multipliers)
    fixed_rates: Mapping[str, Decimal] = field(default_factory=dict)

    def price(self, line: PayrollLine) -> PayrollLine:
        """Return a priced copy of the line; the input is left untouched."""
        code = line.component_code
        if code in self.fixed_rates:
            unit = self.fixed_rates[code]
        elif code in self.multipliers and line.rate is not None:
            unit = line.rate * self.multipliers[code]
        else:
            return line
        amount = PayrollLineBuilder.round_to_cents(line.quantity * unit)
        return replace(line, amount=amount)

    def price_all(self, lines: Iterable[PayrollLine]) -> list[PayrollLine]:
        return [self.price(line) for line in lines]

    def with_supplements(self, rules: Iterable[WageSupplementRule]) -> PricingProfile:
        """Profile that also prices supplement lines from their rules.

        A fixed rule becomes a per-hour rate for its salary code and a
        percentage rule a multiplier of the line rate. Codes this profile
        already prices keep their destination-specific entry.
        """
        fixed: dict[str, Decimal] = {}
        multipliers: dict[str, Decimal] = {}
        for rule in rules:
            if rule.amount <= 0:
                continue
            if rule.supplement_type == SupplementType.PERCENTAGE:
                multipliers[rule.salary_code] = rule.amount / PERCENT
            else:
                fixed[rule.salary_code] = rule.amount

        own = set(self.fixed_rates) | set(self.multipliers)
        return replace(
            self,
            fixed_rates={
                **{c: v for c, v in fixed.items() if c not in own},
                **self.fixed_rates,
            },
            multipliers={
                **{c: v for c, v in multipliers.items() if c not in own},
                **self.multipliers,
            },
        )
