"""Payroll computation: normalization, supplements, overtime, ladders, lines."""

from payroll_export.calculators.engine import ComputationResult, PayrollComputation
from payroll_export.calculators.interval_normalizer import MalformedIntervalError, normalize
from payroll_export.calculators.ladder_resolver import (
    LadderConfigurationError,
    LadderGapOrOverlapError,
    LadderResolver,
)
from payroll_export.calculators.line_builder import PayrollLineBuilder
from payroll_export.calculators.overtime import split_overtime
from payroll_export.calculators.pricing import PricingProfile
from payroll_export.calculators.supplement_engine import SupplementRuleEngine

__all__ = [
    "PayrollComputation",
    "ComputationResult",
    "MalformedIntervalError",
    "normalize",
    "LadderConfigurationError",
    "LadderGapOrOverlapError",
    "LadderResolver",
    "PayrollLineBuilder",
    "split_overtime",
    "PricingProfile",
    "SupplementRuleEngine",
]
