"""Type definitions for the computation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

MINUTES_PER_DAY = 24 * 60
DEFAULT_TIMEZONE = "Europe/Oslo"


class LineCategory(str, Enum):
    """Wage component categories."""

    BASE = "base"
    SUPPLEMENT = "supplement"
    OVERTIME = "overtime"
    MANUAL = "manual"


class SupplementType(str, Enum):
    """How a supplement rule's amount prices its hours."""

    FIXED = "fixed"  # amount per hour
    PERCENTAGE = "percentage"  # percent of the hourly rate


class LineSourceType(str, Enum):
    """Where a payroll line's quantity came from."""

    ATTENDANCE = "attendance"
    CALCULATED = "calculated"
    MANUAL = "manual"


class WageComponent:
    """Internal salary codes for the components the builder emits itself.

    Supplement lines use the salary code configured on their rule.
    """

    BASE = "1000"
    OVERTIME_TIER_1 = "3010"
    OVERTIME_TIER_2 = "3020"

    NAMES = {
        BASE: "Hourly wage",
        OVERTIME_TIER_1: "Overtime tier 1",
        OVERTIME_TIER_2: "Overtime tier 2",
    }


@dataclass(frozen=True)
class AttendanceRecord:
    """One approved clock-in/clock-out pair."""

    record_id: UUID
    employee_id: UUID
    work_date: date
    clock_in: datetime
    clock_out: datetime | None
    break_minutes: int = 0
    planned_shift_id: UUID | None = None
    employee_name: str | None = None
    department_code: str | None = None

    @property
    def is_open(self) -> bool:
        return self.clock_out is None


@dataclass(frozen=True)
class NormalizedInterval:
    """Net worked interval for one record, in minutes from work-date midnight."""

    employee_id: UUID
    work_date: date
    start_minute: int
    end_minute: int
    break_minutes: int
    source_id: UUID

    @property
    def gross_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def net_minutes(self) -> int:
        return self.gross_minutes - self.break_minutes


@dataclass(frozen=True)
class WageSupplementRule:
    """Configured premium category.

    A window that ends at or before its start wraps midnight
    (e.g. 21:00-06:00). days_of_week uses date.weekday() numbering.
    amount is kr per hour, or a percentage of the hourly rate when
    supplement_type is PERCENTAGE.
    """

    category: str
    salary_code: str
    name: str
    window_start: time | None = None
    window_end: time | None = None
    days_of_week: frozenset[int] | None = None
    holidays_only: bool = False
    auto_calculate: bool = True
    amount: Decimal = Decimal("0")
    supplement_type: SupplementType = SupplementType.FIXED

    @property
    def has_window(self) -> bool:
        return self.window_start is not None and self.window_end is not None


@dataclass(frozen=True)
class OvertimeRules:
    """Daily overtime thresholds, in hours.

    The weekly and annual caps are informational; nothing in the engine
    enforces them.
    """

    tier1_start_hours: Decimal = Decimal("9")
    tier1_width_hours: Decimal = Decimal("2")
    max_overtime_per_week: Decimal | None = None
    max_overtime_per_year: Decimal | None = None

    def __post_init__(self) -> None:
        if self.tier1_start_hours < 0:
            raise ValueError("tier1_start_hours must not be negative")
        if self.tier1_width_hours < 0:
            raise ValueError("tier1_width_hours must not be negative")


@dataclass(frozen=True)
class OvertimeSplit:
    """Hours for one work-date split into base and overtime tiers."""

    base_hours: Decimal
    tier1_hours: Decimal
    tier2_hours: Decimal

    @property
    def overtime_hours(self) -> Decimal:
        return self.tier1_hours + self.tier2_hours


@dataclass(frozen=True)
class WageLadderLevel:
    """One step on a wage ladder."""

    level: int
    min_hours: Decimal
    max_hours: Decimal | None  # None = open-ended top level
    hourly_rate: Decimal
    effective_from: date | None = None

    def contains(self, hours: Decimal) -> bool:
        if hours < self.min_hours:
            return False
        return self.max_hours is None or hours < self.max_hours


@dataclass(frozen=True)
class WageLadder:
    """Seniority ladder; levels are kept sorted by level number."""

    ladder_id: UUID
    name: str
    competence: str
    levels: tuple[WageLadderLevel, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "levels", tuple(sorted(self.levels, key=lambda lvl: lvl.level))
        )

    def get_level(self, level: int) -> WageLadderLevel | None:
        for lvl in self.levels:
            if lvl.level == level:
                return lvl
        return None


@dataclass(frozen=True)
class EmployeeWageState:
    """Seniority state for one employee as read from storage."""

    employee_id: UUID
    ladder_id: UUID | None
    accumulated_hours: Decimal
    current_level: int | None
    fallback_hourly_rate: Decimal | None = None
    version: int = 1


@dataclass(frozen=True)
class LevelResolution:
    """Resolved ladder position for an amount of accumulated hours."""

    level: int
    hourly_rate: Decimal
    next_level: int | None = None
    hours_to_next_level: Decimal | None = None
    next_hourly_rate: Decimal | None = None


@dataclass(frozen=True)
class PendingProgression:
    """An employee whose accumulated hours imply a higher level than recorded."""

    employee_id: UUID
    ladder_id: UUID
    ladder_name: str
    accumulated_hours: Decimal
    current_level: int
    current_rate: Decimal
    new_level: int
    new_rate: Decimal
    state_version: int


@dataclass(frozen=True)
class ConfigurationSnapshot:
    """Frozen configuration a run is computed against.

    timezone is the IANA zone whose wall clock the supplement windows use.
    """

    version: str
    supplement_rules: tuple[WageSupplementRule, ...] = ()
    ladders: dict[UUID, WageLadder] = field(default_factory=dict)
    overtime: OvertimeRules = field(default_factory=OvertimeRules)
    holidays: frozenset[date] = frozenset()
    timezone: str = DEFAULT_TIMEZONE

    def get_ladder(self, ladder_id: UUID) -> WageLadder | None:
        return self.ladders.get(ladder_id)


@dataclass(frozen=True)
class PayrollLine:
    """One priced or unpriced quantity for one employee and work-date."""

    employee_id: UUID
    component_code: str
    component_name: str
    category: LineCategory
    work_date: date
    quantity: Decimal
    period_start: date
    period_end: date
    source_type: LineSourceType
    source_ids: tuple[UUID, ...] = ()
    rate: Decimal | None = None
    amount: Decimal = Decimal("0")
    employee_name: str | None = None
    department_code: str | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "employee_id": str(self.employee_id),
            "component_code": self.component_code,
            "category": self.category.value,
            "work_date": self.work_date.isoformat(),
            "quantity": str(self.quantity),
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "source_type": self.source_type.value,
            "source_ids": sorted(str(s) for s in self.source_ids),
            "rate": str(self.rate) if self.rate is not None else None,
            "amount": str(self.amount),
        }


@dataclass
class EmployeeComputation:
    """Lines and warnings produced for a single employee."""

    employee_id: UUID
    lines: list[PayrollLine] = field(default_factory=list)
    warnings: list[dict[str, Any]] = field(default_factory=list)
    resolution: LevelResolution | None = None

    @property
    def total_hours(self) -> Decimal:
        return sum(
            (line.quantity for line in self.lines if line.category != LineCategory.SUPPLEMENT),
            Decimal("0"),
        )
