"""Payroll computation engine - per-employee orchestration of the calculators."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID
from zoneinfo import ZoneInfo

from payroll_export.calculators.interval_normalizer import (
    MalformedIntervalError,
    normalize,
)
from payroll_export.calculators.ladder_resolver import (
    LadderConfigurationError,
    LadderResolver,
)
from payroll_export.calculators.line_builder import PayrollLineBuilder, WorkDateSummary
from payroll_export.calculators.overtime import split_overtime, weekly_overtime_exceeds_cap
from payroll_export.calculators.supplement_engine import SupplementRuleEngine
from payroll_export.calculators.types import (
    AttendanceRecord,
    ConfigurationSnapshot,
    EmployeeComputation,
    EmployeeWageState,
    LevelResolution,
    PayrollLine,
    WageSupplementRule,
)

logger = logging.getLogger(__name__)


@dataclass
class ComputationResult:
    """Result of computing lines for a whole period."""

    period_start: date
    period_end: date
    snapshot_version: str
    employees: dict[UUID, EmployeeComputation] = field(default_factory=dict)
    supplement_rules: tuple[WageSupplementRule, ...] = ()

    @property
    def lines(self) -> list[PayrollLine]:
        """All lines, ordered by employee id then build order."""
        return [line for emp in self.employees.values() for line in emp.lines]

    @property
    def warnings(self) -> list[dict[str, Any]]:
        return [w for emp in self.employees.values() for w in emp.warnings]


class PayrollComputation:
    """Turns approved attendance into unpriced payroll lines.

    Pipeline per employee (independent of every other employee):
    1) Normalize each closed record; malformed ones become warnings
    2) Group intervals by work-date
    3) Supplement minutes per rule category
    4) Overtime split on the work-date's net hours
    5) Resolve the employee's rate from the wage ladder; no rate is a warning
    6) Build lines

    Employees are processed on a bounded thread pool and merged back in
    employee-id order, so output never depends on completion order.
    """

    def __init__(self, snapshot: ConfigurationSnapshot, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.snapshot = snapshot
        self.max_workers = max_workers
        self.tz = ZoneInfo(snapshot.timezone)
        self.supplements = SupplementRuleEngine(
            snapshot.supplement_rules, snapshot.holidays
        )

    def compute(
        self,
        records: Iterable[AttendanceRecord],
        wage_states: Mapping[UUID, EmployeeWageState],
        period_start: date,
        period_end: date,
        employee_ids: Iterable[UUID] | None = None,
    ) -> ComputationResult:
        """Compute lines for every employee with records in the period.

        Raises:
            LadderConfigurationError: an employee's assigned ladder is missing
                or has no levels.
        """
        wanted = set(employee_ids) if employee_ids is not None else None
        by_employee: dict[UUID, list[AttendanceRecord]] = defaultdict(list)
        for record in records:
            if not (period_start <= record.work_date <= period_end):
                continue
            if wanted is not None and record.employee_id not in wanted:
                continue
            if record.is_open:
                continue
            by_employee[record.employee_id].append(record)

        ordered_ids = sorted(by_employee, key=str)

        def run(employee_id: UUID) -> EmployeeComputation:
            return self.compute_employee(
                employee_id,
                by_employee[employee_id],
                wage_states.get(employee_id),
                period_start,
                period_end,
            )

        if self.max_workers == 1 or len(ordered_ids) <= 1:
            computed = [run(emp_id) for emp_id in ordered_ids]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                computed = list(pool.map(run, ordered_ids))

        result = ComputationResult(
            period_start=period_start,
            period_end=period_end,
            snapshot_version=self.snapshot.version,
            supplement_rules=self.snapshot.supplement_rules,
        )
        for emp in computed:
            result.employees[emp.employee_id] = emp

        logger.info(
            "Computed %d lines for %d employees (%s..%s, config %s)",
            len(result.lines),
            len(result.employees),
            period_start,
            period_end,
            self.snapshot.version,
        )
        return result

    def compute_employee(
        self,
        employee_id: UUID,
        records: list[AttendanceRecord],
        state: EmployeeWageState | None,
        period_start: date,
        period_end: date,
    ) -> EmployeeComputation:
        """Compute lines for a single employee."""
        computation = EmployeeComputation(employee_id=employee_id)
        computation.resolution = self.resolve_rate(state)

        summaries: dict[date, WorkDateSummary] = {}
        for record in sorted(records, key=lambda r: (r.work_date, r.clock_in)):
            try:
                interval = normalize(record, self.tz)
            except MalformedIntervalError as e:
                logger.warning("Skipping attendance record %s: %s", record.record_id, e.reason)
                computation.warnings.append({
                    "employee_id": str(employee_id),
                    "code": "MALFORMED_INTERVAL",
                    "message": str(e),
                    "source_id": str(record.record_id),
                })
                continue

            summary = summaries.setdefault(
                interval.work_date, WorkDateSummary(work_date=interval.work_date)
            )
            summary.source_ids.append(interval.source_id)
            summary.net_minutes += interval.net_minutes
            for category, minutes in self.supplements.compute(interval).items():
                summary.supplement_minutes[category] = (
                    summary.supplement_minutes.get(category, 0) + minutes
                )

        for summary in summaries.values():
            total_hours = PayrollLineBuilder.hours_from_minutes(summary.net_minutes)
            summary.split = split_overtime(total_hours, self.snapshot.overtime)
        computation.warnings.extend(self._weekly_cap_warnings(employee_id, summaries.values()))

        rate = self._rate(computation.resolution, state)
        if rate is None and summaries:
            logger.warning("No hourly rate for employee %s; lines left unpriced", employee_id)
            computation.warnings.append({
                "employee_id": str(employee_id),
                "code": "UNPRICED_EMPLOYEE",
                "message": "Employee has no wage ladder and no fallback hourly rate; "
                "rate-based lines are exported with amount 0",
            })

        first = records[0] if records else None
        computation.lines = PayrollLineBuilder.build_employee_lines(
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            summaries=summaries.values(),
            rules=self.snapshot.supplement_rules,
            rate=rate,
            employee_name=first.employee_name if first else None,
            department_code=first.department_code if first else None,
        )
        return computation

    def resolve_rate(self, state: EmployeeWageState | None) -> LevelResolution | None:
        """Ladder resolution for an employee, None when no ladder is assigned."""
        if state is None or state.ladder_id is None:
            return None
        ladder = self.snapshot.get_ladder(state.ladder_id)
        if ladder is None:
            raise LadderConfigurationError(
                state.ladder_id,
                f"assigned to employee {state.employee_id} but not in configuration "
                f"{self.snapshot.version}",
            )
        return LadderResolver.resolve_for_state(ladder, state)

    @staticmethod
    def _rate(
        resolution: LevelResolution | None, state: EmployeeWageState | None
    ) -> Decimal | None:
        if resolution is not None:
            return resolution.hourly_rate
        if state is not None:
            return state.fallback_hourly_rate
        return None

    def _weekly_cap_warnings(
        self, employee_id: UUID, summaries: Iterable[WorkDateSummary]
    ) -> list[dict[str, Any]]:
        """Warnings for ISO weeks whose overtime is above the weekly cap."""
        rules = self.snapshot.overtime
        if rules.max_overtime_per_week is None:
            return []
        weeks: dict[tuple[int, int], list[WorkDateSummary]] = defaultdict(list)
        for summary in summaries:
            year, week, _ = summary.work_date.isocalendar()
            weeks[(year, week)].append(summary)

        warnings = []
        for (year, week), items in sorted(weeks.items()):
            if weekly_overtime_exceeds_cap((s.split for s in items), rules):
                warnings.append({
                    "employee_id": str(employee_id),
                    "code": "WEEKLY_OVERTIME_CAP_EXCEEDED",
                    "message": (
                        f"Overtime in week {year}-W{week:02d} is above the "
                        f"weekly cap of {rules.max_overtime_per_week} hours"
                    ),
                })
        return warnings
