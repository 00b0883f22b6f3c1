"""Database reads and writes that feed the computation engine.

Rows are converted to the frozen calculator types here so nothing
below the service layer sees an ORM object.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from payroll_export.calculators.holidays import holidays_between
from payroll_export.calculators.ladder_resolver import LadderResolver
from payroll_export.calculators.types import (
    AttendanceRecord,
    ConfigurationSnapshot,
    EmployeeWageState,
    DEFAULT_TIMEZONE,
    OvertimeRules,
    SupplementType,
    WageLadder,
    WageLadderLevel,
    WageSupplementRule,
)
from payroll_export.models import (
    AttendanceRecordRow,
    EmployeeExternalId,
    EmployeeWageStateRow,
    HolidayRow,
    SalaryCodeMapping,
    WageLadderLevelRow,
    WageLadderRow,
    WageSupplementRuleRow,
    WorkTimeRuleRow,
)


def to_wage_state(row: EmployeeWageStateRow) -> EmployeeWageState:
    return EmployeeWageState(
        employee_id=row.employee_id,
        ladder_id=row.ladder_id,
        accumulated_hours=row.accumulated_hours,
        current_level=row.current_level,
        fallback_hourly_rate=row.fallback_hourly_rate,
        version=row.version,
    )


def to_ladder(row: WageLadderRow) -> WageLadder:
    return WageLadder(
        ladder_id=row.ladder_id,
        name=row.name,
        competence=row.competence,
        levels=tuple(
            WageLadderLevel(
                level=lvl.level,
                min_hours=lvl.min_hours,
                max_hours=lvl.max_hours,
                hourly_rate=lvl.hourly_rate,
                effective_from=lvl.effective_from,
            )
            for lvl in row.levels
        ),
    )


async def load_approved_attendance(
    session: AsyncSession,
    period_start: date,
    period_end: date,
    employee_ids: Iterable[UUID] | None = None,
) -> list[AttendanceRecord]:
    """Approved records with a work-date in [period_start, period_end].

    Open records are returned too; the engine skips them.
    """
    query = select(AttendanceRecordRow).where(
        AttendanceRecordRow.status == "approved",
        AttendanceRecordRow.work_date >= period_start,
        AttendanceRecordRow.work_date <= period_end,
    )
    if employee_ids is not None:
        query = query.where(AttendanceRecordRow.employee_id.in_(list(employee_ids)))
    query = query.order_by(AttendanceRecordRow.employee_id, AttendanceRecordRow.clock_in)

    result = await session.execute(query)
    return [
        AttendanceRecord(
            record_id=row.attendance_id,
            employee_id=row.employee_id,
            work_date=row.work_date,
            clock_in=row.clock_in,
            clock_out=row.clock_out,
            break_minutes=row.break_minutes,
            planned_shift_id=row.planned_shift_id,
            employee_name=row.employee_name,
            department_code=row.department_code,
        )
        for row in result.scalars()
    ]


async def load_ladders(session: AsyncSession) -> dict[UUID, WageLadder]:
    result = await session.execute(
        select(WageLadderRow)
        .where(WageLadderRow.is_active.is_(True))
        .options(selectinload(WageLadderRow.levels))
    )
    return {row.ladder_id: to_ladder(row) for row in result.scalars()}


async def load_configuration_snapshot(
    session: AsyncSession,
    period_start: date,
    period_end: date,
    timezone: str = DEFAULT_TIMEZONE,
) -> ConfigurationSnapshot:
    """Freeze the active configuration for one computation.

    The version is a content hash, so two runs against unchanged
    configuration report the same version.
    """
    rules_result = await session.execute(
        select(WageSupplementRuleRow)
        .where(WageSupplementRuleRow.is_active.is_(True))
        .order_by(WageSupplementRuleRow.sort_order, WageSupplementRuleRow.category)
    )
    rules = tuple(
        WageSupplementRule(
            category=row.category,
            salary_code=row.salary_code,
            name=row.name,
            window_start=row.window_start,
            window_end=row.window_end,
            days_of_week=frozenset(row.days_of_week) if row.days_of_week is not None else None,
            holidays_only=row.holidays_only,
            auto_calculate=row.auto_calculate,
            amount=row.amount,
            supplement_type=SupplementType(row.supplement_type),
        )
        for row in rules_result.scalars()
    )

    ot_result = await session.execute(
        select(WorkTimeRuleRow)
        .where(WorkTimeRuleRow.is_active.is_(True))
        .order_by(WorkTimeRuleRow.created_at.desc())
        .limit(1)
    )
    ot_row = ot_result.scalar_one_or_none()
    overtime = (
        OvertimeRules(
            tier1_start_hours=ot_row.overtime_threshold_daily,
            tier1_width_hours=ot_row.overtime_tier1_width,
            max_overtime_per_week=ot_row.max_overtime_per_week,
            max_overtime_per_year=ot_row.max_overtime_per_year,
        )
        if ot_row is not None
        else OvertimeRules()
    )

    extra_result = await session.execute(
        select(HolidayRow.holiday_date).where(
            HolidayRow.holiday_date >= period_start,
            HolidayRow.holiday_date <= period_end,
        )
    )
    holidays = holidays_between(period_start, period_end, extra_result.scalars().all())

    ladders = await load_ladders(session)

    return ConfigurationSnapshot(
        version=snapshot_version(rules, ladders, overtime, holidays, timezone),
        supplement_rules=rules,
        ladders=ladders,
        overtime=overtime,
        holidays=holidays,
        timezone=timezone,
    )


def snapshot_version(
    rules: Iterable[WageSupplementRule],
    ladders: dict[UUID, WageLadder],
    overtime: OvertimeRules,
    holidays: Iterable[date],
    timezone: str = DEFAULT_TIMEZONE,
) -> str:
    canonical = {
        "rules": [
            [
                r.category,
                r.salary_code,
                r.window_start.isoformat() if r.window_start else None,
                r.window_end.isoformat() if r.window_end else None,
                sorted(r.days_of_week) if r.days_of_week is not None else None,
                r.holidays_only,
                r.auto_calculate,
                str(r.amount),
                r.supplement_type.value,
            ]
            for r in rules
        ],
        "ladders": {
            str(ladder_id): [
                [lvl.level, str(lvl.min_hours), str(lvl.max_hours), str(lvl.hourly_rate)]
                for lvl in ladder.levels
            ]
            for ladder_id, ladder in sorted(ladders.items(), key=lambda kv: str(kv[0]))
        },
        "overtime": [str(overtime.tier1_start_hours), str(overtime.tier1_width_hours)],
        "holidays": sorted(d.isoformat() for d in holidays),
        "timezone": timezone,
    }
    digest = hashlib.sha256(json.dumps(canonical, sort_keys=True).encode()).hexdigest()
    return f"cfg-{digest[:16]}"


async def load_wage_states(
    session: AsyncSession, employee_ids: Iterable[UUID] | None = None
) -> dict[UUID, EmployeeWageState]:
    query = select(EmployeeWageStateRow).execution_options(populate_existing=True)
    if employee_ids is not None:
        query = query.where(EmployeeWageStateRow.employee_id.in_(list(employee_ids)))
    result = await session.execute(query)
    return {row.employee_id: to_wage_state(row) for row in result.scalars()}


async def load_identity_map(
    session: AsyncSession, system: str, employee_ids: Iterable[UUID]
) -> dict[UUID, str]:
    """External employee codes for one system; unmapped employees are absent."""
    ids = list(employee_ids)
    if not ids:
        return {}
    result = await session.execute(
        select(EmployeeExternalId.employee_id, EmployeeExternalId.external_id).where(
            EmployeeExternalId.system == system,
            EmployeeExternalId.employee_id.in_(ids),
        )
    )
    return {employee_id: external_id for employee_id, external_id in result.all()}


async def load_salary_code_map(session: AsyncSession, system: str) -> dict[str, str]:
    result = await session.execute(
        select(SalaryCodeMapping.internal_code, SalaryCodeMapping.external_code).where(
            SalaryCodeMapping.system == system
        )
    )
    return {internal: external for internal, external in result.all()}


async def save_ladder(session: AsyncSession, ladder: WageLadder) -> WageLadderRow:
    """Create or replace a ladder and its levels.

    Raises:
        LadderGapOrOverlapError: the levels are not contiguous or overlap.
    """
    LadderResolver.ensure_valid_ladder(ladder)

    result = await session.execute(
        select(WageLadderRow)
        .where(WageLadderRow.ladder_id == ladder.ladder_id)
        .options(selectinload(WageLadderRow.levels))
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = WageLadderRow(ladder_id=ladder.ladder_id, levels=[])
        session.add(row)

    row.name = ladder.name
    row.competence = ladder.competence
    row.levels.clear()
    await session.flush()
    row.levels.extend(
        WageLadderLevelRow(
            level=lvl.level,
            min_hours=lvl.min_hours,
            max_hours=lvl.max_hours,
            hourly_rate=lvl.hourly_rate,
            effective_from=lvl.effective_from,
        )
        for lvl in ladder.levels
    )
    await session.flush()
    return row
