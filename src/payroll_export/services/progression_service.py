"""Seniority progression and hour accrual.

Writes to employee_wage_state are conditional on the row's version, so a
concurrent writer is detected instead of overwritten. Lines already issued
are never re-priced by a progression.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_export import repositories
from payroll_export.calculators.ladder_resolver import LadderResolver
from payroll_export.calculators.types import PendingProgression
from payroll_export.models import EmployeeWageStateRow, SeniorityLogEntry
from payroll_export.models.base import utcnow

logger = logging.getLogger(__name__)


class StaleWageStateError(Exception):
    """Raised when a wage state changed between read and conditional write."""

    def __init__(self, employee_id: UUID, expected_version: int):
        self.employee_id = employee_id
        self.expected_version = expected_version
        super().__init__(
            f"Wage state for employee {employee_id} is no longer at version "
            f"{expected_version}"
        )


class WageStateNotFoundError(ValueError):
    """Raised when an employee has no wage state to change."""

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"No wage state for employee {employee_id}")


@dataclass
class ProgressionBatchResult:
    applied: list[PendingProgression] = field(default_factory=list)
    conflicts: list[PendingProgression] = field(default_factory=list)


class ProgressionService:
    """Applies ladder progressions and maintains accumulated hours."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_pending(
        self, employee_ids: Iterable[UUID] | None = None
    ) -> list[PendingProgression]:
        """Employees whose accumulated hours imply a higher level than recorded."""
        states = await repositories.load_wage_states(self.session, employee_ids)
        ladders = await repositories.load_ladders(self.session)
        return LadderResolver.find_pending_progressions(states.values(), ladders)

    async def apply_progression(
        self, pending: PendingProgression, actor: str | None = None
    ) -> None:
        """Move one employee to pending.new_level.

        Raises:
            StaleWageStateError: the state changed since pending was computed,
                or the employee is already at or above the new level.
        """
        result = await self.session.execute(
            update(EmployeeWageStateRow)
            .where(
                EmployeeWageStateRow.employee_id == pending.employee_id,
                EmployeeWageStateRow.version == pending.state_version,
                or_(
                    EmployeeWageStateRow.current_level.is_(None),
                    EmployeeWageStateRow.current_level < pending.new_level,
                ),
            )
            .values(
                current_level=pending.new_level,
                version=EmployeeWageStateRow.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleWageStateError(pending.employee_id, pending.state_version)

        self.session.add(
            SeniorityLogEntry(
                employee_id=pending.employee_id,
                ladder_id=pending.ladder_id,
                source="progression",
                hours_added=Decimal("0"),
                total_hours=pending.accumulated_hours,
                previous_level=pending.current_level,
                new_level=pending.new_level,
                note=f"{pending.ladder_name}: level {pending.current_level} -> {pending.new_level}",
                created_by=actor,
            )
        )
        await self.session.flush()
        logger.info(
            "Employee %s progressed to level %d on %s",
            pending.employee_id,
            pending.new_level,
            pending.ladder_name,
        )

    async def apply_progressions(
        self, pending: Iterable[PendingProgression], actor: str | None = None
    ) -> ProgressionBatchResult:
        """Apply a batch; conflicting employees are reported, the rest applied."""
        outcome = ProgressionBatchResult()
        for item in pending:
            try:
                await self.apply_progression(item, actor)
            except StaleWageStateError as e:
                logger.warning("Skipping progression: %s", e)
                outcome.conflicts.append(item)
            else:
                outcome.applied.append(item)
        return outcome

    async def apply_all_pending(self, actor: str | None = None) -> ProgressionBatchResult:
        return await self.apply_progressions(await self.find_pending(), actor)

    async def accrue_hours(
        self,
        employee_id: UUID,
        hours: Decimal,
        note: str | None = None,
    ) -> Decimal:
        """Add worked hours to an employee's total; returns the new total.

        Automatic accrual only ever adds.
        """
        if hours < 0:
            raise ValueError("accrued hours must not be negative")
        return await self._change_hours(employee_id, hours, "accrual", note, None)

    async def adjust_hours(
        self,
        employee_id: UUID,
        delta: Decimal,
        note: str,
        actor: str | None = None,
    ) -> Decimal:
        """Manual correction; may be negative but never below zero."""
        return await self._change_hours(employee_id, delta, "manual", note, actor)

    async def _change_hours(
        self,
        employee_id: UUID,
        delta: Decimal,
        source: str,
        note: str | None,
        actor: str | None,
    ) -> Decimal:
        result = await self.session.execute(
            select(EmployeeWageStateRow)
            .where(EmployeeWageStateRow.employee_id == employee_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise WageStateNotFoundError(employee_id)

        new_total = row.accumulated_hours + delta
        if new_total < 0:
            raise ValueError(
                f"Adjustment of {delta} would leave employee {employee_id} "
                f"with negative hours"
            )

        update_result = await self.session.execute(
            update(EmployeeWageStateRow)
            .where(
                EmployeeWageStateRow.employee_id == employee_id,
                EmployeeWageStateRow.version == row.version,
            )
            .values(
                accumulated_hours=new_total,
                version=row.version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if update_result.rowcount != 1:
            raise StaleWageStateError(employee_id, row.version)

        self.session.add(
            SeniorityLogEntry(
                employee_id=employee_id,
                ladder_id=row.ladder_id,
                source=source,
                hours_added=delta,
                total_hours=new_total,
                previous_level=row.current_level,
                new_level=row.current_level,
                note=note,
                created_by=actor,
            )
        )
        await self.session.flush()
        await self.session.refresh(row)
        return new_total
