"""Tests for seniority progression and hour accrual."""

from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy import select

from payroll_export import repositories
from payroll_export.calculators.ladder_resolver import LadderGapOrOverlapError
from payroll_export.calculators.types import WageLadder, WageLadderLevel
from payroll_export.models import SeniorityLogEntry
from payroll_export.services.progression_service import (
    ProgressionService,
    StaleWageStateError,
)

from factories import make_ladder

pytestmark = pytest.mark.asyncio


async def log_entries(session, employee_id):
    result = await session.execute(
        select(SeniorityLogEntry)
        .where(SeniorityLogEntry.employee_id == employee_id)
        .order_by(SeniorityLogEntry.created_at)
    )
    return list(result.scalars())


@pytest_asyncio.fixture
async def ladder_row(seeder):
    ladder = make_ladder()
    await seeder.ladder(ladder)
    return ladder


class TestProgressions:
    """Detecting and applying ladder progressions."""

    async def test_find_pending(self, session, seeder, ladder_row):
        due, current = uuid4(), uuid4()
        await seeder.wage_state(due, ladder_row.ladder_id, Decimal("1250"), 1)
        await seeder.wage_state(current, ladder_row.ladder_id, Decimal("400"), 1)

        pending = await ProgressionService(session).find_pending()

        assert [p.employee_id for p in pending] == [due]
        assert pending[0].new_level == 2
        assert pending[0].new_rate == Decimal("220")

    async def test_apply_moves_level_and_logs(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("3100"), 1)
        service = ProgressionService(session)

        outcome = await service.apply_all_pending(actor="payroll-admin")

        assert len(outcome.applied) == 1
        assert outcome.conflicts == []
        state = (await repositories.load_wage_states(session, [emp]))[emp]
        assert state.current_level == 3
        assert state.version == 2
        assert state.accumulated_hours == Decimal("3100")

        entries = await log_entries(session, emp)
        assert len(entries) == 1
        assert entries[0].source == "progression"
        assert (entries[0].previous_level, entries[0].new_level) == (1, 3)
        assert entries[0].created_by == "payroll-admin"

        assert await service.find_pending() == []

    async def test_stale_version_is_conflict(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("1100"), 1)
        service = ProgressionService(session)
        pending = await service.find_pending()

        # Concurrent write bumps the version
        await service.accrue_hours(emp, Decimal("8"))

        outcome = await service.apply_progressions(pending)
        assert outcome.applied == []
        assert [p.employee_id for p in outcome.conflicts] == [emp]
        state = (await repositories.load_wage_states(session, [emp]))[emp]
        assert state.current_level == 1

    async def test_apply_twice_raises(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("1100"), 1)
        service = ProgressionService(session)
        (pending,) = await service.find_pending()

        await service.apply_progression(pending)
        with pytest.raises(StaleWageStateError) as exc_info:
            await service.apply_progression(pending)
        assert exc_info.value.employee_id == emp

    async def test_no_downgrade_after_manual_level_change(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("200"), 3)
        assert await ProgressionService(session).find_pending() == []

    async def test_employee_filter(self, session, seeder, ladder_row):
        a, b = uuid4(), uuid4()
        await seeder.wage_state(a, ladder_row.ladder_id, Decimal("1500"), 1)
        await seeder.wage_state(b, ladder_row.ladder_id, Decimal("1500"), 1)

        pending = await ProgressionService(session).find_pending([b])
        assert [p.employee_id for p in pending] == [b]

    async def test_inactive_ladder_skipped(self, session, seeder):
        ladder = make_ladder()
        await seeder.ladder(ladder, is_active=False)
        await seeder.wage_state(uuid4(), ladder.ladder_id, Decimal("5000"), 1)
        assert await ProgressionService(session).find_pending() == []


class TestHourChanges:
    """Accrual and manual adjustment of accumulated hours."""

    async def test_accrue_hours(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("10"), 1)
        service = ProgressionService(session)

        total = await service.accrue_hours(emp, Decimal("7.5"), note="week 23")

        assert total == Decimal("17.5")
        state = (await repositories.load_wage_states(session, [emp]))[emp]
        assert state.accumulated_hours == Decimal("17.5")
        assert state.version == 2
        entries = await log_entries(session, emp)
        assert entries[0].source == "accrual"
        assert entries[0].hours_added == Decimal("7.5")

    async def test_accrual_never_negative(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("10"), 1)
        with pytest.raises(ValueError):
            await ProgressionService(session).accrue_hours(emp, Decimal("-1"))

    async def test_manual_adjustment(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("10"), 1)
        service = ProgressionService(session)

        total = await service.adjust_hours(emp, Decimal("-4"), "double counted", actor="hr")

        assert total == Decimal("6")
        entries = await log_entries(session, emp)
        assert entries[0].source == "manual"
        assert entries[0].created_by == "hr"

    async def test_adjustment_below_zero_rejected(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("3"), 1)
        with pytest.raises(ValueError):
            await ProgressionService(session).adjust_hours(emp, Decimal("-4"), "typo")

    async def test_unknown_employee(self, session):
        with pytest.raises(ValueError):
            await ProgressionService(session).accrue_hours(uuid4(), Decimal("1"))

    async def test_consecutive_changes_bump_version(self, session, seeder, ladder_row):
        emp = uuid4()
        await seeder.wage_state(emp, ladder_row.ladder_id, Decimal("0"), 1)
        service = ProgressionService(session)
        for _ in range(3):
            await service.accrue_hours(emp, Decimal("1"))

        state = (await repositories.load_wage_states(session, [emp]))[emp]
        assert state.accumulated_hours == Decimal("3")
        assert state.version == 4


class TestSaveLadder:
    """Ladder edits are validated before anything is written."""

    async def test_replaces_levels(self, session, ladder_row):
        edited = WageLadder(
            ladder_id=ladder_row.ladder_id,
            name="Cook (2025)",
            competence="kitchen",
            levels=(
                WageLadderLevel(1, Decimal("0"), Decimal("2000"), Decimal("210")),
                WageLadderLevel(2, Decimal("2000"), None, Decimal("240")),
            ),
        )
        await repositories.save_ladder(session, edited)

        ladders = await repositories.load_ladders(session)
        saved = ladders[ladder_row.ladder_id]
        assert saved.name == "Cook (2025)"
        assert [lvl.hourly_rate for lvl in saved.levels] == [Decimal("210"), Decimal("240")]

    async def test_rejects_gaps(self, session):
        broken = WageLadder(
            ladder_id=uuid4(),
            name="Broken",
            competence="x",
            levels=(
                WageLadderLevel(1, Decimal("0"), Decimal("100"), Decimal("150")),
                WageLadderLevel(2, Decimal("120"), None, Decimal("170")),
            ),
        )
        with pytest.raises(LadderGapOrOverlapError):
            await repositories.save_ladder(session, broken)
        assert await repositories.load_ladders(session) == {}
