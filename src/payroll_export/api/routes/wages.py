"""Wage state corrections and wage ladder maintenance."""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from payroll_export import repositories
from payroll_export.api.dependencies import DbSession, Progressions
from payroll_export.api.schemas import (
    ErrorResponse,
    HoursAdjustmentCreate,
    LadderLevelSchema,
    LadderResponse,
    LadderUpdate,
    WageStateHoursResponse,
)
from payroll_export.calculators.types import WageLadder, WageLadderLevel
from payroll_export.services.progression_service import WageStateNotFoundError

router = APIRouter(tags=["wages"])


@router.post(
    "/wage-states/{employee_id}/adjustments",
    response_model=WageStateHoursResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def adjust_hours(
    db: DbSession,
    service: Progressions,
    employee_id: UUID,
    payload: HoursAdjustmentCreate,
) -> WageStateHoursResponse:
    """Manually correct an employee's accumulated hours.

    This is the only way hours move down. The change is written to the
    seniority log; it never changes the recorded level.
    """
    try:
        total = await service.adjust_hours(
            employee_id, payload.delta, payload.note, payload.actor
        )
    except WageStateNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    await db.commit()
    return WageStateHoursResponse(employee_id=employee_id, accumulated_hours=total)


@router.put(
    "/wage-ladders/{ladder_id}",
    response_model=LadderResponse,
    responses={422: {"model": ErrorResponse}},
)
async def put_ladder(
    db: DbSession,
    ladder_id: UUID,
    payload: LadderUpdate,
) -> LadderResponse:
    """Create or replace a wage ladder.

    Levels must be contiguous with one open top level; gaps and overlaps
    are rejected with 422 and nothing is written.
    """
    ladder = WageLadder(
        ladder_id=ladder_id,
        name=payload.name,
        competence=payload.competence,
        levels=tuple(
            WageLadderLevel(
                level=lvl.level,
                min_hours=lvl.min_hours,
                max_hours=lvl.max_hours,
                hourly_rate=lvl.hourly_rate,
                effective_from=lvl.effective_from,
            )
            for lvl in payload.levels
        ),
    )
    await repositories.save_ladder(db, ladder)
    await db.commit()
    return LadderResponse(
        ladder_id=ladder.ladder_id,
        name=ladder.name,
        competence=ladder.competence,
        levels=[LadderLevelSchema.model_validate(lvl) for lvl in ladder.levels],
    )
