"""Wage progression API endpoints."""

from fastapi import APIRouter

from payroll_export.api.dependencies import DbSession, Progressions
from payroll_export.api.schemas import (
    ApplyProgressionsRequest,
    ApplyProgressionsResponse,
    PendingProgressionResponse,
    ProgressionListResponse,
)

router = APIRouter(prefix="/wage-progressions", tags=["wage-progressions"])


@router.get("", response_model=ProgressionListResponse)
async def list_pending_progressions(service: Progressions) -> ProgressionListResponse:
    """Employees whose accumulated hours qualify them for a higher level."""
    pending = await service.find_pending()
    return ProgressionListResponse(
        items=[PendingProgressionResponse.model_validate(p) for p in pending],
        total=len(pending),
    )


@router.post("/apply", response_model=ApplyProgressionsResponse)
async def apply_progressions(
    db: DbSession,
    service: Progressions,
    payload: ApplyProgressionsRequest,
) -> ApplyProgressionsResponse:
    """Apply pending progressions.

    Employees whose state changed concurrently are returned as conflicts
    and left untouched.
    """
    pending = await service.find_pending(payload.employee_ids)
    outcome = await service.apply_progressions(pending, payload.actor)
    await db.commit()
    return ApplyProgressionsResponse(
        applied=[PendingProgressionResponse.model_validate(p) for p in outcome.applied],
        conflicts=[PendingProgressionResponse.model_validate(p) for p in outcome.conflicts],
    )
