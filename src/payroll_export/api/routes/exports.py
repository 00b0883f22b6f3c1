"""Payroll export API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status
from sqlalchemy import func, select

from payroll_export.api.dependencies import Coordinator, DbSession
from payroll_export.api.schemas import (
    ErrorResponse,
    ExportCreate,
    ExportCreateResponse,
    ExportFileResponse,
    ExportLineResponse,
    ExportRunDetailResponse,
    ExportRunListResponse,
    ExportRunResponse,
)
from payroll_export.calculators.ladder_resolver import LadderConfigurationError
from payroll_export.exporters.registry import UnknownPayrollSystemError
from payroll_export.models import PayrollExportRun
from payroll_export.services.export_run_service import ExportRequest

router = APIRouter(prefix="/payroll-exports", tags=["payroll-exports"])


@router.post(
    "",
    response_model=ExportCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_export(
    db: DbSession,
    coordinator: Coordinator,
    payload: ExportCreate,
) -> ExportCreateResponse:
    """Run an export for a period.

    A run that fails during serialization is still created and returned
    with status 'failed'.
    """
    request = ExportRequest(
        system=payload.system,
        file_format=payload.file_format,
        period_start=payload.period_start,
        period_end=payload.period_end,
        employee_ids=payload.employee_ids,
        exported_by=payload.exported_by,
        retry_of_export_id=payload.retry_of_export_id,
    )
    try:
        outcome = await coordinator.run_export(request)
    except UnknownPayrollSystemError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LadderConfigurationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    await db.commit()

    return ExportCreateResponse(
        run=ExportRunResponse.model_validate(outcome.run),
        file=ExportFileResponse.model_validate(outcome.file) if outcome.file else None,
        missing_employee_ids=outcome.missing_employee_ids,
    )


@router.get("", response_model=ExportRunListResponse)
async def list_exports(
    db: DbSession,
    system: Annotated[str | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> ExportRunListResponse:
    """List export runs, newest first."""
    query = select(PayrollExportRun)
    count_query = select(func.count()).select_from(PayrollExportRun)
    if system:
        query = query.where(PayrollExportRun.system == system)
        count_query = count_query.where(PayrollExportRun.system == system)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(
        query.order_by(PayrollExportRun.created_at.desc()).limit(limit)
    )
    return ExportRunListResponse(
        items=[ExportRunResponse.model_validate(r) for r in result.scalars()],
        total=total,
    )


@router.get(
    "/{export_id}",
    response_model=ExportRunDetailResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_export(
    coordinator: Coordinator,
    export_id: Annotated[UUID, Path()],
) -> ExportRunDetailResponse:
    """Get an export run with its lines."""
    run = await coordinator.get_run(export_id)
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Export run not found",
        )
    lines = await coordinator.get_run_lines(export_id)
    return ExportRunDetailResponse(
        run=ExportRunResponse.model_validate(run),
        lines=[ExportLineResponse.model_validate(line) for line in lines],
    )
