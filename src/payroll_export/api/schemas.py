"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ============================================================================
# Export run schemas
# ============================================================================


class ExportCreate(BaseModel):
    """Schema for starting an export run."""

    system: str = Field(..., examples=["tripletex"])
    file_format: str = Field("csv", examples=["csv", "json"])
    period_start: date
    period_end: date
    employee_ids: list[UUID] | None = None
    exported_by: str | None = None
    retry_of_export_id: UUID | None = None

    @model_validator(mode="after")
    def check_period(self) -> "ExportCreate":
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class ExportRunResponse(BaseModel):
    """Schema for export run response."""

    model_config = ConfigDict(from_attributes=True)

    export_id: UUID
    system: str
    file_format: str
    period_start: date
    period_end: date
    status: str
    employee_count: int
    line_count: int
    total_amount: Decimal
    warnings: list[dict[str, Any]]
    error_message: str | None = None
    filename: str | None = None
    config_version: str | None = None
    exported_at: datetime | None = None
    exported_by: str | None = None
    retry_of_export_id: UUID | None = None
    created_at: datetime


class ExportFileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    filename: str
    mime_type: str
    content: str


class ExportCreateResponse(BaseModel):
    """Run plus the generated file; file is null when the run failed."""

    run: ExportRunResponse
    file: ExportFileResponse | None = None
    missing_employee_ids: list[UUID] = Field(default_factory=list)


class ExportLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    line_id: UUID
    employee_id: UUID
    external_employee_id: str | None = None
    component_code: str
    external_salary_code: str | None = None
    component_name: str
    category: str
    work_date: date
    quantity: Decimal
    rate: Decimal | None = None
    amount: Decimal
    source_type: str
    source_ids: list[str]
    line_hash: str
    status: str
    error_message: str | None = None


class ExportRunDetailResponse(BaseModel):
    run: ExportRunResponse
    lines: list[ExportLineResponse]


class ExportRunListResponse(BaseModel):
    items: list[ExportRunResponse]
    total: int


# ============================================================================
# Wage progression schemas
# ============================================================================


class PendingProgressionResponse(BaseModel):
    """An employee due for a higher ladder level."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    ladder_id: UUID
    ladder_name: str
    accumulated_hours: Decimal
    current_level: int
    current_rate: Decimal
    new_level: int
    new_rate: Decimal
    state_version: int


class ProgressionListResponse(BaseModel):
    items: list[PendingProgressionResponse]
    total: int


class ApplyProgressionsRequest(BaseModel):
    """Apply pending progressions; all of them when employee_ids is null."""

    employee_ids: list[UUID] | None = None
    actor: str | None = None


class ApplyProgressionsResponse(BaseModel):
    applied: list[PendingProgressionResponse]
    conflicts: list[PendingProgressionResponse]


# ============================================================================
# Wage state and ladder schemas
# ============================================================================


class HoursAdjustmentCreate(BaseModel):
    """Manual correction of accumulated hours; delta may be negative."""

    delta: Decimal = Field(..., examples=["-7.5"])
    note: str = Field(..., min_length=1)
    actor: str | None = None


class WageStateHoursResponse(BaseModel):
    employee_id: UUID
    accumulated_hours: Decimal


class LadderLevelSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    level: int = Field(..., ge=1)
    min_hours: Decimal = Field(..., ge=0)
    max_hours: Decimal | None = None
    hourly_rate: Decimal = Field(..., gt=0)
    effective_from: date | None = None


class LadderUpdate(BaseModel):
    """Full replacement of a ladder and its levels."""

    name: str = Field(..., min_length=1)
    competence: str
    levels: list[LadderLevelSchema] = Field(..., min_length=1)


class LadderResponse(BaseModel):
    ladder_id: UUID
    name: str
    competence: str
    levels: list[LadderLevelSchema]


# ============================================================================
# Errors
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
