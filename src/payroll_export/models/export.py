"""Export run and exported line models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_export.models.base import Base, TimestampMixin


class PayrollExportRun(Base, TimestampMixin):
    """One attempt to export a period to a payroll system.

    A run never leaves completed or failed; retries create a new run.
    """

    __tablename__ = "payroll_export"

    export_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    system: Mapped[str] = mapped_column(String, nullable=False)
    file_format: Mapped[str] = mapped_column(String, nullable=False)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="processing")
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    line_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    warnings: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    filename: Mapped[str | None] = mapped_column(String, nullable=True)
    config_version: Mapped[str | None] = mapped_column(String, nullable=True)
    exported_at: Mapped[datetime | None] = mapped_column(nullable=True)
    exported_by: Mapped[str | None] = mapped_column(String, nullable=True)
    retry_of_export_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payroll_export.export_id"),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('processing', 'completed', 'failed')",
            name="payroll_export_status_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_export_dates_check"),
    )

    lines: Mapped[list[PayrollExportLine]] = relationship(back_populates="export")


class PayrollExportLine(Base, TimestampMixin):
    """Snapshot of one payroll line as sent in a run."""

    __tablename__ = "payroll_export_line"

    line_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    export_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_export.export_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    external_employee_id: Mapped[str | None] = mapped_column(String, nullable=True)
    component_code: Mapped[str] = mapped_column(String, nullable=False)
    external_salary_code: Mapped[str | None] = mapped_column(String, nullable=True)
    component_name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    source_type: Mapped[str] = mapped_column(String, nullable=False)
    source_ids: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    line_hash: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'exported', 'failed')",
            name="payroll_export_line_status_check",
        ),
        CheckConstraint(
            "category IN ('base', 'supplement', 'overtime', 'manual')",
            name="payroll_export_line_category_check",
        ),
    )

    export: Mapped[PayrollExportRun] = relationship(back_populates="lines")
