"""Attendance input model."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from payroll_export.models.base import Base, TimestampMixin


class AttendanceRecordRow(Base, TimestampMixin):
    """Clock-in/clock-out pair as captured upstream.

    Only approved, closed records are read by the engine.
    """

    __tablename__ = "attendance_record"

    attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    clock_in: Mapped[datetime] = mapped_column(nullable=False)
    clock_out: Mapped[datetime | None] = mapped_column(nullable=True)
    break_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    planned_shift_id: Mapped[UUID | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    employee_name: Mapped[str | None] = mapped_column(String, nullable=True)
    department_code: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="attendance_record_status_check",
        ),
        Index("attendance_record_employee_date_idx", "employee_id", "work_date"),
    )
