"""Employee seniority state and its audit log."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from payroll_export.models.base import Base, TimestampMixin, utcnow


class EmployeeWageStateRow(Base):
    """Accumulated hours and recorded ladder level per employee.

    version is bumped on every write; progression updates are conditional
    on it.
    """

    __tablename__ = "employee_wage_state"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True)
    ladder_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("wage_ladder.ladder_id"),
        nullable=True,
    )
    accumulated_hours: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=Decimal("0")
    )
    current_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fallback_hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("accumulated_hours >= 0", name="employee_wage_state_hours_check"),
    )


class SeniorityLogEntry(Base, TimestampMixin):
    """Append-only record of hour accruals, adjustments and level changes."""

    __tablename__ = "seniority_log"

    entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    ladder_id: Mapped[UUID | None] = mapped_column(nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False)
    hours_added: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    previous_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    new_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "source IN ('accrual', 'manual', 'progression')",
            name="seniority_log_source_check",
        ),
        Index("seniority_log_employee_idx", "employee_id", "created_at"),
    )


class EmployeeExternalId(Base, TimestampMixin):
    """Employee identifier in an external payroll system."""

    __tablename__ = "employee_external_id"

    mapping_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(nullable=False)
    system: Mapped[str] = mapped_column(String, nullable=False)
    external_id: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "system", name="employee_external_id_unique"),
    )


class SalaryCodeMapping(Base, TimestampMixin):
    """Translation of an internal salary code to a system's own code."""

    __tablename__ = "salary_code_mapping"

    mapping_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    system: Mapped[str] = mapped_column(String, nullable=False)
    internal_code: Mapped[str] = mapped_column(String, nullable=False)
    external_code: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("system", "internal_code", name="salary_code_mapping_unique"),
    )
