"""Computation configuration: supplement rules, wage ladders, work-time rules."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_export.models.base import Base, TimestampMixin


class WageSupplementRuleRow(Base, TimestampMixin):
    """Premium category (evening, night, weekend, holiday...)."""

    __tablename__ = "wage_supplement_rule"

    rule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    category: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    salary_code: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    window_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    window_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    # date.weekday() numbering, Monday = 0
    days_of_week: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)
    holidays_only: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    auto_calculate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    # fixed (kr per hour) or percentage (of the hourly rate)
    supplement_type: Mapped[str] = mapped_column(String, nullable=False, default="fixed")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "(window_start IS NULL) = (window_end IS NULL)",
            name="wage_supplement_rule_window_check",
        ),
        CheckConstraint("amount >= 0", name="wage_supplement_rule_amount_check"),
        CheckConstraint(
            "supplement_type IN ('fixed', 'percentage')",
            name="wage_supplement_rule_type_check",
        ),
    )


class WageLadderRow(Base, TimestampMixin):
    """Seniority wage ladder for one competence."""

    __tablename__ = "wage_ladder"

    ladder_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    competence: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    levels: Mapped[list[WageLadderLevelRow]] = relationship(
        back_populates="ladder",
        cascade="all, delete-orphan",
        order_by="WageLadderLevelRow.level",
    )


class WageLadderLevelRow(Base, TimestampMixin):
    """One level of a wage ladder; max_hours NULL marks the top level."""

    __tablename__ = "wage_ladder_level"

    level_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    ladder_id: Mapped[UUID] = mapped_column(
        ForeignKey("wage_ladder.ladder_id", ondelete="CASCADE"),
        nullable=False,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    min_hours: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    max_hours: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    effective_from: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint("ladder_id", "level", name="wage_ladder_level_unique"),
        CheckConstraint("min_hours >= 0", name="wage_ladder_level_min_check"),
        CheckConstraint(
            "max_hours IS NULL OR max_hours > min_hours",
            name="wage_ladder_level_range_check",
        ),
    )

    ladder: Mapped[WageLadderRow] = relationship(back_populates="levels")


class WorkTimeRuleRow(Base, TimestampMixin):
    """Overtime thresholds; the most recent active row applies."""

    __tablename__ = "work_time_rule"

    rule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    overtime_threshold_daily: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("9")
    )
    overtime_tier1_width: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("2")
    )
    max_overtime_per_week: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    max_overtime_per_year: Mapped[Decimal | None] = mapped_column(Numeric(8, 2), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class HolidayRow(Base):
    """Extra holiday dates on top of the public-holiday calendar."""

    __tablename__ = "holiday_calendar"

    holiday_date: Mapped[date] = mapped_column(Date, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
