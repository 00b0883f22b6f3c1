"""Attendance record normalization into net worked intervals."""

from __future__ import annotations

from datetime import datetime, tzinfo
from uuid import UUID

from payroll_export.calculators.types import (
    MINUTES_PER_DAY,
    AttendanceRecord,
    NormalizedInterval,
)


class MalformedIntervalError(Exception):
    """Raised when an attendance record cannot be turned into an interval."""

    def __init__(self, record_id: UUID, employee_id: UUID, reason: str):
        self.record_id = record_id
        self.employee_id = employee_id
        self.reason = reason
        super().__init__(f"Attendance record {record_id} is malformed: {reason}")


def _local(value: datetime, tz: tzinfo | None) -> datetime:
    # Naive values are already local wall-clock time
    if tz is None or value.tzinfo is None:
        return value
    return value.astimezone(tz)


def normalize(record: AttendanceRecord, tz: tzinfo | None = None) -> NormalizedInterval:
    """Convert one closed attendance record into a NormalizedInterval.

    Offsets are local minutes from midnight at the start of the work-date.
    Timezone-aware clock times are converted to tz first. A clock-in on
    the day after the work-date (a shift filed on the previous day that
    starts after midnight) gets an offset past 24 hours.

    A clock-out earlier than clock-in is treated as a single midnight
    crossing and 24 hours are added to the end. Anything that would need
    more than one crossing is rejected.

    Raises:
        MalformedIntervalError: open record, multi-day span, a break
            longer than the gross duration, or a clock-in that is neither
            on the work-date nor the day after.
    """
    if record.clock_out is None:
        raise MalformedIntervalError(
            record.record_id, record.employee_id, "record has no clock-out"
        )
    if record.break_minutes < 0:
        raise MalformedIntervalError(
            record.record_id,
            record.employee_id,
            f"negative break minutes ({record.break_minutes})",
        )

    gross = int((record.clock_out - record.clock_in).total_seconds() // 60)
    if gross < 0:
        if gross < -MINUTES_PER_DAY:
            raise MalformedIntervalError(
                record.record_id,
                record.employee_id,
                "clock-out precedes clock-in by more than 24 hours",
            )
        gross += MINUTES_PER_DAY
    if gross > MINUTES_PER_DAY:
        raise MalformedIntervalError(
            record.record_id,
            record.employee_id,
            f"span of {gross} minutes crosses more than one midnight",
        )
    if record.break_minutes > gross:
        raise MalformedIntervalError(
            record.record_id,
            record.employee_id,
            f"break of {record.break_minutes} minutes exceeds gross duration of {gross}",
        )

    clock_in = _local(record.clock_in, tz)
    day_offset = (clock_in.date() - record.work_date).days
    if day_offset not in (0, 1):
        raise MalformedIntervalError(
            record.record_id,
            record.employee_id,
            f"clock-in on {clock_in.date()} does not belong to work-date {record.work_date}",
        )
    start = day_offset * MINUTES_PER_DAY + clock_in.hour * 60 + clock_in.minute
    return NormalizedInterval(
        employee_id=record.employee_id,
        work_date=record.work_date,
        start_minute=start,
        end_minute=start + gross,
        break_minutes=record.break_minutes,
        source_id=record.record_id,
    )
