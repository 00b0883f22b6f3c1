"""Tests for attendance interval normalization."""

from datetime import date, datetime, timedelta, timezone
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from payroll_export.calculators.interval_normalizer import MalformedIntervalError, normalize
from payroll_export.calculators.types import AttendanceRecord

WORK_DATE = date(2024, 6, 3)
OSLO = ZoneInfo("Europe/Oslo")


class TestNormalize:
    """Test conversion of records to net intervals."""

    def test_day_shift(self, record_factory):
        """08:00-16:00 with 30 min break is 450 net minutes."""
        interval = normalize(record_factory(uuid4(), WORK_DATE, "08:00", "16:00", 30))

        assert interval.start_minute == 8 * 60
        assert interval.end_minute == 16 * 60
        assert interval.gross_minutes == 480
        assert interval.net_minutes == 450

    def test_overnight_shift(self, record_factory):
        """23:00-07:00 with 30 min break crosses midnight: 450 net minutes."""
        interval = normalize(record_factory(uuid4(), WORK_DATE, "23:00", "07:00", 30))

        assert interval.start_minute == 23 * 60
        assert interval.end_minute == 23 * 60 + 480
        assert interval.end_minute >= interval.start_minute
        assert interval.net_minutes == 450
        assert interval.work_date == WORK_DATE

    def test_clock_out_on_same_calendar_day_is_next_day(self):
        """A clock-out time earlier than clock-in on the same date wraps once."""
        record = AttendanceRecord(
            record_id=uuid4(),
            employee_id=uuid4(),
            work_date=WORK_DATE,
            clock_in=datetime(2024, 6, 3, 22, 0),
            clock_out=datetime(2024, 6, 3, 2, 0),
        )

        interval = normalize(record)

        assert interval.gross_minutes == 240
        assert interval.end_minute == 26 * 60

    def test_normalization_is_idempotent(self, record_factory):
        """Normalizing the same record twice gives equal intervals."""
        record = record_factory(uuid4(), WORK_DATE, "21:15", "05:45", 45)

        assert normalize(record) == normalize(record)

    def test_source_id_is_record_id(self, record_factory):
        record = record_factory(uuid4(), WORK_DATE, "08:00", "12:00")

        assert normalize(record).source_id == record.record_id

    def test_open_record_rejected(self, record_factory):
        """A record without clock-out is not eligible."""
        with pytest.raises(MalformedIntervalError):
            normalize(record_factory(uuid4(), WORK_DATE, "08:00", None))

    def test_break_longer_than_shift_rejected(self, record_factory):
        record = record_factory(uuid4(), WORK_DATE, "08:00", "09:00", 90)

        with pytest.raises(MalformedIntervalError) as exc_info:
            normalize(record)

        assert exc_info.value.record_id == record.record_id
        assert "exceeds" in exc_info.value.reason

    def test_negative_break_rejected(self, record_factory):
        with pytest.raises(MalformedIntervalError):
            normalize(record_factory(uuid4(), WORK_DATE, "08:00", "16:00", -5))

    def test_multi_day_span_rejected(self):
        """More than 24 hours between clock-in and clock-out is malformed."""
        clock_in = datetime(2024, 6, 3, 8, 0)
        record = AttendanceRecord(
            record_id=uuid4(),
            employee_id=uuid4(),
            work_date=WORK_DATE,
            clock_in=clock_in,
            clock_out=clock_in + timedelta(hours=25),
        )

        with pytest.raises(MalformedIntervalError):
            normalize(record)

    def test_clock_out_far_before_clock_in_rejected(self):
        """Clock-out more than 24 hours before clock-in is malformed."""
        clock_in = datetime(2024, 6, 3, 8, 0)
        record = AttendanceRecord(
            record_id=uuid4(),
            employee_id=uuid4(),
            work_date=WORK_DATE,
            clock_in=clock_in,
            clock_out=clock_in - timedelta(hours=25),
        )

        with pytest.raises(MalformedIntervalError):
            normalize(record)

    def test_full_day_allowed(self):
        """Exactly 24 hours is the longest accepted span."""
        clock_in = datetime(2024, 6, 3, 8, 0)
        record = AttendanceRecord(
            record_id=uuid4(),
            employee_id=uuid4(),
            work_date=WORK_DATE,
            clock_in=clock_in,
            clock_out=clock_in + timedelta(hours=24),
        )

        assert normalize(record).gross_minutes == 24 * 60


def utc_record(work_date, clock_in, clock_out):
    """Record with timezone-aware UTC clock times, as PostgreSQL returns them."""
    return AttendanceRecord(
        record_id=uuid4(),
        employee_id=uuid4(),
        work_date=work_date,
        clock_in=clock_in.replace(tzinfo=timezone.utc),
        clock_out=clock_out.replace(tzinfo=timezone.utc),
    )


class TestLocalTime:
    """Offsets are taken in the configured local time."""

    def test_aware_times_converted_to_local(self):
        """16:00-20:00 Oslo summer time is 14:00-18:00 UTC."""
        record = utc_record(WORK_DATE, datetime(2024, 6, 3, 14, 0), datetime(2024, 6, 3, 18, 0))

        interval = normalize(record, OSLO)

        assert interval.start_minute == 16 * 60
        assert interval.end_minute == 20 * 60

    def test_winter_offset(self):
        """Oslo is UTC+1 in January."""
        record = utc_record(
            date(2024, 1, 8), datetime(2024, 1, 8, 21, 0), datetime(2024, 1, 9, 5, 0)
        )

        interval = normalize(record, OSLO)

        assert interval.start_minute == 22 * 60
        assert interval.net_minutes == 480

    def test_utc_evening_falls_on_local_next_day(self):
        """23:30 UTC on the work-date is 01:30 local the day after."""
        record = utc_record(WORK_DATE, datetime(2024, 6, 3, 23, 30), datetime(2024, 6, 4, 3, 30))

        interval = normalize(record, OSLO)

        assert interval.start_minute == 24 * 60 + 90
        assert interval.gross_minutes == 240

    def test_naive_times_are_already_local(self, record_factory):
        record = record_factory(uuid4(), WORK_DATE, "16:00", "20:00")

        assert normalize(record, OSLO) == normalize(record)


class TestWorkDateAlignment:
    """Clock-in date relative to the work-date."""

    def test_clock_in_after_midnight_of_previous_work_date(self):
        """A 00:30 clock-in filed on the previous work-date starts at 24:30."""
        record = AttendanceRecord(
            record_id=uuid4(),
            employee_id=uuid4(),
            work_date=WORK_DATE,
            clock_in=datetime(2024, 6, 4, 0, 30),
            clock_out=datetime(2024, 6, 4, 6, 0),
        )

        interval = normalize(record)

        assert interval.start_minute == 24 * 60 + 30
        assert interval.end_minute == 30 * 60

    def test_clock_in_far_from_work_date_rejected(self):
        record = AttendanceRecord(
            record_id=uuid4(),
            employee_id=uuid4(),
            work_date=WORK_DATE,
            clock_in=datetime(2024, 6, 5, 8, 0),
            clock_out=datetime(2024, 6, 5, 16, 0),
        )

        with pytest.raises(MalformedIntervalError) as exc_info:
            normalize(record)

        assert "does not belong" in exc_info.value.reason

    def test_clock_in_before_work_date_rejected(self):
        record = AttendanceRecord(
            record_id=uuid4(),
            employee_id=uuid4(),
            work_date=WORK_DATE,
            clock_in=datetime(2024, 6, 2, 22, 0),
            clock_out=datetime(2024, 6, 3, 6, 0),
        )

        with pytest.raises(MalformedIntervalError):
            normalize(record)
