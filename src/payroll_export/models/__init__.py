"""SQLAlchemy ORM models."""

from payroll_export.models.attendance import AttendanceRecordRow
from payroll_export.models.base import Base, TimestampMixin
from payroll_export.models.configuration import (
    HolidayRow,
    WageLadderLevelRow,
    WageLadderRow,
    WageSupplementRuleRow,
    WorkTimeRuleRow,
)
from payroll_export.models.export import PayrollExportLine, PayrollExportRun
from payroll_export.models.wage import (
    EmployeeExternalId,
    EmployeeWageStateRow,
    SalaryCodeMapping,
    SeniorityLogEntry,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "AttendanceRecordRow",
    "HolidayRow",
    "WageLadderLevelRow",
    "WageLadderRow",
    "WageSupplementRuleRow",
    "WorkTimeRuleRow",
    "PayrollExportLine",
    "PayrollExportRun",
    "EmployeeExternalId",
    "EmployeeWageStateRow",
    "SalaryCodeMapping",
    "SeniorityLogEntry",
]
