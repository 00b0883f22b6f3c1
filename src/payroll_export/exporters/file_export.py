"""Generic file export, for destinations without a dedicated adapter.

Employees are identified by their external code when one is known and
by the internal id otherwise, so no mapping is required.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal
from uuid import UUID

from payroll_export.calculators.types import PayrollLine
from payroll_export.exporters.base import (
    ExportFile,
    ExportFormat,
    IdentityValidation,
    format_amount,
    format_decimal,
    parse_format,
    run_serializer,
    to_number,
    write_csv,
)

CSV_HEADERS = (
    "employee_code",
    "employee_name",
    "component_code",
    "component_name",
    "category",
    "work_date",
    "quantity",
    "rate",
    "amount",
    "period_start",
    "period_end",
    "department_code",
)


class FileExportAdapter:
    system_type = "file_export"
    supported_formats = (ExportFormat.JSON, ExportFormat.CSV)

    def __init__(
        self,
        identity_map: Mapping[UUID, str] | None = None,
        system_name: str = "payroll-export-engine",
        system_version: str = "0.1.0",
    ):
        self.identity_map = dict(identity_map or {})
        self.system_name = system_name
        self.system_version = system_version

    def validate_employee_identities(
        self, employee_ids: Iterable[UUID]
    ) -> IdentityValidation:
        return IdentityValidation(valid=list(dict.fromkeys(employee_ids)), missing=[])

    def employee_code(self, employee_id: UUID) -> str:
        return self.identity_map.get(employee_id) or str(employee_id)

    def serialize(self, lines: Sequence[PayrollLine], file_format: str) -> ExportFile:
        fmt = parse_format(self.system_type, file_format, self.supported_formats)
        return run_serializer(self.system_type, lambda: self._serialize(lines, fmt))

    def _serialize(self, lines: Sequence[PayrollLine], fmt: ExportFormat) -> ExportFile:
        stamp = lines[0].period_start.isoformat() if lines else "empty"

        if fmt == ExportFormat.CSV:
            rows = (
                (
                    self.employee_code(line.employee_id),
                    line.employee_name,
                    line.component_code,
                    line.component_name,
                    line.category.value,
                    line.work_date.isoformat(),
                    format_decimal(line.quantity),
                    format_decimal(line.rate),
                    format_amount(line.amount),
                    line.period_start.isoformat(),
                    line.period_end.isoformat(),
                    line.department_code,
                )
                for line in lines
            )
            return ExportFile(
                content=write_csv(CSV_HEADERS, rows),
                filename=f"payroll_export_{stamp}.csv",
                mime_type="text/csv;charset=utf-8",
            )

        total = sum((line.amount for line in lines), Decimal("0"))
        document = {
            "periodStart": lines[0].period_start.isoformat() if lines else None,
            "periodEnd": lines[0].period_end.isoformat() if lines else None,
            "systemInfo": {"name": self.system_name, "version": self.system_version},
            "totals": {
                "employeeCount": len({line.employee_id for line in lines}),
                "lineCount": len(lines),
                "totalAmount": to_number(total),
            },
            "lines": [
                {
                    "employeeId": str(line.employee_id),
                    "employeeCode": self.employee_code(line.employee_id),
                    "employeeName": line.employee_name,
                    "componentCode": line.component_code,
                    "componentName": line.component_name,
                    "category": line.category.value,
                    "workDate": line.work_date.isoformat(),
                    "quantity": to_number(line.quantity),
                    "rate": to_number(line.rate),
                    "amount": to_number(line.amount),
                    "sourceType": line.source_type.value,
                    "sourceIds": [str(s) for s in line.source_ids],
                    "departmentCode": line.department_code,
                }
                for line in lines
            ],
        }
        return ExportFile(
            content=json.dumps(document, indent=2, ensure_ascii=False),
            filename=f"payroll_export_{stamp}.json",
            mime_type="application/json",
        )
