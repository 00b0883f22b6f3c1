"""PowerOffice Go payroll import adapter."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from typing import Any
from uuid import UUID

from payroll_export.calculators.types import PayrollLine
from payroll_export.exporters.base import (
    ExportFile,
    ExportFormat,
    IdentityValidation,
    format_amount,
    format_decimal,
    parse_format,
    partition_identities,
    run_serializer,
    to_number,
    write_csv,
)

CSV_HEADERS = (
    "Ansattkode",
    "Lønnskode",
    "Timer",
    "Beløp",
    "Fra",
    "Til",
    "Avdeling",
    "Prosjekt",
    "Beskrivelse",
)


class PowerOfficeAdapter:
    """PowerOffice Go salary lines (CSV or JSON)."""

    system_type = "poweroffice"
    supported_formats = (ExportFormat.CSV, ExportFormat.JSON)

    def __init__(
        self,
        identity_map: Mapping[UUID, str],
        salary_codes: Mapping[str, str] | None = None,
    ):
        self.identity_map = dict(identity_map)
        self.salary_codes = dict(salary_codes or {})

    def validate_employee_identities(
        self, employee_ids: Iterable[UUID]
    ) -> IdentityValidation:
        return partition_identities(employee_ids, self.identity_map)

    def transform(self, lines: Sequence[PayrollLine]) -> list[dict[str, Any]]:
        result: list[dict[str, Any]] = []
        for line in lines:
            employee_code = self.identity_map.get(line.employee_id)
            if not employee_code:
                continue
            result.append({
                "employeeCode": employee_code,
                "salaryCode": self.salary_codes.get(line.component_code, line.component_code),
                "hours": line.quantity,
                "amount": line.amount,
                "periodFrom": line.period_start.isoformat(),
                "periodTo": line.period_end.isoformat(),
                "departmentCode": line.department_code,
                "projectCode": None,
                "description": f"{line.component_name} {line.work_date.isoformat()}",
            })
        return result

    def serialize(self, lines: Sequence[PayrollLine], file_format: str) -> ExportFile:
        fmt = parse_format(self.system_type, file_format, self.supported_formats)
        return run_serializer(self.system_type, lambda: self._serialize(lines, fmt))

    def _serialize(self, lines: Sequence[PayrollLine], fmt: ExportFormat) -> ExportFile:
        records = self.transform(lines)
        stamp = lines[0].period_start.isoformat() if lines else "empty"

        if fmt == ExportFormat.JSON:
            payload = [
                {**r, "hours": to_number(r["hours"]), "amount": to_number(r["amount"])}
                for r in records
            ]
            return ExportFile(
                content=json.dumps(payload, indent=2, ensure_ascii=False),
                filename=f"poweroffice_lonn_{stamp}.json",
                mime_type="application/json",
            )

        rows = (
            (
                r["employeeCode"],
                r["salaryCode"],
                format_decimal(r["hours"]),
                format_amount(r["amount"]),
                r["periodFrom"],
                r["periodTo"],
                r["departmentCode"],
                r["projectCode"],
                r["description"],
            )
            for r in records
        )
        return ExportFile(
            content=write_csv(CSV_HEADERS, rows),
            filename=f"poweroffice_lonn_{stamp}.csv",
            mime_type="text/csv;charset=utf-8",
        )
