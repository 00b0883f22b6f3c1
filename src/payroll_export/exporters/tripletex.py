"""Tripletex payroll import adapter.

Produces the salary transaction import file accepted by Tripletex
(semicolon separated CSV or JSON).
"""

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
    "Ansattnummer",
    "Lønnsart nummer",
    "Lønnsart navn",
    "Antall",
    "Sats",
    "Beløp",
    "Fra dato",
    "Til dato",
    "Prosjekt",
    "Avdeling",
)


class TripletexAdapter:
    """Tripletex salary import.

    Lines for employees without an employee number are left out of the
    file; the coordinator reports them before serialization.
    """

    system_type = "tripletex"
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
        """Map internal lines to Tripletex salary transaction records."""
        result: list[dict[str, Any]] = []
        for line in lines:
            employee_number = self.identity_map.get(line.employee_id)
            if not employee_number:
                continue
            result.append({
                "ansattnummer": employee_number,
                "lønnsartNummer": self.salary_codes.get(line.component_code, line.component_code),
                "lønnsartNavn": line.component_name,
                "antall": line.quantity,
                "sats": line.rate,
                "beløp": line.amount,
                "fraDato": line.period_start.isoformat(),
                "tilDato": line.period_end.isoformat(),
                "prosjektNummer": None,
                "avdelingNummer": line.department_code,
            })
        return result

    def serialize(self, lines: Sequence[PayrollLine], file_format: str) -> ExportFile:
        fmt = parse_format(self.system_type, file_format, self.supported_formats)
        return run_serializer(self.system_type, lambda: self._serialize(lines, fmt))

    def _serialize(self, lines: Sequence[PayrollLine], fmt: ExportFormat) -> ExportFile:
        records = self.transform(lines)
        stamp = lines[0].period_start.isoformat() if lines else "empty"

        if fmt == ExportFormat.CSV:
            rows = (
                (
                    r["ansattnummer"],
                    r["lønnsartNummer"],
                    r["lønnsartNavn"],
                    format_decimal(r["antall"]),
                    format_decimal(r["sats"]),
                    format_amount(r["beløp"]),
                    r["fraDato"],
                    r["tilDato"],
                    r["prosjektNummer"],
                    r["avdelingNummer"],
                )
                for r in records
            )
            return ExportFile(
                content=write_csv(CSV_HEADERS, rows),
                filename=f"tripletex_lonn_{stamp}.csv",
                mime_type="text/csv;charset=utf-8",
            )

        payload = [
            {
                **r,
                "antall": to_number(r["antall"]),
                "sats": to_number(r["sats"]),
                "beløp": to_number(r["beløp"]),
            }
            for r in records
        ]
        return ExportFile(
            content=json.dumps(payload, indent=2, ensure_ascii=False),
            filename=f"tripletex_lonn_{stamp}.json",
            mime_type="application/json",
        )
