"""Tests for payroll system export adapters."""

import csv
import io
import json
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from payroll_export.calculators.types import LineCategory, LineSourceType, PayrollLine
from payroll_export.exporters import (
    AdapterRegistry,
    AdapterSerializationError,
    FileExportAdapter,
    PowerOfficeAdapter,
    TripletexAdapter,
    UnknownPayrollSystemError,
    UnsupportedFormatError,
    default_registry,
)
from payroll_export.exporters.base import format_amount, format_decimal

MAPPED = uuid4()
UNMAPPED = uuid4()


def line(employee_id=MAPPED, code="1000", quantity="4", rate="200", amount="800.00", **extra):
    fields = dict(
        employee_id=employee_id,
        component_code=code,
        component_name="Hourly wage",
        category=LineCategory.BASE,
        work_date=date(2024, 6, 3),
        quantity=Decimal(quantity),
        period_start=date(2024, 6, 1),
        period_end=date(2024, 6, 30),
        source_type=LineSourceType.ATTENDANCE,
        source_ids=(uuid4(),),
        rate=Decimal(rate) if rate is not None else None,
        amount=Decimal(amount) if amount is not None else None,
        department_code="K1",
    )
    fields.update(extra)
    return PayrollLine(**fields)


def parse_csv(content):
    return list(csv.reader(io.StringIO(content), delimiter=";"))


class TestFormatting:
    def test_format_decimal(self):
        assert format_decimal(Decimal("4.0000")) == "4"
        assert format_decimal(Decimal("7.5000")) == "7.5"
        assert format_decimal(Decimal("0.0000")) == "0"
        assert format_decimal(Decimal("200")) == "200"
        assert format_decimal(None) == ""

    def test_format_amount(self):
        assert format_amount(Decimal("800")) == "800.00"
        assert format_amount(Decimal("12.5")) == "12.50"


class TestTripletexAdapter:
    """Tripletex salary import file."""

    def adapter(self, salary_codes=None):
        return TripletexAdapter({MAPPED: "1042"}, salary_codes)

    def test_validate_identities(self):
        result = self.adapter().validate_employee_identities([MAPPED, UNMAPPED, MAPPED])
        assert result.valid == [MAPPED]
        assert result.missing == [UNMAPPED]

    def test_csv(self):
        export = self.adapter().serialize([line()], "csv")
        rows = parse_csv(export.content)

        assert rows[0] == [
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
        ]
        assert rows[1] == [
            "1042", "1000", "Hourly wage", "4", "200", "800.00",
            "2024-06-01", "2024-06-30", "", "K1",
        ]
        assert export.filename == "tripletex_lonn_2024-06-01.csv"
        assert export.mime_type == "text/csv;charset=utf-8"
        assert export.payload == export.content.encode("utf-8")

    def test_json(self):
        export = self.adapter().serialize([line()], "json")
        records = json.loads(export.content)

        assert records == [
            {
                "ansattnummer": "1042",
                "lønnsartNummer": "1000",
                "lønnsartNavn": "Hourly wage",
                "antall": 4.0,
                "sats": 200.0,
                "beløp": 800.0,
                "fraDato": "2024-06-01",
                "tilDato": "2024-06-30",
                "prosjektNummer": None,
                "avdelingNummer": "K1",
            }
        ]
        assert "lønnsart" in export.content  # not escaped
        assert export.filename == "tripletex_lonn_2024-06-01.json"
        assert export.mime_type == "application/json"

    def test_unmapped_employee_left_out(self):
        export = self.adapter().serialize([line(), line(employee_id=UNMAPPED)], "csv")
        assert len(parse_csv(export.content)) == 2

    def test_salary_code_mapping(self):
        records = self.adapter({"1000": "10"}).transform([line(), line(code="2020")])
        assert [r["lønnsartNummer"] for r in records] == ["10", "2020"]

    def test_empty_export(self):
        export = self.adapter().serialize([], "csv")
        assert export.filename == "tripletex_lonn_empty.csv"
        assert len(parse_csv(export.content)) == 1

    def test_format_is_case_insensitive(self):
        assert self.adapter().serialize([line()], "CSV").filename.endswith(".csv")

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormatError) as exc_info:
            self.adapter().serialize([line()], "xlsx")
        assert exc_info.value.supported == ["csv", "json"]

    def test_unknown_format(self):
        with pytest.raises(UnsupportedFormatError):
            self.adapter().serialize([line()], "pdf")

    def test_failure_wrapped(self):
        with pytest.raises(AdapterSerializationError) as exc_info:
            self.adapter().serialize([line(amount=None)], "csv")
        assert exc_info.value.system == "tripletex"

    def test_deterministic_and_non_mutating(self):
        lines = [line(), line(code="2020", quantity="1.5")]
        snapshot = list(lines)
        first = self.adapter().serialize(lines, "json")
        second = self.adapter().serialize(lines, "json")
        assert first == second
        assert lines == snapshot


class TestPowerOfficeAdapter:
    """PowerOffice Go salary lines."""

    def adapter(self):
        return PowerOfficeAdapter({MAPPED: "E-7"}, {"2020": "N1"})

    def test_csv(self):
        export = self.adapter().serialize([line(code="2020", component_name="Night supplement")], "csv")
        rows = parse_csv(export.content)

        assert rows[0] == [
            "Ansattkode", "Lønnskode", "Timer", "Beløp", "Fra", "Til",
            "Avdeling", "Prosjekt", "Beskrivelse",
        ]
        assert rows[1] == [
            "E-7", "N1", "4", "800.00", "2024-06-01", "2024-06-30",
            "K1", "", "Night supplement 2024-06-03",
        ]
        assert export.filename == "poweroffice_lonn_2024-06-01.csv"

    def test_json(self):
        export = self.adapter().serialize([line(), line(employee_id=UNMAPPED)], "json")
        records = json.loads(export.content)
        assert len(records) == 1
        assert records[0]["employeeCode"] == "E-7"
        assert records[0]["salaryCode"] == "1000"
        assert records[0]["hours"] == 4.0
        assert records[0]["amount"] == 800.0
        assert export.filename == "poweroffice_lonn_2024-06-01.json"

    def test_xml_unsupported(self):
        with pytest.raises(UnsupportedFormatError):
            self.adapter().serialize([line()], "xml")


class TestFileExportAdapter:
    """Generic file export without identity requirements."""

    def test_all_employees_valid(self):
        result = FileExportAdapter().validate_employee_identities([MAPPED, UNMAPPED])
        assert result.valid == [MAPPED, UNMAPPED]
        assert result.missing == []

    def test_json_document(self):
        adapter = FileExportAdapter({MAPPED: "1042"}, system_version="9.9")
        export = adapter.serialize(
            [line(), line(employee_id=UNMAPPED, amount="150.50")], "json"
        )
        document = json.loads(export.content)

        assert document["periodStart"] == "2024-06-01"
        assert document["periodEnd"] == "2024-06-30"
        assert document["systemInfo"] == {"name": "payroll-export-engine", "version": "9.9"}
        assert document["totals"] == {
            "employeeCount": 2,
            "lineCount": 2,
            "totalAmount": 950.5,
        }
        codes = [entry["employeeCode"] for entry in document["lines"]]
        assert codes == ["1042", str(UNMAPPED)]
        assert document["lines"][0]["category"] == "base"
        assert export.filename == "payroll_export_2024-06-01.json"

    def test_csv(self):
        export = FileExportAdapter().serialize([line()], "csv")
        rows = parse_csv(export.content)
        assert rows[0][:3] == ["employee_code", "employee_name", "component_code"]
        assert rows[1][0] == str(MAPPED)
        assert rows[1][6:9] == ["4", "200", "800.00"]

    def test_empty_json(self):
        document = json.loads(FileExportAdapter().serialize([], "json").content)
        assert document["periodStart"] is None
        assert document["lines"] == []
        assert document["totals"]["totalAmount"] == 0.0


class TestAdapterRegistry:
    """Registry lookups and registration."""

    def test_default_systems(self):
        registry = default_registry()
        assert registry.available_systems() == ["file_export", "poweroffice", "tripletex"]
        assert registry.requires_identity("tripletex") is True
        assert registry.requires_identity("file_export") is False

    def test_create_passes_mappings(self):
        adapter = default_registry().create("tripletex", {MAPPED: "1"}, {"1000": "10"})
        assert isinstance(adapter, TripletexAdapter)
        assert adapter.salary_codes == {"1000": "10"}

    def test_file_export_carries_engine_version(self):
        adapter = default_registry("2.3.4").create("file_export", {})
        assert isinstance(adapter, FileExportAdapter)
        assert adapter.system_version == "2.3.4"

    def test_unknown_system(self):
        registry = default_registry()
        assert registry.is_supported("visma") is False
        with pytest.raises(UnknownPayrollSystemError) as exc_info:
            registry.create("visma", {})
        assert exc_info.value.available == ["file_export", "poweroffice", "tripletex"]

    def test_register_custom_system(self):
        registry = AdapterRegistry()
        registry.register("custom", lambda ids, codes: FileExportAdapter(ids))
        assert registry.is_supported("custom")
        assert registry.pricing_for("custom").name == "custom"
