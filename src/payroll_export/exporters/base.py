"""Base protocol and types for payroll system export adapters.

All adapters must implement the PayrollExportAdapter protocol.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Protocol, TypeVar
from uuid import UUID

from payroll_export.calculators.types import PayrollLine

T = TypeVar("T")


class ExportFormat(str, Enum):
    """File formats an adapter may support."""

    CSV = "csv"
    JSON = "json"
    XLSX = "xlsx"
    XML = "xml"


class ExportAdapterError(Exception):
    """Base class for adapter failures; any of them fails the whole run."""


class UnsupportedFormatError(ExportAdapterError):
    """Raised when an adapter is asked for a format it cannot produce."""

    def __init__(self, system: str, file_format: str, supported: Iterable[ExportFormat]):
        self.system = system
        self.file_format = file_format
        self.supported = [f.value for f in supported]
        super().__init__(
            f"Unsupported format '{file_format}' for {system} "
            f"(supported: {', '.join(self.supported)})"
        )


class AdapterSerializationError(ExportAdapterError):
    """Raised when serialization fails; no partial output is returned."""

    def __init__(self, system: str, reason: str):
        self.system = system
        self.reason = reason
        super().__init__(f"{system} serialization failed: {reason}")


@dataclass(frozen=True)
class IdentityValidation:
    """Partition of employee ids by presence of an external mapping."""

    valid: list[UUID]
    missing: list[UUID]


@dataclass(frozen=True)
class ExportFile:
    """A fully serialized export, ready for delivery."""

    content: str
    filename: str
    mime_type: str

    @property
    def payload(self) -> bytes:
        return self.content.encode("utf-8")


class PayrollExportAdapter(Protocol):
    """Protocol for payroll system export adapters.

    Each external payroll system has its own adapter implementing this
    protocol. The run coordinator uses adapters without knowing
    system-specific details.
    """

    system_type: str
    supported_formats: tuple[ExportFormat, ...]

    def validate_employee_identities(
        self, employee_ids: Iterable[UUID]
    ) -> IdentityValidation:
        """Partition employees into those with and without an external code.

        Never raises; a missing mapping is a normal outcome.
        """
        ...

    def serialize(self, lines: Sequence[PayrollLine], file_format: str) -> ExportFile:
        """Serialize lines into the target system's file format.

        Must be deterministic and must not mutate the lines.

        Raises:
            UnsupportedFormatError: if file_format is not supported.
            AdapterSerializationError: on any other failure.
        """
        ...


def partition_identities(
    employee_ids: Iterable[UUID], identity_map: Mapping[UUID, str]
) -> IdentityValidation:
    """Split ids by presence in the identity map, keeping first-seen order."""
    seen: set[UUID] = set()
    valid: list[UUID] = []
    missing: list[UUID] = []
    for employee_id in employee_ids:
        if employee_id in seen:
            continue
        seen.add(employee_id)
        if identity_map.get(employee_id):
            valid.append(employee_id)
        else:
            missing.append(employee_id)
    return IdentityValidation(valid=valid, missing=missing)


def parse_format(
    system: str, file_format: str, supported: Sequence[ExportFormat]
) -> ExportFormat:
    """Resolve a format string, raising UnsupportedFormatError if not allowed."""
    try:
        fmt = ExportFormat(str(file_format).lower())
    except ValueError:
        raise UnsupportedFormatError(system, str(file_format), supported) from None
    if fmt not in supported:
        raise UnsupportedFormatError(system, fmt.value, supported)
    return fmt


def run_serializer(system: str, build: Callable[[], T]) -> T:
    """Run a serializer, converting any failure to AdapterSerializationError."""
    try:
        return build()
    except ExportAdapterError:
        raise
    except Exception as e:
        raise AdapterSerializationError(system, str(e) or type(e).__name__) from e


def format_decimal(value: Decimal | None) -> str:
    """Plain decimal text without trailing zeros; empty for None."""
    if value is None:
        return ""
    normalized = value.normalize()
    return format(normalized, "f") if normalized != 0 else "0"


def format_amount(value: Decimal) -> str:
    """Currency amount with exactly two decimals."""
    return f"{value:.2f}"


def to_number(value: Decimal | None) -> float | None:
    """JSON-friendly number for a decimal value."""
    return float(value) if value is not None else None


def write_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Semicolon separated CSV, as expected by Norwegian payroll imports."""
    output = io.StringIO()
    writer = csv.writer(output, delimiter=";", lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return output.getvalue()
