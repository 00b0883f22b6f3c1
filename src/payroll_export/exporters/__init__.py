"""Export adapters for external payroll systems."""

from payroll_export.exporters.base import (
    AdapterSerializationError,
    ExportAdapterError,
    ExportFile,
    ExportFormat,
    IdentityValidation,
    PayrollExportAdapter,
    UnsupportedFormatError,
)
from payroll_export.exporters.file_export import FileExportAdapter
from payroll_export.exporters.poweroffice import PowerOfficeAdapter
from payroll_export.exporters.registry import (
    AdapterRegistry,
    UnknownPayrollSystemError,
    default_registry,
)
from payroll_export.exporters.tripletex import TripletexAdapter

__all__ = [
    "AdapterSerializationError",
    "ExportAdapterError",
    "ExportFile",
    "ExportFormat",
    "IdentityValidation",
    "PayrollExportAdapter",
    "UnsupportedFormatError",
    "FileExportAdapter",
    "PowerOfficeAdapter",
    "TripletexAdapter",
    "AdapterRegistry",
    "UnknownPayrollSystemError",
    "default_registry",
]
