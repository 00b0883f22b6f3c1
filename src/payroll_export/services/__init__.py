"""Service layer for export runs and seniority progression."""

from payroll_export.services.export_run_service import (
    ExportOutcome,
    ExportRequest,
    ExportRunCoordinator,
)
from payroll_export.services.progression_service import (
    ProgressionBatchResult,
    ProgressionService,
    StaleWageStateError,
)
from payroll_export.services.state_machine import (
    ExportLineStatus,
    ExportRunStateMachine,
    ExportRunStatus,
    InvalidTransitionError,
)

__all__ = [
    "ExportOutcome",
    "ExportRequest",
    "ExportRunCoordinator",
    "ProgressionBatchResult",
    "ProgressionService",
    "StaleWageStateError",
    "ExportLineStatus",
    "ExportRunStateMachine",
    "ExportRunStatus",
    "InvalidTransitionError",
]
