"""Export run state machine with transition validation."""

from __future__ import annotations

from enum import Enum


class ExportRunStatus(str, Enum):
    """Export run status values."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ExportLineStatus(str, Enum):
    """Exported line status values."""

    PENDING = "pending"
    EXPORTED = "exported"
    FAILED = "failed"


class InvalidTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ExportRunStateMachine:
    """State machine for export run status transitions.

    Allowed transitions:
    - processing → completed
    - processing → failed

    completed and failed are terminal; a retry is a new run.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        ExportRunStatus.PROCESSING: [ExportRunStatus.COMPLETED, ExportRunStatus.FAILED],
        ExportRunStatus.COMPLETED: [],
        ExportRunStatus.FAILED: [],
    }

    LINE_STATUS_FOR_RUN: dict[str, ExportLineStatus] = {
        ExportRunStatus.PROCESSING: ExportLineStatus.PENDING,
        ExportRunStatus.COMPLETED: ExportLineStatus.EXPORTED,
        ExportRunStatus.FAILED: ExportLineStatus.FAILED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            reason = "run is terminal" if cls.is_terminal(from_status) else None
            raise InvalidTransitionError(from_status, to_status, reason)

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.VALID_TRANSITIONS and not cls.VALID_TRANSITIONS[status]

    @classmethod
    def line_status_for(cls, run_status: str) -> str:
        """Status lines of a run carry once the run reaches run_status."""
        return cls.LINE_STATUS_FOR_RUN[run_status].value

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return cls.VALID_TRANSITIONS.get(current_status, [])
