"""Export run coordinator - computes, prices, validates and serializes one run."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_export import repositories
from payroll_export.calculators.engine import ComputationResult, PayrollComputation
from payroll_export.calculators.line_builder import PayrollLineBuilder
from payroll_export.calculators.types import PayrollLine
from payroll_export.config import Settings, get_settings
from payroll_export.exporters.base import ExportAdapterError, ExportFile
from payroll_export.exporters.registry import (
    AdapterRegistry,
    UnknownPayrollSystemError,
    default_registry,
)
from payroll_export.models import PayrollExportLine, PayrollExportRun
from payroll_export.models.base import utcnow
from payroll_export.services.state_machine import (
    ExportRunStateMachine,
    ExportRunStatus,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportRequest:
    """Parameters of one export."""

    system: str
    file_format: str
    period_start: date
    period_end: date
    employee_ids: list[UUID] | None = None
    exported_by: str | None = None
    retry_of_export_id: UUID | None = None


@dataclass
class ExportOutcome:
    """Result of run_export.

    A failed run is returned rather than raised so the run row and its
    lines stay committed for audit.
    """

    run: PayrollExportRun
    file: ExportFile | None = None
    missing_employee_ids: list[UUID] = field(default_factory=list)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.run.status == ExportRunStatus.COMPLETED


class ExportRunCoordinator:
    """Drives a payroll export run from attendance to file.

    Steps:
    1) Freeze configuration and compute lines per employee
    2) Price lines for the target system
    3) Partition employees by external identity mapping
    4) Create the run (processing) and its pending lines
    5) Serialize; complete the run, or fail it with the adapter error

    Configuration problems raise before any run exists. Employees without
    a mapping are dropped with a warning and never fail the run.
    """

    def __init__(
        self,
        session: AsyncSession,
        registry: AdapterRegistry | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self.registry = registry or default_registry(self.settings.engine_version)

    async def get_run(self, export_id: UUID) -> PayrollExportRun | None:
        result = await self.session.execute(
            select(PayrollExportRun)
            .where(PayrollExportRun.export_id == export_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_run_lines(self, export_id: UUID) -> list[PayrollExportLine]:
        result = await self.session.execute(
            select(PayrollExportLine)
            .where(PayrollExportLine.export_id == export_id)
            .order_by(PayrollExportLine.employee_id, PayrollExportLine.work_date)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars())

    async def compute(self, request: ExportRequest) -> ComputationResult:
        """Compute unpriced lines for the request's period.

        Raises:
            LadderConfigurationError: an assigned ladder is missing or empty.
        """
        snapshot = await repositories.load_configuration_snapshot(
            self.session,
            request.period_start,
            request.period_end,
            timezone=self.settings.timezone,
        )
        records = await repositories.load_approved_attendance(
            self.session, request.period_start, request.period_end, request.employee_ids
        )
        wage_states = await repositories.load_wage_states(
            self.session, {r.employee_id for r in records}
        )
        engine = PayrollComputation(snapshot, max_workers=self.settings.max_workers)
        return await asyncio.to_thread(
            engine.compute,
            records,
            wage_states,
            request.period_start,
            request.period_end,
            request.employee_ids,
        )

    async def run_export(self, request: ExportRequest) -> ExportOutcome:
        """Execute one export run.

        Raises:
            UnknownPayrollSystemError: no adapter for request.system.
            ValueError: the period is inverted or the retried run is unusable.
            LadderConfigurationError: configuration needed for pricing is absent.
        """
        if not self.registry.is_supported(request.system):
            raise UnknownPayrollSystemError(request.system, self.registry.available_systems())
        if request.period_end < request.period_start:
            raise ValueError("period_end must not be before period_start")
        if request.retry_of_export_id is not None:
            await self._check_retry_target(request.retry_of_export_id)

        computation = await self.compute(request)
        pricing = self.registry.pricing_for(request.system).with_supplements(
            computation.supplement_rules
        )
        priced = pricing.price_all(computation.lines)

        employee_ids = list(dict.fromkeys(line.employee_id for line in priced))
        identity_map = await repositories.load_identity_map(
            self.session, request.system, employee_ids
        )
        salary_codes = await repositories.load_salary_code_map(self.session, request.system)
        adapter = self.registry.create(request.system, identity_map, salary_codes)

        validation = adapter.validate_employee_identities(employee_ids)
        valid = set(validation.valid)
        valid_lines = [line for line in priced if line.employee_id in valid]

        warnings: list[dict[str, Any]] = [
            {
                "employee_id": str(employee_id),
                "code": "MISSING_EXTERNAL_ID",
                "message": f"Employee has no {request.system} employee number; lines not exported",
            }
            for employee_id in validation.missing
        ]
        warnings.extend(computation.warnings)
        if validation.missing:
            logger.warning(
                "Export to %s: %d employee(s) without external id dropped",
                request.system,
                len(validation.missing),
            )

        run = PayrollExportRun(
            system=request.system,
            file_format=request.file_format,
            period_start=request.period_start,
            period_end=request.period_end,
            status=ExportRunStatus.PROCESSING.value,
            employee_count=len(validation.valid),
            line_count=len(valid_lines),
            total_amount=PayrollLineBuilder.sum_amounts(valid_lines),
            warnings=[],
            config_version=computation.snapshot_version,
            exported_by=request.exported_by,
            retry_of_export_id=request.retry_of_export_id,
        )
        self.session.add(run)
        await self.session.flush()

        self.session.add_all(
            self._line_row(run.export_id, line, identity_map, salary_codes)
            for line in valid_lines
        )
        await self.session.flush()

        try:
            export_file = adapter.serialize(valid_lines, request.file_format)
        except ExportAdapterError as e:
            logger.exception("Export run %s to %s failed", run.export_id, request.system)
            await self._finish(run, ExportRunStatus.FAILED, warnings, error=str(e))
            return ExportOutcome(
                run=run, missing_employee_ids=validation.missing, error=str(e)
            )

        await self._finish(
            run, ExportRunStatus.COMPLETED, warnings, filename=export_file.filename
        )
        logger.info(
            "Export run %s completed: %d employees, %d lines, total %s",
            run.export_id,
            run.employee_count,
            run.line_count,
            run.total_amount,
        )
        return ExportOutcome(
            run=run, file=export_file, missing_employee_ids=validation.missing
        )

    async def _check_retry_target(self, export_id: UUID) -> None:
        previous = await self.get_run(export_id)
        if previous is None:
            raise ValueError(f"Export run {export_id} not found")
        if previous.status != ExportRunStatus.FAILED:
            raise ValueError(
                f"Only failed runs can be retried (run {export_id} is {previous.status})"
            )

    async def _finish(
        self,
        run: PayrollExportRun,
        to_status: ExportRunStatus,
        warnings: list[dict[str, Any]],
        error: str | None = None,
        filename: str | None = None,
    ) -> None:
        """Move a processing run to a terminal status, together with its lines."""
        ExportRunStateMachine.validate_transition(run.status, to_status)

        values: dict[str, Any] = {
            "status": to_status.value,
            "warnings": warnings,
            "error_message": error,
        }
        if to_status == ExportRunStatus.COMPLETED:
            values["filename"] = filename
            values["exported_at"] = utcnow()

        result = await self.session.execute(
            update(PayrollExportRun)
            .where(
                PayrollExportRun.export_id == run.export_id,
                PayrollExportRun.status == ExportRunStatus.PROCESSING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidTransitionError(
                run.status, to_status.value, "run was finished concurrently"
            )

        await self.session.execute(
            update(PayrollExportLine)
            .where(PayrollExportLine.export_id == run.export_id)
            .values(
                status=ExportRunStateMachine.line_status_for(to_status),
                error_message=error,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(run)

    @staticmethod
    def _line_row(
        export_id: UUID,
        line: PayrollLine,
        identity_map: dict[UUID, str],
        salary_codes: dict[str, str],
    ) -> PayrollExportLine:
        return PayrollExportLine(
            export_id=export_id,
            employee_id=line.employee_id,
            external_employee_id=identity_map.get(line.employee_id),
            component_code=line.component_code,
            external_salary_code=salary_codes.get(line.component_code, line.component_code),
            component_name=line.component_name,
            category=line.category.value,
            work_date=line.work_date,
            quantity=line.quantity,
            rate=line.rate,
            amount=line.amount,
            source_type=line.source_type.value,
            source_ids=[str(s) for s in line.source_ids],
            line_hash=PayrollLineBuilder.compute_line_hash(line),
            status=ExportRunStateMachine.line_status_for(ExportRunStatus.PROCESSING),
        )
