"""Payroll export command line interface.

Provides operational tools for:
- Running an export for a period and writing the file to disk
- Listing pending wage ladder progressions
- Applying pending progressions
- Correcting an employee's accumulated hours
- Creating the database schema
- Serving the HTTP API

Usage:
    python -m payroll_export.cli export --system tripletex --from 2024-06-01 --to 2024-06-30
    python -m payroll_export.cli check-progressions
    python -m payroll_export.cli apply-progressions --actor payroll-admin
    python -m payroll_export.cli adjust-hours --employee <uuid> --delta -7.5 --note "double-counted"
    python -m payroll_export.cli init-db
    python -m payroll_export.cli serve --port 8080
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar
from uuid import UUID

import uvicorn

from payroll_export.calculators.ladder_resolver import LadderConfigurationError
from payroll_export.calculators.types import PendingProgression
from payroll_export.config import configure_logging, get_settings
from payroll_export.database import create_schema, dispose_db, session_scope
from payroll_export.exporters.registry import UnknownPayrollSystemError
from payroll_export.services.export_run_service import ExportRequest, ExportRunCoordinator
from payroll_export.services.progression_service import ProgressionService

T = TypeVar("T")


def _run(coro: Awaitable[T]) -> T:
    """Run one command coroutine and close the pool on the same loop."""

    async def scoped() -> T:
        try:
            return await coro
        finally:
            await dispose_db()

    return asyncio.run(scoped())


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def parse_decimal(s: str) -> Decimal:
    try:
        return Decimal(s)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {s}")


class PayrollExportCli:
    """Payroll export command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m payroll_export.cli",
            description="Payroll export operational tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # export command
        export = subparsers.add_parser(
            "export",
            help="Compute and export payroll lines for a period",
        )
        export.add_argument(
            "--system",
            type=str,
            required=True,
            help="Target payroll system (tripletex, poweroffice, file_export)",
        )
        export.add_argument(
            "--format",
            dest="file_format",
            type=str,
            default="csv",
            help="File format (default: csv)",
        )
        export.add_argument(
            "--from",
            dest="period_start",
            type=parse_date,
            required=True,
            help="First work-date of the period (YYYY-MM-DD)",
        )
        export.add_argument(
            "--to",
            dest="period_end",
            type=parse_date,
            required=True,
            help="Last work-date of the period (YYYY-MM-DD)",
        )
        export.add_argument(
            "--employee",
            dest="employee_ids",
            type=parse_uuid,
            action="append",
            help="Restrict to this employee (repeatable)",
        )
        export.add_argument(
            "--output-dir",
            type=Path,
            default=Path("."),
            help="Directory to write the export file to (default: current)",
        )
        export.add_argument(
            "--exported-by",
            type=str,
            help="Actor recorded on the run",
        )
        export.add_argument(
            "--retry-of",
            type=parse_uuid,
            help="Failed export run this run retries",
        )

        # check-progressions command
        check = subparsers.add_parser(
            "check-progressions",
            help="List employees due for a higher wage ladder level",
        )
        check.add_argument(
            "--json",
            action="store_true",
            help="Output as JSON",
        )

        # apply-progressions command
        apply = subparsers.add_parser(
            "apply-progressions",
            help="Apply pending wage ladder progressions",
        )
        apply.add_argument(
            "--employee",
            dest="employee_ids",
            type=parse_uuid,
            action="append",
            help="Restrict to this employee (repeatable)",
        )
        apply.add_argument(
            "--actor",
            type=str,
            help="Actor recorded in the seniority log",
        )
        apply.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be applied without writing",
        )

        # adjust-hours command
        adjust = subparsers.add_parser(
            "adjust-hours",
            help="Manually correct an employee's accumulated ladder hours",
        )
        adjust.add_argument(
            "--employee",
            dest="employee_id",
            type=parse_uuid,
            required=True,
            help="Employee whose hours change",
        )
        adjust.add_argument(
            "--delta",
            type=parse_decimal,
            required=True,
            help="Hours to add; negative to subtract",
        )
        adjust.add_argument(
            "--note",
            type=str,
            required=True,
            help="Reason recorded in the seniority log",
        )
        adjust.add_argument(
            "--actor",
            type=str,
            help="Actor recorded in the seniority log",
        )

        subparsers.add_parser("init-db", help="Create database tables")

        serve = subparsers.add_parser("serve", help="Run the HTTP API")
        serve.add_argument("--host", type=str, help="Bind address (default: from settings)")
        serve.add_argument("--port", type=int, help="Bind port (default: from settings)")

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(get_settings())

        handlers: dict[str, Callable[..., int]] = {
            "export": self._cmd_export,
            "check-progressions": self._cmd_check_progressions,
            "apply-progressions": self._cmd_apply_progressions,
            "adjust-hours": self._cmd_adjust_hours,
            "init-db": self._cmd_init_db,
            "serve": self._cmd_serve,
        }

        handler = handlers.get(parsed.command)
        if handler:
            return handler(parsed)

        print(f"Unknown command: {parsed.command}", file=sys.stderr)
        return 1

    def _cmd_export(self, args: argparse.Namespace) -> int:
        """Run one export and write its file."""
        try:
            return _run(self._export(args))
        except (UnknownPayrollSystemError, LadderConfigurationError, ValueError) as e:
            print(f"Export not started: {e}", file=sys.stderr)
            return 2

    async def _export(self, args: argparse.Namespace) -> int:
        request = ExportRequest(
            system=args.system,
            file_format=args.file_format,
            period_start=args.period_start,
            period_end=args.period_end,
            employee_ids=args.employee_ids,
            exported_by=args.exported_by,
            retry_of_export_id=args.retry_of,
        )
        async with session_scope() as session:
            outcome = await ExportRunCoordinator(session).run_export(request)

        run = outcome.run
        print(f"Export run {run.export_id}: {run.status}")
        print(f"  Employees: {run.employee_count}")
        print(f"  Lines: {run.line_count}")
        print(f"  Total: {run.total_amount}")
        for warning in run.warnings:
            print(f"  Warning [{warning.get('code')}]: {warning.get('message')}")

        if outcome.file is None:
            print(f"  Error: {outcome.error}", file=sys.stderr)
            return 1

        args.output_dir.mkdir(parents=True, exist_ok=True)
        target = args.output_dir / outcome.file.filename
        target.write_bytes(outcome.file.payload)
        print(f"  Written: {target}")
        return 0

    def _cmd_check_progressions(self, args: argparse.Namespace) -> int:
        """List pending progressions."""
        pending = _run(self._find_pending(None))

        if args.json:
            print(json.dumps([self._progression_dict(p) for p in pending], indent=2))
            return 0

        if not pending:
            print("No pending progressions.")
            return 0

        print(f"{len(pending)} pending progression(s):")
        for p in pending:
            print(
                f"  {p.employee_id}  {p.ladder_name}: level {p.current_level} "
                f"({p.current_rate}) -> {p.new_level} ({p.new_rate}), "
                f"{p.accumulated_hours} h"
            )
        return 0

    def _cmd_apply_progressions(self, args: argparse.Namespace) -> int:
        """Apply pending progressions."""
        if args.dry_run:
            pending = _run(self._find_pending(args.employee_ids))
            print(f"[DRY RUN] Would apply {len(pending)} progression(s)")
            for p in pending:
                print(f"  {p.employee_id}: level {p.current_level} -> {p.new_level}")
            return 0

        applied, conflicts = _run(self._apply(args.employee_ids, args.actor))
        print(f"Applied: {applied}")
        if conflicts:
            print(f"Conflicts (state changed concurrently, rerun to retry): {conflicts}")
            return 1
        return 0

    async def _find_pending(
        self, employee_ids: list[UUID] | None
    ) -> list[PendingProgression]:
        async with session_scope() as session:
            return await ProgressionService(session).find_pending(employee_ids)

    async def _apply(
        self, employee_ids: list[UUID] | None, actor: str | None
    ) -> tuple[int, int]:
        async with session_scope() as session:
            service = ProgressionService(session)
            outcome = await service.apply_progressions(
                await service.find_pending(employee_ids), actor
            )
        return len(outcome.applied), len(outcome.conflicts)

    def _cmd_adjust_hours(self, args: argparse.Namespace) -> int:
        try:
            total = _run(self._adjust(args))
        except ValueError as e:
            print(f"Adjustment rejected: {e}", file=sys.stderr)
            return 2
        print(f"Employee {args.employee_id}: {total} accumulated hours")
        return 0

    async def _adjust(self, args: argparse.Namespace) -> Decimal:
        async with session_scope() as session:
            return await ProgressionService(session).adjust_hours(
                args.employee_id, args.delta, args.note, args.actor
            )

    def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create all tables."""
        _run(create_schema())
        print("Schema created.")
        return 0

    def _cmd_serve(self, args: argparse.Namespace) -> int:
        settings = get_settings()
        uvicorn.run(
            "payroll_export.api.app:create_app",
            factory=True,
            host=args.host or settings.host,
            port=args.port or settings.port,
            reload=settings.debug,
        )
        return 0

    @staticmethod
    def _progression_dict(p: PendingProgression) -> dict[str, Any]:
        return {
            "employee_id": str(p.employee_id),
            "ladder_id": str(p.ladder_id),
            "ladder_name": p.ladder_name,
            "accumulated_hours": str(p.accumulated_hours),
            "current_level": p.current_level,
            "current_rate": str(p.current_rate),
            "new_level": p.new_level,
            "new_rate": str(p.new_rate),
        }


def main() -> int:
    """CLI entry point."""
    cli = PayrollExportCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
