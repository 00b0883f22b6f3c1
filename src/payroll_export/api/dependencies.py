"""Request-scoped dependencies for the API routes."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_export.config import Settings, get_settings
from payroll_export.database import init_db
from payroll_export.services.export_run_service import ExportRunCoordinator
from payroll_export.services.progression_service import ProgressionService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; routes commit explicitly."""
    _, factory = init_db()
    async with factory() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def get_export_coordinator(db: DbSession, settings: AppSettings) -> ExportRunCoordinator:
    return ExportRunCoordinator(db, settings=settings)


def get_progression_service(db: DbSession) -> ProgressionService:
    return ProgressionService(db)


Coordinator = Annotated[ExportRunCoordinator, Depends(get_export_coordinator)]
Progressions = Annotated[ProgressionService, Depends(get_progression_service)]
