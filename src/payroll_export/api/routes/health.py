"""Health and liveness endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from payroll_export.api.dependencies import Coordinator, DbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    database: str
    engine_version: str
    payroll_systems: list[str]


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession, coordinator: Coordinator) -> HealthResponse:
    """Database reachability plus the export targets this instance serves.

    An unreachable database degrades the status but still answers 200.
    """
    try:
        await db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        database = "unreachable"

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        database=database,
        engine_version=coordinator.settings.engine_version,
        payroll_systems=coordinator.registry.available_systems(),
    )


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
