"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from payroll_export.api.routes import (
    exports_router,
    health_router,
    progressions_router,
    wages_router,
)
from payroll_export.calculators.ladder_resolver import LadderGapOrOverlapError
from payroll_export.config import configure_logging, get_settings
from payroll_export.database import dispose_db, init_db
from payroll_export.services.progression_service import StaleWageStateError
from payroll_export.services.state_machine import InvalidTransitionError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Open the engine on startup and release its pool on shutdown."""
    init_db()
    yield
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="Payroll Export Engine API",
        description="Attendance to payroll lines, wage ladders and payroll system exports",
        version=settings.engine_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidTransitionError)
    async def transition_exception_handler(
        request: Request, exc: InvalidTransitionError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "code": "INVALID_TRANSITION"},
        )

    @app.exception_handler(StaleWageStateError)
    async def stale_state_exception_handler(
        request: Request, exc: StaleWageStateError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": str(exc), "code": "STALE_WAGE_STATE"},
        )

    @app.exception_handler(LadderGapOrOverlapError)
    async def ladder_exception_handler(
        request: Request, exc: LadderGapOrOverlapError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": str(exc),
                "code": "LADDER_GAP_OR_OVERLAP",
                "context": {"errors": exc.errors},
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    app.include_router(health_router)
    app.include_router(exports_router, prefix="/api/v1")
    app.include_router(progressions_router, prefix="/api/v1")
    app.include_router(wages_router, prefix="/api/v1")

    return app
