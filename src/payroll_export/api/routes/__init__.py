"""API routes."""

from payroll_export.api.routes.exports import router as exports_router
from payroll_export.api.routes.health import router as health_router
from payroll_export.api.routes.progressions import router as progressions_router
from payroll_export.api.routes.wages import router as wages_router

__all__ = ["exports_router", "health_router", "progressions_router", "wages_router"]
