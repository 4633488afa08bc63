"""API routes."""

from performance_engine.api.routes.activities import router as activities_router
from performance_engine.api.routes.appraisals import router as appraisals_router
from performance_engine.api.routes.health import router as health_router
from performance_engine.api.routes.plans import router as plans_router

__all__ = ["activities_router", "appraisals_router", "health_router", "plans_router"]
