"""Health, readiness and liveness probes."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from performance_engine import __version__
from performance_engine.api.dependencies import DbSession
from performance_engine.api.schemas import HealthResponse, ReadinessResponse
from performance_engine.models import AppraisalRow, PlanRow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Tables the workflow cannot run without
REQUIRED_TABLES = (PlanRow, AppraisalRow)


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """Report engine version and database reachability.

    Always answers 200; an unreachable database shows as ``degraded``.
    """
    database = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("Database health check failed: %s", type(exc).__name__)
        database = "unhealthy"

    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        version=__version__,
        database=database,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(db: DbSession, response: Response) -> ReadinessResponse:
    """Answer 503 until the plan and appraisal tables can be queried."""
    missing: list[str] = []
    for model in REQUIRED_TABLES:
        try:
            await db.execute(select(model.id).limit(1))
        except SQLAlchemyError:
            await db.rollback()
            missing.append(model.__tablename__)

    if missing:
        logger.warning("Not ready, unusable tables: %s", ", ".join(missing))
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return ReadinessResponse(status="not_ready", missing_tables=missing)
    return ReadinessResponse(status="ready")


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
