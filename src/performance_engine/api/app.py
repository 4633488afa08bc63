"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from performance_engine.api.routes import (
    activities_router,
    appraisals_router,
    health_router,
    plans_router,
)
from performance_engine.config import get_settings
from performance_engine.database import create_schema, dispose_db, init_db
from performance_engine.workflow.errors import WorkflowError

logger = logging.getLogger(__name__)

# HTTP status for each workflow error code
STATUS_BY_CODE: dict[str, int] = {
    "VALIDATION_ERROR": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "AUTHORIZATION_ERROR": status.HTTP_403_FORBIDDEN,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
    "RECORD_LOCKED": status.HTTP_423_LOCKED,
    "CONFLICT": status.HTTP_409_CONFLICT,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    engine, _ = init_db()
    if get_settings().auto_create_schema:
        await create_schema(engine)
    yield
    # Shutdown
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Performance Engine API",
        description="Performance plans, appraisals and their approval workflow",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(WorkflowError)
    async def workflow_exception_handler(
        request: Request, exc: WorkflowError
    ) -> JSONResponse:
        """Render business-rule failures with their code and details."""
        return JSONResponse(
            status_code=STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST),
            content=exc.to_dict(),
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

    # Include routers
    app.include_router(health_router)
    app.include_router(plans_router, prefix="/api/v1")
    app.include_router(activities_router, prefix="/api/v1")
    app.include_router(appraisals_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
