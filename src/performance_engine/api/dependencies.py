"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from performance_engine.config import get_settings
from performance_engine.database import get_session
from performance_engine.repositories import PerformanceRepository, SqlPerformanceRepository
from performance_engine.services import PerformanceService
from performance_engine.workflow.types import Actor


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency (one transaction per request)."""
    async with get_session() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db_session)]


async def get_repository(db: DbSession) -> PerformanceRepository:
    """Get the repository for the request's session."""
    return SqlPerformanceRepository(db)


async def get_service(
    repository: Annotated[PerformanceRepository, Depends(get_repository)],
) -> PerformanceService:
    """Get the performance service."""
    return PerformanceService(repository, get_settings().workflow_config())


def _parse_uuid_header(name: str, value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {name} format",
        )


def _split_header(value: str | None) -> frozenset[str]:
    if not value:
        return frozenset()
    return frozenset(item.strip() for item in value.split(",") if item.strip())


async def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_employee_id: Annotated[str | None, Header()] = None,
    x_user_name: Annotated[str | None, Header()] = None,
    x_user_roles: Annotated[str | None, Header()] = None,
    x_user_permissions: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the acting user from identity headers set by the gateway."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-ID header is required",
        )
    return Actor(
        user_id=_parse_uuid_header("X-User-ID", x_user_id),
        employee_id=_parse_uuid_header("X-Employee-ID", x_employee_id) if x_employee_id else None,
        display_name=(x_user_name or "").strip(),
        roles=_split_header(x_user_roles),
        permissions=_split_header(x_user_permissions),
    )


# Type aliases for cleaner dependency injection
Service = Annotated[PerformanceService, Depends(get_service)]
CurrentActor = Annotated[Actor, Depends(get_actor)]
