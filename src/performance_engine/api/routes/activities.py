"""Activity endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from performance_engine.api.dependencies import CurrentActor, Service
from performance_engine.api.schemas import ActivityCreate, ActivityResponse, ErrorResponse

router = APIRouter(prefix="/responsibilities", tags=["activities"])


@router.post(
    "/{responsibility_id}/activities",
    response_model=ActivityResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def record_activity(
    service: Service,
    actor: CurrentActor,
    responsibility_id: Annotated[UUID, Path()],
    payload: ActivityCreate,
) -> ActivityResponse:
    """Append an activity to a responsibility."""
    activity = await service.record_activity(
        actor,
        responsibility_id,
        title=payload.title,
        description=payload.description,
        status=payload.status,
    )
    return ActivityResponse.model_validate(activity)
