"""Performance appraisal endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from performance_engine.api.dependencies import CurrentActor, Service
from performance_engine.api.schemas import (
    AppraisalCreate,
    AppraisalResponse,
    ErrorResponse,
    RatingUpdate,
    WorkflowActionRequest,
    WorkflowHistoryResponse,
)
from performance_engine.workflow.types import RecordType

router = APIRouter(prefix="/appraisals", tags=["appraisals"])


@router.post(
    "",
    response_model=AppraisalResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_appraisal(
    service: Service,
    actor: CurrentActor,
    payload: AppraisalCreate,
) -> AppraisalResponse:
    """Create a draft appraisal."""
    appraisal = await service.create_appraisal(
        actor,
        employee_id=payload.employee_id,
        supervisor_id=payload.supervisor_id,
        reviewer_id=payload.reviewer_id,
        plan_id=payload.plan_id,
        appraisal_type=payload.appraisal_type,
    )
    return AppraisalResponse.model_validate(appraisal)


@router.get("/pending", response_model=list[AppraisalResponse])
async def list_pending_appraisals(
    service: Service,
    actor: CurrentActor,
) -> list[AppraisalResponse]:
    """Appraisals waiting on the current user."""
    appraisals = await service.list_pending_for_actor(actor, RecordType.APPRAISAL)
    return [AppraisalResponse.model_validate(a) for a in appraisals]


@router.get(
    "/{appraisal_id}",
    response_model=AppraisalResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_appraisal(
    service: Service,
    actor: CurrentActor,
    appraisal_id: Annotated[UUID, Path()],
) -> AppraisalResponse:
    appraisal = await service.get_appraisal(actor, appraisal_id)
    return AppraisalResponse.model_validate(appraisal)


@router.put(
    "/{appraisal_id}/rating",
    response_model=AppraisalResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)
async def update_rating(
    service: Service,
    actor: CurrentActor,
    appraisal_id: Annotated[UUID, Path()],
    payload: RatingUpdate,
) -> AppraisalResponse:
    """Set the overall rating of an appraisal."""
    appraisal = await service.update_appraisal_rating(actor, appraisal_id, payload.overall_rating)
    return AppraisalResponse.model_validate(appraisal)


@router.post(
    "/{appraisal_id}/workflow",
    response_model=AppraisalResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)
async def apply_appraisal_action(
    service: Service,
    actor: CurrentActor,
    appraisal_id: Annotated[UUID, Path()],
    payload: WorkflowActionRequest,
) -> AppraisalResponse:
    """Submit, comment on, approve or send back an appraisal."""
    appraisal = await service.apply_workflow_action(
        actor,
        appraisal_id,
        RecordType.APPRAISAL,
        payload.action,
        payload.acting_role,
        payload.comment,
    )
    return AppraisalResponse.model_validate(appraisal)


@router.get(
    "/{appraisal_id}/workflow",
    response_model=WorkflowHistoryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_appraisal_workflow(
    service: Service,
    actor: CurrentActor,
    appraisal_id: Annotated[UUID, Path()],
) -> WorkflowHistoryResponse:
    history = await service.get_workflow_history(actor, appraisal_id, RecordType.APPRAISAL)
    return WorkflowHistoryResponse.model_validate(history)
