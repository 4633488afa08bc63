"""Performance plan endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from performance_engine.api.dependencies import CurrentActor, Service
from performance_engine.api.schemas import (
    ErrorResponse,
    PlanCreate,
    PlanResponse,
    ResponsibilitiesUpdate,
    WorkflowActionRequest,
    WorkflowHistoryResponse,
)
from performance_engine.workflow.state_machine import WorkflowStateMachine
from performance_engine.workflow.types import RecordType

router = APIRouter(prefix="/plans", tags=["plans"])


# ============================================================================
# Plan CRUD
# ============================================================================


@router.post(
    "",
    response_model=PlanResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_plan(
    service: Service,
    actor: CurrentActor,
    payload: PlanCreate,
) -> PlanResponse:
    """Create a draft plan, or return the open draft for the same period."""
    responsibilities = (
        [r.model_dump() for r in payload.responsibilities]
        if payload.responsibilities is not None
        else None
    )
    plan = await service.create_plan(
        actor,
        employee_id=payload.employee_id,
        plan_year=payload.plan_year,
        plan_period=payload.plan_period,
        supervisor_id=payload.supervisor_id,
        reviewer_id=payload.reviewer_id,
        responsibilities=responsibilities,
        position=payload.position,
    )
    return PlanResponse.model_validate(plan)


@router.get(
    "/pending",
    response_model=list[PlanResponse],
)
async def list_pending_plans(
    service: Service,
    actor: CurrentActor,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> list[PlanResponse]:
    """Plans waiting on the current user, optionally narrowed to one status."""
    plans = await service.list_pending_for_actor(actor, RecordType.PLAN)
    if status_filter:
        wanted = WorkflowStateMachine.parse_status(status_filter)
        plans = [p for p in plans if p.workflow_status == wanted]
    return [PlanResponse.model_validate(p) for p in plans]


@router.get(
    "/{plan_id}",
    response_model=PlanResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_plan(
    service: Service,
    actor: CurrentActor,
    plan_id: Annotated[UUID, Path()],
) -> PlanResponse:
    """Get a plan with responsibilities, activities and progress."""
    plan = await service.get_plan(actor, plan_id)
    return PlanResponse.model_validate(plan)


@router.put(
    "/{plan_id}/responsibilities",
    response_model=PlanResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)
async def update_responsibilities(
    service: Service,
    actor: CurrentActor,
    plan_id: Annotated[UUID, Path()],
    payload: ResponsibilitiesUpdate,
) -> PlanResponse:
    """Replace the responsibilities of a draft or revision_requested plan."""
    plan = await service.update_responsibilities(
        actor, plan_id, [r.model_dump() for r in payload.responsibilities]
    )
    return PlanResponse.model_validate(plan)


@router.delete(
    "/{plan_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_plan(
    service: Service,
    actor: CurrentActor,
    plan_id: Annotated[UUID, Path()],
) -> None:
    """Delete an editable plan with everything under it."""
    await service.delete_plan(actor, plan_id)


# ============================================================================
# Workflow
# ============================================================================


@router.post(
    "/{plan_id}/workflow",
    response_model=PlanResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        423: {"model": ErrorResponse},
    },
)
async def apply_plan_action(
    service: Service,
    actor: CurrentActor,
    plan_id: Annotated[UUID, Path()],
    payload: WorkflowActionRequest,
) -> PlanResponse:
    """Submit, comment on, approve or send back a plan."""
    plan = await service.apply_workflow_action(
        actor,
        plan_id,
        RecordType.PLAN,
        payload.action,
        payload.acting_role,
        payload.comment,
    )
    return PlanResponse.model_validate(plan)


@router.get(
    "/{plan_id}/workflow",
    response_model=WorkflowHistoryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_plan_workflow(
    service: Service,
    actor: CurrentActor,
    plan_id: Annotated[UUID, Path()],
) -> WorkflowHistoryResponse:
    """Current status, comment threads and approval summary of a plan."""
    history = await service.get_workflow_history(actor, plan_id, RecordType.PLAN)
    return WorkflowHistoryResponse.model_validate(history)
