"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from performance_engine.workflow.comments import CommentLedger
from performance_engine.workflow.types import ActivityStatus, PlanStatus, WorkflowStatus


# ============================================================================
# Responsibility and activity schemas
# ============================================================================


class SuccessIndicatorSchema(BaseModel):
    """How achievement of a responsibility is measured."""

    model_config = ConfigDict(from_attributes=True)

    indicator: str
    target: str = ""
    measurement: str = ""


class ResponsibilityInput(BaseModel):
    """One responsibility entry of a create or replace request.

    Passing the ``id`` of an existing responsibility keeps it (and its
    activities); entries without an id are added.
    """

    id: UUID | None = None
    description: str
    weight: int
    tasks: str = ""
    target_date: date | None = None
    status: str = ""
    comments: str = ""
    success_indicators: list[SuccessIndicatorSchema] = []


class ActivityCreate(BaseModel):
    """Schema for recording an activity."""

    title: str
    description: str = ""
    status: str = "pending"


class ActivityResponse(BaseModel):
    """Schema for activity response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    responsibility_id: UUID
    title: str
    description: str
    status: ActivityStatus
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ResponsibilityResponse(BaseModel):
    """Schema for responsibility response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    plan_id: UUID
    description: str
    weight: int
    tasks: str
    target_date: date | None = None
    status: str
    comments: str
    progress: int
    success_indicators: list[SuccessIndicatorSchema] = []
    activities: list[ActivityResponse] = []


# ============================================================================
# Plan schemas
# ============================================================================


class PlanCreate(BaseModel):
    """Schema for creating a performance plan."""

    employee_id: UUID
    supervisor_id: UUID
    reviewer_id: UUID | None = None
    plan_year: int
    plan_period: str
    responsibilities: list[ResponsibilityInput] | None = None
    position: str | None = None


class ResponsibilitiesUpdate(BaseModel):
    """Schema for replacing a plan's responsibilities."""

    responsibilities: list[ResponsibilityInput]


class WorkflowRecordResponse(BaseModel):
    """Fields shared by plan and appraisal responses."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    employee_id: UUID
    supervisor_id: UUID
    reviewer_id: UUID | None = None
    workflow_status: WorkflowStatus
    comments: dict[str, list[dict[str, Any]]]
    submitted_at: datetime | None = None
    supervisor_approved_at: datetime | None = None
    reviewer_approved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    version: int

    @field_validator("comments", mode="before")
    @classmethod
    def ledger_to_threads(cls, value: Any) -> Any:
        if isinstance(value, CommentLedger):
            return value.to_dict()
        return value


class PlanResponse(WorkflowRecordResponse):
    """Schema for plan response."""

    plan_year: int
    plan_period: str
    status: PlanStatus
    weight_total: int
    progress: int
    responsibilities: list[ResponsibilityResponse] = []


# ============================================================================
# Appraisal schemas
# ============================================================================


class AppraisalCreate(BaseModel):
    """Schema for creating an appraisal."""

    employee_id: UUID
    supervisor_id: UUID
    reviewer_id: UUID | None = None
    plan_id: UUID | None = None
    appraisal_type: str = "annual"


class RatingUpdate(BaseModel):
    """Schema for setting an appraisal's overall rating."""

    overall_rating: Decimal | None = Field(default=None)


class AppraisalResponse(WorkflowRecordResponse):
    """Schema for appraisal response."""

    plan_id: UUID | None = None
    appraisal_type: str
    overall_rating: Decimal | None = None
    status: WorkflowStatus


# ============================================================================
# Workflow schemas
# ============================================================================


class WorkflowActionRequest(BaseModel):
    """Schema for a workflow action on a plan or appraisal."""

    action: str
    acting_role: str
    comment: str | None = None


class WorkflowHistoryResponse(BaseModel):
    """Schema for workflow history response."""

    record_id: UUID
    record_type: str
    workflow_status: WorkflowStatus
    available_actions: list[str]
    comments: dict[str, list[dict[str, Any]]]
    submitted_at: datetime | None = None
    supervisor_approved_at: datetime | None = None
    reviewer_approved_at: datetime | None = None
    supervisor_approval: str
    reviewer_approval: str


# ============================================================================
# Health schemas
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    timestamp: datetime


class ReadinessResponse(BaseModel):
    status: str
    missing_tables: list[str] = Field(default_factory=list)


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    details: dict[str, Any] | None = None
