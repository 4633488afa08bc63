"""Plan, responsibility, activity and appraisal records.

Records are frozen dataclasses. The engine produces updated copies with
``dataclasses.replace`` and hands them to the repository; a record object is
never changed in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, ClassVar, Union
from uuid import UUID, uuid4

from performance_engine.workflow.comments import CommentLedger
from performance_engine.workflow.progress import plan_progress, responsibility_progress
from performance_engine.workflow.types import (
    PLAN_STATUS_BY_WORKFLOW,
    ActivityStatus,
    PlanStatus,
    RecordType,
    WorkflowStatus,
)


@dataclass(frozen=True)
class SuccessIndicator:
    """How achievement of a responsibility is measured."""

    indicator: str
    target: str = ""
    measurement: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SuccessIndicator:
        return cls(
            indicator=str(data.get("indicator") or ""),
            target=str(data.get("target") or ""),
            measurement=str(data.get("measurement") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {"indicator": self.indicator, "target": self.target, "measurement": self.measurement}


@dataclass(frozen=True)
class Activity:
    """A unit of progress evidence under one responsibility."""

    responsibility_id: UUID
    title: str
    description: str = ""
    status: ActivityStatus = ActivityStatus.PENDING
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class Responsibility:
    """A weighted objective belonging to exactly one plan."""

    plan_id: UUID
    description: str
    weight: int
    tasks: str = ""
    target_date: date | None = None
    status: str = ""
    comments: str = ""
    success_indicators: tuple[SuccessIndicator, ...] = ()
    activities: tuple[Activity, ...] = ()
    id: UUID = field(default_factory=uuid4)

    @property
    def progress(self) -> int:
        """Completion percentage derived from activities."""
        return responsibility_progress(self.activities)


@dataclass(frozen=True)
class PerformancePlan:
    """An employee's performance plan for one plan year and period."""

    record_type: ClassVar[RecordType] = RecordType.PLAN

    employee_id: UUID
    supervisor_id: UUID
    plan_year: int
    plan_period: str
    reviewer_id: UUID | None = None
    workflow_status: WorkflowStatus = WorkflowStatus.DRAFT
    responsibilities: tuple[Responsibility, ...] = ()
    comments: CommentLedger = field(default_factory=CommentLedger)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    submitted_at: datetime | None = None
    supervisor_approved_at: datetime | None = None
    reviewer_approved_at: datetime | None = None
    version: int = 0
    id: UUID = field(default_factory=uuid4)

    @property
    def status(self) -> PlanStatus:
        """Coarse status summarizing the workflow status."""
        return PLAN_STATUS_BY_WORKFLOW[self.workflow_status]

    @property
    def weight_total(self) -> int:
        return sum(r.weight for r in self.responsibilities)

    @property
    def progress(self) -> int:
        """Overall completion percentage, weighted by responsibility."""
        return plan_progress(self.responsibilities)

    def responsibility(self, responsibility_id: UUID) -> Responsibility | None:
        for r in self.responsibilities:
            if r.id == responsibility_id:
                return r
        return None


@dataclass(frozen=True)
class Appraisal:
    """A periodic evaluation of an employee, optionally linked to a plan."""

    record_type: ClassVar[RecordType] = RecordType.APPRAISAL

    employee_id: UUID
    supervisor_id: UUID
    reviewer_id: UUID | None = None
    plan_id: UUID | None = None
    appraisal_type: str = "annual"
    overall_rating: Decimal | None = None
    workflow_status: WorkflowStatus = WorkflowStatus.DRAFT
    comments: CommentLedger = field(default_factory=CommentLedger)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    submitted_at: datetime | None = None
    supervisor_approved_at: datetime | None = None
    reviewer_approved_at: datetime | None = None
    version: int = 0
    id: UUID = field(default_factory=uuid4)

    @property
    def status(self) -> WorkflowStatus:
        """Appraisals expose the workflow status directly."""
        return self.workflow_status


WorkflowRecord = Union[PerformancePlan, Appraisal]
