"""Enumerations and value types shared across the workflow engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class WorkflowStatus(str, Enum):
    """Canonical workflow states shared by plans and appraisals."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    SUPERVISOR_APPROVED = "supervisor_approved"
    APPROVED = "approved"
    REVISION_REQUESTED = "revision_requested"


class PlanStatus(str, Enum):
    """Coarse plan status derived from the workflow status."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    COMPLETED = "completed"


class ActivityStatus(str, Enum):
    """Status of a single progress activity."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: str | ActivityStatus) -> ActivityStatus:
        """Parse a status label, accepting the legacy spellings."""
        if isinstance(value, cls):
            return value
        label = str(value).strip().lower()
        label = _ACTIVITY_STATUS_ALIASES.get(label, label)
        return cls(label)


_ACTIVITY_STATUS_ALIASES = {
    "not-started": "pending",
    "not_started": "pending",
    "in_progress": "in-progress",
    "done": "completed",
}


class WorkflowAction(str, Enum):
    """Actions accepted by the workflow state machine."""

    SUBMIT = "submit"
    COMMENT = "comment"
    APPROVE = "approve"
    REQUEST_CHANGES = "request_changes"
    FINAL_APPROVE = "final_approve"


class CommentRole(str, Enum):
    """Role a workflow action is performed as, and the ledger thread it lands in."""

    EMPLOYEE = "employee"
    SUPERVISOR = "supervisor"
    REVIEWER = "reviewer"


class RecordType(str, Enum):
    """Kinds of records driven through the workflow."""

    PLAN = "plan"
    APPRAISAL = "appraisal"


PLAN_STATUS_BY_WORKFLOW: dict[WorkflowStatus, PlanStatus] = {
    WorkflowStatus.DRAFT: PlanStatus.DRAFT,
    WorkflowStatus.REVISION_REQUESTED: PlanStatus.DRAFT,
    WorkflowStatus.SUBMITTED: PlanStatus.SUBMITTED,
    WorkflowStatus.SUPERVISOR_APPROVED: PlanStatus.SUBMITTED,
    WorkflowStatus.APPROVED: PlanStatus.COMPLETED,
}


@dataclass(frozen=True)
class Actor:
    """The caller of an operation.

    Attributes:
        user_id: Account id of the caller. Compared with a record's
            supervisor_id and reviewer_id.
        employee_id: Employee record linked to the account, if any.
            Compared with a record's employee_id.
        display_name: Name written into comment entries.
        roles: Role memberships as issued by the identity provider.
        permissions: Permission strings as issued by the identity provider.
    """

    user_id: UUID
    employee_id: UUID | None = None
    display_name: str = ""
    roles: frozenset[str] = frozenset()
    permissions: frozenset[str] = frozenset()

    @property
    def label(self) -> str:
        """Name to show for this actor."""
        return self.display_name or str(self.user_id)
