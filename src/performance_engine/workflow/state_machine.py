"""Plan and appraisal approval state machine with transition validation."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, TypeVar

from performance_engine.workflow.comments import CommentEntry
from performance_engine.workflow.config import WorkflowConfig
from performance_engine.workflow.errors import (
    AuthorizationError,
    InvalidTransitionError,
    RecordLockedError,
    ValidationError,
    WeightValidationError,
)
from performance_engine.workflow.records import Appraisal, PerformancePlan, WorkflowRecord
from performance_engine.workflow.roles import CAPABILITY_BY_ROLE, Capability, RoleResolver
from performance_engine.workflow.types import (
    Actor,
    CommentRole,
    WorkflowAction,
    WorkflowStatus,
)
from performance_engine.workflow.weights import validate_weights


R = TypeVar("R", PerformancePlan, Appraisal)
E = TypeVar("E", bound=Enum)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Transition:
    """One row of the transition table."""

    from_status: WorkflowStatus
    action: WorkflowAction
    role: CommentRole
    to_status: WorkflowStatus


def _t(
    from_status: WorkflowStatus,
    action: WorkflowAction,
    role: CommentRole,
    to_status: WorkflowStatus,
) -> tuple[tuple[WorkflowStatus, WorkflowAction], Transition]:
    return (from_status, action), Transition(from_status, action, role, to_status)


class WorkflowStateMachine:
    """State machine for plan and appraisal approval.

    Allowed transitions:
    - draft → submitted (submit, employee)
    - submitted → submitted (comment, supervisor)
    - submitted → revision_requested (request_changes, supervisor)
    - submitted → supervisor_approved (approve, supervisor)
    - supervisor_approved → supervisor_approved (comment, reviewer)
    - supervisor_approved → revision_requested (request_changes, reviewer)
    - supervisor_approved → approved (final_approve, reviewer)
    - revision_requested → submitted (submit, employee)

    ``approved`` is terminal: every action on it is rejected as locked.
    Administrative override may act in any role, but the claimed role must
    still be the one the transition requires.
    """

    TRANSITIONS: dict[tuple[WorkflowStatus, WorkflowAction], Transition] = dict(
        [
            _t(WorkflowStatus.DRAFT, WorkflowAction.SUBMIT, CommentRole.EMPLOYEE, WorkflowStatus.SUBMITTED),
            _t(WorkflowStatus.SUBMITTED, WorkflowAction.COMMENT, CommentRole.SUPERVISOR, WorkflowStatus.SUBMITTED),
            _t(
                WorkflowStatus.SUBMITTED,
                WorkflowAction.REQUEST_CHANGES,
                CommentRole.SUPERVISOR,
                WorkflowStatus.REVISION_REQUESTED,
            ),
            _t(
                WorkflowStatus.SUBMITTED,
                WorkflowAction.APPROVE,
                CommentRole.SUPERVISOR,
                WorkflowStatus.SUPERVISOR_APPROVED,
            ),
            _t(
                WorkflowStatus.SUPERVISOR_APPROVED,
                WorkflowAction.COMMENT,
                CommentRole.REVIEWER,
                WorkflowStatus.SUPERVISOR_APPROVED,
            ),
            _t(
                WorkflowStatus.SUPERVISOR_APPROVED,
                WorkflowAction.REQUEST_CHANGES,
                CommentRole.REVIEWER,
                WorkflowStatus.REVISION_REQUESTED,
            ),
            _t(
                WorkflowStatus.SUPERVISOR_APPROVED,
                WorkflowAction.FINAL_APPROVE,
                CommentRole.REVIEWER,
                WorkflowStatus.APPROVED,
            ),
            _t(
                WorkflowStatus.REVISION_REQUESTED,
                WorkflowAction.SUBMIT,
                CommentRole.EMPLOYEE,
                WorkflowStatus.SUBMITTED,
            ),
        ]
    )

    # Terminal statuses
    TERMINAL = frozenset({WorkflowStatus.APPROVED})

    # Statuses where plan content (responsibilities) can be edited
    EDITABLE = frozenset({WorkflowStatus.DRAFT, WorkflowStatus.REVISION_REQUESTED})

    # Legacy labels for the same point in the pipeline, accepted on input only
    STATUS_ALIASES: dict[str, WorkflowStatus] = {
        "supervisor_review": WorkflowStatus.SUBMITTED,
        "reviewer_assessment": WorkflowStatus.SUPERVISOR_APPROVED,
    }

    def __init__(
        self,
        config: WorkflowConfig | None = None,
        resolver: RoleResolver | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.config = config or WorkflowConfig()
        self.resolver = resolver or RoleResolver(self.config)
        self.clock = clock

    @classmethod
    def parse_status(cls, label: str | WorkflowStatus) -> WorkflowStatus:
        """Translate a status label, including legacy synonyms, to its canonical value."""
        if isinstance(label, WorkflowStatus):
            return label
        key = str(label).strip().lower()
        if key in cls.STATUS_ALIASES:
            return cls.STATUS_ALIASES[key]
        try:
            return WorkflowStatus(key)
        except ValueError:
            raise ValidationError(f"Unknown workflow status '{label}'", status=str(label)) from None

    @classmethod
    def can_apply(cls, status: WorkflowStatus | str, action: WorkflowAction | str) -> bool:
        """Check if an action is defined for a status."""
        try:
            key = (cls.parse_status(status), WorkflowAction(action))
        except (ValidationError, ValueError):
            return False
        return key in cls.TRANSITIONS

    @classmethod
    def get_transition(cls, status: WorkflowStatus, action: WorkflowAction) -> Transition:
        """Look up a transition, raising if the action is not allowed now."""
        if status in cls.TERMINAL:
            raise RecordLockedError(status.value, action.value)
        transition = cls.TRANSITIONS.get((status, action))
        if transition is None:
            raise InvalidTransitionError(status.value, action.value)
        return transition

    @classmethod
    def available_actions(cls, status: WorkflowStatus) -> list[WorkflowAction]:
        """Actions defined for a status, in table order."""
        return [action for (from_status, action) in cls.TRANSITIONS if from_status == status]

    @classmethod
    def is_editable(cls, status: WorkflowStatus) -> bool:
        """Check if plan content can be modified in this status."""
        return status in cls.EDITABLE

    @classmethod
    def is_terminal(cls, status: WorkflowStatus) -> bool:
        return status in cls.TERMINAL

    def apply(
        self,
        record: R,
        action: WorkflowAction | str,
        acting_role: CommentRole | str,
        actor: Actor,
        comment_text: str | None = None,
    ) -> R:
        """Apply a workflow action and return the updated record.

        All checks run before anything is built, so a rejected call leaves
        no trace: the input record is frozen and only a new copy carries the
        new status, timestamps and ledger entry.

        Raises:
            ValidationError: unknown action or role, or weights not totalling
                the required sum on plan submission.
            RecordLockedError: the record is approved.
            InvalidTransitionError: the action is not defined for the status.
            AuthorizationError: the claimed role is not the one the action
                requires, or the actor cannot act in it.
        """
        action = _coerce(WorkflowAction, action, "action")
        acting_role = _coerce(CommentRole, acting_role, "acting_role")

        transition = self.get_transition(record.workflow_status, action)

        if acting_role != transition.role:
            raise AuthorizationError(
                f"'{action.value}' on a {record.workflow_status.value} "
                f"{record.record_type.value} must be performed as {transition.role.value}",
                {"acting_role": acting_role.value, "required_role": transition.role.value},
            )
        capabilities = self.resolver.authorize(record, actor, acting_role)

        if action == WorkflowAction.SUBMIT and isinstance(record, PerformancePlan):
            check = validate_weights(record.responsibilities, self.config.required_weight_total)
            if not check.valid:
                raise WeightValidationError(check.total, check.required)

        now = self.clock()
        entry = CommentEntry(
            author_id=actor.user_id,
            author_display_name=actor.label,
            role=acting_role,
            text=comment_text or "",
            action=action,
            timestamp=now,
            via_override=_needs_override(capabilities, acting_role),
        )

        changes: dict[str, Any] = {
            "workflow_status": transition.to_status,
            "comments": record.comments.append(entry),
            "updated_at": now,
        }
        changes.update(self._timestamp_changes(record, transition, now))
        return replace(record, **changes)

    def _timestamp_changes(
        self,
        record: WorkflowRecord,
        transition: Transition,
        now: datetime,
    ) -> dict[str, datetime | None]:
        """Timestamp side effects of a transition."""
        if transition.action == WorkflowAction.SUBMIT:
            changes: dict[str, datetime | None] = {"submitted_at": now}
            if (
                transition.from_status == WorkflowStatus.REVISION_REQUESTED
                and self.config.clears_supervisor_approval
            ):
                changes["supervisor_approved_at"] = None
            return changes
        if transition.action == WorkflowAction.APPROVE:
            return {"supervisor_approved_at": now}
        if transition.action == WorkflowAction.FINAL_APPROVE:
            return {"reviewer_approved_at": now}
        return {}


def _coerce(enum_cls: type[E], value: E | str, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Unknown {field_name.replace('_', ' ')} '{value}'",
            **{field_name: str(value)},
        ) from None


def _needs_override(capabilities: frozenset[Capability], role: CommentRole) -> bool:
    """True when the actor could act in ``role`` only through override."""
    return CAPABILITY_BY_ROLE[role] not in capabilities
