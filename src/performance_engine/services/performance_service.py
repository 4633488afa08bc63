"""Performance service - orchestrator for plan and appraisal operations."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Sequence
from uuid import UUID

from performance_engine.repositories.base import PerformanceRepository
from performance_engine.workflow.config import WorkflowConfig
from performance_engine.workflow.errors import (
    ConflictError,
    InvalidTransitionError,
    RecordLockedError,
    ValidationError,
    WorkflowError,
)
from performance_engine.workflow.records import (
    Activity,
    Appraisal,
    PerformancePlan,
    Responsibility,
    SuccessIndicator,
    WorkflowRecord,
)
from performance_engine.workflow.roles import Capability, RoleResolver
from performance_engine.workflow.state_machine import WorkflowStateMachine, utcnow
from performance_engine.workflow.templates import default_responsibilities
from performance_engine.workflow.types import (
    ActivityStatus,
    Actor,
    CommentRole,
    RecordType,
    WorkflowAction,
    WorkflowStatus,
)
from performance_engine.workflow.weights import validate_responsibility_entries

logger = logging.getLogger(__name__)

MIN_RATING = Decimal("0")
MAX_RATING = Decimal("5")

VIEWER_ROLES = (CommentRole.EMPLOYEE, CommentRole.SUPERVISOR, CommentRole.REVIEWER)

# Status in which a record waits on each capability
AWAITING: dict[Capability, frozenset[WorkflowStatus]] = {
    Capability.EMPLOYEE: frozenset({WorkflowStatus.DRAFT, WorkflowStatus.REVISION_REQUESTED}),
    Capability.SUPERVISOR: frozenset({WorkflowStatus.SUBMITTED}),
    Capability.REVIEWER: frozenset({WorkflowStatus.SUPERVISOR_APPROVED}),
    Capability.OVERRIDE: frozenset({WorkflowStatus.SUBMITTED, WorkflowStatus.SUPERVISOR_APPROVED}),
}


class PerformanceService:
    """Service for plan and appraisal lifecycles.

    Operations:
    - create_plan: Create a draft plan, or return the open draft for the period
    - update_responsibilities: Replace a plan's responsibilities while editable
    - record_activity: Append progress evidence to a responsibility
    - apply_workflow_action: Drive a plan or appraisal through approval
    - create_appraisal / update_appraisal_rating: Appraisal lifecycle
    - delete_plan: Remove an editable plan with everything under it
    - list_pending_for_actor: Records waiting on the actor
    - get_workflow_history: Status, comment threads and approval summary

    The acting user is always passed in explicitly.
    """

    def __init__(
        self,
        repository: PerformanceRepository,
        config: WorkflowConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repository = repository
        self.config = config or WorkflowConfig()
        self.clock = clock or utcnow
        self.resolver = RoleResolver(self.config)
        self.state_machine = WorkflowStateMachine(self.config, self.resolver, self.clock)

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    async def create_plan(
        self,
        actor: Actor,
        employee_id: UUID,
        plan_year: int,
        plan_period: str,
        supervisor_id: UUID,
        reviewer_id: UUID | None = None,
        responsibilities: Sequence[Mapping[str, Any]] | None = None,
        position: str | None = None,
    ) -> PerformancePlan:
        """Create a draft plan.

        Only the employee or an override holder may create a plan. If the
        employee already has an editable plan for the year and period with the
        same supervisor and reviewer, that plan is returned unchanged. A plan
        with a different approval chain, or one already in approval, blocks
        creation.
        """
        plan_period = (plan_period or "").strip()
        if not plan_period:
            raise ValidationError("Plan period is required", plan_period=plan_period)
        if isinstance(plan_year, bool) or not isinstance(plan_year, int) or plan_year < 1:
            raise ValidationError("Plan year must be a positive whole number", plan_year=plan_year)

        now = self.clock()
        plan = PerformancePlan(
            employee_id=employee_id,
            supervisor_id=supervisor_id,
            reviewer_id=reviewer_id,
            plan_year=plan_year,
            plan_period=plan_period,
            created_at=now,
            updated_at=now,
        )
        self.resolver.require_any(plan, actor, (CommentRole.EMPLOYEE,), "create a performance plan")

        existing = await self.repository.find_plans(
            employee_id=employee_id, plan_year=plan_year, plan_period=plan_period
        )
        for candidate in existing:
            if WorkflowStateMachine.is_editable(candidate.workflow_status):
                if (candidate.supervisor_id, candidate.reviewer_id) != (supervisor_id, reviewer_id):
                    raise ValidationError(
                        f"A {candidate.workflow_status.value} plan for {plan_year} {plan_period} "
                        "already exists with a different supervisor or reviewer",
                        existing_plan_id=str(candidate.id),
                        status=candidate.workflow_status.value,
                    )
                logger.info(
                    "Reusing %s plan %s for employee %s (%s %s)",
                    candidate.workflow_status.value,
                    candidate.id,
                    employee_id,
                    plan_year,
                    plan_period,
                )
                return candidate
        if existing:
            blocking = existing[0]
            raise ValidationError(
                f"A performance plan for {plan_year} {plan_period} already exists "
                f"and is {blocking.workflow_status.value}",
                existing_plan_id=str(blocking.id),
                status=blocking.workflow_status.value,
            )

        if responsibilities is None and position:
            responsibilities = default_responsibilities(position)
        plan = replace(
            plan,
            responsibilities=self._build_responsibilities(plan, responsibilities or [], now),
        )

        saved = await self.repository.save_plan(plan)
        logger.info(
            "Created plan %s for employee %s (%s %s) by %s",
            saved.id,
            employee_id,
            plan_year,
            plan_period,
            actor.user_id,
        )
        return saved

    async def update_responsibilities(
        self,
        actor: Actor,
        plan_id: UUID,
        responsibilities: Sequence[Mapping[str, Any]],
    ) -> PerformancePlan:
        """Replace the responsibilities of an editable plan.

        Entries carrying the id of an existing responsibility update it and
        keep its activities. Existing responsibilities missing from the list
        are removed together with their activities. Weights need not total
        100 until the plan is submitted.
        """
        plan = await self.repository.get_plan(plan_id)
        self.resolver.require_any(
            plan, actor, (CommentRole.EMPLOYEE, CommentRole.SUPERVISOR), "edit plan responsibilities"
        )
        self._require_editable(plan, "edit")

        now = self.clock()
        updated = replace(
            plan,
            responsibilities=self._build_responsibilities(plan, responsibilities, now),
            updated_at=now,
        )
        try:
            saved = await self.repository.save_plan(updated)
        except ConflictError as exc:
            logger.warning("Conflict saving plan %s: %s", plan_id, exc.code)
            raise

        logger.info(
            "Updated responsibilities of plan %s (%d entries, weight total %d) by %s",
            plan_id,
            len(saved.responsibilities),
            saved.weight_total,
            actor.user_id,
        )
        return saved

    async def delete_plan(self, actor: Actor, plan_id: UUID) -> None:
        """Delete an editable plan with its responsibilities, activities and comments."""
        plan = await self.repository.get_plan(plan_id)
        self.resolver.require_any(plan, actor, (CommentRole.EMPLOYEE,), "delete this plan")
        self._require_editable(plan, "delete")

        await self.repository.delete_plan(plan_id)
        logger.info("Deleted plan %s by %s", plan_id, actor.user_id)

    async def get_plan(self, actor: Actor, plan_id: UUID) -> PerformancePlan:
        """Load a plan the actor takes part in. Progress is computed from the activities as loaded."""
        plan = await self.repository.get_plan(plan_id)
        self.resolver.require_any(plan, actor, VIEWER_ROLES, "view this plan")
        return plan

    # ------------------------------------------------------------------
    # Activities
    # ------------------------------------------------------------------

    async def record_activity(
        self,
        actor: Actor,
        responsibility_id: UUID,
        title: str,
        description: str = "",
        status: ActivityStatus | str = ActivityStatus.PENDING,
    ) -> Activity:
        """Append an activity to a responsibility.

        Activities are never edited; a change in progress is recorded as a
        new activity.
        """
        responsibility = await self.repository.get_responsibility(responsibility_id)
        plan = await self.repository.get_plan(responsibility.plan_id)
        self.resolver.require_any(
            plan, actor, (CommentRole.EMPLOYEE, CommentRole.SUPERVISOR), "record an activity"
        )

        title = (title or "").strip()
        if not title:
            raise ValidationError(
                "Activity title is required",
                errors=[{"field": "title", "message": "Activity title is required"}],
            )
        try:
            parsed = ActivityStatus.parse(status)
        except ValueError:
            raise ValidationError(
                f"Unknown activity status '{status}'",
                errors=[{"field": "status", "message": "Status must be pending, in-progress or completed"}],
            ) from None

        now = self.clock()
        activity = Activity(
            responsibility_id=responsibility_id,
            title=title,
            description=description or "",
            status=parsed,
            completed_at=now if parsed == ActivityStatus.COMPLETED else None,
            created_at=now,
            updated_at=now,
        )
        saved = await self.repository.add_activity(activity)
        logger.info(
            "Recorded %s activity %s on responsibility %s by %s",
            parsed.value,
            saved.id,
            responsibility_id,
            actor.user_id,
        )
        return saved

    # ------------------------------------------------------------------
    # Appraisals
    # ------------------------------------------------------------------

    async def create_appraisal(
        self,
        actor: Actor,
        employee_id: UUID,
        supervisor_id: UUID,
        reviewer_id: UUID | None = None,
        plan_id: UUID | None = None,
        appraisal_type: str = "annual",
    ) -> Appraisal:
        """Create a draft appraisal, optionally linked to a plan of the same employee.

        Only the employee or an override holder may create an appraisal.
        """
        if plan_id is not None:
            plan = await self.repository.get_plan(plan_id)
            if plan.employee_id != employee_id:
                raise ValidationError(
                    "Linked plan belongs to a different employee",
                    plan_id=str(plan_id),
                )

        now = self.clock()
        appraisal = Appraisal(
            employee_id=employee_id,
            supervisor_id=supervisor_id,
            reviewer_id=reviewer_id,
            plan_id=plan_id,
            appraisal_type=(appraisal_type or "annual").strip(),
            created_at=now,
            updated_at=now,
        )
        self.resolver.require_any(
            appraisal, actor, (CommentRole.EMPLOYEE,), "create a performance appraisal"
        )

        saved = await self.repository.save_appraisal(appraisal)
        logger.info("Created appraisal %s for employee %s by %s", saved.id, employee_id, actor.user_id)
        return saved

    async def update_appraisal_rating(
        self,
        actor: Actor,
        appraisal_id: UUID,
        overall_rating: Decimal | float | int | str | None,
    ) -> Appraisal:
        """Set the overall rating (0 to 5) of an appraisal that is not yet approved."""
        appraisal = await self.repository.get_appraisal(appraisal_id)
        self.resolver.require_any(appraisal, actor, (CommentRole.SUPERVISOR,), "rate this appraisal")
        if WorkflowStateMachine.is_terminal(appraisal.workflow_status):
            raise RecordLockedError(appraisal.workflow_status.value, "rate")

        rating = _parse_rating(overall_rating)
        now = self.clock()
        try:
            saved = await self.repository.save_appraisal(
                replace(appraisal, overall_rating=rating, updated_at=now)
            )
        except ConflictError as exc:
            logger.warning("Conflict saving appraisal %s: %s", appraisal_id, exc.code)
            raise
        logger.info("Rated appraisal %s by %s", appraisal_id, actor.user_id)
        return saved

    async def get_appraisal(self, actor: Actor, appraisal_id: UUID) -> Appraisal:
        appraisal = await self.repository.get_appraisal(appraisal_id)
        self.resolver.require_any(appraisal, actor, VIEWER_ROLES, "view this appraisal")
        return appraisal

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    async def apply_workflow_action(
        self,
        actor: Actor,
        record_id: UUID,
        record_type: RecordType | str,
        action: WorkflowAction | str,
        acting_role: CommentRole | str,
        comment_text: str | None = None,
    ) -> WorkflowRecord:
        """Apply one workflow action and persist the result.

        A rejected action leaves the stored record untouched.
        """
        record_type = _parse_record_type(record_type)
        record = await self._load(record_id, record_type)
        from_status = record.workflow_status

        try:
            updated = self.state_machine.apply(record, action, acting_role, actor, comment_text)
        except WorkflowError as exc:
            logger.warning(
                "Rejected %s on %s %s (%s) by %s: %s",
                _label(action),
                record_type.value,
                record_id,
                from_status.value,
                actor.user_id,
                exc.code,
            )
            raise

        try:
            saved = await self._save(updated)
        except ConflictError as exc:
            logger.warning(
                "Conflict applying %s to %s %s: %s",
                _label(action),
                record_type.value,
                record_id,
                exc.code,
            )
            raise

        logger.info(
            "Applied %s to %s %s: %s -> %s by %s",
            _label(action),
            record_type.value,
            record_id,
            from_status.value,
            saved.workflow_status.value,
            actor.user_id,
        )
        return saved

    async def list_pending_for_actor(
        self,
        actor: Actor,
        record_type: RecordType | str,
    ) -> list[WorkflowRecord]:
        """Records of one type currently waiting on the actor, oldest first.

        An employee waits on their own draft and revision_requested records,
        a supervisor on submitted ones, a reviewer on supervisor_approved
        ones. Override holders see everything in approval.
        """
        record_type = _parse_record_type(record_type)
        lookups: list[tuple[UUID, Capability]] = []
        if actor.employee_id is not None:
            lookups.append((actor.employee_id, Capability.EMPLOYEE))
        lookups.append((actor.user_id, Capability.SUPERVISOR))
        lookups.append((actor.user_id, Capability.REVIEWER))
        if self.resolver.is_override(actor):
            lookups.append((actor.user_id, Capability.OVERRIDE))

        pending: dict[UUID, WorkflowRecord] = {}
        for actor_id, capability in lookups:
            records = await self.repository.list_by_actor(actor_id, capability, record_type)
            for record in records:
                if record.workflow_status in AWAITING[capability]:
                    pending.setdefault(record.id, record)

        return sorted(pending.values(), key=_created_key)

    async def get_workflow_history(
        self,
        actor: Actor,
        record_id: UUID,
        record_type: RecordType | str,
    ) -> dict[str, Any]:
        """Current status, comment threads and approval summary of a record."""
        record_type = _parse_record_type(record_type)
        record = await self._load(record_id, record_type)
        self.resolver.require_any(
            record, actor, VIEWER_ROLES, f"view the workflow of this {record_type.value}"
        )
        status = record.workflow_status

        reviewer_done = status == WorkflowStatus.APPROVED
        supervisor_done = reviewer_done or status == WorkflowStatus.SUPERVISOR_APPROVED
        return {
            "record_id": str(record.id),
            "record_type": record_type.value,
            "workflow_status": status.value,
            "available_actions": [a.value for a in WorkflowStateMachine.available_actions(status)],
            "comments": record.comments.to_dict(),
            "submitted_at": _iso(record.submitted_at),
            "supervisor_approved_at": _iso(record.supervisor_approved_at),
            "reviewer_approved_at": _iso(record.reviewer_approved_at),
            "supervisor_approval": "approved" if supervisor_done else "pending",
            "reviewer_approval": "approved" if reviewer_done else "pending",
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _load(self, record_id: UUID, record_type: RecordType) -> WorkflowRecord:
        if record_type == RecordType.PLAN:
            return await self.repository.get_plan(record_id)
        return await self.repository.get_appraisal(record_id)

    async def _save(self, record: WorkflowRecord) -> WorkflowRecord:
        if isinstance(record, PerformancePlan):
            return await self.repository.save_plan(record)
        return await self.repository.save_appraisal(record)

    @staticmethod
    def _require_editable(record: WorkflowRecord, operation: str) -> None:
        status = record.workflow_status
        if WorkflowStateMachine.is_terminal(status):
            raise RecordLockedError(status.value, operation)
        if not WorkflowStateMachine.is_editable(status):
            raise InvalidTransitionError(
                status.value,
                operation,
                "only draft or revision_requested records can be changed",
            )

    def _build_responsibilities(
        self,
        plan: PerformancePlan,
        entries: Sequence[Mapping[str, Any]],
        now: datetime,
    ) -> tuple[Responsibility, ...]:
        """Turn raw entries into responsibilities, validating every field first."""
        errors = validate_responsibility_entries(entries)
        existing = {r.id: r for r in plan.responsibilities}
        seen: set[UUID] = set()
        parsed_ids: list[UUID | None] = []
        parsed_dates: list[date | None] = []

        for index, entry in enumerate(entries):
            if not isinstance(entry, Mapping):
                parsed_ids.append(None)
                parsed_dates.append(None)
                continue
            prefix = f"responsibilities[{index}]"

            entry_id = _parse_uuid(entry.get("id"))
            if entry.get("id") is not None and (entry_id is None or entry_id not in existing):
                errors.append({"field": f"{prefix}.id", "message": "Unknown responsibility id"})
            elif entry_id is not None and entry_id in seen:
                errors.append({"field": f"{prefix}.id", "message": "Duplicate responsibility id"})
            if entry_id is not None:
                seen.add(entry_id)
            parsed_ids.append(entry_id)

            try:
                parsed_dates.append(_parse_date(entry.get("target_date")))
            except ValueError:
                errors.append(
                    {"field": f"{prefix}.target_date", "message": "Target date must be YYYY-MM-DD"}
                )
                parsed_dates.append(None)

        if errors:
            raise ValidationError("Invalid responsibility entries", errors=errors)

        built: list[Responsibility] = []
        for entry, entry_id, target_date in zip(entries, parsed_ids, parsed_dates):
            values = dict(
                plan_id=plan.id,
                description=entry["description"].strip(),
                weight=entry["weight"],
                tasks=str(entry.get("tasks") or ""),
                target_date=target_date,
                status=str(entry.get("status") or ""),
                comments=str(entry.get("comments") or ""),
                success_indicators=tuple(
                    SuccessIndicator.from_dict(s) for s in entry.get("success_indicators") or []
                ),
            )
            if entry_id is not None:
                built.append(replace(existing[entry_id], **values))
            else:
                built.append(Responsibility(**values))
        return tuple(built)


def _parse_record_type(value: RecordType | str) -> RecordType:
    if isinstance(value, RecordType):
        return value
    try:
        return RecordType(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown record type '{value}'", record_type=str(value)) from None


def _parse_rating(value: Decimal | float | int | str | None) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("Overall rating must be a number", overall_rating=str(value))
    try:
        rating = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError("Overall rating must be a number", overall_rating=str(value)) from None
    if not rating.is_finite() or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(
            f"Overall rating must be between {MIN_RATING} and {MAX_RATING}",
            overall_rating=str(value),
        )
    return rating.quantize(Decimal("0.01"))


def _parse_uuid(value: Any) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


def _parse_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _label(value: Any) -> str:
    return value.value if hasattr(value, "value") else str(value)


def _created_key(record: WorkflowRecord) -> tuple[bool, Any]:
    return (record.created_at is None, record.created_at or 0)
