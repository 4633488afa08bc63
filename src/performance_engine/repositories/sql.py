"""Async SQLAlchemy repository implementation.

Concurrency control is optimistic: plan and appraisal rows carry a
``version`` column, and every update is conditional on the version the
caller read. A zero-row update means someone else wrote first.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from performance_engine.models import (
    ActivityRow,
    AppraisalRow,
    CommentRow,
    PlanRow,
    ResponsibilityRow,
)
from performance_engine.workflow.comments import CommentEntry, CommentLedger
from performance_engine.workflow.errors import ConflictError, NotFoundError
from performance_engine.workflow.records import (
    Activity,
    Appraisal,
    PerformancePlan,
    Responsibility,
    SuccessIndicator,
    WorkflowRecord,
)
from performance_engine.workflow.roles import Capability
from performance_engine.workflow.types import (
    ActivityStatus,
    CommentRole,
    RecordType,
    WorkflowAction,
    WorkflowStatus,
)


def _aware(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops the offset)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlPerformanceRepository:
    """Repository backed by an AsyncSession.

    The session's transaction is owned by the caller: this class flushes
    but never commits, so one workflow action is one unit of work.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    async def get_plan(self, plan_id: UUID) -> PerformancePlan:
        result = await self.session.execute(
            select(PlanRow)
            .where(PlanRow.id == plan_id)
            .options(selectinload(PlanRow.responsibilities).selectinload(ResponsibilityRow.activities))
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(RecordType.PLAN.value, plan_id)
        ledger = await self._load_ledger(RecordType.PLAN, plan_id)
        return _plan_from_row(row, ledger)

    async def save_plan(self, plan: PerformancePlan) -> PerformancePlan:
        values = _plan_values(plan)
        if plan.version == 0:
            self.session.add(PlanRow(id=plan.id, version=1, **values))
            await self.session.flush()
        else:
            result = await self.session.execute(
                update(PlanRow)
                .where(PlanRow.id == plan.id, PlanRow.version == plan.version)
                .values(version=PlanRow.version + 1, **values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self._raise_stale(PlanRow, RecordType.PLAN, plan.id, plan.version)

        await self._sync_responsibilities(plan)
        await self._append_ledger(RecordType.PLAN, plan.id, plan.comments)
        await self.session.flush()
        return await self.get_plan(plan.id)

    async def delete_plan(self, plan_id: UUID) -> None:
        exists = await self.session.scalar(select(PlanRow.id).where(PlanRow.id == plan_id))
        if exists is None:
            raise NotFoundError(RecordType.PLAN.value, plan_id)

        responsibility_ids = select(ResponsibilityRow.id).where(ResponsibilityRow.plan_id == plan_id)
        await self.session.execute(
            delete(ActivityRow)
            .where(ActivityRow.responsibility_id.in_(responsibility_ids))
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(ResponsibilityRow)
            .where(ResponsibilityRow.plan_id == plan_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(CommentRow)
            .where(CommentRow.record_type == RecordType.PLAN.value, CommentRow.record_id == plan_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            update(AppraisalRow)
            .where(AppraisalRow.plan_id == plan_id)
            .values(plan_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(PlanRow).where(PlanRow.id == plan_id).execution_options(synchronize_session=False)
        )
        await self.session.flush()

    async def find_plans(
        self,
        *,
        employee_id: UUID,
        plan_year: int,
        plan_period: str,
    ) -> list[PerformancePlan]:
        result = await self.session.execute(
            select(PlanRow.id)
            .where(
                PlanRow.employee_id == employee_id,
                PlanRow.plan_year == plan_year,
                PlanRow.plan_period == plan_period,
            )
            .order_by(PlanRow.created_at)
        )
        return [await self.get_plan(plan_id) for plan_id in result.scalars().all()]

    async def get_responsibility(self, responsibility_id: UUID) -> Responsibility:
        result = await self.session.execute(
            select(ResponsibilityRow)
            .where(ResponsibilityRow.id == responsibility_id)
            .options(selectinload(ResponsibilityRow.activities))
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError("responsibility", responsibility_id)
        return _responsibility_from_row(row)

    async def add_activity(self, activity: Activity) -> Activity:
        exists = await self.session.scalar(
            select(ResponsibilityRow.id).where(ResponsibilityRow.id == activity.responsibility_id)
        )
        if exists is None:
            raise NotFoundError("responsibility", activity.responsibility_id)

        self.session.add(
            ActivityRow(
                id=activity.id,
                responsibility_id=activity.responsibility_id,
                title=activity.title,
                description=activity.description,
                status=activity.status.value,
                completed_at=activity.completed_at,
                created_at=activity.created_at,
                updated_at=activity.updated_at or activity.created_at,
            )
        )
        await self.session.flush()
        return activity

    # ------------------------------------------------------------------
    # Appraisals
    # ------------------------------------------------------------------

    async def get_appraisal(self, appraisal_id: UUID) -> Appraisal:
        result = await self.session.execute(
            select(AppraisalRow)
            .where(AppraisalRow.id == appraisal_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise NotFoundError(RecordType.APPRAISAL.value, appraisal_id)
        ledger = await self._load_ledger(RecordType.APPRAISAL, appraisal_id)
        return _appraisal_from_row(row, ledger)

    async def save_appraisal(self, appraisal: Appraisal) -> Appraisal:
        values = _appraisal_values(appraisal)
        if appraisal.version == 0:
            self.session.add(AppraisalRow(id=appraisal.id, version=1, **values))
            await self.session.flush()
        else:
            result = await self.session.execute(
                update(AppraisalRow)
                .where(AppraisalRow.id == appraisal.id, AppraisalRow.version == appraisal.version)
                .values(version=AppraisalRow.version + 1, **values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self._raise_stale(
                    AppraisalRow, RecordType.APPRAISAL, appraisal.id, appraisal.version
                )

        await self._append_ledger(RecordType.APPRAISAL, appraisal.id, appraisal.comments)
        await self.session.flush()
        return await self.get_appraisal(appraisal.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_by_actor(
        self,
        actor_id: UUID,
        capability: Capability,
        record_type: RecordType,
    ) -> list[WorkflowRecord]:
        model = PlanRow if record_type == RecordType.PLAN else AppraisalRow
        query = select(model.id).order_by(model.created_at)
        if capability == Capability.EMPLOYEE:
            query = query.where(model.employee_id == actor_id)
        elif capability == Capability.SUPERVISOR:
            query = query.where(model.supervisor_id == actor_id)
        elif capability == Capability.REVIEWER:
            query = query.where(model.reviewer_id == actor_id)

        ids = (await self.session.execute(query)).scalars().all()
        if record_type == RecordType.PLAN:
            return [await self.get_plan(record_id) for record_id in ids]
        return [await self.get_appraisal(record_id) for record_id in ids]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _raise_stale(
        self,
        model: type[PlanRow] | type[AppraisalRow],
        record_type: RecordType,
        record_id: UUID,
        expected_version: int,
    ) -> None:
        current = await self.session.scalar(select(model.version).where(model.id == record_id))
        if current is None:
            raise NotFoundError(record_type.value, record_id)
        raise ConflictError(record_type.value, record_id, expected_version, current)

    async def _sync_responsibilities(self, plan: PerformancePlan) -> None:
        """Replace the stored responsibility list with the plan's.

        Responsibilities kept by id are updated in place and keep their
        activities; dropped ones are deleted together with their activities.
        """
        result = await self.session.execute(
            select(ResponsibilityRow.id).where(ResponsibilityRow.plan_id == plan.id)
        )
        existing = set(result.scalars().all())
        kept = {r.id for r in plan.responsibilities}

        removed = existing - kept
        if removed:
            await self.session.execute(
                delete(ActivityRow)
                .where(ActivityRow.responsibility_id.in_(removed))
                .execution_options(synchronize_session=False)
            )
            await self.session.execute(
                delete(ResponsibilityRow)
                .where(ResponsibilityRow.id.in_(removed))
                .execution_options(synchronize_session=False)
            )

        now = plan.updated_at or datetime.now(timezone.utc)
        for position, responsibility in enumerate(plan.responsibilities):
            values = _responsibility_values(responsibility, position)
            if responsibility.id in existing:
                await self.session.execute(
                    update(ResponsibilityRow)
                    .where(ResponsibilityRow.id == responsibility.id)
                    .values(updated_at=now, **values)
                    .execution_options(synchronize_session=False)
                )
            else:
                self.session.add(
                    ResponsibilityRow(
                        id=responsibility.id,
                        plan_id=plan.id,
                        created_at=now,
                        updated_at=now,
                        **values,
                    )
                )

    async def _load_ledger(self, record_type: RecordType, record_id: UUID) -> CommentLedger:
        result = await self.session.execute(
            select(CommentRow)
            .where(CommentRow.record_type == record_type.value, CommentRow.record_id == record_id)
            .order_by(CommentRow.sequence)
        )
        return CommentLedger(_entry_from_row(row) for row in result.scalars().all())

    async def _append_ledger(
        self,
        record_type: RecordType,
        record_id: UUID,
        ledger: CommentLedger,
    ) -> None:
        """Insert ledger entries not yet stored. Stored entries are never touched."""
        result = await self.session.execute(
            select(CommentRow.id).where(
                CommentRow.record_type == record_type.value,
                CommentRow.record_id == record_id,
            )
        )
        known = set(result.scalars().all())
        new_entries = [e for e in ledger if e.id not in known]
        if not new_entries:
            return

        last = await self.session.scalar(
            select(func.max(CommentRow.sequence)).where(
                CommentRow.record_type == record_type.value,
                CommentRow.record_id == record_id,
            )
        )
        sequence = last or 0
        for entry in new_entries:
            sequence += 1
            self.session.add(
                CommentRow(
                    id=entry.id,
                    record_type=record_type.value,
                    record_id=record_id,
                    sequence=sequence,
                    author_id=entry.author_id,
                    author_display_name=entry.author_display_name,
                    role=entry.role.value,
                    action=entry.action.value,
                    text=entry.text,
                    via_override=entry.via_override,
                    created_at=entry.timestamp,
                )
            )


# ----------------------------------------------------------------------
# Row <-> record mapping
# ----------------------------------------------------------------------


def _plan_values(plan: PerformancePlan) -> dict[str, Any]:
    values: dict[str, Any] = {
        "employee_id": plan.employee_id,
        "supervisor_id": plan.supervisor_id,
        "reviewer_id": plan.reviewer_id,
        "plan_year": plan.plan_year,
        "plan_period": plan.plan_period,
        "status": plan.status.value,
        "workflow_status": plan.workflow_status.value,
        "submitted_at": plan.submitted_at,
        "supervisor_approved_at": plan.supervisor_approved_at,
        "reviewer_approved_at": plan.reviewer_approved_at,
    }
    if plan.created_at is not None:
        values["created_at"] = plan.created_at
    if plan.updated_at is not None:
        values["updated_at"] = plan.updated_at
    return values


def _responsibility_values(responsibility: Responsibility, position: int) -> dict[str, Any]:
    return {
        "position": position,
        "description": responsibility.description,
        "tasks": responsibility.tasks,
        "weight": responsibility.weight,
        "target_date": responsibility.target_date,
        "status": responsibility.status,
        "comments": responsibility.comments,
        "success_indicators": [s.to_dict() for s in responsibility.success_indicators],
    }


def _appraisal_values(appraisal: Appraisal) -> dict[str, Any]:
    values: dict[str, Any] = {
        "employee_id": appraisal.employee_id,
        "supervisor_id": appraisal.supervisor_id,
        "reviewer_id": appraisal.reviewer_id,
        "plan_id": appraisal.plan_id,
        "appraisal_type": appraisal.appraisal_type,
        "overall_rating": appraisal.overall_rating,
        "status": appraisal.workflow_status.value,
        "submitted_at": appraisal.submitted_at,
        "supervisor_approved_at": appraisal.supervisor_approved_at,
        "reviewer_approved_at": appraisal.reviewer_approved_at,
    }
    if appraisal.created_at is not None:
        values["created_at"] = appraisal.created_at
    if appraisal.updated_at is not None:
        values["updated_at"] = appraisal.updated_at
    return values


def _activity_from_row(row: ActivityRow) -> Activity:
    return Activity(
        id=row.id,
        responsibility_id=row.responsibility_id,
        title=row.title,
        description=row.description,
        status=ActivityStatus.parse(row.status),
        completed_at=_aware(row.completed_at),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _responsibility_from_row(row: ResponsibilityRow) -> Responsibility:
    return Responsibility(
        id=row.id,
        plan_id=row.plan_id,
        description=row.description,
        tasks=row.tasks,
        weight=row.weight,
        target_date=row.target_date,
        status=row.status,
        comments=row.comments,
        success_indicators=tuple(SuccessIndicator.from_dict(s) for s in row.success_indicators or []),
        activities=tuple(_activity_from_row(a) for a in row.activities),
    )


def _plan_from_row(row: PlanRow, ledger: CommentLedger) -> PerformancePlan:
    return PerformancePlan(
        id=row.id,
        employee_id=row.employee_id,
        supervisor_id=row.supervisor_id,
        reviewer_id=row.reviewer_id,
        plan_year=row.plan_year,
        plan_period=row.plan_period,
        workflow_status=WorkflowStatus(row.workflow_status),
        responsibilities=tuple(_responsibility_from_row(r) for r in row.responsibilities),
        comments=ledger,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        submitted_at=_aware(row.submitted_at),
        supervisor_approved_at=_aware(row.supervisor_approved_at),
        reviewer_approved_at=_aware(row.reviewer_approved_at),
        version=row.version,
    )


def _appraisal_from_row(row: AppraisalRow, ledger: CommentLedger) -> Appraisal:
    return Appraisal(
        id=row.id,
        employee_id=row.employee_id,
        supervisor_id=row.supervisor_id,
        reviewer_id=row.reviewer_id,
        plan_id=row.plan_id,
        appraisal_type=row.appraisal_type,
        overall_rating=row.overall_rating,
        workflow_status=WorkflowStatus(row.status),
        comments=ledger,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        submitted_at=_aware(row.submitted_at),
        supervisor_approved_at=_aware(row.supervisor_approved_at),
        reviewer_approved_at=_aware(row.reviewer_approved_at),
        version=row.version,
    )


def _entry_from_row(row: CommentRow) -> CommentEntry:
    return CommentEntry(
        id=row.id,
        author_id=row.author_id,
        author_display_name=row.author_display_name,
        role=CommentRole(row.role),
        text=row.text,
        action=WorkflowAction(row.action),
        timestamp=_aware(row.created_at),
        via_override=row.via_override,
    )
