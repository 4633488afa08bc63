"""In-memory repository implementation."""

from __future__ import annotations

from dataclasses import replace
from typing import TypeVar
from uuid import UUID

from performance_engine.workflow.comments import CommentLedger
from performance_engine.workflow.errors import ConflictError, NotFoundError
from performance_engine.workflow.records import (
    Activity,
    Appraisal,
    PerformancePlan,
    Responsibility,
    WorkflowRecord,
)
from performance_engine.workflow.roles import Capability
from performance_engine.workflow.types import RecordType

R = TypeVar("R", PerformancePlan, Appraisal)


class InMemoryPerformanceRepository:
    """Dict-backed repository honoring the same save contract as the SQL one.

    Plans are stored without activities; activities live in their own
    append-only lists keyed by responsibility and are attached on read.
    """

    def __init__(self) -> None:
        self._plans: dict[UUID, PerformancePlan] = {}
        self._appraisals: dict[UUID, Appraisal] = {}
        self._activities: dict[UUID, list[Activity]] = {}

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    async def get_plan(self, plan_id: UUID) -> PerformancePlan:
        stored = self._plans.get(plan_id)
        if stored is None:
            raise NotFoundError(RecordType.PLAN.value, plan_id)
        return self._with_activities(stored)

    async def save_plan(self, plan: PerformancePlan) -> PerformancePlan:
        stored = self._check_version(self._plans, plan)

        kept = {r.id for r in plan.responsibilities}
        if stored is not None:
            for r in stored.responsibilities:
                if r.id not in kept:
                    self._activities.pop(r.id, None)

        saved = replace(
            plan,
            responsibilities=tuple(replace(r, activities=()) for r in plan.responsibilities),
            comments=_merge_ledger(stored.comments if stored else None, plan.comments),
            version=plan.version + 1,
        )
        self._plans[plan.id] = saved
        return self._with_activities(saved)

    async def delete_plan(self, plan_id: UUID) -> None:
        stored = self._plans.pop(plan_id, None)
        if stored is None:
            raise NotFoundError(RecordType.PLAN.value, plan_id)
        for r in stored.responsibilities:
            self._activities.pop(r.id, None)
        # Appraisals only hold a weak reference to the plan
        for appraisal_id, appraisal in list(self._appraisals.items()):
            if appraisal.plan_id == plan_id:
                self._appraisals[appraisal_id] = replace(appraisal, plan_id=None)

    async def find_plans(
        self,
        *,
        employee_id: UUID,
        plan_year: int,
        plan_period: str,
    ) -> list[PerformancePlan]:
        return [
            self._with_activities(p)
            for p in self._plans.values()
            if p.employee_id == employee_id
            and p.plan_year == plan_year
            and p.plan_period == plan_period
        ]

    async def get_responsibility(self, responsibility_id: UUID) -> Responsibility:
        for plan in self._plans.values():
            r = plan.responsibility(responsibility_id)
            if r is not None:
                return replace(r, activities=tuple(self._activities.get(r.id, ())))
        raise NotFoundError("responsibility", responsibility_id)

    async def add_activity(self, activity: Activity) -> Activity:
        await self.get_responsibility(activity.responsibility_id)
        self._activities.setdefault(activity.responsibility_id, []).append(activity)
        return activity

    # ------------------------------------------------------------------
    # Appraisals
    # ------------------------------------------------------------------

    async def get_appraisal(self, appraisal_id: UUID) -> Appraisal:
        stored = self._appraisals.get(appraisal_id)
        if stored is None:
            raise NotFoundError(RecordType.APPRAISAL.value, appraisal_id)
        return stored

    async def save_appraisal(self, appraisal: Appraisal) -> Appraisal:
        stored = self._check_version(self._appraisals, appraisal)
        saved = replace(
            appraisal,
            comments=_merge_ledger(stored.comments if stored else None, appraisal.comments),
            version=appraisal.version + 1,
        )
        self._appraisals[appraisal.id] = saved
        return saved

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def list_by_actor(
        self,
        actor_id: UUID,
        capability: Capability,
        record_type: RecordType,
    ) -> list[WorkflowRecord]:
        if record_type == RecordType.PLAN:
            records: list[WorkflowRecord] = [self._with_activities(p) for p in self._plans.values()]
        else:
            records = list(self._appraisals.values())

        if capability == Capability.OVERRIDE:
            return records
        attribute = {
            Capability.EMPLOYEE: "employee_id",
            Capability.SUPERVISOR: "supervisor_id",
            Capability.REVIEWER: "reviewer_id",
        }[capability]
        return [r for r in records if getattr(r, attribute) == actor_id]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_version(store: dict[UUID, R], record: R) -> R | None:
        stored = store.get(record.id)
        if stored is None:
            if record.version != 0:
                raise NotFoundError(record.record_type.value, record.id)
            return None
        if record.version != stored.version:
            raise ConflictError(
                record.record_type.value, record.id, record.version, stored.version
            )
        return stored

    def _with_activities(self, plan: PerformancePlan) -> PerformancePlan:
        return replace(
            plan,
            responsibilities=tuple(
                replace(r, activities=tuple(self._activities.get(r.id, ())))
                for r in plan.responsibilities
            ),
        )


def _merge_ledger(stored: CommentLedger | None, incoming: CommentLedger) -> CommentLedger:
    """Keep stored entries as they are and append the new ones."""
    if stored is None:
        return incoming
    known = stored.ids()
    merged = stored
    for entry in incoming:
        if entry.id not in known:
            merged = merged.append(entry)
    return merged
