"""Repository protocol - the persistence boundary of the workflow engine.

The engine and service depend only on this protocol. Implementations:
- InMemoryPerformanceRepository: dict-backed, for tests and embedding
- SqlPerformanceRepository: async SQLAlchemy, for deployments
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from performance_engine.workflow.records import (
    Activity,
    Appraisal,
    PerformancePlan,
    Responsibility,
    WorkflowRecord,
)
from performance_engine.workflow.roles import Capability
from performance_engine.workflow.types import RecordType


class PerformanceRepository(Protocol):
    """Protocol for plan and appraisal storage.

    Save semantics (all implementations):
    - ``record.version`` is the version the caller read; 0 means new.
    - Saving fails with ConflictError if the stored version moved on, and
      with NotFoundError if a non-new record no longer exists.
    - The returned record carries the incremented version.
    - Comment ledger entries are only ever added: entries already stored
      are kept as stored, entries with new ids are appended.
    - Activities are written only through ``add_activity``; saving a plan
      keeps the stored activities of every responsibility it retains.
    """

    async def get_plan(self, plan_id: UUID) -> PerformancePlan:
        """Load a plan with responsibilities, activities and ledger.

        Raises NotFoundError for an unknown id.
        """
        ...

    async def save_plan(self, plan: PerformancePlan) -> PerformancePlan:
        """Insert or update a plan and its responsibilities."""
        ...

    async def delete_plan(self, plan_id: UUID) -> None:
        """Delete a plan with its responsibilities, activities and ledger."""
        ...

    async def find_plans(
        self,
        *,
        employee_id: UUID,
        plan_year: int,
        plan_period: str,
    ) -> list[PerformancePlan]:
        """Plans of one employee for one year and period, oldest first."""
        ...

    async def get_responsibility(self, responsibility_id: UUID) -> Responsibility:
        """Load one responsibility with its activities."""
        ...

    async def add_activity(self, activity: Activity) -> Activity:
        """Append an activity to its responsibility."""
        ...

    async def get_appraisal(self, appraisal_id: UUID) -> Appraisal:
        """Load an appraisal with its ledger."""
        ...

    async def save_appraisal(self, appraisal: Appraisal) -> Appraisal:
        """Insert or update an appraisal."""
        ...

    async def list_by_actor(
        self,
        actor_id: UUID,
        capability: Capability,
        record_type: RecordType,
    ) -> list[WorkflowRecord]:
        """Records where ``actor_id`` holds ``capability``, oldest first.

        EMPLOYEE matches employee_id, SUPERVISOR supervisor_id, REVIEWER
        reviewer_id; OVERRIDE returns every record of the type.
        """
        ...
