"""Pytest fixtures for performance engine tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import pytest
import pytest_asyncio

from performance_engine.repositories import InMemoryPerformanceRepository
from performance_engine.services import PerformanceService
from performance_engine.workflow import (
    Actor,
    PerformancePlan,
    Responsibility,
    WorkflowConfig,
    WorkflowStatus,
)

# Fixed identities used across tests
EMPLOYEE_ID = UUID("11111111-1111-1111-1111-111111111111")
EMPLOYEE_USER_ID = UUID("11111111-0000-0000-0000-000000000001")
SUPERVISOR_ID = UUID("22222222-2222-2222-2222-222222222222")
REVIEWER_ID = UUID("33333333-3333-3333-3333-333333333333")
HR_USER_ID = UUID("44444444-4444-4444-4444-444444444444")
OUTSIDER_ID = UUID("55555555-5555-5555-5555-555555555555")

PLAN_YEAR = 2024
PLAN_PERIOD = "annual"

START = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Deterministic clock that advances one minute per call."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(minutes=1)
        return self.now


def weighted(*weights: int) -> list[dict[str, Any]]:
    """Responsibility entries with the given weights."""
    return [
        {"description": f"Responsibility {i + 1}", "weight": w}
        for i, w in enumerate(weights)
    ]


def make_plan(
    weights: tuple[int, ...] = (40, 30, 20, 10),
    status: WorkflowStatus = WorkflowStatus.DRAFT,
    reviewer_id: UUID | None = REVIEWER_ID,
) -> PerformancePlan:
    """Build a plan record without going through a repository."""
    plan = PerformancePlan(
        employee_id=EMPLOYEE_ID,
        supervisor_id=SUPERVISOR_ID,
        reviewer_id=reviewer_id,
        plan_year=PLAN_YEAR,
        plan_period=PLAN_PERIOD,
        workflow_status=status,
    )
    responsibilities = tuple(
        Responsibility(plan_id=plan.id, description=f"Responsibility {i + 1}", weight=w)
        for i, w in enumerate(weights)
    )
    return replace(plan, responsibilities=responsibilities)


@pytest.fixture
def employee() -> Actor:
    return Actor(user_id=EMPLOYEE_USER_ID, employee_id=EMPLOYEE_ID, display_name="Emma Employee")


@pytest.fixture
def supervisor() -> Actor:
    return Actor(user_id=SUPERVISOR_ID, display_name="Sam Supervisor")


@pytest.fixture
def reviewer() -> Actor:
    return Actor(user_id=REVIEWER_ID, display_name="Rita Reviewer")


@pytest.fixture
def hr_admin() -> Actor:
    return Actor(user_id=HR_USER_ID, display_name="Harper HR", roles=frozenset({"HR_Manager"}))


@pytest.fixture
def outsider() -> Actor:
    return Actor(user_id=OUTSIDER_ID, display_name="Oscar Outsider")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def config() -> WorkflowConfig:
    return WorkflowConfig()


@pytest.fixture
def repository() -> InMemoryPerformanceRepository:
    return InMemoryPerformanceRepository()


@pytest.fixture
def service(repository, config, clock) -> PerformanceService:
    return PerformanceService(repository, config=config, clock=clock)


@pytest_asyncio.fixture
async def draft_plan(service: PerformanceService, employee: Actor) -> PerformancePlan:
    """A stored draft plan weighted [40, 30, 20, 10]."""
    return await service.create_plan(
        employee,
        employee_id=EMPLOYEE_ID,
        plan_year=PLAN_YEAR,
        plan_period=PLAN_PERIOD,
        supervisor_id=SUPERVISOR_ID,
        reviewer_id=REVIEWER_ID,
        responsibilities=weighted(40, 30, 20, 10),
    )
