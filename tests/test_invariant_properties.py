"""Property-based tests for workflow invariants.

These tests use hypothesis to generate responsibility lists, activity
sets and action sequences, and verify that the invariants hold for all
of them.
"""

from __future__ import annotations

from dataclasses import replace
from uuid import uuid4

import pytest
from hypothesis import given, settings, strategies as st

from performance_engine.workflow import (
    Activity,
    ActivityStatus,
    Actor,
    CommentRole,
    Responsibility,
    WorkflowAction,
    WorkflowError,
    WorkflowStateMachine,
    WorkflowStatus,
    plan_progress,
    responsibility_progress,
    validate_weights,
)

from .conftest import (
    EMPLOYEE_ID,
    EMPLOYEE_USER_ID,
    HR_USER_ID,
    REVIEWER_ID,
    SUPERVISOR_ID,
    FrozenClock,
    make_plan,
)

ACTORS = [
    Actor(user_id=EMPLOYEE_USER_ID, employee_id=EMPLOYEE_ID),
    Actor(user_id=SUPERVISOR_ID),
    Actor(user_id=REVIEWER_ID),
    Actor(user_id=HR_USER_ID, roles=frozenset({"HR"})),
]

weights_st = st.lists(st.integers(min_value=0, max_value=100), max_size=8)
statuses_st = st.lists(st.sampled_from(list(ActivityStatus)), max_size=12)


def build_activities(statuses: list[ActivityStatus]) -> tuple[Activity, ...]:
    responsibility_id = uuid4()
    return tuple(
        Activity(responsibility_id=responsibility_id, title="a", status=s) for s in statuses
    )


# =============================================================================
# Weight validator
# =============================================================================


class TestWeightProperties:
    """The weight rule holds for any list."""

    @given(weights=weights_st)
    def test_valid_iff_nonempty_and_sums_to_hundred(self, weights):
        result = validate_weights([{"description": "x", "weight": w} for w in weights])
        assert result.valid == (bool(weights) and sum(weights) == 100)
        assert result.total == sum(weights)


# =============================================================================
# Progress aggregator
# =============================================================================


class TestProgressProperties:
    """Progress is bounded and derived."""

    @given(statuses=statuses_st)
    def test_responsibility_progress_bounded(self, statuses):
        progress = responsibility_progress(build_activities(statuses))
        assert 0 <= progress <= 100
        if not statuses:
            assert progress == 0

    @given(
        items=st.lists(
            st.tuples(st.integers(min_value=0, max_value=100), statuses_st),
            min_size=1,
            max_size=6,
        )
    )
    def test_plan_progress_between_min_and_max(self, items):
        plan_id = uuid4()
        responsibilities = [
            Responsibility(plan_id=plan_id, description="r", weight=w, activities=build_activities(s))
            for w, s in items
        ]
        progress = plan_progress(responsibilities)

        if sum(w for w, _ in items) == 0:
            assert progress == 0
        else:
            each = [r.progress for r in responsibilities]
            assert min(each) <= progress <= max(each)


# =============================================================================
# State machine
# =============================================================================

action_st = st.tuples(
    st.sampled_from(list(WorkflowAction)),
    st.sampled_from(list(CommentRole)),
    st.sampled_from(ACTORS),
    st.one_of(st.none(), st.text(max_size=20)),
)


class TestStateMachineProperties:
    """Random action sequences never break the workflow invariants."""

    @settings(max_examples=200)
    @given(
        weights=st.sampled_from([(40, 30, 20, 10), (40, 30, 20), (100,)]),
        actions=st.lists(action_st, max_size=15),
    )
    def test_random_sequences(self, weights, actions):
        machine = WorkflowStateMachine(clock=FrozenClock())
        record = make_plan(weights)
        successes = 0

        for action, role, actor, text in actions:
            before = record
            try:
                record = machine.apply(record, action, role, actor, text)
            except WorkflowError:
                # rejection never changes the record
                assert record is before
                assert record.workflow_status == before.workflow_status
                continue
            successes += 1
            assert before.workflow_status != WorkflowStatus.APPROVED

        # one ledger entry per successful transition
        assert len(record.comments) == successes
        # approved can only be reached with reviewer sign-off
        if record.workflow_status == WorkflowStatus.APPROVED:
            assert record.reviewer_approved_at is not None
            assert record.comments.latest(CommentRole.REVIEWER).action == WorkflowAction.FINAL_APPROVE
        # a plan only leaves draft with balanced weights
        if record.workflow_status != WorkflowStatus.DRAFT:
            assert sum(weights) == 100

    @given(action=st.sampled_from(list(WorkflowAction)), role=st.sampled_from(list(CommentRole)))
    def test_approved_rejects_everything(self, action, role):
        machine = WorkflowStateMachine()
        record = make_plan(status=WorkflowStatus.APPROVED)
        for actor in ACTORS:
            with pytest.raises(WorkflowError):
                machine.apply(record, action, role, actor)

    @given(status=st.sampled_from(list(WorkflowStatus)))
    def test_rejected_action_keeps_timestamps(self, status):
        machine = WorkflowStateMachine()
        record = replace(make_plan((40, 30, 20)), workflow_status=status)
        try:
            machine.apply(record, "submit", "employee", ACTORS[0])
        except WorkflowError:
            assert record.submitted_at is None
            assert len(record.comments) == 0
        else:
            pytest.fail("unbalanced plan must not be submitted")
