"""Performance workflow engine: pure components with no I/O.

- weights: responsibility weight validation
- progress: completion percentages derived from activities
- roles: capability resolution for an actor on a record
- comments: append-only comment ledger
- state_machine: approval pipeline transitions
"""

from performance_engine.workflow.comments import CommentEntry, CommentLedger
from performance_engine.workflow.config import WorkflowConfig
from performance_engine.workflow.errors import (
    AuthorizationError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    RecordLockedError,
    ValidationError,
    WeightValidationError,
    WorkflowError,
)
from performance_engine.workflow.progress import plan_progress, responsibility_progress
from performance_engine.workflow.records import (
    Activity,
    Appraisal,
    PerformancePlan,
    Responsibility,
    SuccessIndicator,
    WorkflowRecord,
)
from performance_engine.workflow.roles import Capability, RoleResolver
from performance_engine.workflow.state_machine import Transition, WorkflowStateMachine
from performance_engine.workflow.types import (
    ActivityStatus,
    Actor,
    CommentRole,
    PlanStatus,
    RecordType,
    WorkflowAction,
    WorkflowStatus,
)
from performance_engine.workflow.weights import (
    WeightValidation,
    validate_responsibility_entries,
    validate_weights,
)

__all__ = [
    # Types
    "Actor",
    "ActivityStatus",
    "CommentRole",
    "PlanStatus",
    "RecordType",
    "WorkflowAction",
    "WorkflowStatus",
    # Records
    "Activity",
    "Appraisal",
    "PerformancePlan",
    "Responsibility",
    "SuccessIndicator",
    "WorkflowRecord",
    # Components
    "Capability",
    "CommentEntry",
    "CommentLedger",
    "RoleResolver",
    "Transition",
    "WeightValidation",
    "WorkflowConfig",
    "WorkflowStateMachine",
    "plan_progress",
    "responsibility_progress",
    "validate_responsibility_entries",
    "validate_weights",
    # Errors
    "AuthorizationError",
    "ConflictError",
    "InvalidTransitionError",
    "NotFoundError",
    "RecordLockedError",
    "ValidationError",
    "WeightValidationError",
    "WorkflowError",
]
