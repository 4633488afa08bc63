"""Role resolution - which capabilities an actor holds for one record."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable

from performance_engine.workflow.config import WorkflowConfig, normalize_role
from performance_engine.workflow.errors import AuthorizationError
from performance_engine.workflow.types import Actor, CommentRole

if TYPE_CHECKING:
    from performance_engine.workflow.records import WorkflowRecord


class Capability(str, Enum):
    """Authorization role an actor holds for a specific record."""

    EMPLOYEE = "employee"
    SUPERVISOR = "supervisor"
    REVIEWER = "reviewer"
    OVERRIDE = "override"


# Capability needed to act in each ledger role
CAPABILITY_BY_ROLE: dict[CommentRole, Capability] = {
    CommentRole.EMPLOYEE: Capability.EMPLOYEE,
    CommentRole.SUPERVISOR: Capability.SUPERVISOR,
    CommentRole.REVIEWER: Capability.REVIEWER,
}


class RoleResolver:
    """Resolve and check an actor's capabilities on a record.

    Relationship capabilities come from the record's own ids:
    - EMPLOYEE: actor's linked employee id equals record.employee_id
    - SUPERVISOR: actor's user id equals record.supervisor_id
    - REVIEWER: actor's user id equals record.reviewer_id

    OVERRIDE comes from role memberships or permissions listed in the
    workflow config, and stands in for any relationship capability.
    """

    def __init__(self, config: WorkflowConfig | None = None):
        self.config = config or WorkflowConfig()

    def is_override(self, actor: Actor) -> bool:
        """Check whether the actor holds administrative override."""
        if any(normalize_role(r) in self.config.override_roles for r in actor.roles):
            return True
        return any(
            p.strip().casefold() in self.config.override_permissions
            for p in actor.permissions
        )

    def resolve(self, record: WorkflowRecord, actor: Actor) -> frozenset[Capability]:
        """Return the capabilities the actor holds for this record."""
        capabilities: set[Capability] = set()
        if actor.employee_id is not None and actor.employee_id == record.employee_id:
            capabilities.add(Capability.EMPLOYEE)
        if actor.user_id == record.supervisor_id:
            capabilities.add(Capability.SUPERVISOR)
        if record.reviewer_id is not None and actor.user_id == record.reviewer_id:
            capabilities.add(Capability.REVIEWER)
        if self.is_override(actor):
            capabilities.add(Capability.OVERRIDE)
        return frozenset(capabilities)

    @staticmethod
    def can_act_as(capabilities: Iterable[Capability], role: CommentRole) -> bool:
        """Check whether a capability set permits acting in ``role``."""
        capabilities = set(capabilities)
        return CAPABILITY_BY_ROLE[role] in capabilities or Capability.OVERRIDE in capabilities

    def authorize(
        self,
        record: WorkflowRecord,
        actor: Actor,
        role: CommentRole,
    ) -> frozenset[Capability]:
        """Require that the actor may act in ``role`` on this record.

        Returns the resolved capabilities; raises AuthorizationError otherwise.
        """
        capabilities = self.resolve(record, actor)
        if not self.can_act_as(capabilities, role):
            raise AuthorizationError(
                f"You are not authorized to act as {role.value} for this {record.record_type.value}",
                {
                    "role": role.value,
                    "capabilities": sorted(c.value for c in capabilities),
                },
            )
        return capabilities

    def require_any(
        self,
        record: WorkflowRecord,
        actor: Actor,
        roles: Iterable[CommentRole],
        operation: str,
    ) -> frozenset[Capability]:
        """Require that the actor may act in at least one of ``roles``."""
        roles = list(roles)
        capabilities = self.resolve(record, actor)
        if not any(self.can_act_as(capabilities, role) for role in roles):
            raise AuthorizationError(
                f"Insufficient permissions to {operation}",
                {
                    "operation": operation,
                    "allowed_roles": [r.value for r in roles],
                    "capabilities": sorted(c.value for c in capabilities),
                },
            )
        return capabilities
