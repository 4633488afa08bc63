"""Workflow configuration objects.

Configuration is explicit and immutable: the engine never reads environment
variables itself. ``performance_engine.config.Settings`` builds one of these
from the environment for the API process.
"""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_OVERRIDE_ROLES = frozenset(
    {
        "hr",
        "admin",
        "hr_manager",
        "system_administrator",
        "superuser",
        "advance_user_1",
        "advance_user_2",
    }
)

DEFAULT_OVERRIDE_PERMISSIONS = frozenset(
    {
        "hr.full_access",
        "hr.view_all_performance",
    }
)

REAPPROVAL_POLICIES = ("clear", "preserve")


def normalize_role(role: str) -> str:
    """Normalize an external role identifier for table lookups."""
    return role.strip().casefold().replace("-", "_").replace(" ", "_")


@dataclass(frozen=True)
class WorkflowConfig:
    """
    Workflow behavior configuration.

    Attributes:
        required_weight_total: Sum responsibility weights must reach before
            a plan may leave draft. Default 100.
        override_roles: External role names granting administrative
            override. Matched case-insensitively.
        override_permissions: Permission strings granting administrative
            override.
        reapproval_policy: What happens to supervisor_approved_at when a
            record is resubmitted after a revision request. "clear" resets
            it, "preserve" keeps the earlier timestamp. Default "clear".
    """

    required_weight_total: int = 100
    override_roles: frozenset[str] = field(default=DEFAULT_OVERRIDE_ROLES)
    override_permissions: frozenset[str] = field(default=DEFAULT_OVERRIDE_PERMISSIONS)
    reapproval_policy: str = "clear"

    def __post_init__(self) -> None:
        """Validate configuration."""
        if self.required_weight_total < 1:
            raise ValueError("required_weight_total must be at least 1")
        if self.reapproval_policy not in REAPPROVAL_POLICIES:
            raise ValueError(f"reapproval_policy must be one of {REAPPROVAL_POLICIES}")
        # Store normalized names so lookups stay a plain set membership test
        object.__setattr__(
            self,
            "override_roles",
            frozenset(normalize_role(r) for r in self.override_roles if r.strip()),
        )
        object.__setattr__(
            self,
            "override_permissions",
            frozenset(p.strip().casefold() for p in self.override_permissions if p.strip()),
        )

    @property
    def clears_supervisor_approval(self) -> bool:
        """Whether resubmission resets the supervisor approval timestamp."""
        return self.reapproval_policy == "clear"
