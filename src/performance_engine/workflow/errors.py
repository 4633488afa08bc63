"""Error kinds raised by the workflow engine.

Every error carries a stable ``code`` and a ``details`` dict so the request
layer can render a specific message. A raised error always means the record
was left unchanged.
"""

from __future__ import annotations

from typing import Any


class WorkflowError(Exception):
    """Base class for expected business-rule failures."""

    code = "WORKFLOW_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an error response body."""
        return {"detail": self.message, "code": self.code, "details": self.details}


class ValidationError(WorkflowError):
    """Raised when input data breaks a plan or appraisal rule."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        errors: list[dict[str, str]] | None = None,
        **details: Any,
    ):
        self.errors = errors or []
        if self.errors:
            details["errors"] = self.errors
        super().__init__(message, details)


class WeightValidationError(ValidationError):
    """Raised when responsibility weights do not add up to the required total."""

    def __init__(self, total: int, required: int = 100):
        self.total = total
        self.required = required
        super().__init__(
            f"Responsibility weights must total {required}% (current total: {total}%)",
            total=total,
            required=required,
        )


class AuthorizationError(WorkflowError):
    """Raised when the actor may not perform the action in the claimed role."""

    code = "AUTHORIZATION_ERROR"


class InvalidTransitionError(WorkflowError):
    """Raised when an action is not defined for the record's current state."""

    code = "INVALID_TRANSITION"

    def __init__(self, status: str, action: str, reason: str | None = None):
        self.status = status
        self.action = action
        self.reason = reason
        msg = f"Cannot {action} a record in '{status}' state"
        if reason:
            msg += f": {reason}"
        super().__init__(msg, {"status": status, "action": action})


class RecordLockedError(InvalidTransitionError):
    """Raised for any action on a record that reached its terminal state."""

    code = "RECORD_LOCKED"

    def __init__(self, status: str, action: str):
        super().__init__(status, action, "record is locked")


class ConflictError(WorkflowError):
    """Raised when a record changed between read and write."""

    code = "CONFLICT"

    def __init__(
        self,
        record_type: str,
        record_id: object,
        expected_version: int,
        actual_version: int | None = None,
    ):
        self.record_type = record_type
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"{record_type.capitalize()} {record_id} changed, please retry",
            {
                "record_type": record_type,
                "record_id": str(record_id),
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )


class NotFoundError(WorkflowError):
    """Raised for an unknown record id."""

    code = "NOT_FOUND"

    def __init__(self, record_type: str, record_id: object):
        self.record_type = record_type
        self.record_id = record_id
        super().__init__(
            f"{record_type.capitalize()} {record_id} not found",
            {"record_type": record_type, "record_id": str(record_id)},
        )
