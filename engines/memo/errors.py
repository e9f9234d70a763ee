"""
Memoflow Memo Engine - Errors
=============================
Two kinds of failure live here:

1. WorkflowError - a frozen, serializable explanation returned to the
   caller inside a TransitionResult. Workflow outcomes are never raised.
2. Collaborator exceptions - raised by DocumentStore / NotificationEmitter
   implementations and converted into WorkflowError by the engine.

Every WorkflowError must be:
- Deterministic (same input → same error)
- Machine-readable (code)
- Human-readable (message)
- Attributable (policy_name)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Optional


# ══════════════════════════════════════════════════════════════
# ERROR CODES
# ══════════════════════════════════════════════════════════════

class WorkflowErrorCode:
    """
    Known workflow error codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Validator (expected user-input outcomes) ──────────────
    ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
    UNAUTHORIZED = "UNAUTHORIZED"
    MISSING_JUSTIFICATION = "MISSING_JUSTIFICATION"

    # ── Engine / store ────────────────────────────────────────
    VERSION_CONFLICT = "VERSION_CONFLICT"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"

    # ── Side effects (never roll back a commit) ───────────────
    NOTIFICATION_ERROR = "NOTIFICATION_ERROR"


VALIDATOR_ERROR_CODES = frozenset({
    WorkflowErrorCode.ILLEGAL_TRANSITION,
    WorkflowErrorCode.UNAUTHORIZED,
    WorkflowErrorCode.MISSING_JUSTIFICATION,
})

RETRYABLE_ERROR_CODES = frozenset({
    WorkflowErrorCode.VERSION_CONFLICT,
    WorkflowErrorCode.PERSISTENCE_ERROR,
})


# ══════════════════════════════════════════════════════════════
# WORKFLOW ERROR (frozen explanation structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WorkflowError:
    """
    Structured reason a workflow operation did not take effect.

    Fields:
        code:        WorkflowErrorCode value.
        message:     Human-readable explanation.
        policy_name: Rule or component that produced the error.
        details:     Extra machine-readable context (ids, statuses).
    """

    code: str
    message: str
    policy_name: str
    details: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    @property
    def retryable(self) -> bool:
        return self.code in RETRYABLE_ERROR_CODES

    @property
    def is_validation_error(self) -> bool:
        return self.code in VALIDATOR_ERROR_CODES

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
            "details": dict(self.details),
        }


# ══════════════════════════════════════════════════════════════
# COLLABORATOR EXCEPTIONS
# ══════════════════════════════════════════════════════════════

class MemoWorkflowError(Exception):
    """Base error for memo workflow collaborators."""
    pass


class MemoNotFoundError(MemoWorkflowError):
    """No memo is stored under the requested id."""

    def __init__(self, memo_id: uuid.UUID):
        self.memo_id = memo_id
        super().__init__(f"Memo '{memo_id}' not found.")


class VersionConflictError(MemoWorkflowError):
    """The stored memo moved on since it was read."""

    def __init__(
        self,
        memo_id: uuid.UUID,
        expected_version: int,
        actual_version: Optional[int],
    ):
        self.memo_id = memo_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Memo '{memo_id}' version conflict: expected "
            f"{expected_version}, found {actual_version}."
        )


class StorePersistenceError(MemoWorkflowError):
    """The store could not confirm durability of a write."""
    pass


class NotificationDeliveryError(MemoWorkflowError):
    """One or more notification subscribers failed."""

    def __init__(self, memo_id: uuid.UUID, report: Any):
        self.memo_id = memo_id
        self.report = report
        failed = getattr(report, "subscribers_failed", "?")
        super().__init__(
            f"Notification for memo '{memo_id}' failed for "
            f"{failed} subscriber(s)."
        )
