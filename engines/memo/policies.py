"""
Memoflow Memo Engine - Transition Policies
==========================================
Decides whether a requested action is legal for the acting role.

Evaluation order (first failure wins):
    1. transition_must_exist_policy     → ILLEGAL_TRANSITION
    2. actor_role_must_match_policy     → UNAUTHORIZED
    3. comment_required_policy          → MISSING_JUSTIFICATION

Pure functions: no I/O, no clock, no store. Same input → same decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from engines.memo.errors import WorkflowError, WorkflowErrorCode
from engines.memo.models import MemoAction, MemoRole, MemoStatus
from engines.memo.state_table import TransitionRule, lookup_rule


def coerce_enum(enum_cls, value: Any):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().upper())
    except ValueError:
        return None


def _label(value: Any) -> str:
    return getattr(value, "value", None) or str(value)


# ══════════════════════════════════════════════════════════════
# DECISION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransitionDecision:
    """
    Outcome of validate_transition.

    Exactly one of next_status / error is set.
    """

    next_status: Optional[MemoStatus] = None
    error: Optional[WorkflowError] = None

    def __post_init__(self):
        if (self.next_status is None) == (self.error is None):
            raise ValueError(
                "TransitionDecision needs exactly one of next_status or error."
            )

    @property
    def accepted(self) -> bool:
        return self.error is None


# ══════════════════════════════════════════════════════════════
# POLICIES
# ══════════════════════════════════════════════════════════════

def transition_must_exist_policy(
    current_status: MemoStatus,
    action: Any,
) -> Optional[WorkflowError]:
    """The (status, action) pair must be a row of the state table."""
    coerced = coerce_enum(MemoAction, action)
    if coerced is not None and lookup_rule(current_status, coerced) is not None:
        return None

    return WorkflowError(
        code=WorkflowErrorCode.ILLEGAL_TRANSITION,
        message=(
            f"Action '{_label(action)}' is not valid from status "
            f"'{current_status.value}'."
        ),
        policy_name="transition_must_exist_policy",
        details={
            "current_status": current_status.value,
            "action": _label(action),
        },
    )


def actor_role_must_match_policy(
    rule: TransitionRule,
    actor_role: Any,
) -> Optional[WorkflowError]:
    """Only the role named by the rule may perform it."""
    if coerce_enum(MemoRole, actor_role) == rule.required_role:
        return None

    return WorkflowError(
        code=WorkflowErrorCode.UNAUTHORIZED,
        message=(
            f"Role '{_label(actor_role)}' may not perform "
            f"'{rule.action.value}' from '{rule.from_status.value}'. "
            f"Required role: {rule.required_role.value}."
        ),
        policy_name="actor_role_must_match_policy",
        details={
            "action": rule.action.value,
            "actor_role": _label(actor_role),
            "required_role": rule.required_role.value,
        },
    )


def comment_required_policy(comment: Any) -> Optional[WorkflowError]:
    """Every state-changing action must carry a justification."""
    if isinstance(comment, str) and comment.strip():
        return None

    return WorkflowError(
        code=WorkflowErrorCode.MISSING_JUSTIFICATION,
        message="A non-empty comment is required for every workflow action.",
        policy_name="comment_required_policy",
    )


# ══════════════════════════════════════════════════════════════
# VALIDATOR
# ══════════════════════════════════════════════════════════════

def validate_transition(
    current_status: MemoStatus,
    action: Any,
    actor_role: Any,
    comment: Any,
) -> TransitionDecision:
    """
    Decide one requested transition.

    Args:
        current_status: Status the memo is in now.
        action:         MemoAction or its string value.
        actor_role:     MemoRole or its string value.
        comment:        Justification text.

    Returns:
        TransitionDecision with next_status on success, error otherwise.
    """
    error = transition_must_exist_policy(current_status, action)
    if error is not None:
        return TransitionDecision(error=error)

    rule = lookup_rule(current_status, coerce_enum(MemoAction, action))

    error = actor_role_must_match_policy(rule, actor_role)
    if error is not None:
        return TransitionDecision(error=error)

    error = comment_required_policy(comment)
    if error is not None:
        return TransitionDecision(error=error)

    return TransitionDecision(next_status=rule.to_status)
