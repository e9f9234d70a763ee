"""
Memoflow Memo Engine - State Table
==================================
The closed transition table for the memo approval workflow.

    current status      + action              (role)      → next status
    DRAFT               + SUBMIT_TO_DESK_HEAD (CREATOR)   → PENDING_DESK_HEAD
    RETURNED_TO_CREATOR + SUBMIT_TO_DESK_HEAD (CREATOR)   → PENDING_DESK_HEAD
    PENDING_DESK_HEAD   + SUBMIT_TO_LEO       (DESK_HEAD) → PENDING_LEO
    PENDING_DESK_HEAD   + RETURN_TO_CREATOR   (DESK_HEAD) → RETURNED_TO_CREATOR
    PENDING_DESK_HEAD   + REJECT              (DESK_HEAD) → REJECTED
    PENDING_LEO         + APPROVE             (LEO)       → APPROVED
    PENDING_LEO         + REJECT              (LEO)       → REJECTED
    PENDING_LEO         + RETURN_TO_CREATOR   (LEO)       → RETURNED_TO_CREATOR

RULES (NON-NEGOTIABLE):
- A (status, action) pair absent from the table is illegal
- No default or fallthrough transition exists
- APPROVED and REJECTED are terminal
- The table is data; callers query it instead of re-implementing it

This file contains NO persistence logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from engines.memo.models import MemoAction, MemoRole, MemoStatus


# ══════════════════════════════════════════════════════════════
# TRANSITION RULE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransitionRule:
    """One row of the state table."""
    from_status: MemoStatus
    action: MemoAction
    required_role: MemoRole
    to_status: MemoStatus

    def __post_init__(self):
        if not isinstance(self.from_status, MemoStatus):
            raise ValueError("from_status must be MemoStatus enum.")
        if not isinstance(self.action, MemoAction):
            raise ValueError("action must be MemoAction enum.")
        if not isinstance(self.required_role, MemoRole):
            raise ValueError("required_role must be MemoRole enum.")
        if not isinstance(self.to_status, MemoStatus):
            raise ValueError("to_status must be MemoStatus enum.")

    def to_dict(self) -> dict:
        return {
            "from_status": self.from_status.value,
            "action": self.action.value,
            "required_role": self.required_role.value,
            "to_status": self.to_status.value,
        }


# ══════════════════════════════════════════════════════════════
# CANONICAL MEMO TABLE
# ══════════════════════════════════════════════════════════════

INITIAL_STATUS = MemoStatus.DRAFT

TERMINAL_STATUSES: FrozenSet[MemoStatus] = frozenset({
    MemoStatus.APPROVED,
    MemoStatus.REJECTED,
})

MEMO_STATE_TABLE: Tuple[TransitionRule, ...] = (
    TransitionRule(
        MemoStatus.DRAFT, MemoAction.SUBMIT_TO_DESK_HEAD,
        MemoRole.CREATOR, MemoStatus.PENDING_DESK_HEAD,
    ),
    TransitionRule(
        MemoStatus.RETURNED_TO_CREATOR, MemoAction.SUBMIT_TO_DESK_HEAD,
        MemoRole.CREATOR, MemoStatus.PENDING_DESK_HEAD,
    ),
    TransitionRule(
        MemoStatus.PENDING_DESK_HEAD, MemoAction.SUBMIT_TO_LEO,
        MemoRole.DESK_HEAD, MemoStatus.PENDING_LEO,
    ),
    TransitionRule(
        MemoStatus.PENDING_DESK_HEAD, MemoAction.RETURN_TO_CREATOR,
        MemoRole.DESK_HEAD, MemoStatus.RETURNED_TO_CREATOR,
    ),
    TransitionRule(
        MemoStatus.PENDING_DESK_HEAD, MemoAction.REJECT,
        MemoRole.DESK_HEAD, MemoStatus.REJECTED,
    ),
    TransitionRule(
        MemoStatus.PENDING_LEO, MemoAction.APPROVE,
        MemoRole.LEO, MemoStatus.APPROVED,
    ),
    TransitionRule(
        MemoStatus.PENDING_LEO, MemoAction.REJECT,
        MemoRole.LEO, MemoStatus.REJECTED,
    ),
    TransitionRule(
        MemoStatus.PENDING_LEO, MemoAction.RETURN_TO_CREATOR,
        MemoRole.LEO, MemoStatus.RETURNED_TO_CREATOR,
    ),
)

_RULE_INDEX: Dict[Tuple[MemoStatus, MemoAction], TransitionRule] = {
    (rule.from_status, rule.action): rule for rule in MEMO_STATE_TABLE
}

# Declaration order of the enum, used for deterministic action listings.
_ACTION_ORDER = {action: index for index, action in enumerate(MemoAction)}


# ══════════════════════════════════════════════════════════════
# LOOKUPS
# ══════════════════════════════════════════════════════════════

def lookup_rule(
    status: MemoStatus,
    action: MemoAction,
) -> Optional[TransitionRule]:
    """Return the rule for (status, action), or None if illegal."""
    return _RULE_INDEX.get((status, action))


def is_terminal(status: MemoStatus) -> bool:
    return status in TERMINAL_STATUSES


def available_actions(
    status: MemoStatus,
    role: Optional[MemoRole] = None,
) -> Tuple[MemoAction, ...]:
    """
    Actions legal from `status`.

    With `role`, only the actions that role is allowed to perform.
    Order follows the MemoAction declaration order.
    """
    actions = [
        rule.action
        for rule in MEMO_STATE_TABLE
        if rule.from_status == status
        and (role is None or rule.required_role == role)
    ]
    return tuple(sorted(actions, key=_ACTION_ORDER.__getitem__))


def statuses_actionable_by(role: MemoRole) -> FrozenSet[MemoStatus]:
    """Statuses from which `role` has at least one legal action."""
    return frozenset(
        rule.from_status
        for rule in MEMO_STATE_TABLE
        if rule.required_role == role
    )


# ══════════════════════════════════════════════════════════════
# STRUCTURAL SELF-CHECK
# ══════════════════════════════════════════════════════════════

def verify_state_table(
    table: Iterable[TransitionRule] = MEMO_STATE_TABLE,
    *,
    initial_status: MemoStatus = INITIAL_STATUS,
    terminal_statuses: FrozenSet[MemoStatus] = TERMINAL_STATUSES,
) -> None:
    """
    Raise ValueError if the table is structurally unsound.

    Checks:
        - every (status, action) pair appears at most once
        - terminal statuses have no outgoing rule
        - every status is reachable from the initial status
    """
    rules = tuple(table)

    seen: set = set()
    for rule in rules:
        key = (rule.from_status, rule.action)
        if key in seen:
            raise ValueError(
                f"Duplicate transition: {rule.from_status.value} + "
                f"{rule.action.value}."
            )
        seen.add(key)

        if rule.from_status in terminal_statuses:
            raise ValueError(
                f"Terminal status '{rule.from_status.value}' has an "
                f"outgoing transition ({rule.action.value})."
            )

    reachable = {initial_status}
    frontier = [initial_status]
    while frontier:
        current = frontier.pop()
        for rule in rules:
            if rule.from_status == current and rule.to_status not in reachable:
                reachable.add(rule.to_status)
                frontier.append(rule.to_status)

    unreachable = sorted(s.value for s in MemoStatus if s not in reachable)
    if unreachable:
        raise ValueError(
            f"Statuses unreachable from '{initial_status.value}': {unreachable}."
        )
