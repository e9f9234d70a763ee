"""
Memoflow Memo Engine - Workflow History
=======================================
Pure functions over the append-only audit trail of a memo.

RULES (NON-NEGOTIABLE):
- Entries are never edited or removed; appending returns a new tuple
- sequence_number starts at 1 and strictly increases per memo
- Replaying the recorded actions from DRAFT reproduces the status
- Specialised views (per-stage timestamps, reviews) are derived here,
  never stored as parallel fields

This file contains NO persistence logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Tuple

from engines.memo.models import (
    MemoAction,
    MemoRole,
    MemoStatus,
    WorkflowHistoryEntry,
)
from engines.memo.state_table import INITIAL_STATUS, lookup_rule


History = Tuple[WorkflowHistoryEntry, ...]


# ══════════════════════════════════════════════════════════════
# ENTRY FACTORIES
# ══════════════════════════════════════════════════════════════

def build_created_entry(
    memo_id: uuid.UUID,
    actor_id: str,
    occurred_at: datetime,
) -> WorkflowHistoryEntry:
    """The implicit first entry of every memo."""
    return WorkflowHistoryEntry(
        memo_id=memo_id,
        sequence_number=1,
        actor_id=actor_id,
        actor_role=None,
        action=None,
        comment="",
        occurred_at=occurred_at,
        resulting_status=INITIAL_STATUS,
    )


def build_transition_entry(
    history: Sequence[WorkflowHistoryEntry],
    *,
    memo_id: uuid.UUID,
    actor_id: str,
    actor_role: MemoRole,
    action: MemoAction,
    comment: str,
    occurred_at: datetime,
    resulting_status: MemoStatus,
) -> WorkflowHistoryEntry:
    """Build the entry that follows `history`. Does not append it."""
    if not history:
        raise ValueError(
            f"Memo '{memo_id}' has no creation entry; cannot record a transition."
        )
    return WorkflowHistoryEntry(
        memo_id=memo_id,
        sequence_number=history[-1].sequence_number + 1,
        actor_id=actor_id,
        actor_role=actor_role,
        action=action,
        comment=comment.strip(),
        occurred_at=occurred_at,
        resulting_status=resulting_status,
    )


def append_entry(
    history: Sequence[WorkflowHistoryEntry],
    entry: WorkflowHistoryEntry,
) -> History:
    """
    Return a new history with `entry` at the end.

    Raises ValueError when the entry does not belong to the same memo
    or would break the strictly increasing sequence.
    """
    if history:
        last = history[-1]
        if entry.memo_id != last.memo_id:
            raise ValueError(
                f"Entry belongs to memo '{entry.memo_id}', history to "
                f"'{last.memo_id}'."
            )
        if entry.sequence_number != last.sequence_number + 1:
            raise ValueError(
                f"Entry sequence {entry.sequence_number} does not follow "
                f"{last.sequence_number}."
            )
    elif not entry.is_creation:
        raise ValueError("History must start with the creation entry.")
    return tuple(history) + (entry,)


# ══════════════════════════════════════════════════════════════
# REPLAY
# ══════════════════════════════════════════════════════════════

def replay_history(history: Sequence[WorkflowHistoryEntry]) -> MemoStatus:
    """
    Walk the state table using only the recorded actions.

    Returns the status the walk ends in. Raises ValueError on any step
    that the table (or its role gate) does not allow.
    """
    if not history:
        raise ValueError("Cannot replay an empty history.")
    if not history[0].is_creation:
        raise ValueError("History must start with the creation entry.")

    status = INITIAL_STATUS
    previous_sequence = 0
    for entry in history:
        if entry.sequence_number <= previous_sequence:
            raise ValueError(
                f"Sequence {entry.sequence_number} is not strictly increasing."
            )
        previous_sequence = entry.sequence_number

        if entry.is_creation:
            if entry.sequence_number != 1:
                raise ValueError("Creation entry must be the first entry.")
            continue

        rule = lookup_rule(status, entry.action)
        if rule is None:
            raise ValueError(
                f"Entry {entry.sequence_number}: '{entry.action.value}' is "
                f"not valid from '{status.value}'."
            )
        if rule.required_role != entry.actor_role:
            raise ValueError(
                f"Entry {entry.sequence_number}: role "
                f"'{entry.actor_role.value}' cannot perform "
                f"'{entry.action.value}'."
            )
        if rule.to_status != entry.resulting_status:
            raise ValueError(
                f"Entry {entry.sequence_number}: recorded status "
                f"'{entry.resulting_status.value}' differs from table "
                f"result '{rule.to_status.value}'."
            )
        status = rule.to_status
    return status


def verify_history(
    history: Sequence[WorkflowHistoryEntry],
    status: MemoStatus,
) -> None:
    """Raise ValueError if replaying `history` does not yield `status`."""
    replayed = replay_history(history)
    if replayed != status:
        raise ValueError(
            f"History replays to '{replayed.value}' but memo is "
            f"'{status.value}'."
        )


# ══════════════════════════════════════════════════════════════
# DERIVED VIEW: PER-STAGE SUMMARY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReviewRecord:
    """A reviewer's decision as shown in the history summary."""
    reviewer_id: str
    action: MemoAction
    comment: str
    reviewed_at: datetime

    def to_dict(self) -> dict:
        return {
            "reviewer_id": self.reviewer_id,
            "action": self.action.value,
            "comment": self.comment,
            "reviewed_at": self.reviewed_at.isoformat(),
        }


@dataclass(frozen=True)
class HistorySummary:
    """
    Stage-by-stage view of a memo's history.

    Stage fields describe the current pass only: a resubmission to the
    desk head clears the review fields of the earlier pass. returned_at
    keeps the most recent return.
    """
    memo_id: uuid.UUID
    created_at: datetime
    created_by: str
    submitted_to_desk_head_at: Optional[datetime] = None
    desk_head_review: Optional[ReviewRecord] = None
    submitted_to_leo_at: Optional[datetime] = None
    leo_review: Optional[ReviewRecord] = None
    returned_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        def _iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "memo_id": str(self.memo_id),
            "created_at": self.created_at.isoformat(),
            "created_by": self.created_by,
            "submitted_to_desk_head_at": _iso(self.submitted_to_desk_head_at),
            "desk_head_review": (
                self.desk_head_review.to_dict() if self.desk_head_review else None
            ),
            "submitted_to_leo_at": _iso(self.submitted_to_leo_at),
            "leo_review": self.leo_review.to_dict() if self.leo_review else None,
            "returned_at": _iso(self.returned_at),
            "approved_at": _iso(self.approved_at),
            "rejected_at": _iso(self.rejected_at),
        }


_LATER_STAGE_FIELDS = ("desk_head_review", "submitted_to_leo_at", "leo_review")


def summarize_history(history: Sequence[WorkflowHistoryEntry]) -> HistorySummary:
    """Fold the ordered entries into a HistorySummary."""
    if not history or not history[0].is_creation:
        raise ValueError("History must start with the creation entry.")

    created = history[0]
    fields = {
        "memo_id": created.memo_id,
        "created_at": created.occurred_at,
        "created_by": created.actor_id,
    }

    for entry in history[1:]:
        review = ReviewRecord(
            reviewer_id=entry.actor_id,
            action=entry.action,
            comment=entry.comment,
            reviewed_at=entry.occurred_at,
        )

        if entry.action == MemoAction.SUBMIT_TO_DESK_HEAD:
            fields["submitted_to_desk_head_at"] = entry.occurred_at
            for stale in _LATER_STAGE_FIELDS:
                fields.pop(stale, None)
        elif entry.actor_role == MemoRole.DESK_HEAD:
            fields["desk_head_review"] = review
            if entry.action == MemoAction.SUBMIT_TO_LEO:
                fields["submitted_to_leo_at"] = entry.occurred_at
        elif entry.actor_role == MemoRole.LEO:
            fields["leo_review"] = review

        if entry.resulting_status == MemoStatus.RETURNED_TO_CREATOR:
            fields["returned_at"] = entry.occurred_at
        elif entry.resulting_status == MemoStatus.APPROVED:
            fields["approved_at"] = entry.occurred_at
        elif entry.resulting_status == MemoStatus.REJECTED:
            fields["rejected_at"] = entry.occurred_at

    return HistorySummary(**fields)
