"""
Memoflow Memo Engine - Domain Models
====================================
The memo (workflow document) and its audit trail entries.

RULES (NON-NEGOTIABLE):
- Memo snapshots are immutable; a transition produces a new snapshot
- status, version and history are owned by the workflow engine only
- Content fields are opaque to transition logic
- History entries are append-only and never edited

This file contains NO persistence logic.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from core.time import require_aware


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class MemoStatus(str, Enum):
    """Workflow state of a memo."""
    DRAFT = "DRAFT"
    PENDING_DESK_HEAD = "PENDING_DESK_HEAD"
    PENDING_LEO = "PENDING_LEO"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    RETURNED_TO_CREATOR = "RETURNED_TO_CREATOR"


class MemoAction(str, Enum):
    """Requested transition."""
    SUBMIT_TO_DESK_HEAD = "SUBMIT_TO_DESK_HEAD"
    SUBMIT_TO_LEO = "SUBMIT_TO_LEO"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    RETURN_TO_CREATOR = "RETURN_TO_CREATOR"


class MemoRole(str, Enum):
    """Capacity in which an actor performs an action."""
    CREATOR = "CREATOR"
    DESK_HEAD = "DESK_HEAD"
    LEO = "LEO"


class PriorityLevel(str, Enum):
    """Metadata only. Never affects transition legality."""
    NORMAL = "NORMAL"
    URGENT = "URGENT"
    CONFIDENTIAL = "CONFIDENTIAL"


class MemoType(str, Enum):
    GENERAL = "GENERAL"
    INSTRUCTIONAL = "INSTRUCTIONAL"
    INFORMATIONAL = "INFORMATIONAL"


def _coerce_optional_datetime(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    return datetime.fromisoformat(text)


# ══════════════════════════════════════════════════════════════
# MEMO CONTENT (opaque payload)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class MemoContent:
    """
    Content owned by the authoring subsystem.

    The workflow engine reads these fields (for storage and display)
    but never interprets them when deciding a transition.
    """
    title: str
    body: str
    author_id: str
    department: str = ""
    memo_type: MemoType = MemoType.GENERAL
    recipients: Tuple[str, ...] = ()
    attachments: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    date_of_issue: Optional[date] = None

    def __post_init__(self):
        if not isinstance(self.title, str) or not self.title.strip():
            raise ValueError("title must be a non-empty string.")
        if not isinstance(self.body, str):
            raise TypeError("body must be a string.")
        if not isinstance(self.author_id, str) or not self.author_id.strip():
            raise ValueError("author_id must be a non-empty string.")
        if not isinstance(self.memo_type, MemoType):
            raise ValueError("memo_type must be MemoType enum.")
        for name in ("recipients", "attachments", "tags"):
            if not isinstance(getattr(self, name), tuple):
                raise TypeError(f"{name} must be a tuple.")

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "body": self.body,
            "author_id": self.author_id,
            "department": self.department,
            "memo_type": self.memo_type.value,
            "recipients": list(self.recipients),
            "attachments": list(self.attachments),
            "tags": list(self.tags),
            "date_of_issue": (
                self.date_of_issue.isoformat() if self.date_of_issue else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict) -> MemoContent:
        raw_date = data.get("date_of_issue")
        return cls(
            title=data["title"],
            body=data.get("body", ""),
            author_id=data["author_id"],
            department=data.get("department", ""),
            memo_type=MemoType(data.get("memo_type", MemoType.GENERAL.value)),
            recipients=tuple(data.get("recipients") or ()),
            attachments=tuple(data.get("attachments") or ()),
            tags=tuple(data.get("tags") or ()),
            date_of_issue=date.fromisoformat(raw_date) if raw_date else None,
        )


# ══════════════════════════════════════════════════════════════
# MEMO (workflow document snapshot)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Memo:
    """
    One version of a memo as seen by the workflow.

    Fields:
        memo_id:     Opaque identifier, immutable after creation
        status:      Single source of truth for the workflow position
        version:     Starts at 1, +1 on every accepted transition
        priority:    Classification metadata
        content:     Authoring payload (read-only here)
        created_at:  When the draft was created
        updated_at:  When the last accepted transition happened
    """
    memo_id: uuid.UUID
    status: MemoStatus
    version: int
    content: MemoContent
    created_at: datetime
    updated_at: datetime
    priority: PriorityLevel = PriorityLevel.NORMAL

    def __post_init__(self):
        if not isinstance(self.memo_id, uuid.UUID):
            raise ValueError("memo_id must be UUID.")
        if not isinstance(self.status, MemoStatus):
            raise ValueError("status must be MemoStatus enum.")
        if not isinstance(self.version, int) or isinstance(self.version, bool):
            raise TypeError("version must be int.")
        if self.version < 1:
            raise ValueError("version must be >= 1.")
        if not isinstance(self.priority, PriorityLevel):
            raise ValueError("priority must be PriorityLevel enum.")
        if not isinstance(self.content, MemoContent):
            raise TypeError("content must be MemoContent.")
        require_aware(self.created_at, "created_at")
        require_aware(self.updated_at, "updated_at")

    def with_transition(self, to_status: MemoStatus, at: datetime) -> Memo:
        """Return the next snapshot. The original is unchanged."""
        return replace(
            self,
            status=to_status,
            version=self.version + 1,
            updated_at=at,
        )

    def to_dict(self) -> dict:
        return {
            "memo_id": str(self.memo_id),
            "status": self.status.value,
            "version": self.version,
            "priority": self.priority.value,
            "content": self.content.to_dict(),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Memo:
        return cls(
            memo_id=uuid.UUID(str(data["memo_id"])),
            status=MemoStatus(data["status"]),
            version=int(data["version"]),
            priority=PriorityLevel(data.get("priority", PriorityLevel.NORMAL.value)),
            content=MemoContent.from_dict(data["content"]),
            created_at=_coerce_optional_datetime(data["created_at"]),
            updated_at=_coerce_optional_datetime(data["updated_at"]),
        )


# ══════════════════════════════════════════════════════════════
# WORKFLOW HISTORY ENTRY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WorkflowHistoryEntry:
    """
    Immutable audit record of one accepted transition.

    Sequence 1 is the implicit creation entry: it has no action and
    no role, and is the only entry allowed an empty comment.
    """
    memo_id: uuid.UUID
    sequence_number: int
    actor_id: str
    actor_role: Optional[MemoRole]
    action: Optional[MemoAction]
    comment: str
    occurred_at: datetime
    resulting_status: MemoStatus

    def __post_init__(self):
        if not isinstance(self.memo_id, uuid.UUID):
            raise ValueError("memo_id must be UUID.")
        if not isinstance(self.sequence_number, int) or self.sequence_number < 1:
            raise ValueError("sequence_number must be an int >= 1.")
        if not isinstance(self.actor_id, str) or not self.actor_id.strip():
            raise ValueError("actor_id must be a non-empty string.")
        if not isinstance(self.resulting_status, MemoStatus):
            raise ValueError("resulting_status must be MemoStatus enum.")
        require_aware(self.occurred_at, "occurred_at")

        if self.is_creation:
            if self.sequence_number != 1:
                raise ValueError("Creation entry must have sequence_number 1.")
            if self.actor_role is not None:
                raise ValueError("Creation entry carries no actor_role.")
            return

        if not isinstance(self.action, MemoAction):
            raise ValueError("action must be MemoAction enum.")
        if not isinstance(self.actor_role, MemoRole):
            raise ValueError("actor_role must be MemoRole enum.")
        if not isinstance(self.comment, str) or not self.comment.strip():
            raise ValueError("Transition entries require a non-empty comment.")

    @property
    def is_creation(self) -> bool:
        return self.action is None

    def to_dict(self) -> dict:
        return {
            "memo_id": str(self.memo_id),
            "sequence_number": self.sequence_number,
            "actor_id": self.actor_id,
            "actor_role": self.actor_role.value if self.actor_role else None,
            "action": self.action.value if self.action else None,
            "comment": self.comment,
            "occurred_at": self.occurred_at.isoformat(),
            "resulting_status": self.resulting_status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> WorkflowHistoryEntry:
        return cls(
            memo_id=uuid.UUID(str(data["memo_id"])),
            sequence_number=int(data["sequence_number"]),
            actor_id=data["actor_id"],
            actor_role=MemoRole(data["actor_role"]) if data.get("actor_role") else None,
            action=MemoAction(data["action"]) if data.get("action") else None,
            comment=data.get("comment") or "",
            occurred_at=_coerce_optional_datetime(data["occurred_at"]),
            resulting_status=MemoStatus(data["resulting_status"]),
        )
