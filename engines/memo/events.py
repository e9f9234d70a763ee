"""
Memoflow Memo Engine - Notification Types and Payload Builders
==============================================================
Memo owns: draft → desk head review → LEO review → approve / reject /
return. After every committed transition it announces the new status.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from engines.memo.models import MemoStatus


# ══════════════════════════════════════════════════════════════
# EVENT TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

MEMO_STATUS_CHANGED = "memo.workflow.status_changed"

MEMO_EVENT_TYPES = (
    MEMO_STATUS_CHANGED,
)


# ══════════════════════════════════════════════════════════════
# NOTIFICATION RECORD
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StatusChangeNotification:
    """What subscribers receive. Read-only."""
    memo_id: uuid.UUID
    new_status: MemoStatus
    actor_id: str
    occurred_at: datetime
    event_type: str = MEMO_STATUS_CHANGED

    @property
    def subject_id(self) -> uuid.UUID:
        return self.memo_id

    def to_dict(self) -> dict:
        return build_status_changed_payload(self)


def build_status_changed_payload(notification: StatusChangeNotification) -> dict:
    return {
        "event_type": notification.event_type,
        "memo_id": str(notification.memo_id),
        "new_status": notification.new_status.value,
        "actor_id": notification.actor_id,
        "occurred_at": notification.occurred_at.isoformat(),
    }
