"""
Memoflow Memo Engine - Workflow Engine
======================================
Drives a memo through draft → desk head → LEO → approved / rejected,
with the return-to-creator loop in between.

apply() pipeline:
1. Load the memo                      → DOCUMENT_NOT_FOUND
2. Compare expected_version           → VERSION_CONFLICT
3. Validate (table → role → comment)  → ILLEGAL_TRANSITION / UNAUTHORIZED /
                                        MISSING_JUSTIFICATION
4. Build next snapshot + history entry (pure)
5. Compare-and-save via the store     → VERSION_CONFLICT / PERSISTENCE_ERROR
6. Notify (after commit, best-effort) → notification_error, never rollback
7. Re-read and return the stored snapshot

RULES (NON-NEGOTIABLE):
- A rejected apply() writes nothing: status, version and history are
  exactly as before the call
- Step 5 is the commit point; nothing before it is visible to readers
- No in-process locks; same-memo contention is resolved by the store
- Caller-held Memo objects are never mutated
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from core.config import DEFAULT_PENDING_QUEUE_LIMIT, MAX_PENDING_QUEUE_LIMIT
from core.time import Clock, get_default_clock
from engines.memo.errors import (
    MemoNotFoundError,
    VersionConflictError,
    WorkflowError,
    WorkflowErrorCode,
)
from engines.memo.history import (
    HistorySummary,
    build_created_entry,
    build_transition_entry,
    summarize_history,
)
from engines.memo.models import (
    Memo,
    MemoAction,
    MemoContent,
    MemoRole,
    MemoStatus,
    PriorityLevel,
    WorkflowHistoryEntry,
)
from engines.memo.notifications import NotificationEmitter, NullNotificationEmitter
from engines.memo.policies import coerce_enum, validate_transition
from engines.memo.state_table import (
    INITIAL_STATUS,
    available_actions as _table_available_actions,
    statuses_actionable_by,
)
from engines.memo.store import DocumentStore

logger = logging.getLogger("memoflow.workflow")


# ══════════════════════════════════════════════════════════════
# TRANSITION RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of WorkflowEngine.apply().

    accepted=True:  memo and history are the stored state after commit;
                    notification_error is set if delivery failed.
    accepted=False: error explains why; the memo is unchanged.
    """

    accepted: bool
    memo: Optional[Memo] = None
    history: Tuple[WorkflowHistoryEntry, ...] = ()
    error: Optional[WorkflowError] = None
    notification_error: Optional[WorkflowError] = None

    def __post_init__(self):
        if self.accepted:
            if self.memo is None:
                raise ValueError("Accepted result must carry the memo.")
            if self.error is not None:
                raise ValueError("Accepted result must not carry an error.")
        else:
            if self.error is None:
                raise ValueError("Rejected result must carry an error.")
            if self.memo is not None or self.history:
                raise ValueError("Rejected result must not carry a memo.")
            if self.notification_error is not None:
                raise ValueError("Rejected result never notifies.")

    @classmethod
    def accept(
        cls,
        memo: Memo,
        history: Tuple[WorkflowHistoryEntry, ...],
        notification_error: Optional[WorkflowError] = None,
    ) -> TransitionResult:
        return cls(
            accepted=True,
            memo=memo,
            history=tuple(history),
            notification_error=notification_error,
        )

    @classmethod
    def reject(cls, error: WorkflowError) -> TransitionResult:
        return cls(accepted=False, error=error)

    @property
    def notified(self) -> bool:
        return self.accepted and self.notification_error is None

    def to_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "memo": self.memo.to_dict() if self.memo else None,
            "history": [entry.to_dict() for entry in self.history],
            "error": self.error.to_dict() if self.error else None,
            "notification_error": (
                self.notification_error.to_dict()
                if self.notification_error else None
            ),
        }


def _not_found_error(memo_id: Any) -> WorkflowError:
    return WorkflowError(
        code=WorkflowErrorCode.DOCUMENT_NOT_FOUND,
        message=f"Memo '{memo_id}' not found.",
        policy_name="memo_must_exist",
        details={"memo_id": str(memo_id)},
    )


def _version_conflict_error(
    memo_id: uuid.UUID,
    expected_version: Optional[int],
    actual_version: Optional[int],
) -> WorkflowError:
    return WorkflowError(
        code=WorkflowErrorCode.VERSION_CONFLICT,
        message=(
            f"Memo '{memo_id}' was modified concurrently: expected version "
            f"{expected_version}, found {actual_version}. Reload and retry."
        ),
        policy_name="expected_version_must_match",
        details={
            "memo_id": str(memo_id),
            "expected_version": expected_version,
            "actual_version": actual_version,
        },
    )


def _persistence_error(memo_id: uuid.UUID, exc: BaseException) -> WorkflowError:
    return WorkflowError(
        code=WorkflowErrorCode.PERSISTENCE_ERROR,
        message=f"Memo '{memo_id}' could not be persisted: {exc}",
        policy_name="document_store",
        details={
            "memo_id": str(memo_id),
            "error_type": type(exc).__name__,
        },
    )


def _notification_error(memo_id: uuid.UUID, exc: BaseException) -> WorkflowError:
    details = {
        "memo_id": str(memo_id),
        "error_type": type(exc).__name__,
    }
    report = getattr(exc, "report", None)
    if report is not None:
        details["subscribers_failed"] = report.subscribers_failed
        details["failures"] = list(report.failures)
    return WorkflowError(
        code=WorkflowErrorCode.NOTIFICATION_ERROR,
        message=f"Status change for memo '{memo_id}' was not delivered: {exc}",
        policy_name="notification_emitter",
        details=details,
    )


def _coerce_memo_id(memo_id: Any) -> Optional[uuid.UUID]:
    if isinstance(memo_id, uuid.UUID):
        return memo_id
    try:
        return uuid.UUID(str(memo_id))
    except ValueError:
        return None


# ══════════════════════════════════════════════════════════════
# WORKFLOW ENGINE
# ══════════════════════════════════════════════════════════════

class WorkflowEngine:
    """
    Application service for the memo approval workflow.

    Holds no mutable state of its own; everything lives in the store.
    """

    def __init__(
        self,
        store: DocumentStore,
        notifier: Optional[NotificationEmitter] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], uuid.UUID]] = None,
        *,
        pending_queue_limit: int = DEFAULT_PENDING_QUEUE_LIMIT,
    ):
        if not 1 <= pending_queue_limit <= MAX_PENDING_QUEUE_LIMIT:
            raise ValueError(
                f"pending_queue_limit must be between 1 and "
                f"{MAX_PENDING_QUEUE_LIMIT}."
            )
        self._store = store
        self._notifier = notifier or NullNotificationEmitter()
        self._clock = clock or get_default_clock()
        self._id_factory = id_factory or uuid.uuid4
        self._pending_queue_limit = pending_queue_limit

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def notifier(self) -> NotificationEmitter:
        return self._notifier

    # ── Commands ──────────────────────────────────────────────

    def create_draft(
        self,
        content: MemoContent,
        *,
        priority: PriorityLevel = PriorityLevel.NORMAL,
        actor_id: Optional[str] = None,
    ) -> Memo:
        """
        Create a memo in DRAFT at version 1 with its creation entry.

        Not validated against the state table; there is no prior state.
        Store exceptions propagate unchanged.
        """
        if not isinstance(content, MemoContent):
            raise TypeError("content must be MemoContent.")

        now = self._clock.now_utc()
        memo = Memo(
            memo_id=self._id_factory(),
            status=INITIAL_STATUS,
            version=1,
            priority=priority,
            content=content,
            created_at=now,
            updated_at=now,
        )
        entry = build_created_entry(
            memo_id=memo.memo_id,
            actor_id=actor_id or content.author_id,
            occurred_at=now,
        )
        self._store.create(memo, entry)

        logger.info(
            f"Memo draft created: {memo.memo_id} "
            f"(author: {content.author_id}, priority: {priority.value})"
        )
        return memo

    def apply(
        self,
        memo_id: Any,
        action: Any,
        actor_id: str,
        actor_role: Any,
        comment: Optional[str],
        expected_version: Optional[int] = None,
    ) -> TransitionResult:
        """
        Request one workflow transition.

        Never raises for workflow outcomes; see TransitionResult.
        Raises ValueError only if actor_id is blank.
        """
        if not isinstance(actor_id, str) or not actor_id.strip():
            raise ValueError("actor_id must be a non-empty string.")

        # 1. Load
        resolved_id = _coerce_memo_id(memo_id)
        if resolved_id is None:
            logger.warning(f"Apply on unknown memo id '{memo_id}'")
            return TransitionResult.reject(_not_found_error(memo_id))
        try:
            memo = self._store.load(resolved_id)
        except MemoNotFoundError:
            logger.warning(f"Apply on unknown memo {resolved_id}")
            return TransitionResult.reject(_not_found_error(resolved_id))
        except Exception as exc:
            logger.error(
                f"Memo load failed: {resolved_id}: {exc}", exc_info=True,
            )
            return TransitionResult.reject(_persistence_error(resolved_id, exc))

        # 2. Optimistic concurrency
        if expected_version is not None and expected_version != memo.version:
            logger.warning(
                f"Version conflict on memo {memo.memo_id}: "
                f"expected {expected_version}, found {memo.version}"
            )
            return TransitionResult.reject(
                _version_conflict_error(
                    memo.memo_id, expected_version, memo.version,
                )
            )

        # 3. Validate
        decision = validate_transition(memo.status, action, actor_role, comment)
        if not decision.accepted:
            logger.debug(
                f"Transition rejected for memo {memo.memo_id}: "
                f"{decision.error.code} ({decision.error.policy_name})"
            )
            return TransitionResult.reject(decision.error)

        # 4. Next snapshot + entry
        try:
            history = self._store.load_history(memo.memo_id)
        except Exception as exc:
            logger.error(
                f"History load failed: {memo.memo_id}: {exc}", exc_info=True,
            )
            return TransitionResult.reject(_persistence_error(memo.memo_id, exc))

        now = self._clock.now_utc()
        updated = memo.with_transition(decision.next_status, now)
        entry = build_transition_entry(
            history,
            memo_id=memo.memo_id,
            actor_id=actor_id,
            actor_role=coerce_enum(MemoRole, actor_role),
            action=coerce_enum(MemoAction, action),
            comment=comment,
            occurred_at=now,
            resulting_status=updated.status,
        )

        # 5. Commit
        try:
            self._store.save(updated, entry)
        except VersionConflictError as exc:
            logger.warning(
                f"Version conflict on save for memo {memo.memo_id}: "
                f"expected {exc.expected_version}, found {exc.actual_version}"
            )
            return TransitionResult.reject(
                _version_conflict_error(
                    memo.memo_id, exc.expected_version, exc.actual_version,
                )
            )
        except MemoNotFoundError:
            logger.warning(f"Memo disappeared before save: {memo.memo_id}")
            return TransitionResult.reject(_not_found_error(memo.memo_id))
        except Exception as exc:
            logger.error(
                f"Memo save failed: {memo.memo_id}: {exc}", exc_info=True,
            )
            return TransitionResult.reject(_persistence_error(memo.memo_id, exc))

        logger.info(
            f"Memo {memo.memo_id}: {memo.status.value} → "
            f"{updated.status.value} by {actor_id} "
            f"(version {updated.version})"
        )

        # 6. Notify
        notification_error = None
        try:
            self._notifier.notify(memo.memo_id, updated.status, actor_id)
        except Exception as exc:
            logger.error(
                f"Notification failed for memo {memo.memo_id}: {exc}",
                exc_info=True,
            )
            notification_error = _notification_error(memo.memo_id, exc)

        # 7. Authoritative snapshot
        stored, stored_history = self._reload(updated, history + (entry,))
        return TransitionResult.accept(
            stored, stored_history, notification_error=notification_error,
        )

    def _reload(
        self,
        committed: Memo,
        committed_history: Tuple[WorkflowHistoryEntry, ...],
    ) -> Tuple[Memo, Tuple[WorkflowHistoryEntry, ...]]:
        try:
            return (
                self._store.load(committed.memo_id),
                self._store.load_history(committed.memo_id),
            )
        except Exception as exc:
            logger.warning(
                f"Re-read after commit failed for memo {committed.memo_id}, "
                f"returning committed snapshot: {exc}"
            )
            return committed, committed_history

    # ── Queries ───────────────────────────────────────────────

    def _resolve_id(self, memo_id: Any) -> uuid.UUID:
        resolved = _coerce_memo_id(memo_id)
        if resolved is None:
            raise MemoNotFoundError(memo_id)
        return resolved

    def get_document(self, memo_id: uuid.UUID) -> Memo:
        """Raises MemoNotFoundError for unknown or malformed ids."""
        return self._store.load(self._resolve_id(memo_id))

    def get_history(
        self, memo_id: uuid.UUID,
    ) -> Tuple[WorkflowHistoryEntry, ...]:
        """Ordered by sequence_number. Raises MemoNotFoundError."""
        return self._store.load_history(self._resolve_id(memo_id))

    def get_history_summary(self, memo_id: uuid.UUID) -> HistorySummary:
        return summarize_history(
            self._store.load_history(self._resolve_id(memo_id))
        )

    def available_actions(
        self, memo_id: uuid.UUID, role: Any,
    ) -> Tuple[MemoAction, ...]:
        """Actions `role` may take on the memo as it is stored now."""
        memo = self._store.load(self._resolve_id(memo_id))
        resolved = coerce_enum(MemoRole, role)
        if resolved is None:
            return ()
        return _table_available_actions(memo.status, resolved)

    def list_pending(
        self, role: Any, limit: Optional[int] = None,
    ) -> Tuple[Memo, ...]:
        """
        Memos waiting on `role`, oldest update first.

        CREATOR sees DRAFT and RETURNED_TO_CREATOR, DESK_HEAD sees
        PENDING_DESK_HEAD, LEO sees PENDING_LEO.
        """
        resolved = coerce_enum(MemoRole, role)
        if resolved is None:
            raise ValueError(f"Unknown role '{role}'.")

        if limit is None:
            limit = self._pending_queue_limit
        if not 1 <= limit <= MAX_PENDING_QUEUE_LIMIT:
            raise ValueError(
                f"limit must be between 1 and {MAX_PENDING_QUEUE_LIMIT}."
            )

        statuses: frozenset[MemoStatus] = statuses_actionable_by(resolved)
        return self._store.list_by_status(statuses, limit)
