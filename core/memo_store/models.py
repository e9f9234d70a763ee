"""
Memoflow Memo Store - Relational Memo State
===========================================
One row per memo (current snapshot) plus append-only history rows
keyed by (memo, sequence_number).

RULES (NON-NEGOTIABLE):
- History rows are INSERT only. No updates, no deletes
- (memo, sequence_number) is unique; a duplicate means a lost race
- Timestamps come from the engine clock, never auto_now
"""

from __future__ import annotations

from django.db import models


class MemoStatusChoice(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    PENDING_DESK_HEAD = "PENDING_DESK_HEAD", "Pending desk head"
    PENDING_LEO = "PENDING_LEO", "Pending LEO"
    APPROVED = "APPROVED", "Approved"
    REJECTED = "REJECTED", "Rejected"
    RETURNED_TO_CREATOR = "RETURNED_TO_CREATOR", "Returned to creator"


class MemoActionChoice(models.TextChoices):
    SUBMIT_TO_DESK_HEAD = "SUBMIT_TO_DESK_HEAD", "Submit to desk head"
    SUBMIT_TO_LEO = "SUBMIT_TO_LEO", "Submit to LEO"
    APPROVE = "APPROVE", "Approve"
    REJECT = "REJECT", "Reject"
    RETURN_TO_CREATOR = "RETURN_TO_CREATOR", "Return to creator"


class MemoRoleChoice(models.TextChoices):
    CREATOR = "CREATOR", "Creator"
    DESK_HEAD = "DESK_HEAD", "Desk head"
    LEO = "LEO", "LEO"


class PriorityChoice(models.TextChoices):
    NORMAL = "NORMAL", "Normal"
    URGENT = "URGENT", "Urgent"
    CONFIDENTIAL = "CONFIDENTIAL", "Confidential"


class MemoTypeChoice(models.TextChoices):
    GENERAL = "GENERAL", "General"
    INSTRUCTIONAL = "INSTRUCTIONAL", "Instructional"
    INFORMATIONAL = "INFORMATIONAL", "Informational"


SEQUENCE_CONSTRAINT_NAME = "uq_memo_history_memo_sequence"


class MemoRecord(models.Model):
    memo_id = models.UUIDField(primary_key=True, editable=False)
    status = models.CharField(max_length=32, choices=MemoStatusChoice.choices)
    version = models.PositiveIntegerField()
    priority = models.CharField(
        max_length=16,
        choices=PriorityChoice.choices,
        default=PriorityChoice.NORMAL,
    )

    title = models.CharField(max_length=255)
    body = models.TextField(blank=True, default="")
    author_id = models.CharField(max_length=255)
    department = models.CharField(max_length=255, blank=True, default="")
    memo_type = models.CharField(
        max_length=16,
        choices=MemoTypeChoice.choices,
        default=MemoTypeChoice.GENERAL,
    )
    recipients = models.JSONField(default=list, blank=True)
    attachments = models.JSONField(default=list, blank=True)
    tags = models.JSONField(default=list, blank=True)
    date_of_issue = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    class Meta:
        db_table = "memoflow_memos"
        ordering = ["updated_at", "memo_id"]
        indexes = [
            models.Index(fields=["status", "updated_at"], name="idx_memo_status_updated"),
        ]

    def __str__(self) -> str:
        return f"{self.memo_id} ({self.status} v{self.version})"


class WorkflowHistoryRecord(models.Model):
    memo = models.ForeignKey(
        MemoRecord,
        on_delete=models.PROTECT,
        related_name="history",
        db_column="memo_id",
    )
    sequence_number = models.PositiveIntegerField()
    actor_id = models.CharField(max_length=255)
    actor_role = models.CharField(
        max_length=16,
        choices=MemoRoleChoice.choices,
        null=True,
        blank=True,
    )
    action = models.CharField(
        max_length=32,
        choices=MemoActionChoice.choices,
        null=True,
        blank=True,
    )
    comment = models.TextField(blank=True, default="")
    occurred_at = models.DateTimeField()
    resulting_status = models.CharField(
        max_length=32,
        choices=MemoStatusChoice.choices,
    )

    class Meta:
        db_table = "memoflow_workflow_history"
        ordering = ["memo_id", "sequence_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["memo", "sequence_number"],
                name=SEQUENCE_CONSTRAINT_NAME,
            ),
        ]

    def __str__(self) -> str:
        return f"{self.memo_id}#{self.sequence_number} ({self.resulting_status})"

    def save(self, *args, **kwargs):
        """
        GUARD: INSERT only. A history entry is never rewritten.
        """
        if not self._state.adding:
            raise PermissionError(
                "Workflow history is append-only. "
                "Cannot update a persisted history entry."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        """
        GUARD: History entries are never deleted.
        """
        raise PermissionError(
            "Workflow history is append-only. "
            "Cannot delete a history entry."
        )
