from django.db import migrations, models


STATUS_CHOICES = [
    ("DRAFT", "Draft"),
    ("PENDING_DESK_HEAD", "Pending desk head"),
    ("PENDING_LEO", "Pending LEO"),
    ("APPROVED", "Approved"),
    ("REJECTED", "Rejected"),
    ("RETURNED_TO_CREATOR", "Returned to creator"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="MemoRecord",
            fields=[
                ("memo_id", models.UUIDField(editable=False, primary_key=True, serialize=False)),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=32)),
                ("version", models.PositiveIntegerField()),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("NORMAL", "Normal"),
                            ("URGENT", "Urgent"),
                            ("CONFIDENTIAL", "Confidential"),
                        ],
                        default="NORMAL",
                        max_length=16,
                    ),
                ),
                ("title", models.CharField(max_length=255)),
                ("body", models.TextField(blank=True, default="")),
                ("author_id", models.CharField(max_length=255)),
                ("department", models.CharField(blank=True, default="", max_length=255)),
                (
                    "memo_type",
                    models.CharField(
                        choices=[
                            ("GENERAL", "General"),
                            ("INSTRUCTIONAL", "Instructional"),
                            ("INFORMATIONAL", "Informational"),
                        ],
                        default="GENERAL",
                        max_length=16,
                    ),
                ),
                ("recipients", models.JSONField(blank=True, default=list)),
                ("attachments", models.JSONField(blank=True, default=list)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("date_of_issue", models.DateField(blank=True, null=True)),
                ("created_at", models.DateTimeField()),
                ("updated_at", models.DateTimeField()),
            ],
            options={
                "db_table": "memoflow_memos",
                "ordering": ["updated_at", "memo_id"],
                "indexes": [
                    models.Index(fields=["status", "updated_at"], name="idx_memo_status_updated"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WorkflowHistoryRecord",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("sequence_number", models.PositiveIntegerField()),
                ("actor_id", models.CharField(max_length=255)),
                (
                    "actor_role",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("CREATOR", "Creator"),
                            ("DESK_HEAD", "Desk head"),
                            ("LEO", "LEO"),
                        ],
                        max_length=16,
                        null=True,
                    ),
                ),
                (
                    "action",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("SUBMIT_TO_DESK_HEAD", "Submit to desk head"),
                            ("SUBMIT_TO_LEO", "Submit to LEO"),
                            ("APPROVE", "Approve"),
                            ("REJECT", "Reject"),
                            ("RETURN_TO_CREATOR", "Return to creator"),
                        ],
                        max_length=32,
                        null=True,
                    ),
                ),
                ("comment", models.TextField(blank=True, default="")),
                ("occurred_at", models.DateTimeField()),
                ("resulting_status", models.CharField(choices=STATUS_CHOICES, max_length=32)),
                (
                    "memo",
                    models.ForeignKey(
                        db_column="memo_id",
                        on_delete=models.deletion.PROTECT,
                        related_name="history",
                        to="memo_store.memorecord",
                    ),
                ),
            ],
            options={
                "db_table": "memoflow_workflow_history",
                "ordering": ["memo_id", "sequence_number"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("memo", "sequence_number"),
                        name="uq_memo_history_memo_sequence",
                    ),
                ],
            },
        ),
    ]
