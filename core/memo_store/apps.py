"""
Memoflow Memo Store - App Configuration
=======================================
Durable memo documents and their append-only workflow history.

Rules:
- Runs the state table self-check once via ready()
- The check is pure (no database), so it also runs under pytest
- A broken table raises and prevents startup
"""

import logging

from django.apps import AppConfig

logger = logging.getLogger("memoflow.bootstrap")


class MemoStoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core.memo_store"
    label = "memo_store"
    verbose_name = "Memoflow Memo Store"

    def ready(self):
        from engines.memo.state_table import MEMO_STATE_TABLE, verify_state_table

        try:
            verify_state_table()
        except ValueError as exc:
            logger.critical(f"Memo state table self-check FAILED: {exc}")
            raise

        logger.info(
            f"Memo state table self-check passed "
            f"({len(MEMO_STATE_TABLE)} transitions)."
        )
