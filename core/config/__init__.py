"""
Memoflow Core Config - Public API
=================================
Engine options read from the Django settings module.
"""

from core.config.settings import (
    DEFAULT_PENDING_QUEUE_LIMIT,
    MAX_PENDING_QUEUE_LIMIT,
    STORE_BACKEND_DJANGO,
    STORE_BACKEND_MEMORY,
    WorkflowSettings,
    load_workflow_settings,
)

__all__ = [
    "WorkflowSettings",
    "load_workflow_settings",
    "STORE_BACKEND_DJANGO",
    "STORE_BACKEND_MEMORY",
    "DEFAULT_PENDING_QUEUE_LIMIT",
    "MAX_PENDING_QUEUE_LIMIT",
]
