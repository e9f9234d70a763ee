"""
Memoflow Core Config - Workflow Settings
========================================
Options live in the Django settings module under MEMO_WORKFLOW:

    MEMO_WORKFLOW = {
        "STORE_BACKEND": "django",        # or "memory"
        "NOTIFICATIONS_ENABLED": True,
        "PENDING_QUEUE_LIMIT": 50,
    }

Missing keys fall back to defaults. When Django settings are not
configured (pure unit tests, scripts) the defaults are used as-is.
Invalid values fail at load time, never at first use.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional


STORE_BACKEND_DJANGO = "django"
STORE_BACKEND_MEMORY = "memory"
VALID_STORE_BACKENDS = frozenset({STORE_BACKEND_DJANGO, STORE_BACKEND_MEMORY})

DEFAULT_PENDING_QUEUE_LIMIT = 50
MAX_PENDING_QUEUE_LIMIT = 200

SETTINGS_KEY = "MEMO_WORKFLOW"


# ══════════════════════════════════════════════════════════════
# SETTINGS RECORD
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class WorkflowSettings:
    """Resolved engine options."""

    store_backend: str = STORE_BACKEND_DJANGO
    notifications_enabled: bool = True
    pending_queue_limit: int = DEFAULT_PENDING_QUEUE_LIMIT

    def __post_init__(self) -> None:
        if self.store_backend not in VALID_STORE_BACKENDS:
            raise ValueError(
                f"STORE_BACKEND must be one of {sorted(VALID_STORE_BACKENDS)}, "
                f"got '{self.store_backend}'."
            )
        if not isinstance(self.notifications_enabled, bool):
            raise ValueError("NOTIFICATIONS_ENABLED must be a bool.")
        if (
            not isinstance(self.pending_queue_limit, int)
            or isinstance(self.pending_queue_limit, bool)
            or not 1 <= self.pending_queue_limit <= MAX_PENDING_QUEUE_LIMIT
        ):
            raise ValueError(
                f"PENDING_QUEUE_LIMIT must be an int between 1 and "
                f"{MAX_PENDING_QUEUE_LIMIT}, got {self.pending_queue_limit!r}."
            )

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> WorkflowSettings:
        defaults = cls()
        return cls(
            store_backend=str(
                raw.get("STORE_BACKEND", defaults.store_backend)
            ).strip().lower(),
            notifications_enabled=raw.get(
                "NOTIFICATIONS_ENABLED", defaults.notifications_enabled
            ),
            pending_queue_limit=raw.get(
                "PENDING_QUEUE_LIMIT", defaults.pending_queue_limit
            ),
        )


# ══════════════════════════════════════════════════════════════
# LOADER
# ══════════════════════════════════════════════════════════════

def _django_settings_mapping() -> Mapping[str, Any]:
    from django.conf import ENVIRONMENT_VARIABLE, settings

    if not settings.configured and not os.environ.get(ENVIRONMENT_VARIABLE):
        return {}
    raw = getattr(settings, SETTINGS_KEY, None) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"{SETTINGS_KEY} must be a dict.")
    return raw


def load_workflow_settings(
    overrides: Optional[Mapping[str, Any]] = None,
) -> WorkflowSettings:
    """
    Build WorkflowSettings from Django settings plus `overrides`.

    `overrides` uses the same upper-case keys as MEMO_WORKFLOW and wins
    over the settings module.
    """
    merged = dict(_django_settings_mapping())
    if overrides:
        merged.update(overrides)
    return WorkflowSettings.from_mapping(merged)
