"""
Memoflow Core Time - Public API
===============================
Injectable UTC clock. Workflow code never calls datetime.now().
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    get_default_clock,
    now_utc,
    require_aware,
    set_default_clock,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "get_default_clock",
    "set_default_clock",
    "now_utc",
    "require_aware",
]
