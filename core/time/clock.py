"""
Memoflow Core Time - Clock Protocol
===================================
Every history timestamp comes from an injected Clock, so audit trails
are reproducible under test and always timezone-aware UTC.

Naive datetimes are refused at every boundary (clocks, memo snapshots,
history entries) via require_aware().
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol


def require_aware(value: datetime, field_name: str) -> None:
    """Raise unless `value` is a timezone-aware datetime."""
    if not isinstance(value, datetime):
        raise TypeError(f"{field_name} must be datetime.")
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{field_name} must be timezone-aware.")


class Clock(Protocol):
    def now_utc(self) -> datetime:
        ...  # pragma: no cover


class SystemClock:
    """Wall-clock time."""

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Deterministic clock for tests and replays.

    Usage:
        clock = FixedClock(datetime(2026, 3, 1, tzinfo=timezone.utc))
        clock.advance(60)   # one minute later
    """

    def __init__(self, fixed_dt: datetime) -> None:
        require_aware(fixed_dt, "FixedClock time")
        self._current = fixed_dt.astimezone(timezone.utc)

    def now_utc(self) -> datetime:
        return self._current

    def advance(self, seconds: float) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current


# Process-wide fallback for components built without an explicit clock.
_default_clock: Clock = SystemClock()


def set_default_clock(clock: Clock) -> None:
    """Tests only."""
    global _default_clock
    _default_clock = clock


def get_default_clock() -> Clock:
    return _default_clock


def now_utc() -> datetime:
    return _default_clock.now_utc()
