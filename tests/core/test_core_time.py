"""
Tests for core.time - Clock protocol and the default clock.
"""

import pytest
from datetime import datetime, timezone, timedelta

from core.time.clock import (
    FixedClock,
    SystemClock,
    set_default_clock,
    get_default_clock,
    now_utc,
    require_aware,
)


# ── Clock Tests ──────────────────────────────────────────────

class TestSystemClock:
    def test_returns_utc_datetime(self):
        clock = SystemClock()
        dt = clock.now_utc()
        assert dt.tzinfo is not None
        assert dt.tzinfo == timezone.utc

    def test_time_advances(self):
        clock = SystemClock()
        t1 = clock.now_utc()
        t2 = clock.now_utc()
        assert t2 >= t1


class TestFixedClock:
    def test_returns_fixed_time(self):
        fixed = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)
        clock = FixedClock(fixed)
        assert clock.now_utc() == fixed
        assert clock.now_utc() == fixed  # Same every time

    def test_rejects_naive_datetime(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            FixedClock(datetime(2026, 1, 1))

    def test_advance(self):
        fixed = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)
        clock = FixedClock(fixed)
        clock.advance(60)
        clock.advance(0.5)
        assert clock.now_utc() == fixed + timedelta(seconds=60.5)


class TestDefaultClock:
    def test_set_and_get_default(self):
        original = get_default_clock()
        fixed = FixedClock(datetime(2026, 1, 1, tzinfo=timezone.utc))
        set_default_clock(fixed)
        try:
            assert get_default_clock() is fixed
            assert now_utc() == datetime(2026, 1, 1, tzinfo=timezone.utc)
        finally:
            set_default_clock(original)


class TestRequireAware:
    def test_accepts_aware(self):
        require_aware(datetime(2026, 1, 1, tzinfo=timezone.utc), "at")

    def test_rejects_naive(self):
        with pytest.raises(ValueError, match="at must be timezone-aware"):
            require_aware(datetime(2026, 1, 1), "at")

    def test_rejects_non_datetime(self):
        with pytest.raises(TypeError, match="at must be datetime"):
            require_aware("2026-01-01", "at")
