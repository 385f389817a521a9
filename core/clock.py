"""
core/clock.py -- Injectable time source for expiry checks.

Every component that compares against "now" (token signing, token verification,
ledger expiry checks, maintenance purges) receives a clock in its constructor
instead of calling datetime.now() inline. Production code passes SystemClock;
tests pass ManualClock and move it forward to land exactly on expiry boundaries.

Layer rule: core/ is the kernel. This module may not import from auth/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


class SystemClock:
    """UTC wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """A clock that only moves when told to.

    Usage:
        clock = ManualClock(datetime(2024, 7, 9, 12, 0, tzinfo=timezone.utc))
        clock.advance(minutes=29)
    """

    def __init__(self, start: datetime | None = None) -> None:
        current = start or datetime.now(timezone.utc)
        if current.tzinfo is None:
            raise ValueError("ManualClock requires a timezone-aware datetime")
        self._now = current

    def now(self) -> datetime:
        return self._now

    def set(self, when: datetime) -> None:
        if when.tzinfo is None:
            raise ValueError("ManualClock requires a timezone-aware datetime")
        self._now = when

    def advance(self, **delta: float) -> datetime:
        """Move forward by a timedelta expressed as keyword arguments (minutes=5, days=1)."""
        self._now = self._now + timedelta(**delta)
        return self._now


def to_unix(when: datetime) -> int:
    """Truncate a timezone-aware datetime to whole Unix seconds."""
    return int(when.timestamp())


def from_unix(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)
