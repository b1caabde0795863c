"""
Injectable time source.

Services and selectors never call ``datetime.now()``.  Order timestamps,
reporting windows and performance buckets all come from the Clock a
component was built with, so tests pin "now" with DeterministicClock.

The store keeps naive datetimes holding UTC; ``timestamp()`` is the form
written to and compared against DateTime columns.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def _utc(value: datetime) -> datetime:
    # Naive input is taken to be UTC already.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Current instant, timezone-aware UTC."""

    def timestamp(self) -> datetime:
        """Current instant as stored in the database (naive UTC)."""
        return _utc(self.now()).replace(tzinfo=None)


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Frozen clock; only set_time() and advance() move it."""

    def __init__(self, fixed_time: datetime | None = None):
        self._current = _utc(fixed_time or DEFAULT_TEST_TIME)

    def now(self) -> datetime:
        return self._current

    def set_time(self, value: datetime) -> None:
        self._current = _utc(value)

    def advance(self, **delta: float) -> datetime:
        """``clock.advance(days=3)``; returns the new time."""
        self._current += timedelta(**delta)
        return self._current
