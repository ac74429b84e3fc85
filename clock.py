"""Time source abstraction.

Time-window filtering and cache expiry both depend on "now". Components
take a Clock instead of calling datetime.now() directly so tests can
advance time deterministically.
"""

from datetime import datetime, timedelta, timezone
from typing import Protocol


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        ...


class SystemClock:
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to.

    Example:
        >>> clock = ManualClock(datetime(2026, 1, 1, tzinfo=timezone.utc))
        >>> clock.advance(minutes=31)
        >>> clock.now().minute
        31
    """

    def __init__(self, start: datetime | None = None):
        self._now = start or datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        """Move time forward by a timedelta built from kwargs."""
        self._now += timedelta(**kwargs)

    def set(self, moment: datetime) -> None:
        self._now = moment
