"""
Clock -- injectable time source.

Responsibility:
    Services, sweeps and the dunning manager never call ``datetime.now()`` or
    ``date.today()`` directly. They receive a Clock and derive both the
    timestamp of a status change and the business date used for due-date and
    validity comparisons from it.

Architecture position:
    Kernel > Domain -- pure, except SystemClock which is the one sanctioned
    I/O boundary for time.

Failure modes:
    - DeterministicClock.set_time() rejects naive datetimes.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime`` in UTC.
        - ``today()`` is the calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Production clock returning the actual system time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    ``now()`` returns the same value on repeated calls until ``advance()`` or
    ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        if self._fixed_time.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware datetime")
        self._offset = timedelta()

    def now(self) -> datetime:
        return (self._fixed_time + self._offset).astimezone(timezone.utc)

    def set_time(self, time: datetime) -> None:
        if time.tzinfo is None:
            raise ValueError("DeterministicClock requires a timezone-aware datetime")
        self._fixed_time = time
        self._offset = timedelta()

    def advance(self, *, days: int = 0, seconds: int = 0) -> datetime:
        """Move the clock forward and return the new time."""
        self._offset += timedelta(days=days, seconds=seconds)
        return self.now()
