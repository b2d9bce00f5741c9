"""
Clock -- injectable source of "now".

Responsibility:
    Stage anchors, hold timestamps and request codes all read the current
    instant from a Clock handed to the workflow engine, never from
    ``datetime.now()`` directly.

Architecture position:
    Kernel > Domain.  SystemClock is the only place time is read from the OS.

Audit relevance:
    Business-hour counters are computed from clock readings; tests pin the
    clock so weekend and holiday boundaries are exact.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """Returns timezone-aware instants."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Starts at ``start`` (Monday 2026-01-05 08:00 Pacific by default) and
    reports the same instant until advanced.
    """

    def __init__(self, start: datetime | None = None):
        self._current = start or datetime(2026, 1, 5, 16, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta) -> datetime:
        self._current += delta
        return self._current

    def advance_hours(self, hours: float) -> datetime:
        """Move forward by wall-clock hours (not business hours)."""
        return self.advance(timedelta(hours=hours))
