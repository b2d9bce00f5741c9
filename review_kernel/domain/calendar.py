"""
Business calendar value object (``review_kernel.domain.calendar``).

Working hours, working weekdays and the fixed holiday list used to turn
elapsed wall-clock time into business hours.  Built from configuration by
``review_config``; consumed by ``review_engines.business_hours``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


@dataclass(frozen=True)
class BusinessCalendar:
    """Working-time definition for one office.

    Contract: frozen.  ``working_days`` uses ``date.weekday()`` numbering
    (Monday = 0).  Hours are wall-clock hours in ``timezone``.
    """

    timezone: str = "America/Los_Angeles"
    start_hour: int = 8
    end_hour: int = 17
    working_days: frozenset[int] = frozenset({0, 1, 2, 3, 4})
    holidays: frozenset[date] = frozenset()

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise ValueError(
                f"working hours must satisfy 0 <= start < end <= 24, "
                f"got {self.start_hour}-{self.end_hour}"
            )
        if not self.working_days:
            raise ValueError("at least one working day is required")
        if any(d not in range(7) for d in self.working_days):
            raise ValueError(f"working_days must be weekday numbers 0-6: {sorted(self.working_days)}")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone: {self.timezone!r}") from exc

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def hours_per_day(self) -> int:
        return self.end_hour - self.start_hour

    def is_business_day(self, day: date) -> bool:
        return day.weekday() in self.working_days and day not in self.holidays

    def working_window(self, day: date) -> tuple[datetime, datetime]:
        """Start and end of the working window on ``day`` as aware local datetimes."""
        midnight = datetime.combine(day, time(0), tzinfo=self.tzinfo)
        return (
            midnight + timedelta(hours=self.start_hour),
            midnight + timedelta(hours=self.end_hour),
        )
