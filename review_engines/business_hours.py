"""
review_engines.business_hours -- Business-time arithmetic.

Responsibility:
    Measure elapsed working time between two instants against a
    ``BusinessCalendar`` (working hours, working weekdays, fixed holidays),
    and provide the business-day helpers used for turnaround and rush
    assessment.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import review_kernel/domain/ types.

Invariants enforced:
    - Purity: no clock access.  Both instants are passed in and must be
      timezone-aware.
    - Additivity: for a <= b <= c,
      ``business_seconds(a, c) == business_seconds(a, b) + business_seconds(b, c)``.
    - ``rewind_business_seconds`` inverts it: for ``t = rewind(end, n)``,
      ``business_seconds(t, end) == n``.
    - Stage durations never display as zero for an interval that took real
      time: ``stage_elapsed_minutes`` falls back to calendar minutes,
      floored at one minute, when the business duration rounds to zero.

Failure modes:
    - ValueError for naive datetimes.
    - ``start >= end`` is not an error; it yields zero.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal

from review_kernel.domain.calendar import BusinessCalendar

_SECONDS_PER_MINUTE = 60
_SECONDS_PER_HOUR = 3600
HOURS_DISPLAY_QUANTUM = Decimal("0.1")


def _require_aware(value: datetime, name: str) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware, got naive {value!r}")
    return value.astimezone(timezone.utc)


def _local_days(start: datetime, end: datetime, calendar: BusinessCalendar):
    tz = calendar.tzinfo
    day = start.astimezone(tz).date()
    last = end.astimezone(tz).date()
    while day <= last:
        yield day
        day += timedelta(days=1)


def business_seconds_between(
    start: datetime,
    end: datetime,
    calendar: BusinessCalendar,
) -> int:
    """Whole seconds of working time in ``[start, end)``.

    Walks the local calendar days the interval touches and sums the overlap
    of each business day's working window with the interval.  All
    comparisons happen in UTC so DST changes are handled by the zone data.
    """
    start_utc = _require_aware(start, "start")
    end_utc = _require_aware(end, "end")
    if start_utc >= end_utc:
        return 0

    total = timedelta(0)
    for day in _local_days(start_utc, end_utc, calendar):
        if not calendar.is_business_day(day):
            continue
        window_start, window_end = calendar.working_window(day)
        lo = max(start_utc, window_start.astimezone(timezone.utc))
        hi = min(end_utc, window_end.astimezone(timezone.utc))
        if hi > lo:
            total += hi - lo
    return int(total.total_seconds())


def business_minutes_between(
    start: datetime,
    end: datetime,
    calendar: BusinessCalendar,
) -> int:
    """Working minutes in ``[start, end)``, rounded half-up to the minute."""
    seconds = business_seconds_between(start, end, calendar)
    return int(
        (Decimal(seconds) / _SECONDS_PER_MINUTE).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    )


def business_hours_between(
    start: datetime,
    end: datetime,
    calendar: BusinessCalendar,
) -> Decimal:
    """Working hours in ``[start, end)`` rounded to one decimal for display."""
    seconds = business_seconds_between(start, end, calendar)
    return (Decimal(seconds) / _SECONDS_PER_HOUR).quantize(
        HOURS_DISPLAY_QUANTUM, rounding=ROUND_HALF_UP
    )


def calendar_minutes_between(start: datetime, end: datetime) -> int:
    """Wall-clock minutes from start to end, rounded half-up; zero when reversed."""
    start_utc = _require_aware(start, "start")
    end_utc = _require_aware(end, "end")
    if start_utc >= end_utc:
        return 0
    seconds = Decimal(int((end_utc - start_utc).total_seconds()))
    return int((seconds / _SECONDS_PER_MINUTE).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def rewind_business_seconds(
    end: datetime,
    seconds: int,
    calendar: BusinessCalendar,
) -> datetime:
    """The latest instant ``t <= end`` with ``business_seconds_between(t, end) == seconds``.

    Walks working windows backwards from ``end``, skipping nights, weekends
    and holidays.  Zero seconds returns ``end`` itself.
    """
    end_utc = _require_aware(end, "end")
    if seconds < 0:
        raise ValueError(f"seconds cannot be negative: {seconds}")
    if seconds == 0:
        return end
    remaining = timedelta(seconds=seconds)
    day = end_utc.astimezone(calendar.tzinfo).date()
    while True:
        if calendar.is_business_day(day):
            window_start, window_end = calendar.working_window(day)
            lo = window_start.astimezone(timezone.utc)
            hi = min(end_utc, window_end.astimezone(timezone.utc))
            if hi > lo:
                if remaining <= hi - lo:
                    return (hi - remaining).astimezone(end.tzinfo)
                remaining -= hi - lo
        day -= timedelta(days=1)


def stage_elapsed_minutes(
    start: datetime,
    end: datetime,
    calendar: BusinessCalendar,
) -> int:
    """Minutes to credit a stage sub-interval.

    Business minutes when there are any.  Otherwise (the whole interval
    fell outside working time) the calendar minutes elapsed, never less
    than one.  An empty or reversed interval credits nothing.
    """
    if _require_aware(start, "start") >= _require_aware(end, "end"):
        return 0
    minutes = business_minutes_between(start, end, calendar)
    if minutes > 0:
        return minutes
    return max(1, calendar_minutes_between(start, end))


# ---------------------------------------------------------------------------
# Business days
# ---------------------------------------------------------------------------


def is_business_day(day: date, calendar: BusinessCalendar) -> bool:
    return calendar.is_business_day(day)


def add_business_days(start: date, days: int, calendar: BusinessCalendar) -> date:
    """The date ``days`` business days after ``start`` (``start`` itself not counted)."""
    if days < 0:
        raise ValueError(f"days cannot be negative: {days}")
    current = start
    remaining = days
    while remaining > 0:
        current += timedelta(days=1)
        if calendar.is_business_day(current):
            remaining -= 1
    return current


def count_business_days(start: date, end: date, calendar: BusinessCalendar) -> int:
    """Business days in ``(start, end]``; negative when ``end`` precedes ``start``."""
    if end == start:
        return 0
    step = 1 if end > start else -1
    count = 0
    current = start
    while current != end:
        current += timedelta(days=step)
        if calendar.is_business_day(current):
            count += step
    return count


@dataclass(frozen=True)
class RushAssessment:
    """Whether a target return date is tighter than standard turnaround."""

    submission_date: date
    target_return_date: date
    expected_return_date: date
    turnaround_business_days: int
    is_rush: bool
    business_days_short: int


def assess_rush(
    submission_date: date,
    target_return_date: date,
    turnaround_business_days: int,
    calendar: BusinessCalendar,
) -> RushAssessment:
    """Compare the requested date with the standard turnaround.

    A request is rush when its target return date falls before the date
    reached by adding the standard turnaround in business days to the
    submission date.
    """
    expected = add_business_days(submission_date, turnaround_business_days, calendar)
    short = max(0, count_business_days(target_return_date, expected, calendar))
    return RushAssessment(
        submission_date=submission_date,
        target_return_date=target_return_date,
        expected_return_date=expected,
        turnaround_business_days=turnaround_business_days,
        is_rush=target_return_date < expected,
        business_days_short=short,
    )
