"""
Tests for business-time arithmetic.

Instants are built in America/Los_Angeles against a calendar working
08:00-17:00 Monday to Friday with Thanksgiving and Christmas 2026 off.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from review_engines.business_hours import (
    add_business_days,
    assess_rush,
    business_hours_between,
    business_minutes_between,
    business_seconds_between,
    calendar_minutes_between,
    count_business_days,
    is_business_day,
    rewind_business_seconds,
    stage_elapsed_minutes,
)
from tests.factories import la, make_calendar

THANKSGIVING = date(2026, 11, 26)


@pytest.fixture
def cal():
    return make_calendar(holidays=frozenset({THANKSGIVING, date(2026, 12, 25)}))


class TestBusinessMinutes:

    def test_within_one_day(self, cal):
        assert business_minutes_between(la(2026, 10, 19, 9), la(2026, 10, 19, 10, 30), cal) == 90

    def test_clipped_to_working_window(self, cal):
        assert business_minutes_between(la(2026, 10, 19, 6), la(2026, 10, 19, 20), cal) == 540

    def test_overnight(self, cal):
        # 16:00-17:00 Monday plus 08:00-09:00 Tuesday
        assert business_minutes_between(la(2026, 10, 19, 16), la(2026, 10, 20, 9), cal) == 120

    def test_weekend_skipped(self, cal):
        # Friday 16:00 to Monday 09:00
        assert business_minutes_between(la(2026, 10, 16, 16), la(2026, 10, 19, 9), cal) == 120

    def test_full_week(self, cal):
        assert business_minutes_between(la(2026, 10, 19, 8), la(2026, 10, 26, 8), cal) == 5 * 9 * 60

    def test_holiday_skipped(self, cal):
        # Wednesday 16:00 to Friday 09:00 across Thanksgiving
        assert business_minutes_between(la(2026, 11, 25, 16), la(2026, 11, 27, 9), cal) == 120

    def test_reversed_interval_is_zero(self, cal):
        assert business_minutes_between(la(2026, 10, 19, 12), la(2026, 10, 19, 9), cal) == 0

    def test_across_dst_fall_back(self, cal):
        # Clocks go back on Sunday 2026-11-01; working hours stay wall-clock.
        assert business_minutes_between(la(2026, 10, 30, 16), la(2026, 11, 2, 9), cal) == 120

    def test_day_of_dst_change_on_a_working_day(self):
        sunday_shop = make_calendar(working_days=frozenset({6}))
        # 2026-03-08 is the spring-forward Sunday; the 08:00-17:00 window is unaffected
        assert business_minutes_between(la(2026, 3, 8, 0), la(2026, 3, 9, 0), sunday_shop) == 540

    def test_accepts_utc_instants(self, cal):
        start = datetime(2026, 10, 19, 16, 0, tzinfo=timezone.utc)
        assert business_minutes_between(start, start + timedelta(hours=2), cal) == 120

    def test_rounds_half_up(self, cal):
        start = la(2026, 10, 19, 9)
        assert business_minutes_between(start, start + timedelta(seconds=90), cal) == 2
        assert business_minutes_between(start, start + timedelta(seconds=89), cal) == 1

    def test_naive_datetime_rejected(self, cal):
        with pytest.raises(ValueError, match="timezone-aware"):
            business_minutes_between(datetime(2026, 10, 19, 9), la(2026, 10, 19, 10), cal)

    def test_hours_display_rounding(self, cal):
        assert business_hours_between(la(2026, 10, 19, 9), la(2026, 10, 19, 10, 20), cal) == (
            Decimal("1.3")
        )


class TestStageElapsedMinutes:

    def test_business_minutes_when_any(self, cal):
        assert stage_elapsed_minutes(la(2026, 10, 19, 9), la(2026, 10, 19, 9, 45), cal) == 45

    def test_after_hours_falls_back_to_calendar_minutes(self, cal):
        # Friday 17:00 to Saturday 09:00 has no business time at all
        assert stage_elapsed_minutes(la(2026, 10, 16, 17), la(2026, 10, 17, 9), cal) == 960

    def test_fallback_floor_is_one_minute(self, cal):
        start = la(2026, 10, 17, 10)
        assert stage_elapsed_minutes(start, start + timedelta(seconds=5), cal) == 1

    def test_empty_interval_is_zero(self, cal):
        start = la(2026, 10, 17, 10)
        assert stage_elapsed_minutes(start, start, cal) == 0

    def test_calendar_minutes(self):
        assert calendar_minutes_between(la(2026, 10, 16, 17), la(2026, 10, 17, 9)) == 960


class TestBusinessDays:

    def test_is_business_day(self, cal):
        assert is_business_day(date(2026, 10, 19), cal)
        assert not is_business_day(date(2026, 10, 17), cal)
        assert not is_business_day(THANKSGIVING, cal)

    def test_add_business_days(self, cal):
        assert add_business_days(date(2026, 10, 19), 5, cal) == date(2026, 10, 26)
        assert add_business_days(date(2026, 10, 16), 1, cal) == date(2026, 10, 19)

    def test_add_skips_holiday(self, cal):
        assert add_business_days(date(2026, 11, 25), 1, cal) == date(2026, 11, 27)

    def test_add_zero(self, cal):
        assert add_business_days(date(2026, 10, 17), 0, cal) == date(2026, 10, 17)

    def test_add_negative_rejected(self, cal):
        with pytest.raises(ValueError):
            add_business_days(date(2026, 10, 19), -1, cal)

    def test_count_business_days(self, cal):
        assert count_business_days(date(2026, 10, 19), date(2026, 10, 26), cal) == 5
        assert count_business_days(date(2026, 10, 26), date(2026, 10, 19), cal) == -5
        assert count_business_days(date(2026, 10, 19), date(2026, 10, 19), cal) == 0


class TestAssessRush:

    def test_tight_target_is_rush(self, cal):
        assessment = assess_rush(date(2026, 10, 19), date(2026, 10, 21), 5, cal)
        assert assessment.is_rush
        assert assessment.expected_return_date == date(2026, 10, 26)
        assert assessment.business_days_short == 3

    def test_standard_turnaround_is_not_rush(self, cal):
        assessment = assess_rush(date(2026, 10, 19), date(2026, 10, 26), 5, cal)
        assert not assessment.is_rush
        assert assessment.business_days_short == 0

    def test_holiday_extends_expected_date(self, cal):
        assessment = assess_rush(date(2026, 11, 23), date(2026, 11, 30), 5, cal)
        assert assessment.expected_return_date == date(2026, 12, 1)
        assert assessment.is_rush


class TestRewindBusinessSeconds:

    def test_within_one_window(self, cal):
        assert rewind_business_seconds(la(2026, 10, 19, 11), 3600, cal) == la(2026, 10, 19, 10)

    def test_crosses_the_night(self, cal):
        # Tue 08:00 back half an hour lands in Monday's last half hour
        assert rewind_business_seconds(la(2026, 10, 20, 8), 1800, cal) == la(2026, 10, 19, 16, 30)

    def test_crosses_weekend_and_holiday(self, cal):
        # Fri 2026-11-27 09:00, Thanksgiving Thursday skipped
        start = rewind_business_seconds(la(2026, 11, 27, 9), 2 * 3600, cal)
        assert start == la(2026, 11, 25, 16)
        monday = rewind_business_seconds(la(2026, 10, 26, 8, 30), 3600, cal)
        assert monday == la(2026, 10, 23, 16, 30)

    def test_end_outside_hours_starts_from_last_window(self, cal):
        assert rewind_business_seconds(la(2026, 10, 19, 22), 1800, cal) == la(2026, 10, 19, 16, 30)

    def test_zero_returns_end(self, cal):
        end = la(2026, 10, 18, 3)
        assert rewind_business_seconds(end, 0, cal) is end

    def test_negative_rejected(self, cal):
        with pytest.raises(ValueError):
            rewind_business_seconds(la(2026, 10, 19, 9), -1, cal)

    def test_keeps_timezone_of_end(self, cal):
        end = la(2026, 10, 19, 12)
        assert rewind_business_seconds(end, 60, cal).tzinfo is end.tzinfo


# Midnight Monday 2026-10-12 in Los Angeles, in UTC so offsets are elapsed seconds
_BASE = datetime(2026, 10, 12, 7, 0, tzinfo=timezone.utc)
_OFFSETS = st.integers(min_value=0, max_value=21 * 24 * 3600)


class TestAdditivity:

    @given(_OFFSETS, _OFFSETS, _OFFSETS)
    @settings(max_examples=200, deadline=None)
    def test_split_interval_sums(self, a, b, c):
        a, b, c = sorted((a, b, c))
        cal = make_calendar(holidays=frozenset({date(2026, 10, 21)}))
        ta, tb, tc = (_BASE + timedelta(seconds=x) for x in (a, b, c))
        whole = business_seconds_between(ta, tc, cal)
        assert whole == business_seconds_between(ta, tb, cal) + business_seconds_between(tb, tc, cal)

    @given(_OFFSETS, _OFFSETS)
    @settings(max_examples=100, deadline=None)
    def test_never_exceeds_wall_clock(self, a, b):
        a, b = sorted((a, b))
        cal = make_calendar()
        seconds = business_seconds_between(
            _BASE + timedelta(seconds=a), _BASE + timedelta(seconds=b), cal
        )
        assert 0 <= seconds <= b - a

    @given(_OFFSETS, _OFFSETS)
    @settings(max_examples=200, deadline=None)
    def test_rewind_inverts_business_seconds(self, a, b):
        a, b = sorted((a, b))
        cal = make_calendar(holidays=frozenset({date(2026, 10, 21)}))
        ta, tb = _BASE + timedelta(seconds=a), _BASE + timedelta(seconds=b)
        seconds = business_seconds_between(ta, tb, cal)
        start = rewind_business_seconds(tb, seconds, cal)
        assert business_seconds_between(start, tb, cal) == seconds
        assert ta <= start <= tb
