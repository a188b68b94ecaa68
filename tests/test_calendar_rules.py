"""Tests for calendar_rules module."""

from datetime import date, timedelta

import pytest

from crm_checkbot.calendar_rules import (
    DEFAULT_HOLIDAYS,
    excluded_holidays,
    excluded_saturdays,
    holidays_between,
    holidays_for_year,
    is_rest_saturday,
    is_working_day,
    week_start,
    working_days,
)
from crm_checkbot.models import RestRotation

OCTOBER_2025 = (date(2025, 10, 1), date(2025, 10, 31))


class TestHolidays:
    @pytest.mark.parametrize("year", range(2020, 2031))
    def test_thirteen_distinct_dates_in_year(self, year):
        holidays = holidays_for_year(year)

        assert len(holidays) == 13
        assert all(day.year == year for day in holidays)

    def test_custom_calendar_overrides_default(self):
        assert holidays_for_year(2025, [(7, 4)]) == frozenset({date(2025, 7, 4)})

    def test_leap_day_skipped_outside_leap_years(self):
        assert holidays_for_year(2023, [(2, 29), (3, 1)]) == frozenset({date(2023, 3, 1)})
        assert date(2024, 2, 29) in holidays_for_year(2024, [(2, 29)])

    def test_between_spans_year_boundary(self):
        holidays = holidays_between(date(2024, 12, 20), date(2025, 1, 10))

        assert date(2024, 12, 25) in holidays
        assert date(2025, 1, 1) in holidays
        assert len(holidays) == 2 * len(DEFAULT_HOLIDAYS)


class TestRestSaturday:
    def test_non_saturdays_never_rest(self):
        start = date(2025, 1, 1)
        for offset in range(366):
            day = start + timedelta(days=offset)
            if day.weekday() == 5:
                continue
            assert not is_rest_saturday(day, RestRotation.A)
            assert not is_rest_saturday(day, RestRotation.B)

    def test_rotations_alternate_by_iso_week(self):
        # 2025-10-04 falls in ISO week 40, 2025-10-11 in week 41
        assert is_rest_saturday(date(2025, 10, 4), RestRotation.B)
        assert not is_rest_saturday(date(2025, 10, 4), RestRotation.A)
        assert is_rest_saturday(date(2025, 10, 11), RestRotation.A)
        assert not is_rest_saturday(date(2025, 10, 11), RestRotation.B)

    def test_exactly_one_rotation_rests_each_saturday(self):
        saturday = date(2025, 1, 4)
        for week in range(52):
            day = saturday + timedelta(weeks=week)
            assert is_rest_saturday(day, RestRotation.A) != is_rest_saturday(day, RestRotation.B)


class TestWorkingDays:
    def test_sundays_never_work(self):
        sunday = date(2025, 10, 5)
        for rotation in RestRotation:
            assert not is_working_day(sunday, rotation, frozenset())
            assert not is_working_day(sunday, rotation, {date(2025, 10, 6)})

    def test_october_2025(self):
        start, end = OCTOBER_2025
        holidays = holidays_for_year(2025)

        days_b = working_days(start, end, RestRotation.B, holidays)
        days_a = working_days(start, end, RestRotation.A, holidays)

        # 31 days - 4 Sundays - 2 rest Saturdays - Oct 13 holiday
        assert len(days_b) == 24
        assert len(days_a) == 24
        assert date(2025, 10, 13) not in days_b
        assert date(2025, 10, 4) not in days_b
        assert date(2025, 10, 11) in days_b
        assert date(2025, 10, 4) in days_a
        assert days_b == sorted(days_b)

    def test_inclusive_bounds_and_range(self):
        start, end = date(2025, 10, 6), date(2025, 10, 10)
        days = working_days(start, end, RestRotation.A, frozenset())

        assert days == [start + timedelta(days=offset) for offset in range(5)]

    def test_holiday_order_does_not_matter(self):
        start, end = OCTOBER_2025
        holidays = [date(2025, 10, 13), date(2025, 10, 1), date(2025, 10, 20)]

        forward = working_days(start, end, RestRotation.A, holidays)
        backward = working_days(start, end, RestRotation.A, list(reversed(holidays)))

        assert forward == backward
        assert all(start <= day <= end for day in forward)

    def test_empty_when_end_before_start(self):
        assert working_days(date(2025, 10, 1), date(2025, 9, 30), RestRotation.A, ()) == []


class TestExclusions:
    def test_excluded_counts(self):
        start, end = OCTOBER_2025

        assert excluded_saturdays(start, end, RestRotation.A) == 2
        assert excluded_saturdays(start, end, RestRotation.B) == 2
        assert excluded_holidays(start, end, holidays_for_year(2025)) == 1

    def test_week_start_is_monday(self):
        assert week_start(date(2025, 10, 9)) == date(2025, 10, 6)
        assert week_start(date(2025, 10, 6)) == date(2025, 10, 6)
        assert week_start(date(2025, 10, 5)) == date(2025, 9, 29)
