"""Working-day rules: holidays, Saturday rest rotation and Sundays."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date, timedelta
from typing import List

from .models import RestRotation

logger = logging.getLogger(__name__)

SATURDAY = 5
SUNDAY = 6

# (month, day) pairs of the observed holiday calendar
DEFAULT_HOLIDAYS: tuple[tuple[int, int], ...] = (
    (1, 1),
    (1, 6),
    (3, 19),
    (5, 1),
    (6, 29),
    (7, 20),
    (8, 7),
    (8, 18),
    (10, 13),
    (11, 3),
    (11, 17),
    (12, 8),
    (12, 25),
)


def holidays_for_year(
    year: int, calendar: Iterable[tuple[int, int]] = DEFAULT_HOLIDAYS
) -> frozenset[date]:
    """Return the holiday dates of ``calendar`` placed in ``year``."""

    days: set[date] = set()
    for month, day in calendar:
        try:
            days.add(date(year, month, day))
        except ValueError:
            # 02-29 outside leap years
            logger.warning("Skipping holiday %02d-%02d, not a date in %s", month, day, year)
    return frozenset(days)


def holidays_between(
    start: date, end: date, calendar: Iterable[tuple[int, int]] = DEFAULT_HOLIDAYS
) -> frozenset[date]:
    calendar = tuple(calendar)
    days: set[date] = set()
    for year in range(start.year, end.year + 1):
        days.update(holidays_for_year(year, calendar))
    return frozenset(days)


def week_start(day: date) -> date:
    return day - timedelta(days=day.weekday())


def is_rest_saturday(day: date, rotation: RestRotation) -> bool:
    """Return True when ``day`` is a Saturday off for ``rotation``.

    Rotation A rests on Saturdays of odd ISO weeks, rotation B on even ISO weeks.
    Any other weekday is never a rest Saturday.
    """

    if day.weekday() != SATURDAY:
        return False
    iso_week = day.isocalendar()[1]
    if rotation is RestRotation.A:
        return iso_week % 2 == 1
    return iso_week % 2 == 0


def is_working_day(day: date, rotation: RestRotation, holidays: Iterable[date]) -> bool:
    if day.weekday() == SUNDAY:
        return False
    if day in holidays:
        return False
    return not is_rest_saturday(day, rotation)


def iter_days(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def working_days(
    start: date, end: date, rotation: RestRotation, holidays: Iterable[date]
) -> List[date]:
    """Return the working days in ``[start, end]`` in chronological order."""

    holiday_set = frozenset(holidays)
    return [day for day in iter_days(start, end) if is_working_day(day, rotation, holiday_set)]


def excluded_saturdays(start: date, end: date, rotation: RestRotation) -> int:
    return sum(1 for day in iter_days(start, end) if is_rest_saturday(day, rotation))


def excluded_holidays(start: date, end: date, holidays: Iterable[date]) -> int:
    return sum(1 for day in set(holidays) if start <= day <= end)


__all__ = [
    "DEFAULT_HOLIDAYS",
    "holidays_for_year",
    "holidays_between",
    "week_start",
    "is_rest_saturday",
    "is_working_day",
    "iter_days",
    "working_days",
    "excluded_saturdays",
    "excluded_holidays",
]
