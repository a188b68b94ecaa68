"""Daily, weekly and monthly time compliance arithmetic."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Dict, List, Optional

from .calendar_rules import SATURDAY, week_start
from .models import DailyTimeRecord, MonthlySummary, TimeSummary

WEEKDAY_REQUIRED_MINUTES = 510
SATURDAY_REQUIRED_MINUTES = 180


def required_minutes(day: date) -> int:
    return SATURDAY_REQUIRED_MINUTES if day.weekday() == SATURDAY else WEEKDAY_REQUIRED_MINUTES


def logged_minutes_from(hours: Optional[int], minutes: Optional[int]) -> Optional[int]:
    """Combine summed hour and minute columns; ``None`` when nothing was logged."""

    if hours is None and minutes is None:
        return None
    return int(hours or 0) * 60 + int(minutes or 0)


def daily_record(day: date, logged_minutes: Optional[int]) -> DailyTimeRecord:
    """Build the compliance record of one working day.

    ``logged_minutes`` is ``None`` when the employee has no activity row for the
    day; that still counts as zero minutes against the threshold.
    """

    return DailyTimeRecord(
        day=day,
        logged_minutes=max(int(logged_minutes or 0), 0),
        required_minutes=required_minutes(day),
        is_saturday=day.weekday() == SATURDAY,
        has_record=logged_minutes is not None,
    )


def weekly_summary(records: Sequence[DailyTimeRecord]) -> TimeSummary:
    """Sum logged and required minutes; an empty week is vacuously compliant."""

    saturdays = sum(1 for record in records if record.is_saturday)
    weekdays = len(records) - saturdays
    return TimeSummary(
        logged_minutes=sum(record.logged_minutes for record in records),
        required_minutes=weekdays * WEEKDAY_REQUIRED_MINUTES
        + saturdays * SATURDAY_REQUIRED_MINUTES,
    )


def monthly_summary(
    records: Sequence[DailyTimeRecord], excluded_saturdays: int, excluded_holidays: int
) -> MonthlySummary:
    totals = weekly_summary(records)
    return MonthlySummary(
        logged_minutes=totals.logged_minutes,
        required_minutes=totals.required_minutes,
        excluded_saturdays=excluded_saturdays,
        excluded_holidays=excluded_holidays,
    )


def group_by_week(records: Sequence[DailyTimeRecord]) -> List[List[DailyTimeRecord]]:
    """Bucket records by their Monday-starting week, weeks in ascending order."""

    weeks: Dict[date, List[DailyTimeRecord]] = {}
    for record in sorted(records, key=lambda item: item.day):
        weeks.setdefault(week_start(record.day), []).append(record)
    return [weeks[start] for start in sorted(weeks)]


def format_duration(minutes: int, pad: bool = True) -> str:
    hours, rest = divmod(max(int(minutes), 0), 60)
    if pad:
        return f"{hours}h {rest:02d}m"
    return f"{hours}h {rest}m"


def shortfall_text(record: DailyTimeRecord) -> str:
    """Missing time for a failing day, e.g. ``"1h 0m"``; empty when the day passes."""

    if record.passed:
        return ""
    return format_duration(record.shortfall_minutes, pad=False)


__all__ = [
    "WEEKDAY_REQUIRED_MINUTES",
    "SATURDAY_REQUIRED_MINUTES",
    "required_minutes",
    "logged_minutes_from",
    "daily_record",
    "weekly_summary",
    "monthly_summary",
    "group_by_week",
    "format_duration",
    "shortfall_text",
]
