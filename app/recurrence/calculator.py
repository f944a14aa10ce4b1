# app/recurrence/calculator.py
"""
Next-occurrence calculation for recurrence patterns.

Every function here is pure: the anchor is never mutated, no clock is read,
and the time-of-day and tzinfo of datetime anchors are carried through.
"""

import calendar
from datetime import date, timedelta
from typing import TypeVar

from app.core.exceptions import RecurrenceOverflowError
from app.recurrence.pattern import RecurrenceFrequency, RecurrencePattern

DateT = TypeVar("DateT", bound=date)


def compute_next(anchor_date: DateT, pattern: RecurrencePattern) -> DateT:
    """
    Calculate the next occurrence strictly after anchor_date.

    Args:
        anchor_date: Date or datetime to advance from
        pattern: Recurrence pattern

    Returns:
        Next occurrence, of the same type as anchor_date

    Raises:
        InvalidPatternError: If the pattern is structurally invalid
        RecurrenceOverflowError: If the result would fall past year 9999
    """
    pattern.validate()

    try:
        if pattern.frequency == RecurrenceFrequency.DAILY:
            return _calculate_daily_occurrence(anchor_date, pattern)
        elif pattern.frequency == RecurrenceFrequency.WEEKLY:
            return _calculate_weekly_occurrence(anchor_date, pattern)
        elif pattern.frequency == RecurrenceFrequency.MONTHLY:
            return _calculate_monthly_occurrence(anchor_date, pattern)
        elif pattern.frequency == RecurrenceFrequency.YEARLY:
            return _calculate_yearly_occurrence(anchor_date, pattern)
        # CUSTOM carries no richer rule yet and repeats every `interval` days
        return _calculate_daily_occurrence(anchor_date, pattern)
    except (ValueError, OverflowError) as e:
        raise RecurrenceOverflowError(anchor_date, pattern.frequency.value, str(e)) from e


def sunday_based_weekday(value: date) -> int:
    """Weekday index with Sunday = 0 through Saturday = 6."""
    return (value.weekday() + 1) % 7


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _calculate_daily_occurrence(anchor_date: DateT, pattern: RecurrencePattern) -> DateT:
    """Calculate next daily occurrence."""
    return anchor_date + timedelta(days=pattern.interval)


def _calculate_weekly_occurrence(anchor_date: DateT, pattern: RecurrencePattern) -> DateT:
    """Calculate next weekly occurrence."""
    allowed_days = pattern.sorted_days_of_week
    if not allowed_days:
        return anchor_date + timedelta(weeks=pattern.interval)

    current_day = sunday_based_weekday(anchor_date)

    # Later selected day in the current week, ignoring the interval
    for day in allowed_days:
        if day > current_day:
            return anchor_date + timedelta(days=day - current_day)

    # This week's days are used up: first selected day, `interval` weeks on
    days_to_add = (7 - current_day) + allowed_days[0] + (pattern.interval - 1) * 7
    return anchor_date + timedelta(days=days_to_add)


def _calculate_monthly_occurrence(anchor_date: DateT, pattern: RecurrencePattern) -> DateT:
    """Calculate next monthly occurrence."""
    month = anchor_date.month + pattern.interval
    year = anchor_date.year + (month - 1) // 12
    month = ((month - 1) % 12) + 1

    day = pattern.day_of_month or anchor_date.day
    return anchor_date.replace(
        year=year, month=month, day=min(day, days_in_month(year, month))
    )


def _calculate_yearly_occurrence(anchor_date: DateT, pattern: RecurrencePattern) -> DateT:
    """Calculate next yearly occurrence."""
    year = anchor_date.year + pattern.interval
    month = pattern.month_of_year or anchor_date.month

    # day_of_month only overrides when a month is pinned as well
    if pattern.month_of_year and pattern.day_of_month:
        day = pattern.day_of_month
    else:
        day = anchor_date.day

    return anchor_date.replace(
        year=year, month=month, day=min(day, days_in_month(year, month))
    )
