# app/recurrence/generator.py
"""
Bounded occurrence sequences built on top of compute_next.

Sequences are always finite: callers must pass max_count, and the pattern's
own end_date and occurrence_count tighten the bound further.
"""

from datetime import date, datetime
from typing import Iterator, List, Optional, TypeVar

from app.core.exceptions import RecurrenceProgressError, ValidationException
from app.recurrence.calculator import compute_next
from app.recurrence.pattern import RecurrencePattern

DateT = TypeVar("DateT", bound=date)


def iter_occurrences(
    anchor_date: DateT,
    pattern: RecurrencePattern,
    max_count: int,
    end_date: Optional[date] = None,
) -> Iterator[DateT]:
    """
    Lazily yield occurrences after anchor_date.

    The pattern and bounds are validated before the iterator is returned, so
    errors surface at call time rather than on the first next().

    Args:
        anchor_date: Date or datetime the sequence starts after
        pattern: Recurrence pattern
        max_count: Maximum number of occurrences to yield
        end_date: Optional last allowed occurrence (inclusive)

    Raises:
        InvalidPatternError: If the pattern is structurally invalid
        ValidationException: If max_count is not a non-negative integer
    """
    pattern.validate()
    if isinstance(max_count, bool) or not isinstance(max_count, int) or max_count < 0:
        raise ValidationException(
            "max_count must be a non-negative integer",
            {"max_count": [f"Got {max_count!r}"]},
        )

    limit = max_count
    if pattern.occurrence_count is not None:
        limit = min(limit, pattern.occurrence_count)

    boundary = _earliest(end_date, pattern.end_date)

    return _walk(anchor_date, pattern, limit, boundary)


def generate_occurrences(
    anchor_date: DateT,
    pattern: RecurrencePattern,
    max_count: int,
    end_date: Optional[date] = None,
) -> List[DateT]:
    """
    Calculate a list of upcoming occurrences based on a recurrence pattern.

    Args:
        anchor_date: Date or datetime the sequence starts after
        pattern: Recurrence pattern
        max_count: Maximum number of occurrences to return
        end_date: Optional last allowed occurrence (inclusive)

    Returns:
        Ascending list of occurrence dates
    """
    return list(iter_occurrences(anchor_date, pattern, max_count, end_date))


def _walk(
    anchor_date: DateT,
    pattern: RecurrencePattern,
    limit: int,
    boundary: Optional[date],
) -> Iterator[DateT]:
    current = anchor_date
    produced = 0
    while produced < limit:
        next_date = compute_next(current, pattern)
        if not next_date > current:
            raise RecurrenceProgressError(current, next_date)
        if boundary is not None and occurs_after(next_date, boundary):
            return
        yield next_date
        produced += 1
        current = next_date


def _earliest(first: Optional[date], second: Optional[date]) -> Optional[date]:
    if first is None:
        return second
    if second is None:
        return first
    return second if occurs_after(first, second) else first


def occurs_after(value: date, boundary: date) -> bool:
    """
    Whether value falls after an inclusive date/datetime boundary.

    A plain date boundary covers its whole day, so datetimes on that day are
    not after it.
    """
    if isinstance(value, datetime) and not isinstance(boundary, datetime):
        return value.date() > boundary
    if isinstance(boundary, datetime) and not isinstance(value, datetime):
        return value > boundary.date()
    if isinstance(value, datetime) and isinstance(boundary, datetime):
        if (value.tzinfo is None) != (boundary.tzinfo is None):
            # Mixed naive/aware values: compare wall-clock times
            return value.replace(tzinfo=None) > boundary.replace(tzinfo=None)
    return value > boundary
