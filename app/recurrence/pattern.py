# app/recurrence/pattern.py
"""
Recurrence pattern value type for TaskCadence.

This module defines the immutable RecurrencePattern consumed by the
recurrence engine, its structural validation, and the codec used for the
days_of_week field, which the persistence layer stores as a JSON array
string.
"""

import json
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional, Tuple, Union

from app.core.exceptions import InvalidPatternError, MalformedSerializedPatternError

logger = logging.getLogger(__name__)


class RecurrenceFrequency(str, Enum):
    """Supported recurrence frequencies."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"
    CUSTOM = "CUSTOM"

    @classmethod
    def coerce(cls, value: Union[str, "RecurrenceFrequency"]) -> "RecurrenceFrequency":
        """Convert a case-insensitive string into a frequency."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidPatternError(
                f"Invalid frequency: {value}. Must be one of {[f.value for f in cls]}",
                field="frequency",
                value=value,
            )


@dataclass(frozen=True)
class RecurrencePattern:
    """
    A declarative recurrence rule.

    Weekday indices in days_of_week use 0 = Sunday through 6 = Saturday.
    The pattern has no identity; it is always embedded in a schedule record.
    """

    frequency: RecurrenceFrequency
    interval: int = 1
    days_of_week: Optional[FrozenSet[int]] = None
    day_of_month: Optional[int] = None
    month_of_year: Optional[int] = None
    end_date: Optional[date] = None
    occurrence_count: Optional[int] = None

    @classmethod
    def create(
        cls,
        frequency: Union[str, RecurrenceFrequency],
        interval: int = 1,
        days_of_week: Optional[Iterable[int]] = None,
        day_of_month: Optional[int] = None,
        month_of_year: Optional[int] = None,
        end_date: Optional[date] = None,
        occurrence_count: Optional[int] = None,
    ) -> "RecurrencePattern":
        """
        Build and validate a pattern from loosely typed values.

        Raises:
            InvalidPatternError: If any field violates the pattern invariants
        """
        pattern = cls(
            frequency=RecurrenceFrequency.coerce(frequency),
            interval=interval,
            days_of_week=frozenset(days_of_week) if days_of_week is not None else None,
            day_of_month=day_of_month,
            month_of_year=month_of_year,
            end_date=end_date,
            occurrence_count=occurrence_count,
        )
        pattern.validate()
        return pattern

    @property
    def sorted_days_of_week(self) -> Tuple[int, ...]:
        """Selected weekdays in ascending order (empty when none are set)."""
        if not self.days_of_week:
            return ()
        return tuple(sorted(self.days_of_week))

    def validate(self) -> None:
        """
        Check the structural invariants of the pattern.

        Raises:
            InvalidPatternError: On the first invariant that does not hold
        """
        if not isinstance(self.frequency, RecurrenceFrequency):
            raise InvalidPatternError(
                f"Invalid frequency: {self.frequency}",
                field="frequency",
                value=self.frequency,
            )

        if not _is_int(self.interval) or self.interval < 1:
            raise InvalidPatternError(
                "Interval must be an integer of at least 1",
                field="interval",
                value=self.interval,
            )

        if self.days_of_week is not None:
            for day in self.days_of_week:
                if not _is_int(day) or day < 0 or day > 6:
                    raise InvalidPatternError(
                        "Each day in days_of_week must be an integer from 0-6",
                        field="days_of_week",
                        value=sorted(self.days_of_week, key=str),
                    )

        if self.day_of_month is not None and (
            not _is_int(self.day_of_month) or not 1 <= self.day_of_month <= 31
        ):
            raise InvalidPatternError(
                "day_of_month must be an integer from 1-31",
                field="day_of_month",
                value=self.day_of_month,
            )

        if self.month_of_year is not None and (
            not _is_int(self.month_of_year) or not 1 <= self.month_of_year <= 12
        ):
            raise InvalidPatternError(
                "month_of_year must be an integer from 1-12",
                field="month_of_year",
                value=self.month_of_year,
            )

        if self.occurrence_count is not None and (
            not _is_int(self.occurrence_count) or self.occurrence_count < 1
        ):
            raise InvalidPatternError(
                "occurrence_count must be a positive integer",
                field="occurrence_count",
                value=self.occurrence_count,
            )


def _is_int(value: Any) -> bool:
    # bool is an int subclass but never a valid day, month or interval
    return isinstance(value, int) and not isinstance(value, bool)


# --- days_of_week wire codec ---


def encode_days_of_week(days: Optional[Iterable[int]]) -> Optional[str]:
    """
    Encode a weekday set as a JSON array string for storage.

    Returns:
        JSON text such as "[1, 5]", or None when no days are selected
    """
    if days is None:
        return None
    ordered = sorted(set(days))
    if not ordered:
        return None
    return json.dumps(ordered)


def parse_days_of_week(raw: Optional[str]) -> Optional[FrozenSet[int]]:
    """
    Strictly decode a stored days_of_week value.

    Args:
        raw: JSON array string, or None/empty for "no specific days"

    Returns:
        Frozen set of weekday integers, or None

    Raises:
        MalformedSerializedPatternError: If the payload is not a JSON array of integers
    """
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise MalformedSerializedPatternError(
            "days_of_week", raw, "expected a JSON array string"
        )
    if not raw.strip():
        return None

    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedSerializedPatternError("days_of_week", raw, str(e))

    if not isinstance(value, list):
        raise MalformedSerializedPatternError(
            "days_of_week", raw, "expected a JSON array"
        )
    if not all(_is_int(day) for day in value):
        raise MalformedSerializedPatternError(
            "days_of_week", raw, "array entries must be integers"
        )

    return frozenset(value)


def decode_days_of_week(raw: Optional[str]) -> Optional[FrozenSet[int]]:
    """
    Leniently decode a stored days_of_week value.

    A malformed payload degrades to None ("no specific days") so a single
    bad record cannot break a batch that reads many schedules.
    """
    try:
        return parse_days_of_week(raw)
    except MalformedSerializedPatternError as e:
        logger.warning(f"Ignoring days_of_week: {e.message}")
        return None
