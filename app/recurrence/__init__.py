# app/recurrence/__init__.py
"""
Recurrence engine for TaskCadence.

Pure date arithmetic for recurring tasks: the pattern value type, the
next-occurrence calculator and the bounded occurrence generator.
"""

from app.recurrence.pattern import (
    RecurrenceFrequency,
    RecurrencePattern,
    encode_days_of_week,
    parse_days_of_week,
    decode_days_of_week,
)
from app.recurrence.calculator import compute_next, sunday_based_weekday
from app.recurrence.generator import generate_occurrences, iter_occurrences, occurs_after

__all__ = [
    "RecurrenceFrequency",
    "RecurrencePattern",
    "encode_days_of_week",
    "parse_days_of_week",
    "decode_days_of_week",
    "compute_next",
    "sunday_based_weekday",
    "generate_occurrences",
    "iter_occurrences",
    "occurs_after",
]
