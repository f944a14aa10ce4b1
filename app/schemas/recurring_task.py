# app/schemas/recurring_task.py
"""
Recurring Task schemas for the TaskCadence API.

This module contains Pydantic models for recurring-task management and owns
the wire format of recurrence patterns: days_of_week travels as a JSON array
string (a plain list of integers is also accepted and re-encoded) and dates
as ISO-8601 strings.
"""

from datetime import datetime, timezone
from typing import List, Optional, Any, Dict

from pydantic import BaseModel, Field, validator

from app.recurrence.pattern import (
    RecurrenceFrequency,
    RecurrencePattern,
    decode_days_of_week,
    encode_days_of_week,
    parse_days_of_week,
)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Store every datetime in one calendar timezone: naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _coerce_days_of_week(v: Any) -> Any:
    if isinstance(v, (list, tuple, set, frozenset)):
        if not all(isinstance(day, int) and not isinstance(day, bool) for day in v):
            raise ValueError("days_of_week must contain integers only")
        return encode_days_of_week(v)
    return v


def _coerce_frequency(v: Any) -> Any:
    if isinstance(v, str):
        return v.upper()
    return v


class RecurrencePatternFields(BaseModel):
    """Pattern fields shared by preview and schedule payloads."""

    frequency: RecurrenceFrequency = Field(
        RecurrenceFrequency.DAILY,
        description="Frequency: DAILY, WEEKLY, MONTHLY, YEARLY or CUSTOM",
    )
    interval: int = Field(1, description="Interval between occurrences")
    days_of_week: Optional[str] = Field(
        None, description='JSON array of weekdays, 0 = Sunday, e.g. "[1, 5]"'
    )
    day_of_month: Optional[int] = Field(
        None, description="Day of month (monthly and yearly patterns)"
    )
    month_of_year: Optional[int] = Field(
        None, description="Month 1-12 (yearly patterns)"
    )
    end_date: Optional[datetime] = Field(
        None, description="Last allowed occurrence (if any)"
    )

    @validator("frequency", pre=True)
    def normalize_frequency(cls, v):
        return _coerce_frequency(v)

    @validator("days_of_week", pre=True)
    def normalize_days_of_week(cls, v):
        """Accept a list of weekdays and re-encode it as JSON text."""
        return _coerce_days_of_week(v)

    def to_pattern(
        self, strict: bool = False, occurrence_count: Optional[int] = None
    ) -> RecurrencePattern:
        """
        Convert the wire fields into an engine pattern.

        Args:
            strict: Raise on malformed days_of_week instead of ignoring it
            occurrence_count: Optional count bound to embed in the pattern

        Raises:
            InvalidPatternError: If the pattern violates its invariants
            MalformedSerializedPatternError: If strict and days_of_week is malformed
        """
        decode = parse_days_of_week if strict else decode_days_of_week
        return RecurrencePattern.create(
            frequency=self.frequency,
            interval=self.interval,
            days_of_week=decode(self.days_of_week),
            day_of_month=self.day_of_month,
            month_of_year=self.month_of_year,
            end_date=self.end_date,
            occurrence_count=occurrence_count,
        )


class RecurrencePreviewRequest(RecurrencePatternFields):
    """Schema for previewing upcoming occurrences of a pattern."""

    start_date: datetime = Field(..., description="Anchor the preview starts after")
    count: Optional[int] = Field(
        None, ge=0, description="Number of occurrences (defaults to server setting)"
    )


class RecurrencePreviewResponse(BaseModel):
    """Schema for preview results."""

    occurrences: List[datetime] = Field([], description="Upcoming occurrences")


class TaskTemplateCreate(BaseModel):
    """Schema for creating a task template."""

    user_id: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    priority: str = Field("medium", pattern=r"^(low|medium|high)$")
    estimated_duration: Optional[int] = Field(
        None, ge=0, description="Estimated duration in minutes"
    )


class TaskTemplateUpdate(BaseModel):
    """Schema for updating a task template. The owner cannot be changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    priority: Optional[str] = Field(None, pattern=r"^(low|medium|high)$")
    estimated_duration: Optional[int] = Field(
        None, ge=0, description="Estimated duration in minutes"
    )


class TaskTemplate(TaskTemplateCreate):
    """Schema for task template information."""

    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class Task(BaseModel):
    """Schema for a concrete task instance."""

    id: int
    user_id: str
    title: str
    description: Optional[str] = None
    priority: str
    estimated_duration: Optional[int] = None
    due_date: Optional[datetime] = None
    completed: bool = False
    recurring_task_id: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RecurringTaskCreate(RecurrencePatternFields):
    """Schema for creating a new recurring-task schedule."""

    user_id: str = Field(..., min_length=1, max_length=100)
    template_id: int = Field(..., description="Template used for generated tasks")
    start_date: Optional[datetime] = Field(
        None, description="Schedule start (defaults to now)"
    )
    next_due_date: Optional[datetime] = Field(
        None, description="First due date (defaults to start_date)"
    )
    occurrence_count: Optional[int] = Field(
        None, description="Stop after this many generated tasks"
    )

    @validator("start_date", "next_due_date", "end_date")
    def normalize_timezone(cls, v):
        return to_naive_utc(v)


class RecurringTaskUpdate(BaseModel):
    """Schema for updating a recurring-task schedule."""

    template_id: Optional[int] = None
    frequency: Optional[RecurrenceFrequency] = None
    interval: Optional[int] = None
    days_of_week: Optional[str] = None
    day_of_month: Optional[int] = None
    month_of_year: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    occurrence_count: Optional[int] = None
    next_due_date: Optional[datetime] = None
    is_active: Optional[bool] = None

    @validator("frequency", pre=True)
    def normalize_frequency(cls, v):
        return _coerce_frequency(v)

    @validator("days_of_week", pre=True)
    def normalize_days_of_week(cls, v):
        """Accept a list of weekdays and re-encode it as JSON text."""
        return _coerce_days_of_week(v)

    @validator("start_date", "next_due_date", "end_date")
    def normalize_timezone(cls, v):
        return to_naive_utc(v)


class RecurringTask(BaseModel):
    """Schema for recurring-task schedule information."""

    id: int
    user_id: str
    template_id: int
    frequency: RecurrenceFrequency
    interval: int
    days_of_week: Optional[str] = None
    day_of_month: Optional[int] = None
    month_of_year: Optional[int] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    occurrence_count: Optional[int] = None
    next_due_date: Optional[datetime] = None
    last_generated_date: Optional[datetime] = None
    generated_count: int = 0
    is_active: bool = True
    created_at: datetime
    updated_at: datetime
    preview_occurrences: Optional[List[datetime]] = Field(
        None, description="Upcoming occurrences, when requested"
    )

    class Config:
        from_attributes = True


class RecurringTaskWithDetails(RecurringTask):
    """Schema for a recurring task with its template and recent output."""

    template: Optional[TaskTemplate] = None
    upcoming_occurrences: List[datetime] = Field([], description="Upcoming occurrences")
    recent_tasks: List[Task] = Field([], description="Most recently generated tasks")

    class Config:
        from_attributes = True


class GenerateTasksRequest(BaseModel):
    """Schema for triggering task generation."""

    user_id: Optional[str] = Field(None, description="Restrict to one user's schedules")
    task_ids: Optional[List[int]] = Field(
        None, description="Explicit schedule IDs; otherwise all due schedules"
    )


class GenerationFailure(BaseModel):
    """A schedule that could not be processed during generation."""

    recurring_task_id: int
    code: str
    message: str
    details: Dict[str, Any] = {}


class GenerateTasksResponse(BaseModel):
    """Schema for task generation results."""

    generated_tasks: List[Task] = []
    count: int = 0
    failures: List[GenerationFailure] = []
    message: str = ""
