# app/db/models/recurring_task.py
"""
Database models for recurring tasks in TaskCadence.

This module defines the SQLAlchemy models for task templates, recurring-task
schedules and the concrete tasks generated from them.
"""

from sqlalchemy import (
    Column,
    String,
    DateTime,
    Boolean,
    Integer,
    ForeignKey,
    Text,
)
from sqlalchemy.orm import relationship, validates

from app.db.models.base import AbstractBase, TimestampMixin
from app.recurrence.pattern import (
    RecurrenceFrequency,
    RecurrencePattern,
    decode_days_of_week,
    parse_days_of_week,
)


class TaskTemplate(AbstractBase, TimestampMixin):
    """
    Model for task templates.

    A template carries the task fields copied into every generated task.
    """

    __tablename__ = "task_templates"

    user_id = Column(String(100), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(20), nullable=False, default="medium")
    estimated_duration = Column(Integer, nullable=True)  # In minutes

    recurring_tasks = relationship("RecurringTask", back_populates="template")

    @validates("priority")
    def validate_priority(self, key, value):
        """Validate priority value."""
        valid_priorities = ["low", "medium", "high"]
        if value is None:
            return "medium"
        if value.lower() not in valid_priorities:
            raise ValueError(
                f"Invalid priority: {value}. Must be one of {valid_priorities}"
            )
        return value.lower()


class RecurringTask(AbstractBase, TimestampMixin):
    """
    Model for recurring-task schedules.

    Stores the recurrence pattern columns alongside the scheduling state.
    days_of_week is kept as a JSON array string, e.g. "[1, 5]".
    """

    __tablename__ = "recurring_tasks"

    user_id = Column(String(100), nullable=False, index=True)
    template_id = Column(Integer, ForeignKey("task_templates.id"), nullable=False)

    frequency = Column(String(20), nullable=False, default=RecurrenceFrequency.DAILY.value)
    interval = Column(Integer, nullable=False, default=1)
    days_of_week = Column(Text, nullable=True)
    day_of_month = Column(Integer, nullable=True)
    month_of_year = Column(Integer, nullable=True)

    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    occurrence_count = Column(Integer, nullable=True)

    next_due_date = Column(DateTime, nullable=True, index=True)
    last_generated_date = Column(DateTime, nullable=True)
    generated_count = Column(Integer, nullable=False, default=0)

    template = relationship("TaskTemplate", back_populates="recurring_tasks")
    tasks = relationship("Task", back_populates="recurring_task")

    @validates("frequency")
    def validate_frequency(self, key, value):
        """Validate and normalise frequency value."""
        return RecurrenceFrequency.coerce(value).value

    @validates("days_of_week")
    def validate_days_of_week(self, key, value):
        """Reject malformed JSON on write; reads stay lenient."""
        if value is not None:
            parse_days_of_week(value)
        return value

    def to_pattern(self) -> RecurrencePattern:
        """
        Build the engine pattern from the stored columns.

        A malformed days_of_week value degrades to "no specific days".

        Raises:
            InvalidPatternError: If the stored columns violate pattern invariants
        """
        return RecurrencePattern.create(
            frequency=self.frequency,
            interval=self.interval if self.interval is not None else 1,
            days_of_week=decode_days_of_week(self.days_of_week),
            day_of_month=self.day_of_month,
            month_of_year=self.month_of_year,
            end_date=self.end_date,
            occurrence_count=self.occurrence_count,
        )


class Task(AbstractBase, TimestampMixin):
    """
    Model for concrete task instances.
    """

    __tablename__ = "tasks"

    user_id = Column(String(100), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(String(20), nullable=False, default="medium")
    estimated_duration = Column(Integer, nullable=True)
    due_date = Column(DateTime, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)

    recurring_task_id = Column(Integer, ForeignKey("recurring_tasks.id"), nullable=True)

    recurring_task = relationship("RecurringTask", back_populates="tasks")
