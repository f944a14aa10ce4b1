# File: app/schemas/__init__.py
"""
Schemas package for the TaskCadence API.

This module exports Pydantic models used for request validation and
response serialization.
"""

from .recurring_task import (
    GenerateTasksRequest,
    GenerateTasksResponse,
    GenerationFailure,
    RecurrencePatternFields,
    RecurrencePreviewRequest,
    RecurrencePreviewResponse,
    RecurringTask,
    RecurringTaskCreate,
    RecurringTaskUpdate,
    RecurringTaskWithDetails,
    Task,
    TaskTemplate,
    TaskTemplateCreate,
    TaskTemplateUpdate,
)

__all__ = [
    # Recurrence patterns
    'RecurrencePatternFields', 'RecurrencePreviewRequest', 'RecurrencePreviewResponse',

    # Recurring tasks
    'RecurringTask', 'RecurringTaskCreate', 'RecurringTaskUpdate', 'RecurringTaskWithDetails',
    'GenerateTasksRequest', 'GenerateTasksResponse', 'GenerationFailure',

    # Templates and tasks
    'TaskTemplate', 'TaskTemplateCreate', 'TaskTemplateUpdate', 'Task',
]
