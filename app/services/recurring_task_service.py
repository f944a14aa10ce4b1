# app/services/recurring_task_service.py
"""
Recurring Task service for TaskCadence.

This module manages recurring-task schedules and their templates, previews
upcoming occurrences, and generates concrete tasks for schedules that are
due. All date arithmetic is delegated to the recurrence engine.
"""

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.events import (
    DomainEvent,
    RecurringTaskCompleted,
    RecurringTaskCreated,
    RecurringTaskGenerated,
)
from app.core.exceptions import (
    BusinessRuleException,
    DatabaseException,
    EntityNotFoundException,
    InvalidPatternError,
    RecurrenceOverflowError,
    TaskCadenceException,
)
from app.db.models.recurring_task import RecurringTask, Task, TaskTemplate
from app.recurrence import (
    RecurrencePattern,
    compute_next,
    encode_days_of_week,
    generate_occurrences,
    occurs_after,
    parse_days_of_week,
)
from app.repositories.recurring_task_repository import (
    RecurringTaskRepository,
    TaskRepository,
    TaskTemplateRepository,
)
from app.schemas.recurring_task import (
    RecurrencePreviewRequest,
    RecurringTaskCreate,
    RecurringTaskUpdate,
    TaskTemplateCreate,
    TaskTemplateUpdate,
)
from app.services.base_service import BaseService

logger = logging.getLogger(__name__)

PATTERN_FIELDS = (
    "frequency",
    "interval",
    "days_of_week",
    "day_of_month",
    "month_of_year",
    "end_date",
    "occurrence_count",
)


class RecurringTaskService(BaseService[RecurringTask]):
    """
    Service for managing recurring tasks in the TaskCadence system.

    Provides functionality for:
    - Task template and recurring-task schedule management
    - Occurrence previews for patterns being edited
    - Generation of tasks for due schedules
    """

    def __init__(self, session: Session, repository=None, event_bus=None):
        """
        Initialize the RecurringTaskService.

        Args:
            session: Database session for persistence operations
            repository: Optional recurring-task repository
            event_bus: Optional event bus for domain events
        """
        super().__init__(
            session,
            repository_class=RecurringTaskRepository,
            repository=repository,
            event_bus=event_bus,
        )
        self.template_repository = TaskTemplateRepository(session)
        self.task_repository = TaskRepository(session)

    # --- Templates ---

    def create_template(self, template_in: TaskTemplateCreate) -> TaskTemplate:
        """Create a task template."""
        with self.transaction():
            template = self.template_repository.create(template_in.model_dump())
        self._log_operation("create", "TaskTemplate", template.id)
        return template

    def list_templates(
        self, user_id: Optional[str] = None, skip: int = 0, limit: int = 100
    ) -> List[TaskTemplate]:
        """List task templates, optionally for one user."""
        filters = {"user_id": user_id} if user_id is not None else {}
        return self.template_repository.list(skip=skip, limit=limit, **filters)

    def get_template(self, template_id: int) -> TaskTemplate:
        """
        Get a task template by ID.

        Raises:
            EntityNotFoundException: If the template does not exist
        """
        return self._get_template(template_id)

    def update_template(
        self, template_id: int, template_in: TaskTemplateUpdate
    ) -> TaskTemplate:
        """
        Update a task template.

        Tasks generated later pick up the new values; tasks already generated
        keep the values they were created with.
        """
        update_data = template_in.model_dump(exclude_unset=True)
        # name and priority are required columns
        for field in ("name", "priority"):
            if field in update_data and update_data[field] is None:
                del update_data[field]

        with self.transaction():
            self._get_template(template_id)
            template = self.template_repository.update(template_id, update_data)

        self._log_operation("update", "TaskTemplate", template_id)
        return template

    def delete_template(self, template_id: int) -> bool:
        """
        Delete a task template.

        Raises:
            EntityNotFoundException: If the template does not exist
            BusinessRuleException: If any recurring task still uses the template
        """
        with self.transaction():
            self._get_template(template_id)
            in_use = self.repository.count(template_id=template_id)
            if in_use:
                raise BusinessRuleException(
                    "Template is used by recurring tasks",
                    rule_name="TEMPLATE_IN_USE",
                    details={
                        "template_id": template_id,
                        "recurring_tasks": in_use,
                        "active_recurring_tasks": self.repository.count(
                            template_id=template_id, is_active=True
                        ),
                    },
                )
            self.template_repository.delete(template_id)

        self._log_operation("delete", "TaskTemplate", template_id)
        return True

    # --- Recurring tasks ---

    def create_recurring_task(
        self, task_in: RecurringTaskCreate, now: datetime
    ) -> RecurringTask:
        """
        Create a recurring-task schedule.

        Args:
            task_in: Schedule data including the recurrence pattern
            now: Current time, used when no start date is supplied

        Returns:
            Created recurring task

        Raises:
            EntityNotFoundException: If the template does not exist
            InvalidPatternError: If the pattern is invalid
            MalformedSerializedPatternError: If days_of_week is not a JSON array
            BusinessRuleException: If the template belongs to another user or
                the first due date falls after the end date
        """
        pattern = task_in.to_pattern(strict=True, occurrence_count=task_in.occurrence_count)

        with self.transaction():
            template = self._get_template(task_in.template_id)
            if template.user_id != task_in.user_id:
                raise BusinessRuleException(
                    "Template belongs to a different user",
                    rule_name="TEMPLATE_OWNERSHIP",
                    details={"template_id": template.id},
                )

            start_date = task_in.start_date or now
            next_due_date = task_in.next_due_date or start_date
            if pattern.end_date and occurs_after(next_due_date, pattern.end_date):
                raise BusinessRuleException(
                    "First due date falls after the end date",
                    rule_name="DUE_AFTER_END",
                    details={
                        "next_due_date": next_due_date.isoformat(),
                        "end_date": pattern.end_date.isoformat(),
                    },
                )

            recurring_task = self.repository.create(
                {
                    "user_id": task_in.user_id,
                    "template_id": template.id,
                    "start_date": start_date,
                    "next_due_date": next_due_date,
                    "generated_count": 0,
                    "is_active": True,
                    **self._pattern_columns(pattern),
                }
            )

        self._log_operation("create", "RecurringTask", recurring_task.id)
        self._publish(
            RecurringTaskCreated(
                recurring_task_id=recurring_task.id,
                template_id=recurring_task.template_id,
                user_id=recurring_task.user_id,
            )
        )
        return recurring_task

    def get_recurring_task(self, recurring_task_id: int) -> RecurringTask:
        """
        Get a recurring task or raise EntityNotFoundException.
        """
        return self.get_entity_or_404(recurring_task_id)

    def get_recurring_task_with_details(self, recurring_task_id: int) -> Dict[str, Any]:
        """
        Get a recurring task with its template, upcoming occurrences and
        most recently generated tasks.

        Raises:
            EntityNotFoundException: If the recurring task does not exist
        """
        recurring_task = self.get_recurring_task(recurring_task_id)
        result = recurring_task.to_dict()
        result["template"] = recurring_task.template
        result["upcoming_occurrences"] = self.upcoming_occurrences(recurring_task)
        result["recent_tasks"] = self.task_repository.find_by_recurring_task(
            recurring_task.id
        )
        return result

    def list_recurring_tasks(
        self, skip: int = 0, limit: int = 100, preview: bool = False, **filters
    ) -> List[Dict[str, Any]]:
        """
        List recurring tasks ordered by next due date.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            preview: Attach upcoming occurrences to each schedule
            **filters: Equality filters (e.g. user_id, is_active)
        """
        results = []
        for recurring_task in self.repository.list(skip=skip, limit=limit, **filters):
            item = recurring_task.to_dict()
            if preview:
                item["preview_occurrences"] = self.upcoming_occurrences(recurring_task)
            results.append(item)
        return results

    def update_recurring_task(
        self, recurring_task_id: int, task_in: RecurringTaskUpdate
    ) -> RecurringTask:
        """
        Update a recurring-task schedule.

        Pattern fields are merged with the stored values and the result is
        validated as a whole. next_due_date is kept unless supplied.

        Raises:
            EntityNotFoundException: If the schedule or new template does not exist
            InvalidPatternError: If the merged pattern is invalid
            BusinessRuleException: If an active schedule would have no due date
                or a due date after its end date
        """
        update_data = task_in.model_dump(exclude_unset=True)

        with self.transaction():
            recurring_task = self.get_recurring_task(recurring_task_id)

            if "template_id" in update_data:
                template = self._get_template(update_data["template_id"])
                if template.user_id != recurring_task.user_id:
                    raise BusinessRuleException(
                        "Template belongs to a different user",
                        rule_name="TEMPLATE_OWNERSHIP",
                        details={"template_id": template.id},
                    )

            if any(field in update_data for field in PATTERN_FIELDS):
                merged = {
                    field: update_data.get(field, getattr(recurring_task, field))
                    for field in PATTERN_FIELDS
                }
                pattern = RecurrencePattern.create(
                    frequency=merged["frequency"],
                    interval=merged["interval"],
                    days_of_week=parse_days_of_week(merged["days_of_week"]),
                    day_of_month=merged["day_of_month"],
                    month_of_year=merged["month_of_year"],
                    end_date=merged["end_date"],
                    occurrence_count=merged["occurrence_count"],
                )
                update_data.update(self._pattern_columns(pattern))

            is_active = update_data.get("is_active", recurring_task.is_active)
            next_due_date = update_data.get("next_due_date", recurring_task.next_due_date)
            if is_active and next_due_date is None:
                raise BusinessRuleException(
                    "An active recurring task needs a next due date",
                    rule_name="ACTIVE_WITHOUT_DUE_DATE",
                )

            end_date = update_data.get("end_date", recurring_task.end_date)
            if is_active and end_date and occurs_after(next_due_date, end_date):
                raise BusinessRuleException(
                    "Next due date falls after the end date",
                    rule_name="DUE_AFTER_END",
                    details={
                        "next_due_date": next_due_date.isoformat(),
                        "end_date": end_date.isoformat(),
                    },
                )

            recurring_task = self.repository.update(recurring_task_id, update_data)

        self._log_operation(
            "update", "RecurringTask", recurring_task_id, {"fields": sorted(update_data)}
        )
        return recurring_task

    def delete_recurring_task(self, recurring_task_id: int) -> bool:
        """
        Delete a schedule. Tasks it generated are kept and detached.

        Raises:
            EntityNotFoundException: If the recurring task does not exist
        """
        with self.transaction():
            recurring_task = self.get_recurring_task(recurring_task_id)
            for task in recurring_task.tasks:
                task.recurring_task_id = None
            self.repository.delete(recurring_task_id)

        self._log_operation("delete", "RecurringTask", recurring_task_id)
        return True

    # --- Occurrences ---

    def preview_occurrences(self, preview_in: RecurrencePreviewRequest) -> List[datetime]:
        """
        Preview upcoming occurrences for a pattern being edited.

        Invalid patterns are expected while a user is still typing, so they
        produce an empty preview instead of an error.
        """
        count = preview_in.count
        if count is None:
            count = settings.RECURRENCE_PREVIEW_DEFAULT_COUNT
        count = min(count, settings.RECURRENCE_PREVIEW_MAX_COUNT)

        try:
            pattern = preview_in.to_pattern()
            return generate_occurrences(preview_in.start_date, pattern, count)
        except (InvalidPatternError, RecurrenceOverflowError) as e:
            logger.debug(f"No preview for invalid pattern: {e.message}")
            return []

    def upcoming_occurrences(
        self, recurring_task: RecurringTask, count: Optional[int] = None
    ) -> List[datetime]:
        """
        Occurrences after a schedule's next due date, within its remaining
        occurrence budget and end date.
        """
        if not recurring_task.is_active or recurring_task.next_due_date is None:
            return []

        limit = count if count is not None else settings.UPCOMING_OCCURRENCES_COUNT
        if recurring_task.occurrence_count is not None:
            # next_due_date itself is one of the remaining occurrences
            remaining = recurring_task.occurrence_count - (recurring_task.generated_count or 0) - 1
            limit = max(0, min(limit, remaining))

        try:
            pattern = replace(recurring_task.to_pattern(), occurrence_count=None)
            return generate_occurrences(recurring_task.next_due_date, pattern, limit)
        except (InvalidPatternError, RecurrenceOverflowError) as e:
            logger.warning(
                f"Recurring task {recurring_task.id} has no upcoming occurrences: {e.message}"
            )
            return []

    # --- Generation ---

    def generate_due_tasks(
        self,
        now: datetime,
        user_id: Optional[str] = None,
        task_ids: Optional[Sequence[int]] = None,
    ) -> Dict[str, Any]:
        """
        Generate tasks for due recurring-task schedules.

        Each schedule is handled in its own transaction. A schedule that fails
        is rolled back and reported in `failures`; the rest of the batch still
        runs.

        Args:
            now: Current time; schedules due at or before it are processed
            user_id: Optional owner filter
            task_ids: Explicit schedules to process regardless of due date

        Returns:
            Dictionary with generated tasks, count, failures and a message
        """
        if task_ids:
            schedules = self.repository.find_by_ids(task_ids, user_id=user_id)
        else:
            schedules = self.repository.find_due(
                now, user_id=user_id, limit=settings.RECURRENCE_GENERATE_BATCH_LIMIT
            )

        logger.info(f"Processing {len(schedules)} recurring task(s)")

        # Read IDs up front; a rollback expires every loaded schedule
        schedule_ids = [schedule.id for schedule in schedules]

        generated_tasks: List[Task] = []
        failures: List[Dict[str, Any]] = []

        for schedule_id in schedule_ids:
            try:
                with self.transaction():
                    task, events = self._generate_next_task(schedule_id, now)
            except TaskCadenceException as e:
                logger.error(f"Error processing recurring task {schedule_id}: {e.message}")
                failures.append(self._failure(schedule_id, e))
                continue

            for event in events:
                self._publish(event)
            if task is not None:
                generated_tasks.append(task)

        count = len(generated_tasks)
        return {
            "generated_tasks": generated_tasks,
            "count": count,
            "failures": failures,
            "message": f"Generated {count} tasks" if count else "No tasks were generated",
        }

    def _generate_next_task(
        self, recurring_task_id: int, now: datetime
    ) -> Tuple[Optional[Task], List[DomainEvent]]:
        """
        Create the task for a schedule's current due date and advance it.

        Events are returned rather than published so the caller can publish
        them once the transaction has committed.

        Returns:
            The created task (None when the schedule has already ended) and
            the events to publish
        """
        recurring_task = self.get_recurring_task(recurring_task_id)

        if not recurring_task.is_active:
            raise BusinessRuleException(
                "Cannot generate tasks from an inactive recurring task",
                rule_name="INACTIVE_SCHEDULE",
                details={"recurring_task_id": recurring_task.id},
            )
        if recurring_task.next_due_date is None:
            raise BusinessRuleException(
                "Recurring task has no next due date",
                rule_name="MISSING_DUE_DATE",
                details={"recurring_task_id": recurring_task.id},
            )

        pattern = recurring_task.to_pattern()
        due_date = recurring_task.next_due_date

        if recurring_task.end_date and occurs_after(due_date, recurring_task.end_date):
            logger.info(f"Recurring task {recurring_task.id} ended before {due_date}")
            self.repository.update(
                recurring_task.id, {"is_active": False, "next_due_date": None}
            )
            return None, []

        template = self._get_template(recurring_task.template_id)

        task = self.task_repository.create(
            {
                "user_id": recurring_task.user_id,
                "title": template.name,
                "description": template.description,
                "priority": template.priority,
                "estimated_duration": template.estimated_duration,
                "due_date": due_date,
                "completed": False,
                "recurring_task_id": recurring_task.id,
            }
        )

        generated_count = (recurring_task.generated_count or 0) + 1
        next_due_date = compute_next(due_date, pattern)

        finished = (
            recurring_task.occurrence_count is not None
            and generated_count >= recurring_task.occurrence_count
        ) or (
            recurring_task.end_date is not None
            and occurs_after(next_due_date, recurring_task.end_date)
        )

        self.repository.update(
            recurring_task.id,
            {
                "last_generated_date": now,
                "generated_count": generated_count,
                "next_due_date": None if finished else next_due_date,
                "is_active": not finished,
            },
        )

        logger.info(
            f"Generated task {task.id} from recurring task {recurring_task.id} "
            f"due {due_date}; next due {None if finished else next_due_date}"
        )
        events: List[DomainEvent] = [
            RecurringTaskGenerated(
                recurring_task_id=recurring_task.id,
                task_id=task.id,
                due_date=due_date,
                next_due_date=None if finished else next_due_date,
                user_id=recurring_task.user_id,
            )
        ]
        if finished:
            events.append(
                RecurringTaskCompleted(
                    recurring_task_id=recurring_task.id,
                    generated_count=generated_count,
                    user_id=recurring_task.user_id,
                )
            )
        return task, events

    # --- Helpers ---

    def _get_template(self, template_id: int) -> TaskTemplate:
        template = self.template_repository.get_by_id(template_id)
        if not template:
            raise EntityNotFoundException("TaskTemplate", template_id)
        return template

    @staticmethod
    def _pattern_columns(pattern: RecurrencePattern) -> Dict[str, Any]:
        """Column values for a validated pattern, days_of_week as JSON text."""
        return {
            "frequency": pattern.frequency.value,
            "interval": pattern.interval,
            "days_of_week": encode_days_of_week(pattern.days_of_week),
            "day_of_month": pattern.day_of_month,
            "month_of_year": pattern.month_of_year,
            "end_date": pattern.end_date,
            "occurrence_count": pattern.occurrence_count,
        }

    @staticmethod
    def _failure(recurring_task_id: int, error: TaskCadenceException) -> Dict[str, Any]:
        return {
            "recurring_task_id": recurring_task_id,
            "code": error.code,
            "message": error.message,
            "details": error.details,
        }

    def _transform_error(self, error: Exception) -> Optional[TaskCadenceException]:
        """Surface database failures as DatabaseException."""
        if isinstance(error, SQLAlchemyError):
            return DatabaseException(f"Database error: {error}")
        return None
