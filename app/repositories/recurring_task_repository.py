# app/repositories/recurring_task_repository.py
"""
Repository implementations for recurring tasks, task templates and tasks.

This module provides data access via the repository pattern for the
recurring-task domain models.
"""

from typing import List, Optional, Sequence
from datetime import datetime
from sqlalchemy.orm import Session
from sqlalchemy import select

from app.repositories.base_repository import BaseRepository
from app.db.models.recurring_task import RecurringTask, TaskTemplate, Task


class RecurringTaskRepository(BaseRepository[RecurringTask]):
    """Repository for recurring-task schedule entities."""

    def __init__(self, session: Session):
        super().__init__(session, RecurringTask)

    def list(
        self, skip: int = 0, limit: int = 100, **filters
    ) -> List[RecurringTask]:
        """
        List recurring tasks ordered by next due date.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            **filters: Equality filters on model columns

        Returns:
            List of matching recurring tasks
        """
        stmt = select(self.model)

        for key, value in filters.items():
            if hasattr(self.model, key):
                stmt = stmt.where(getattr(self.model, key) == value)

        stmt = stmt.order_by(self.model.next_due_date.asc(), self.model.id.asc())
        stmt = stmt.offset(skip).limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def find_due(
        self, now: datetime, user_id: Optional[str] = None, limit: int = 500
    ) -> List[RecurringTask]:
        """
        Find active schedules whose next due date is at or before now.

        Args:
            now: Reference time supplied by the caller
            user_id: Optional owner filter
            limit: Maximum number of schedules to return

        Returns:
            Due schedules, oldest due date first
        """
        stmt = select(self.model).where(
            self.model.is_active.is_(True),
            self.model.next_due_date.is_not(None),
            self.model.next_due_date <= now,
        )
        if user_id is not None:
            stmt = stmt.where(self.model.user_id == user_id)

        stmt = stmt.order_by(self.model.next_due_date.asc(), self.model.id.asc())
        return list(self.session.execute(stmt.limit(limit)).scalars().all())

    def find_by_ids(
        self, ids: Sequence[int], user_id: Optional[str] = None
    ) -> List[RecurringTask]:
        """
        Find schedules by ID, optionally restricted to one owner.
        """
        if not ids:
            return []
        stmt = select(self.model).where(self.model.id.in_(list(ids)))
        if user_id is not None:
            stmt = stmt.where(self.model.user_id == user_id)
        stmt = stmt.order_by(self.model.id.asc())
        return list(self.session.execute(stmt).scalars().all())


class TaskTemplateRepository(BaseRepository[TaskTemplate]):
    """Repository for task template entities."""

    def __init__(self, session: Session):
        super().__init__(session, TaskTemplate)


class TaskRepository(BaseRepository[Task]):
    """Repository for concrete task entities."""

    def __init__(self, session: Session):
        super().__init__(session, Task)

    def find_by_recurring_task(
        self, recurring_task_id: int, limit: int = 5
    ) -> List[Task]:
        """
        Most recently created tasks generated by a schedule.
        """
        stmt = (
            select(self.model)
            .where(self.model.recurring_task_id == recurring_task_id)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())
