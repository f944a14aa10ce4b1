"""
Initializes the models package for SQLAlchemy declarative base.

Importing the model modules here ensures that SQLAlchemy's metadata is
populated with all table definitions when `Base.metadata.create_all()`
is called.
"""

from app.db.models.base import Base, AbstractBase, TimestampMixin
from app.db.models.recurring_task import TaskTemplate, RecurringTask, Task

__all__ = [
    "Base",
    "AbstractBase",
    "TimestampMixin",
    "TaskTemplate",
    "RecurringTask",
    "Task",
]
