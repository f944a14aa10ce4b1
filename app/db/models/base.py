# File: app/db/models/base.py
"""
Base models and mixins for TaskCadence.

This module provides the foundation for all database models in the system:
- Base SQLAlchemy declarative class
- AbstractBase with the shared primary key, UUID and active flag
- TimestampMixin for created/updated timestamps
"""

from datetime import datetime, timezone
from typing import Any, Dict
import uuid

from sqlalchemy import Column, Integer, String, DateTime, Boolean, MetaData
from sqlalchemy.orm import declarative_base

Base = declarative_base(metadata=MetaData())


class TimestampMixin:
    """
    Mixin providing automatic timestamp functionality.

    Adds created_at and updated_at timestamps that are automatically
    maintained when records are created or updated.
    """

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class AbstractBase(Base):
    """
    Abstract base class for all model entities.

    Attributes:
        id: Primary key ID (auto-incremented)
        uuid: Unique identifier (UUID) for the record
        is_active: Soft-activation flag
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, default=lambda: str(uuid.uuid4()))
    is_active = Column(Boolean, default=True, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the model instance to a dictionary.

        Returns:
            Dictionary representation of the model instance
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            result[column.name] = value
        return result
