# File: app/services/base_service.py

from typing import TypeVar, Generic, Optional, Type, Dict, Any
from contextlib import contextmanager
from sqlalchemy.orm import Session
import logging
from datetime import datetime

from app.core.exceptions import TaskCadenceException, EntityNotFoundException
from app.repositories.base_repository import BaseRepository

T = TypeVar("T")
logger = logging.getLogger(__name__)


class BaseService(Generic[T]):
    """
    Base service for all TaskCadence services.

    Provides common functionality including:
    - Transaction management
    - Error handling and standardization
    - Logging
    - Basic read operations
    - Event publishing
    """

    def __init__(
            self,
            session: Session,
            repository_class: Optional[Type[BaseRepository]] = None,
            repository: Optional[BaseRepository] = None,
            event_bus=None,
    ):
        """
        Initialize service with dependencies.

        Args:
            session: Database session for persistence operations
            repository_class: Repository class to instantiate (optional if repository is provided)
            repository: Repository instance (optional if repository_class is provided)
            event_bus: Optional event bus for publishing domain events
        """
        self.session = session

        if repository is not None:
            self.repository = repository
        elif repository_class is not None:
            self.repository = repository_class(session)
        else:
            # Subclasses may initialize repository directly
            self.repository = None

        self.event_bus = event_bus

    @contextmanager
    def transaction(self):
        """
        Provide a transactional scope around operations.

        Raises:
            Exception: Any exception that occurs during transaction execution
        """
        try:
            yield
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            if isinstance(e, TaskCadenceException):
                logger.warning(f"Transaction rolled back: {e.message}")
            else:
                logger.error(f"Transaction failed: {str(e)}", exc_info=True)

            transformed = self._transform_error(e)
            if transformed:
                raise transformed from e
            raise

    def get_by_id(self, id: int) -> Optional[T]:
        """
        Get entity by ID.

        Args:
            id: Entity ID to retrieve

        Returns:
            Entity if found, None otherwise
        """
        return self.repository.get_by_id(id)

    def get_entity_or_404(self, id: int) -> T:
        """
        Get an entity by ID or raise EntityNotFoundException.

        Raises:
            EntityNotFoundException: If entity is not found
        """
        entity = self.get_by_id(id)
        if not entity:
            entity_name = self.repository.model.__name__ if self.repository else "Entity"
            raise EntityNotFoundException(entity_name, id)
        return entity

    def _publish(self, event) -> None:
        if self.event_bus:
            self.event_bus.publish(event)

    def _log_operation(
            self,
            operation: str,
            entity_type: str,
            entity_id: Any = None,
            details: Dict[str, Any] = None,
    ) -> None:
        """
        Log an operation for auditing purposes.

        Args:
            operation: Operation name (create, update, delete, etc.)
            entity_type: Type of entity being operated on
            entity_id: Optional entity ID
            details: Optional operation details
        """
        log_data = {
            "operation": operation,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "timestamp": datetime.now().isoformat(),
            "details": details,
        }

        logger.info(f"{operation.upper()} {entity_type} {entity_id}", extra=log_data)

    def _transform_error(self, error: Exception) -> Optional[TaskCadenceException]:
        """
        Transform generic exceptions to specific domain exceptions.

        Override this method in service subclasses to handle
        specific error cases.

        Args:
            error: The original exception

        Returns:
            Transformed domain exception, or None to re-raise original
        """
        return None
