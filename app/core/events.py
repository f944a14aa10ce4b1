# File: app/core/events.py

from typing import Dict, Any, Callable, List, Optional, Type, Union
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
import uuid
import logging

logger = logging.getLogger(__name__)


# --- Base DomainEvent ---
@dataclass(eq=False)
class DomainEvent:
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["event_type"] = self.__class__.__name__

        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
        return result


# --- Recurring Task Event Definitions ---
@dataclass(eq=False)
class RecurringTaskCreated(DomainEvent):
    recurring_task_id: int = 0
    template_id: int = 0
    user_id: Optional[str] = None


@dataclass(eq=False)
class RecurringTaskGenerated(DomainEvent):
    recurring_task_id: int = 0
    task_id: int = 0
    due_date: Optional[datetime] = None
    next_due_date: Optional[datetime] = None
    user_id: Optional[str] = None


@dataclass(eq=False)
class RecurringTaskCompleted(DomainEvent):
    """Emitted when a schedule reaches its end date or occurrence count."""

    recurring_task_id: int = 0
    generated_count: int = 0
    user_id: Optional[str] = None


class EventBus:
    """
    Simple in-process event bus.

    Handlers are called synchronously in subscription order; a failing handler
    is logged and never interrupts the publisher.
    """

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = defaultdict(list)

    def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all registered handlers.

        Args:
            event: The domain event to publish
        """
        event_type = type(event).__name__
        logger.debug(f"Publishing event {event_type} ID {event.event_id}")
        for handler in list(self.subscribers.get(event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in handler {getattr(handler, '__name__', repr(handler))} "
                    f"for {event_type} ID {event.event_id}: {e}",
                    exc_info=True,
                )

    def subscribe(self, event_type: Union[str, Type[DomainEvent]], handler: Callable) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: Event class or event type name string
            handler: Callable to handle the event
        """
        event_type_name = event_type.__name__ if isinstance(event_type, type) else str(event_type)
        self.subscribers[event_type_name].append(handler)
        logger.debug(f"Subscribed handler {getattr(handler, '__name__', repr(handler))} to {event_type_name}")


# Global event bus instance
global_event_bus = EventBus()
