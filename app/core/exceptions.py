# File: app/core/exceptions.py

from typing import Dict, Any, List, Optional
from datetime import datetime


class TaskCadenceException(Exception):
    """Base exception for all TaskCadence errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a TaskCadence exception.

        Args:
            message: Human-readable error message
            code: Optional machine-processable error code
            details: Additional error details
        """
        self.message = message
        self.code = code or "GENERIC_ERROR"
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for API responses.

        Returns:
            Dictionary representation of the exception
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "timestamp": datetime.now().isoformat(),
        }


# Domain-specific exceptions
class DomainException(TaskCadenceException):
    """Base exception for domain-related errors."""

    CODE_PREFIX = "DOMAIN_"


class EntityNotFoundException(DomainException):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity_type: str, entity_id: Any):
        super().__init__(
            f"{entity_type} with ID {entity_id} not found",
            f"{self.CODE_PREFIX}001",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


# Recurrence exceptions
class RecurrenceException(TaskCadenceException):
    """Base exception for recurrence-engine errors."""

    CODE_PREFIX = "RECURRENCE_"


class InvalidPatternError(RecurrenceException):
    """Raised when a recurrence pattern violates a structural invariant."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {}
        if field is not None:
            details["field"] = field
            details["value"] = value
        super().__init__(message, f"{self.CODE_PREFIX}001", details)
        self.field = field


class MalformedSerializedPatternError(RecurrenceException):
    """Raised when a serialized pattern field cannot be decoded."""

    def __init__(self, field: str, raw_value: Any, reason: Optional[str] = None):
        details = {"field": field, "raw_value": raw_value}
        message = f"Malformed serialized value for {field}: {raw_value!r}"
        if reason:
            details["reason"] = reason
            message += f" - {reason}"
        super().__init__(message, f"{self.CODE_PREFIX}002", details)
        self.field = field


class RecurrenceProgressError(RecurrenceException):
    """Raised when occurrence generation fails to move forward in time."""

    def __init__(self, previous: Any, computed: Any):
        super().__init__(
            f"Occurrence {computed} does not advance past {previous}",
            f"{self.CODE_PREFIX}003",
            {"previous": str(previous), "computed": str(computed)},
        )


class RecurrenceOverflowError(RecurrenceException):
    """Raised when an occurrence would fall outside the supported calendar range."""

    def __init__(self, anchor: Any, frequency: Any, reason: str):
        super().__init__(
            f"Next {frequency} occurrence after {anchor} is outside the supported calendar range",
            f"{self.CODE_PREFIX}004",
            {"anchor": str(anchor), "frequency": str(frequency), "reason": reason},
        )


# Validation exceptions
class ValidationException(TaskCadenceException):
    """Raised when input validation fails."""

    def __init__(
        self, message: str, validation_errors: Optional[Dict[str, List[str]]] = None
    ):
        super().__init__(
            message, "VALIDATION_001", {"validation_errors": validation_errors or {}}
        )


# Business rule exceptions
class BusinessRuleException(TaskCadenceException):
    """Raised when a business rule or constraint is violated."""

    CODE_PREFIX = "BUSINESS_"

    def __init__(
        self,
        message: str,
        rule_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if rule_name:
            error_details["rule_name"] = rule_name
        super().__init__(message, f"{self.CODE_PREFIX}001", error_details)


class DatabaseException(TaskCadenceException):
    """
    Exception raised for database-related errors.
    """

    CODE_PREFIX = "DATABASE_"

    def __init__(
        self,
        message: str,
        entity_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if entity_type:
            error_details["entity_type"] = entity_type
        super().__init__(
            message=message, code=f"{self.CODE_PREFIX}001", details=error_details
        )
