"""Domain exception hierarchy for type-safe error handling.

This module provides the base exception hierarchy for the deletion engine.
Exceptions include structured error codes and context for consistent
API error handling and logging.

Example:
    >>> from gmao.foundation.domain.exceptions import NotFoundError
    >>> raise NotFoundError("Equipment", "eq-42")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConflictError",
    "DeletionBlockedError",
    "DeletionStepError",
    "DomainError",
    "EntityLockedError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "StoreQueryError",
    "ValidationError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Provides error code and structured context for debugging. All domain
    exceptions inherit from this class to enable consistent API error
    handling and logging.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (entity ids, table names).

    Example:
        >>> raise DomainError("Operation failed", context={"entity_id": "123"})
        DomainError: Operation failed (entity_id=123)
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize domain error with message and optional context.

        Args:
            message: Human-readable error description.
            context: Structured debugging information. Keys should be snake_case.
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """String representation including context for logging."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class NotFoundError(DomainError):
    """Raised when a requested resource does not exist.

    Maps to HTTP 404 Not Found. Use when the deletion target or a
    deletion session cannot be found by identifier.

    Attributes:
        error_code: "RESOURCE_NOT_FOUND" (class constant).
        resource_type: Type of missing resource.
        resource_id: Identifier of missing resource.

    Example:
        >>> raise NotFoundError("Equipment", "eq-42")
        NotFoundError: Equipment not found: eq-42
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        **extra_context: Any,
    ) -> None:
        """Initialize not found error.

        Args:
            resource_type: Type of resource (e.g., "Equipment", "DeletionSession").
            resource_id: Identifier of missing resource.
            **extra_context: Additional debugging context.
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type} not found: {resource_id}"
        context = {
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            **extra_context,
        }
        super().__init__(message, context)


class ValidationError(DomainError):
    """Raised when input fails domain validation rules.

    Maps to HTTP 422 Unprocessable Entity.

    Attributes:
        error_code: "VALIDATION_ERROR" (class constant).
        field: Field path that failed validation.
        reason: Human-readable validation failure reason.

    Example:
        >>> raise ValidationError("entity_type", "Unknown entity type 'pump'")
        ValidationError: Validation failed for 'entity_type': Unknown entity type 'pump'
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        reason: str,
        **extra_context: Any,
    ) -> None:
        self.field = field
        self.reason = reason
        message = f"Validation failed for '{field}': {reason}"
        context = {
            "field": field,
            "reason": reason,
            **extra_context,
        }
        super().__init__(message, context)


class ConflictError(DomainError):
    """Raised when operation conflicts with current system state.

    Maps to HTTP 409 Conflict.

    Attributes:
        error_code: "CONFLICT" (class constant).
        reason: Description of the conflict.
    """

    error_code: str = "CONFLICT"

    def __init__(
        self,
        reason: str,
        **context: Any,
    ) -> None:
        """Initialize conflict error.

        Args:
            reason: Description of conflict.
            **context: Additional debugging context.
        """
        self.reason = reason
        message = f"Conflict: {reason}"
        super().__init__(message, context)


class InvalidStateTransitionError(ConflictError):
    """Raised when a deletion session transition is not allowed.

    Maps to HTTP 409 Conflict. Inherits from ConflictError for
    consistent error handling at the API layer.

    Example:
        >>> raise InvalidStateTransitionError(
        ...     "Cannot confirm deletion: current state is ANALYZING"
        ... )
    """

    error_code: str = "INVALID_STATE_TRANSITION"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, **context)


class EntityLockedError(ConflictError):
    """Raised when another deletion already holds the target entity.

    Maps to HTTP 409 Conflict.

    Attributes:
        error_code: "ENTITY_LOCKED" (class constant).
        entity_type: Kind of the locked entity.
        entity_id: Identifier of the locked entity.
    """

    error_code: str = "ENTITY_LOCKED"

    def __init__(self, entity_type: str, entity_id: str, **context: Any) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} is already being deleted",
            entity_type=entity_type,
            entity_id=entity_id,
            **context,
        )


class StoreQueryError(DomainError):
    """Raised by data store adapters when a query or mutation fails.

    During analysis this error is recoverable: callers degrade the affected
    count to zero and record a warning. During execution it is wrapped in
    :class:`DeletionStepError`.

    Attributes:
        error_code: "STORE_QUERY_ERROR" (class constant).
        table: Table the failing statement targeted.
        operation: Store primitive name (select, count, delete, insert).
    """

    error_code: str = "STORE_QUERY_ERROR"

    def __init__(self, table: str, operation: str, reason: str, **extra_context: Any) -> None:
        self.table = table
        self.operation = operation
        message = f"Store {operation} on '{table}' failed: {reason}"
        context = {"table": table, "operation": operation, **extra_context}
        super().__init__(message, context)


class DeletionBlockedError(DomainError):
    """Raised when executing a plan whose target may not be deleted.

    A blocked plan is a normal analysis outcome; this error only fires when
    a caller tries to execute it anyway. Maps to HTTP 409 Conflict.

    Attributes:
        error_code: "DELETION_BLOCKED" (class constant).
        reason: The plan's human-readable blocking reason.
    """

    error_code: str = "DELETION_BLOCKED"

    def __init__(self, reason: str, **extra_context: Any) -> None:
        self.reason = reason
        super().__init__(f"Deletion blocked: {reason}", extra_context)


class DeletionStepError(DomainError):
    """Raised when a cascade step fails during execution.

    Execution halts at the failed step. ``applied_steps`` lists the steps
    that completed before the failure; ``rolled_back`` tells whether the
    store undid them.

    Attributes:
        error_code: "DELETION_STEP_FAILED" (class constant).
        step: Name of the failed step.
        applied_steps: Names of the steps committed before the failure.
        rolled_back: True when the store transaction was rolled back.
    """

    error_code: str = "DELETION_STEP_FAILED"

    def __init__(
        self,
        step: str,
        reason: str,
        applied_steps: list[str] | None = None,
        rolled_back: bool = False,
        **extra_context: Any,
    ) -> None:
        self.step = step
        self.applied_steps = list(applied_steps or [])
        self.rolled_back = rolled_back
        message = f"Deletion step '{step}' failed: {reason}"
        context = {
            "step": step,
            "applied_steps": self.applied_steps,
            "rolled_back": rolled_back,
            **extra_context,
        }
        super().__init__(message, context)
