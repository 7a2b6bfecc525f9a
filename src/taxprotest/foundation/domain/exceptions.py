"""Domain exception hierarchy for type-safe error handling.

This module provides the base exception hierarchy for all domain errors.
Exceptions include structured error codes and context for consistent
API error handling and logging across the intake, protest and account
contexts.

Example:
    >>> from taxprotest.foundation.domain.exceptions import NotFoundError
    >>> raise NotFoundError("Protest", "7b0c1f52-8f0e-4c1e-9a51-3f3f6c3a2d10")
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConflictError",
    "DomainError",
    "InvalidStateTransitionError",
    "NotFoundError",
    "ValidationError",
    "WorkflowStepError",
]


class DomainError(Exception):
    """Base class for all domain errors.

    Provides error code and structured context for debugging. All business
    rule rejections inherit from this class to enable consistent API error
    handling and logging.

    Attributes:
        error_code: Machine-readable error code for client handling.
        message: Human-readable error description.
        context: Structured debugging information (record ids, field names).

    Example:
        >>> raise DomainError("Operation failed", context={"user_id": "123"})
        DomainError: Operation failed (user_id=123)
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
    """Raised when a requested record does not exist.

    Maps to HTTP 404 Not Found.

    Attributes:
        error_code: "RESOURCE_NOT_FOUND" (class constant).
        resource_type: Type of missing resource.
        resource_id: Identifier of missing resource.

    Example:
        >>> raise NotFoundError("Profile", "b5f1...")
        NotFoundError: Profile not found: b5f1...
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
            resource_type: Type of resource (e.g., "Profile", "Protest").
            resource_id: Identifier of the missing record.
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
        >>> raise ValidationError("email", "Email is required")
        ValidationError: Validation failed for 'email': Email is required
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        field: str,
        reason: str,
        **extra_context: Any,
    ) -> None:
        """Initialize validation error.

        Args:
            field: Field path that failed validation.
            reason: Human-readable validation failure reason.
            **extra_context: Additional debugging context.
        """
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
    """Raised when an operation conflicts with existing records.

    Maps to HTTP 409 Conflict. Used for duplicate emails, duplicate
    situs addresses and state transition conflicts.

    Attributes:
        error_code: "CONFLICT" (class constant).
        reason: Description of the conflict.

    Example:
        >>> raise ConflictError("Property already registered", situs_address="1 Main St")
        ConflictError: Conflict: Property already registered (situs_address=1 Main St)
    """

    error_code: str = "CONFLICT"

    def __init__(
        self,
        reason: str,
        **context: Any,
    ) -> None:
        """Initialize conflict error.

        Args:
            reason: Description of the conflict.
            **context: Additional debugging context.
        """
        self.reason = reason
        message = f"Conflict: {reason}"
        super().__init__(message, context)


class InvalidStateTransitionError(ConflictError):
    """Raised when a status change is not allowed from the current status.

    Maps to HTTP 409 Conflict.

    Example:
        >>> raise InvalidStateTransitionError("Cannot accept without an offer")
        InvalidStateTransitionError: Conflict: Cannot accept without an offer
    """

    error_code: str = "INVALID_STATE_TRANSITION"


class WorkflowStepError(Exception):
    """Raised when a collaborator call fails partway through a multi-step workflow.

    Not a business rule rejection: the request was acceptable but the record
    store, identity provider or another dependency refused a step. Maps to
    HTTP 502 Bad Gateway.

    Attributes:
        error_code: Machine-readable error code for client handling.
        step: Name of the step that failed.
        reason: Underlying failure description.
    """

    error_code: str = "WORKFLOW_STEP_FAILED"

    def __init__(self, step: str, reason: str) -> None:
        self.step = step
        self.reason = reason
        super().__init__(f"Step '{step}' failed: {reason}")
