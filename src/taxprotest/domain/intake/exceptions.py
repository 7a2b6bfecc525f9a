"""Intake-specific exceptions.

Business-rule rejections extend the foundation hierarchy so the HTTP layer
maps them without knowing about intake. ``IntakeStepError`` is the
infrastructure failure raised when a creation step fails mid-sequence.
"""

from __future__ import annotations

from typing import Any

from taxprotest.foundation.domain.exceptions import (
    ConflictError,
    NotFoundError,
    ValidationError,
    WorkflowStepError,
)


class MissingRequiredFieldsError(ValidationError):
    """Raised when the submission lacks one or more required fields."""

    error_code: str = "MISSING_REQUIRED_FIELDS"

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            ",".join(missing),
            "Missing required fields",
            missing_fields=missing,
        )


class MissingPlaceIdError(ValidationError):
    """Raised when address verification is required but no verified place was selected."""

    error_code: str = "MISSING_PLACE_ID"

    def __init__(self) -> None:
        super().__init__(
            "placeId",
            "Please select a valid address from the dropdown suggestions",
        )


class EmailExistsAuthenticatedError(ConflictError):
    """Raised when the email belongs to an account that has already signed in."""

    error_code: str = "EMAIL_EXISTS_AUTHENTICATED"

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(
            "An account with this email already exists. Please sign in instead.",
            email=email,
            redirect_to="/auth",
        )


class EmailExistsPendingError(ConflictError):
    """Raised when the email belongs to an account still awaiting confirmation."""

    error_code: str = "EMAIL_EXISTS_PENDING"

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(
            "An account with this email is pending confirmation. "
            "Please check your email for the confirmation link.",
            email=email,
        )


class DuplicatePropertyError(ConflictError):
    """Raised when a property with the same situs address is already registered."""

    error_code: str = "DUPLICATE_PROPERTY"

    def __init__(self, situs_address: str) -> None:
        self.situs_address = situs_address
        super().__init__(
            "This property is already registered in our system.",
            situs_address=situs_address,
        )


class ProfileNotFoundError(NotFoundError):
    """Raised when adding a property to an account whose profile does not exist."""

    def __init__(self, user_id: str, **extra_context: Any) -> None:
        super().__init__("Profile", user_id, **extra_context)


class IntakeStepError(WorkflowStepError):
    """Raised when a creation step fails after the sequence has started.

    Attributes:
        step: Name of the failed step (e.g. ``insert_owner``).
        compensated: True when earlier steps were rolled back.
        compensation_failures: Names of compensating actions that themselves failed.
    """

    error_code: str = "INTAKE_STEP_FAILED"

    def __init__(self, step: str, reason: str) -> None:
        super().__init__(step, reason)
        self.compensated = False
        self.compensation_failures: tuple[str, ...] = ()
