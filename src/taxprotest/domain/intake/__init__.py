"""Customer intake: creates the record graph for a signup or an added property."""

from taxprotest.domain.intake.compensation import CompensationLog
from taxprotest.domain.intake.exceptions import (
    DuplicatePropertyError,
    EmailExistsAuthenticatedError,
    EmailExistsPendingError,
    IntakeStepError,
    MissingPlaceIdError,
    MissingRequiredFieldsError,
    ProfileNotFoundError,
)
from taxprotest.domain.intake.settings import IntakeSettings, get_intake_settings
from taxprotest.domain.intake.submission import IntakeSubmission
from taxprotest.domain.intake.workflow import (
    EXISTING_CUSTOMER_PLAN,
    NEW_CUSTOMER_PLAN,
    IntakeResult,
    IntakeWorkflow,
    OwnerIdentity,
    derive_owner,
)

__all__ = [
    "EXISTING_CUSTOMER_PLAN",
    "NEW_CUSTOMER_PLAN",
    "CompensationLog",
    "DuplicatePropertyError",
    "EmailExistsAuthenticatedError",
    "EmailExistsPendingError",
    "IntakeResult",
    "IntakeSettings",
    "IntakeStepError",
    "IntakeSubmission",
    "IntakeWorkflow",
    "MissingPlaceIdError",
    "MissingRequiredFieldsError",
    "OwnerIdentity",
    "ProfileNotFoundError",
    "derive_owner",
    "get_intake_settings",
]
