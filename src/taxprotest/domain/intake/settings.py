"""Intake workflow settings.

Environment variables use the ``INTAKE_`` prefix (e.g.,
``INTAKE_REQUIRE_PLACE_ID=true``).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_DOCUMENT_JOB = "generate-form-50-162"


class IntakeSettings(BaseSettings):
    """Tunable intake behaviour.

    Attributes:
        document_jobs: Jobs dispatched after a property is created. Each receives
            ``{"propertyId": ..., "userId": ...}``.
        require_place_id: Reject submissions whose address was not picked from
            the address autocomplete.
        compensate_on_failure: Roll back earlier steps when a creation step fails.
        confirmation_path: Path on the caller's origin the confirmation email
            links to.
        portal_path: Path on the caller's origin existing customers land on.
        mailing_state: State written on owner mailing addresses.
    """

    model_config = SettingsConfigDict(
        env_prefix="INTAKE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    document_jobs: Annotated[list[str], NoDecode] = Field(
        default=[DEFAULT_DOCUMENT_JOB],
        description="Job names invoked for each newly created property",
    )
    require_place_id: bool = Field(
        default=False,
        description="Require a verified place id and formatted address",
    )
    compensate_on_failure: bool = Field(
        default=True,
        description="Undo completed creation steps when a later step fails",
    )
    confirmation_path: str = Field(default="/set-password?redirect=customer-portal")
    portal_path: str = Field(default="/customer-portal")
    mailing_state: str = Field(default="TX", min_length=2, max_length=2)

    @field_validator("document_jobs", mode="before")
    @classmethod
    def _parse_comma_separated(cls, v: Any) -> list[str]:
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        if isinstance(v, list):
            return v
        return [DEFAULT_DOCUMENT_JOB]

    def confirmation_url(self, origin: str | None) -> str | None:
        """Absolute confirmation link for ``origin``, or None without an origin."""
        if not origin:
            return None
        return f"{origin.rstrip('/')}{self.confirmation_path}"

    def portal_url(self, origin: str | None) -> str | None:
        if not origin:
            return None
        return f"{origin.rstrip('/')}{self.portal_path}"


@lru_cache(maxsize=1)
def get_intake_settings() -> IntakeSettings:
    """Get cached intake settings instance."""
    return IntakeSettings()
