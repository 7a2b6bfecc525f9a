"""Intake submission payload.

Mirrors the web signup form. Keys arrive in camelCase; snake_case names are
accepted too so internal callers can build submissions directly.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taxprotest.foundation.domain.customer_value_objects import PersonName

REQUIRED_FOR_NEW_CUSTOMER: tuple[str, ...] = ("email", "first_name", "last_name", "address")
REQUIRED_FOR_EXISTING_CUSTOMER: tuple[str, ...] = ("first_name", "last_name", "address")


class IntakeSubmission(BaseModel):
    """Everything the customer entered on the signup form.

    Required fields default to empty strings so that a missing value is
    reported as ``MISSING_REQUIRED_FIELDS`` by the workflow instead of a
    schema error.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    email: str = ""
    first_name: str = ""
    last_name: str = ""
    phone: str | None = None

    address: str = Field(default="", description="Situs address of the property")
    formatted_address: str | None = None
    place_id: str | None = None
    county: str | None = None
    parcel_number: str | None = None
    estimated_savings: float | None = None
    latitude: float | None = None
    longitude: float | None = None
    address_components: list[dict[str, Any]] | None = None
    include_all_properties: bool = False

    is_trust_entity: bool = False
    entity_name: str | None = None
    entity_type: str | None = None
    relationship_to_entity: str | None = None

    role: str = "homeowner"
    agree_to_updates: bool = False
    signature: str | None = None
    referral_code: str | None = None
    signup_pid: str | None = None

    def missing_fields(self, required: tuple[str, ...]) -> list[str]:
        """Camel-case names of required fields that are empty."""
        return [to_camel(name) for name in required if not getattr(self, name)]

    @property
    def display_name(self) -> str:
        """Full name as "First Last"; raises ValueError if either part is blank."""
        return PersonName(self.first_name, self.last_name).full
