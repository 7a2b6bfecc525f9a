"""Value objects for customer-submitted data.

Immutable, validated domain primitives. All validation occurs at construction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass(frozen=True, slots=True)
class Email:
    """Validated email address value object.

    Format: Basic email validation (contains @ and domain). Surrounding
    whitespace is rejected rather than silently stripped. The address is
    stored lower-cased, so duplicate checks and identity signup agree on it.

    Attributes:
        value: The validated, lower-cased email string.

    Raises:
        ValueError: If email is empty, malformed, or exceeds 255 chars.
    """

    value: str

    def __post_init__(self) -> None:
        if not self.value:
            msg = "Email cannot be empty"
            raise ValueError(msg)
        if len(self.value) > 255:
            msg = f"Email too long: {len(self.value)} chars (max 255)"
            raise ValueError(msg)
        if not _EMAIL_PATTERN.match(self.value):
            msg = f"Invalid email format: {self.value}"
            raise ValueError(msg)
        object.__setattr__(self, "value", self.value.lower())

    def matches(self, other: str | None) -> bool:
        """Case-insensitive comparison against another raw address."""
        return other is not None and self.value.casefold() == other.strip().casefold()


@dataclass(frozen=True, slots=True)
class PersonName:
    """A customer's first and last name.

    Attributes:
        first: Given name, non-empty after stripping.
        last: Family name, non-empty after stripping.

    Raises:
        ValueError: If either part is blank.
    """

    first: str
    last: str

    def __post_init__(self) -> None:
        if not self.first.strip():
            msg = "First name cannot be blank"
            raise ValueError(msg)
        if not self.last.strip():
            msg = "Last name cannot be blank"
            raise ValueError(msg)

    @property
    def full(self) -> str:
        return f"{self.first.strip()} {self.last.strip()}"


@dataclass(frozen=True, slots=True)
class SitusAddress:
    """Physical street address of a property (the situs).

    Uniqueness of a situs address across all properties is enforced by the
    intake workflow and, where available, by the record store.

    Attributes:
        value: Address text with surrounding whitespace removed.

    Raises:
        ValueError: If the address is blank or exceeds 500 characters.
    """

    value: str

    def __post_init__(self) -> None:
        stripped = self.value.strip()
        if not stripped:
            msg = "Situs address cannot be blank"
            raise ValueError(msg)
        if len(stripped) > 500:
            msg = f"Situs address too long: {len(stripped)} chars (max 500)"
            raise ValueError(msg)
        object.__setattr__(self, "value", stripped)
