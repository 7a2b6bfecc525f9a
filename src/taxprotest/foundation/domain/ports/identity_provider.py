"""Port interface for the external authentication identity service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


class IdentityProviderError(Exception):
    """Raised when the identity service rejects or fails a call.

    Attributes:
        status_code: HTTP status reported by the service, when there was one.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@runtime_checkable
class IdentityProviderPort(Protocol):
    """Port for creating and removing login identities.

    The returned identity id becomes the ``user_id`` every customer record
    hangs off.
    """

    def create_identity(
        self,
        email: str,
        password: str,
        metadata: Mapping[str, Any] | None = None,
        *,
        redirect_to: str | None = None,
    ) -> str:
        """Register an identity and return its id.

        Args:
            email: Login email.
            password: Initial password. Intake uses a random temporary value
                the customer replaces via the confirmation email.
            metadata: User metadata stored alongside the identity.
            redirect_to: Where the confirmation link should land.

        Returns:
            The new identity id.

        Raises:
            IdentityProviderError: If the service refuses the registration.
        """
        ...

    def remove_identity(self, identity_id: str) -> None:
        """Delete an identity. Requires elevated credentials on hosted services."""
        ...
