"""Appeal status state machine for protests.

A protest opens as ``pending`` at intake; every later move is an
administrator action. Accepting or rejecting requires a county offer amount.
``accepted``, ``rejected`` and ``completed`` are terminal.

Example:
    >>> ensure_transition(ProtestStatus.PENDING, ProtestStatus.FILED, offer_amount=None)
    >>> normalize_status("waiting_for_offer")
    <ProtestStatus.PENDING: 'pending'>
"""

from __future__ import annotations

from decimal import Decimal
from enum import StrEnum

from taxprotest.foundation.domain.exceptions import (
    InvalidStateTransitionError,
    ValidationError,
)


class ProtestStatus(StrEnum):
    """Appeal status values stored on ``protests.appeal_status``."""

    PENDING = "pending"
    FILED = "filed"
    OFFER_RECEIVED = "offer_received"
    NEEDS_REVIEW = "needs_review"
    HEARING_SCHEDULED = "hearing_scheduled"
    EMAIL_REPLY_REQUIRED = "email_reply_required"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


TERMINAL_STATUSES: frozenset[ProtestStatus] = frozenset(
    {ProtestStatus.ACCEPTED, ProtestStatus.REJECTED, ProtestStatus.COMPLETED}
)

OFFER_DECISIONS: frozenset[ProtestStatus] = frozenset(
    {ProtestStatus.ACCEPTED, ProtestStatus.REJECTED}
)

# Older admin dropdown values still present in stored rows.
LEGACY_ALIASES: dict[str, ProtestStatus] = {
    "waiting_for_offer": ProtestStatus.PENDING,
    "in_progress": ProtestStatus.FILED,
}

# Every open status may move to any other status; the dropdown is the only
# driver and administrators correct mistakes by picking an earlier status.
ALLOWED_TRANSITIONS: dict[ProtestStatus, frozenset[ProtestStatus]] = {
    status: (
        frozenset()
        if status in TERMINAL_STATUSES
        else frozenset(ProtestStatus) - {status}
    )
    for status in ProtestStatus
}


def normalize_status(raw: str | ProtestStatus | None) -> ProtestStatus:
    """Map a stored or submitted status string to a ``ProtestStatus``.

    Missing values are treated as ``pending``, the status every protest
    starts in.

    Raises:
        ValidationError: If the value is not a known status or legacy alias.
    """
    if raw is None or raw == "":
        return ProtestStatus.PENDING
    if isinstance(raw, ProtestStatus):
        return raw
    value = raw.strip().lower()
    if value in LEGACY_ALIASES:
        return LEGACY_ALIASES[value]
    try:
        return ProtestStatus(value)
    except ValueError as exc:
        raise ValidationError(
            "appeal_status",
            f"Unknown protest status '{raw}'",
            allowed=[status.value for status in ProtestStatus],
        ) from exc


def ensure_transition(
    current: ProtestStatus,
    target: ProtestStatus,
    *,
    offer_amount: Decimal | None,
) -> None:
    """Check that a protest may move from ``current`` to ``target``.

    Moving to the current status is an idempotent no-op and always allowed.

    Raises:
        InvalidStateTransitionError: If ``current`` is terminal, the move is not
            in ``ALLOWED_TRANSITIONS``, or an offer decision is made without a
            resolvable offer amount.
    """
    if current == target:
        return
    if current in TERMINAL_STATUSES:
        raise InvalidStateTransitionError(
            f"Protest is already {current} and cannot change status",
            current_status=current.value,
            target_status=target.value,
        )
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateTransitionError(
            f"Cannot move protest from {current} to {target}",
            current_status=current.value,
            target_status=target.value,
        )
    if target in OFFER_DECISIONS and offer_amount is None:
        raise InvalidStateTransitionError(
            f"Cannot mark protest {target} without a county offer amount",
            current_status=current.value,
            target_status=target.value,
        )
