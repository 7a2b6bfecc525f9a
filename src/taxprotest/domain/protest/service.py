"""Protest status changes driven by the admin console."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from taxprotest.domain.protest.offer import resolve_offer_amount
from taxprotest.domain.protest.status import (
    OFFER_DECISIONS,
    TERMINAL_STATUSES,
    ProtestStatus,
    ensure_transition,
    normalize_status,
)
from taxprotest.domain.records import Table
from taxprotest.foundation.domain.exceptions import NotFoundError, WorkflowStepError
from taxprotest.foundation.domain.ports import Filter, StoreError

if TYPE_CHECKING:
    from decimal import Decimal

    from taxprotest.foundation.domain.ports import Record, RecordStorePort

logger = logging.getLogger(__name__)

_PROTEST_COLUMNS = ("id", "property_id", "appeal_status", "offer_amount", "recommendation")


class ProtestNotFoundError(NotFoundError):
    """Raised when a protest id does not exist."""

    def __init__(self, protest_id: str, **extra_context: Any) -> None:
        super().__init__("Protest", protest_id, **extra_context)


class ProtestStepError(WorkflowStepError):
    """Raised when the record store fails while reading or writing a protest."""

    error_code: str = "PROTEST_STEP_FAILED"

    def __init__(self, step: str, protest_id: str, reason: str) -> None:
        super().__init__(step, reason)
        self.protest_id = protest_id


@dataclass(frozen=True, slots=True)
class StatusChange:
    """Outcome of a status change.

    Attributes:
        protest_id: The protest that changed.
        previous: Status before the change.
        current: Status after the change.
        offer_amount: Resolved county offer, if any.
    """

    protest_id: str
    previous: ProtestStatus
    current: ProtestStatus
    offer_amount: Decimal | None

    @property
    def changed(self) -> bool:
        return self.previous != self.current


@dataclass(frozen=True, slots=True)
class OfferSummary:
    """What the console shows next to the accept and reject buttons."""

    protest_id: str
    status: ProtestStatus
    offer_amount: Decimal | None

    @property
    def can_decide(self) -> bool:
        return self.offer_amount is not None and self.status not in TERMINAL_STATUSES


class ProtestStatusService:
    """Validates and persists appeal status changes.

    Attributes:
        _store: Record store holding the ``protests`` table.
    """

    def __init__(self, store: RecordStorePort) -> None:
        self._store = store

    def change_status(self, protest_id: str, status: str | ProtestStatus) -> StatusChange:
        """Move a protest to ``status``.

        Args:
            protest_id: Protest row id.
            status: Target status; legacy dropdown values are accepted.

        Returns:
            StatusChange describing the move. Re-applying the current status
            returns an unchanged StatusChange without writing.

        Raises:
            ProtestNotFoundError: If the protest does not exist.
            ValidationError: If ``status`` is not a known status.
            InvalidStateTransitionError: If the move is not allowed.
            ProtestStepError: If the record store fails.
        """
        target = normalize_status(status)
        protest = self._load(protest_id)
        current = normalize_status(protest.get("appeal_status"))
        offer = resolve_offer_amount(protest.get("offer_amount"), protest.get("recommendation"))
        ensure_transition(current, target, offer_amount=offer)

        change = StatusChange(protest_id, current, target, offer)
        if not change.changed:
            logger.debug("protest_status_unchanged", extra={"protest_id": protest_id})
            return change

        try:
            self._store.update(
                Table.PROTESTS,
                {"appeal_status": target.value},
                Filter.eq("id", protest_id),
            )
        except StoreError as exc:
            logger.error(
                "protest_status_update_failed",
                extra={"protest_id": protest_id, "status": target.value, "reason": str(exc)},
            )
            raise ProtestStepError("update_status", protest_id, str(exc)) from exc
        logger.info(
            "protest_status_changed",
            extra={
                "protest_id": protest_id,
                "previous_status": current.value,
                "status": target.value,
                "offer_amount": str(offer) if target in OFFER_DECISIONS else None,
            },
        )
        return change

    def accept_offer(self, protest_id: str) -> StatusChange:
        """Accept the county's offer. Requires a resolvable offer amount."""
        return self.change_status(protest_id, ProtestStatus.ACCEPTED)

    def reject_offer(self, protest_id: str) -> StatusChange:
        """Reject the county's offer. Requires a resolvable offer amount."""
        return self.change_status(protest_id, ProtestStatus.REJECTED)

    def offer_for(self, protest_id: str) -> OfferSummary:
        protest = self._load(protest_id)
        return OfferSummary(
            protest_id=protest_id,
            status=normalize_status(protest.get("appeal_status")),
            offer_amount=resolve_offer_amount(
                protest.get("offer_amount"), protest.get("recommendation")
            ),
        )

    def _load(self, protest_id: str) -> Record:
        try:
            rows = self._store.select(
                Table.PROTESTS, Filter.eq("id", protest_id), columns=_PROTEST_COLUMNS
            )
        except StoreError as exc:
            raise ProtestStepError("load_protest", protest_id, str(exc)) from exc
        if not rows:
            raise ProtestNotFoundError(protest_id)
        return rows[0]
