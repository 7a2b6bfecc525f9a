"""Protest status REST API router for the admin console."""

# NOTE: no ``from __future__ import annotations``; see dependencies.py.

from decimal import Decimal
from typing import Self

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from taxprotest.domain.protest import OfferSummary, StatusChange
from taxprotest.infra.fastapi.dependencies import ProtestServiceDep

router = APIRouter(prefix="/protests", tags=["protests"])


# -- Request / Response models ------------------------------------------------


class StatusChangeRequest(BaseModel):
    status: str


class StatusChangeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    protest_id: str
    previous_status: str
    status: str
    changed: bool
    offer_amount: float | None = None

    @classmethod
    def from_change(cls, change: StatusChange) -> Self:
        return cls(
            protest_id=change.protest_id,
            previous_status=change.previous.value,
            status=change.current.value,
            changed=change.changed,
            offer_amount=_as_float(change.offer_amount),
        )


class OfferResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    protest_id: str
    status: str
    offer_amount: float | None = None
    can_decide: bool

    @classmethod
    def from_summary(cls, summary: OfferSummary) -> Self:
        return cls(
            protest_id=summary.protest_id,
            status=summary.status.value,
            offer_amount=_as_float(summary.offer_amount),
            can_decide=summary.can_decide,
        )


# -- Endpoints ----------------------------------------------------------------


@router.patch("/{protest_id}/status")
def change_status(
    protest_id: str,
    body: StatusChangeRequest,
    service: ProtestServiceDep,
) -> StatusChangeResponse:
    """Move a protest to another appeal status."""
    return StatusChangeResponse.from_change(service.change_status(protest_id, body.status))


@router.post("/{protest_id}/accept")
def accept_offer(protest_id: str, service: ProtestServiceDep) -> StatusChangeResponse:
    """Accept the county's offer."""
    return StatusChangeResponse.from_change(service.accept_offer(protest_id))


@router.post("/{protest_id}/reject")
def reject_offer(protest_id: str, service: ProtestServiceDep) -> StatusChangeResponse:
    """Reject the county's offer."""
    return StatusChangeResponse.from_change(service.reject_offer(protest_id))


@router.get("/{protest_id}/offer")
def get_offer(protest_id: str, service: ProtestServiceDep) -> OfferResponse:
    """The resolved county offer and whether it can be acted on."""
    return OfferResponse.from_summary(service.offer_for(protest_id))


# -- Helpers ------------------------------------------------------------------


def _as_float(amount: Decimal | None) -> float | None:
    return float(amount) if amount is not None else None
