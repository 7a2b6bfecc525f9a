"""Protest appeal status state machine and county offer handling."""

from taxprotest.domain.protest.offer import resolve_offer_amount
from taxprotest.domain.protest.service import (
    OfferSummary,
    ProtestNotFoundError,
    ProtestStatusService,
    ProtestStepError,
    StatusChange,
)
from taxprotest.domain.protest.status import (
    ALLOWED_TRANSITIONS,
    LEGACY_ALIASES,
    OFFER_DECISIONS,
    TERMINAL_STATUSES,
    ProtestStatus,
    ensure_transition,
    normalize_status,
)

__all__ = [
    "ALLOWED_TRANSITIONS",
    "LEGACY_ALIASES",
    "OFFER_DECISIONS",
    "TERMINAL_STATUSES",
    "OfferSummary",
    "ProtestNotFoundError",
    "ProtestStatus",
    "ProtestStatusService",
    "ProtestStepError",
    "StatusChange",
    "ensure_transition",
    "normalize_status",
    "resolve_offer_amount",
]
