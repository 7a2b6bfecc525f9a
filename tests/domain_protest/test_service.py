"""Tests for ProtestStatusService against the in-memory store."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest

from taxprotest.domain.protest import (
    ProtestNotFoundError,
    ProtestStatus,
    ProtestStatusService,
    ProtestStepError,
)
from taxprotest.domain.records import Table
from taxprotest.foundation.domain.exceptions import InvalidStateTransitionError
from taxprotest.foundation.domain.ports import Filter, StoreError
from taxprotest.infra.persistence import InMemoryRecordStore


def _seed_protest(store: InMemoryRecordStore, **fields: Any) -> str:
    store.seed(Table.PROFILES, {"user_id": "u1", "email": "a@x.com"})
    prop = store.insert(Table.PROPERTIES, {"user_id": "u1", "situs_address": "1 Main St"})
    protest = store.insert(
        Table.PROTESTS, {"property_id": prop["id"], "appeal_status": "pending", **fields}
    )
    return str(protest["id"])


class ReadOnlyStore(InMemoryRecordStore):
    """In-memory store whose updates fail."""

    def update(self, table: str, values: Any, where: Filter) -> list[dict[str, Any]]:
        msg = "permission denied for table protests"
        raise StoreError(msg, table=str(table), operation="update")


def _status_of(store: InMemoryRecordStore, protest_id: str) -> str:
    return store.select(Table.PROTESTS, Filter.eq("id", protest_id))[0]["appeal_status"]


@pytest.mark.unit
class TestChangeStatus:
    def test_persists_new_status(self, store: InMemoryRecordStore) -> None:
        protest_id = _seed_protest(store)
        service = ProtestStatusService(store)

        change = service.change_status(protest_id, "filed")

        assert change.previous is ProtestStatus.PENDING
        assert change.current is ProtestStatus.FILED
        assert change.changed
        assert _status_of(store, protest_id) == "filed"

    def test_legacy_value_accepted(self, store: InMemoryRecordStore) -> None:
        protest_id = _seed_protest(store)
        change = ProtestStatusService(store).change_status(protest_id, "in_progress")
        assert change.current is ProtestStatus.FILED

    def test_same_status_does_not_write(self, store: InMemoryRecordStore) -> None:
        protest_id = _seed_protest(store, appeal_status="waiting_for_offer")
        change = ProtestStatusService(store).change_status(protest_id, "pending")
        assert not change.changed
        assert _status_of(store, protest_id) == "waiting_for_offer"

    def test_unknown_protest(self, store: InMemoryRecordStore) -> None:
        with pytest.raises(ProtestNotFoundError):
            ProtestStatusService(store).change_status("missing", "filed")

    def test_terminal_status_is_final(self, store: InMemoryRecordStore) -> None:
        protest_id = _seed_protest(store, appeal_status="completed")
        with pytest.raises(InvalidStateTransitionError):
            ProtestStatusService(store).change_status(protest_id, "filed")


@pytest.mark.unit
class TestOfferDecisions:
    def test_accept_with_structured_offer(self, store: InMemoryRecordStore) -> None:
        protest_id = _seed_protest(store, appeal_status="offer_received", offer_amount=245000)

        change = ProtestStatusService(store).accept_offer(protest_id)

        assert change.current is ProtestStatus.ACCEPTED
        assert change.offer_amount == Decimal("245000")
        assert _status_of(store, protest_id) == "accepted"

    def test_reject_with_offer_in_recommendation(self, store: InMemoryRecordStore) -> None:
        protest_id = _seed_protest(
            store, appeal_status="offer_received", recommendation="County offered $198,500"
        )
        change = ProtestStatusService(store).reject_offer(protest_id)
        assert change.current is ProtestStatus.REJECTED
        assert change.offer_amount == Decimal("198500")

    def test_accept_without_offer_refused(self, store: InMemoryRecordStore) -> None:
        protest_id = _seed_protest(store, appeal_status="offer_received")
        with pytest.raises(InvalidStateTransitionError):
            ProtestStatusService(store).accept_offer(protest_id)
        assert _status_of(store, protest_id) == "offer_received"

    def test_offer_summary(self, store: InMemoryRecordStore) -> None:
        protest_id = _seed_protest(store, appeal_status="offer_received", offer_amount="1000")
        service = ProtestStatusService(store)

        summary = service.offer_for(protest_id)
        assert summary.offer_amount == Decimal("1000")
        assert summary.can_decide

        service.accept_offer(protest_id)
        assert not service.offer_for(protest_id).can_decide


@pytest.mark.unit
class TestStoreFailures:
    def test_update_failure_names_step(self) -> None:
        store = ReadOnlyStore()
        protest_id = _seed_protest(store)

        with pytest.raises(ProtestStepError) as exc_info:
            ProtestStatusService(store).change_status(protest_id, "filed")

        assert exc_info.value.step == "update_status"
        assert exc_info.value.protest_id == protest_id
        assert exc_info.value.error_code == "PROTEST_STEP_FAILED"
        assert _status_of(store, protest_id) == "pending"

    def test_unchanged_status_skips_write(self) -> None:
        store = ReadOnlyStore()
        protest_id = _seed_protest(store)

        change = ProtestStatusService(store).change_status(protest_id, "pending")

        assert change.changed is False
