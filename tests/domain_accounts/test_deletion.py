"""Tests for cascading account deletion against the in-memory store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from taxprotest.domain.accounts import (
    AccountDeletionError,
    AccountDeletionResult,
    AccountDeletionService,
    AccountDirectory,
)
from taxprotest.domain.intake import IntakeSettings, IntakeWorkflow
from taxprotest.domain.records import Table, deletion_order
from taxprotest.foundation.domain.ports import Filter, StoreError
from taxprotest.infra.persistence import (
    InMemoryIdentityProvider,
    InMemoryRecordStore,
    RecordingJobDispatcher,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from taxprotest.domain.intake import IntakeResult, IntakeSubmission


class FailingDeleteStore(InMemoryRecordStore):
    """In-memory store whose deletes from one table fail."""

    def __init__(self, fail_on: Table) -> None:
        super().__init__()
        self.fail_on = fail_on

    def delete(self, table: str, where: Filter) -> int:
        if table == self.fail_on:
            msg = f"statement timeout on {table}"
            raise StoreError(msg, table=str(table), operation="delete")
        return super().delete(table, where)


def _enroll(
    store: InMemoryRecordStore,
    identity: InMemoryIdentityProvider,
    submission: IntakeSubmission,
) -> IntakeResult:
    workflow = IntakeWorkflow(
        store,
        identity,
        RecordingJobDispatcher(),
        IntakeSettings(_env_file=None),  # type: ignore[call-arg]
    )
    return workflow.submit(submission)


def _attach_everything(store: InMemoryRecordStore, result: IntakeResult, other_user: str) -> None:
    """Populate every dependent table for ``result``'s account."""
    user_id = result.user_id
    prop = store.select(Table.PROPERTIES, Filter.eq("id", result.property_id))[0]
    protest = store.select(Table.PROTESTS, Filter.eq("property_id", prop["id"]))[0]
    communication = store.insert(Table.COMMUNICATIONS, {"contact_id": prop["contact_id"]})
    store.insert(
        Table.PROPERTY_COMMUNICATIONS,
        {"property_id": prop["id"], "communication_id": communication["id"]},
    )
    store.insert(
        Table.BILLS,
        {"user_id": user_id, "protest_id": protest["id"], "owner_id": prop["owner_id"]},
    )
    store.insert(Table.CUSTOMER_DOCUMENTS, {"user_id": user_id, "property_id": prop["id"]})
    # Stamped with another user but attached to this account's property.
    store.insert(Table.CUSTOMER_DOCUMENTS, {"user_id": other_user, "property_id": prop["id"]})
    store.insert(Table.CREDIT_TRANSACTIONS, {"user_id": user_id, "amount": 25})
    store.insert(Table.VERIFICATION_CODES, {"user_id": user_id, "code": "123456"})
    store.insert(Table.REFERRAL_RELATIONSHIPS, {"referrer_id": other_user, "referee_id": user_id})


def _rows_for_user(store: InMemoryRecordStore, user_id: str) -> int:
    return (
        store.count(Table.PROFILES, Filter.eq("user_id", user_id))
        + store.count(Table.PROPERTIES, Filter.eq("user_id", user_id))
        + store.count(Table.OWNERS, Filter.eq("created_by_user_id", user_id))
        + store.count(Table.REFERRAL_RELATIONSHIPS, Filter.any_eq(referee_id=user_id))
    )


@pytest.fixture()
def enrolled(
    store: InMemoryRecordStore,
    identity: InMemoryIdentityProvider,
    submission_factory: Callable[..., IntakeSubmission],
) -> tuple[IntakeResult, IntakeResult]:
    """Two customers; the first has a row in every table."""
    target = _enroll(store, identity, submission_factory())
    bystander = _enroll(store, identity, submission_factory(email="b@x.com", address="2 Oak Ave"))
    _attach_everything(store, target, bystander.user_id)
    return target, bystander


@pytest.mark.unit
class TestAccountDeletionResult:
    def test_summary(self) -> None:
        result = AccountDeletionResult(
            user_id="u1",
            display_name="Ann Lee",
            deleted={"protests": 1, "properties": 1},
            identity_removed=True,
        )
        assert result.total_deleted == 2
        assert result.tables_processed == ["protests", "properties"]
        assert result.summary == (
            "User Ann Lee and all associated data deleted successfully (2 records removed)"
        )

    def test_summary_notes_identity_left_behind(self) -> None:
        result = AccountDeletionResult(user_id="u1", display_name="u1")
        assert "login identity could not be removed" in result.summary


@pytest.mark.unit
class TestDeleteAccount:
    def test_removes_every_row(
        self,
        store: InMemoryRecordStore,
        identity: InMemoryIdentityProvider,
        enrolled: tuple[IntakeResult, IntakeResult],
    ) -> None:
        target, bystander = enrolled
        service = AccountDeletionService(store, identity)

        result = service.delete_account(target.user_id, "Ann Lee")

        assert result.tables_processed == [table.value for table in deletion_order()]
        assert result.deleted == {
            "bills": 1,
            "customer_documents": 2,
            "property_communications": 1,
            "communications": 1,
            "protests": 1,
            "applications": 1,
            "properties": 1,
            "contacts": 1,
            "owners": 1,
            "credit_transactions": 1,
            "verification_codes": 1,
            "referral_relationships": 1,
            "profiles": 1,
        }
        assert result.identity_removed is True
        assert target.user_id not in identity.identities
        assert _rows_for_user(store, target.user_id) == 0

        assert store.count(Table.PROFILES, Filter.eq("user_id", bystander.user_id)) == 1
        assert store.count(Table.PROPERTIES, Filter.eq("user_id", bystander.user_id)) == 1
        assert bystander.user_id in identity.identities

    def test_second_run_reports_zero(
        self,
        store: InMemoryRecordStore,
        identity: InMemoryIdentityProvider,
        enrolled: tuple[IntakeResult, IntakeResult],
    ) -> None:
        target, _ = enrolled
        service = AccountDeletionService(store, identity)
        service.delete_account(target.user_id)

        again = service.delete_account(target.user_id)

        assert again.total_deleted == 0
        assert set(again.deleted.values()) == {0}

    def test_identity_removal_failure_still_clears_tables(
        self,
        store: InMemoryRecordStore,
        identity: InMemoryIdentityProvider,
        enrolled: tuple[IntakeResult, IntakeResult],
    ) -> None:
        target, _ = enrolled
        identity.removal_allowed = False

        result = AccountDeletionService(store, identity).delete_account(target.user_id)

        assert result.identity_removed is False
        assert result.total_deleted == 14
        assert _rows_for_user(store, target.user_id) == 0
        assert "login identity could not be removed" in result.summary

    def test_account_without_properties(
        self, store: InMemoryRecordStore, identity: InMemoryIdentityProvider
    ) -> None:
        store.seed(Table.PROFILES, {"user_id": "u1", "email": "a@x.com"})

        result = AccountDeletionService(store, identity).delete_account("u1")

        assert result.deleted["profiles"] == 1
        assert result.total_deleted == 1

    def test_step_failure_reports_completed_counts(
        self,
        identity: InMemoryIdentityProvider,
        submission_factory: Callable[..., IntakeSubmission],
    ) -> None:
        store = FailingDeleteStore(fail_on=Table.OWNERS)
        target = _enroll(store, identity, submission_factory())

        with pytest.raises(AccountDeletionError) as exc_info:
            AccountDeletionService(store, identity).delete_account(target.user_id)

        error = exc_info.value
        assert error.table == "owners"
        assert error.step == "delete_owners"
        assert error.result.deleted["properties"] == 1
        assert "owners" not in error.result.deleted
        assert target.user_id in identity.identities


@pytest.mark.unit
class TestDeleteAccounts:
    def test_failure_does_not_stop_the_rest(
        self,
        identity: InMemoryIdentityProvider,
        submission_factory: Callable[..., IntakeSubmission],
    ) -> None:
        store = FailingDeleteStore(fail_on=Table.VERIFICATION_CODES)
        first = _enroll(store, identity, submission_factory())
        second = _enroll(store, identity, submission_factory(email="b@x.com", address="2 Oak"))

        outcomes = AccountDeletionService(store, identity).delete_accounts(
            [(first.user_id, "Ann"), (second.user_id, None)]
        )

        assert [outcome.user_id for outcome in outcomes] == [first.user_id, second.user_id]
        assert not any(outcome.succeeded for outcome in outcomes)
        assert all(outcome.error is not None for outcome in outcomes)

    def test_all_succeed(
        self,
        store: InMemoryRecordStore,
        identity: InMemoryIdentityProvider,
        enrolled: tuple[IntakeResult, IntakeResult],
    ) -> None:
        accounts: list[tuple[str, Any]] = [(result.user_id, None) for result in enrolled]
        outcomes = AccountDeletionService(store, identity).delete_accounts(accounts)
        assert all(outcome.succeeded for outcome in outcomes)
        assert store.count(Table.PROFILES) == 0


@pytest.mark.unit
class TestAccountDirectory:
    def test_newest_first(self, store: InMemoryRecordStore) -> None:
        store.seed(
            Table.PROFILES,
            {"user_id": "old", "email": "o@x.com", "created_at": "2024-01-01T00:00:00+00:00"},
            {"user_id": "new", "email": "n@x.com", "created_at": "2025-01-01T00:00:00+00:00"},
        )
        profiles = AccountDirectory(store).list_profiles()
        assert [profile["user_id"] for profile in profiles] == ["new", "old"]
