"""Tests for the in-memory record store, identity provider and job recorder."""

from __future__ import annotations

import pytest

from taxprotest.domain.records import Table
from taxprotest.foundation.domain.ports import (
    Filter,
    ForeignKeyViolationError,
    IdentityProviderError,
    StoreError,
    UniqueViolationError,
)
from taxprotest.infra.persistence import (
    InMemoryIdentityProvider,
    InMemoryRecordStore,
    RecordingJobDispatcher,
)


@pytest.fixture()
def seeded() -> InMemoryRecordStore:
    store = InMemoryRecordStore()
    store.seed(Table.PROFILES, {"user_id": "u1", "email": "a@x.com"})
    return store


@pytest.mark.unit
class TestInsertAndSelect:
    def test_generates_id_and_timestamp(self, seeded: InMemoryRecordStore) -> None:
        row = seeded.insert(Table.OWNERS, {"name": "Ann Lee", "created_by_user_id": "u1"})
        assert row["id"]
        assert row["created_at"]

    def test_returns_copies(self, seeded: InMemoryRecordStore) -> None:
        row = seeded.select(Table.PROFILES)[0]
        row["email"] = "changed@x.com"
        assert seeded.select(Table.PROFILES)[0]["email"] == "a@x.com"

    def test_projection(self, seeded: InMemoryRecordStore) -> None:
        rows = seeded.select(Table.PROFILES, columns=("user_id", "phone"))
        assert rows == [{"user_id": "u1", "phone": None}]

    def test_ordering(self, seeded: InMemoryRecordStore) -> None:
        seeded.seed(
            Table.VERIFICATION_CODES,
            {"user_id": "u1", "code": "b"},
            {"user_id": "u1", "code": "a"},
            {"user_id": "u1", "code": None},
        )
        ascending = seeded.select(Table.VERIFICATION_CODES, order_by="code")
        assert [row["code"] for row in ascending] == [None, "a", "b"]
        descending = seeded.select(Table.VERIFICATION_CODES, order_by="code", descending=True)
        assert [row["code"] for row in descending] == ["b", "a", None]

    def test_void_filter_matches_nothing(self, seeded: InMemoryRecordStore) -> None:
        assert seeded.select(Table.PROFILES, Filter.in_("user_id", [])) == []

    def test_unknown_table(self, seeded: InMemoryRecordStore) -> None:
        with pytest.raises(StoreError, match="Unknown table"):
            seeded.select("payments")


@pytest.mark.unit
class TestConstraints:
    def test_missing_parent_rejected(self, seeded: InMemoryRecordStore) -> None:
        with pytest.raises(ForeignKeyViolationError):
            seeded.insert(Table.PROPERTIES, {"user_id": "nobody", "situs_address": "1 Main St"})

    def test_unique_situs_address(self, seeded: InMemoryRecordStore) -> None:
        seeded.insert(Table.PROPERTIES, {"user_id": "u1", "situs_address": "1 Main St"})
        with pytest.raises(UniqueViolationError):
            seeded.insert(Table.PROPERTIES, {"user_id": "u1", "situs_address": "1 Main St"})

    def test_delete_blocked_by_children(self, seeded: InMemoryRecordStore) -> None:
        seeded.insert(Table.PROPERTIES, {"user_id": "u1", "situs_address": "1 Main St"})
        with pytest.raises(ForeignKeyViolationError):
            seeded.delete(Table.PROFILES, Filter.eq("user_id", "u1"))
        assert seeded.count(Table.PROFILES) == 1

    def test_delete_children_then_parent(self, seeded: InMemoryRecordStore) -> None:
        seeded.insert(Table.PROPERTIES, {"user_id": "u1", "situs_address": "1 Main St"})
        assert seeded.delete(Table.PROPERTIES, Filter.eq("user_id", "u1")) == 1
        assert seeded.delete(Table.PROFILES, Filter.eq("user_id", "u1")) == 1
        assert seeded.delete(Table.PROFILES, Filter.eq("user_id", "u1")) == 0

    def test_update_checks_references(self, seeded: InMemoryRecordStore) -> None:
        prop = seeded.insert(Table.PROPERTIES, {"user_id": "u1", "situs_address": "1 Main St"})
        with pytest.raises(ForeignKeyViolationError):
            seeded.update(Table.PROPERTIES, {"owner_id": "missing"}, Filter.eq("id", prop["id"]))


@pytest.mark.unit
class TestUpsert:
    def test_merges_existing_row(self, seeded: InMemoryRecordStore) -> None:
        original = seeded.select(Table.PROFILES)[0]
        merged = seeded.upsert(
            Table.PROFILES,
            {"user_id": "u1", "first_name": "Ann"},
            on_conflict="user_id",
        )
        assert merged["id"] == original["id"]
        assert merged["email"] == "a@x.com"
        assert merged["first_name"] == "Ann"
        assert seeded.count(Table.PROFILES) == 1

    def test_inserts_new_row(self, seeded: InMemoryRecordStore) -> None:
        seeded.upsert(Table.PROFILES, {"user_id": "u2", "email": "b@x.com"}, on_conflict="user_id")
        assert seeded.count(Table.PROFILES) == 2


@pytest.mark.unit
class TestInMemoryIdentityProvider:
    def test_create_and_remove(self) -> None:
        provider = InMemoryIdentityProvider()
        identity_id = provider.create_identity("a@x.com", "pw", {"first_name": "Ann"})
        assert provider.identities[identity_id]["metadata"] == {"first_name": "Ann"}
        provider.remove_identity(identity_id)
        assert provider.identities == {}

    def test_duplicate_email(self) -> None:
        provider = InMemoryIdentityProvider()
        provider.create_identity("a@x.com", "pw")
        with pytest.raises(IdentityProviderError) as exc_info:
            provider.create_identity("A@X.com", "pw")
        assert exc_info.value.status_code == 422

    def test_removal_not_allowed(self) -> None:
        provider = InMemoryIdentityProvider(removal_allowed=False)
        identity_id = provider.create_identity("a@x.com", "pw")
        with pytest.raises(IdentityProviderError) as exc_info:
            provider.remove_identity(identity_id)
        assert exc_info.value.status_code == 403


@pytest.mark.unit
class TestRecordingJobDispatcher:
    def test_records_invocations(self) -> None:
        jobs = RecordingJobDispatcher()
        jobs.invoke_async_job("generate-form-50-162", {"propertyId": "p1"})
        assert jobs.invocations == [("generate-form-50-162", {"propertyId": "p1"})]
