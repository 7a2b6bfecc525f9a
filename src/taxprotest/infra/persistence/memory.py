"""In-process implementations of the record store, identity and job ports.

The record store enforces the foreign keys declared in
``taxprotest.domain.records`` and the unique columns below, so ordering bugs
surface as ``ForeignKeyViolationError`` exactly where the hosted database
would reject them. Used for local development and throughout the test suite.
"""

from __future__ import annotations

import copy
import logging
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from taxprotest.domain.records import Table, foreign_keys_of, references_to
from taxprotest.foundation.domain.ports import (
    ForeignKeyViolationError,
    IdentityProviderError,
    StoreError,
    UniqueViolationError,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from taxprotest.foundation.domain.ports import Filter, Record

logger = logging.getLogger(__name__)

UNIQUE_COLUMNS: dict[Table, tuple[str, ...]] = {
    Table.PROFILES: ("user_id", "email"),
    Table.PROPERTIES: ("situs_address",),
}


def _now() -> str:
    return datetime.now(UTC).isoformat()


class InMemoryRecordStore:
    """Dictionary-backed ``RecordStorePort`` with FK and unique enforcement.

    Rows get a generated ``id`` and ``created_at`` when the caller does not
    supply them. Every method returns copies so callers cannot mutate stored
    rows. A single lock serialises writes; the store is safe to share between
    FastAPI's worker threads.
    """

    def __init__(self) -> None:
        self._tables: dict[Table, dict[str, Record]] = {table: {} for table in Table}
        self._lock = threading.RLock()

    # -- RecordStorePort ----------------------------------------------------

    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        name = self._table(table, "insert")
        with self._lock:
            row = dict(record)
            row.setdefault("id", str(uuid4()))
            row.setdefault("created_at", _now())
            if row["id"] in self._tables[name]:
                msg = f"Duplicate id {row['id']} in {name}"
                raise UniqueViolationError(msg, table=name, operation="insert")
            self._check_unique(name, row, "insert")
            self._check_references(name, row, "insert")
            self._tables[name][row["id"]] = row
            return copy.deepcopy(row)

    def upsert(self, table: str, record: Mapping[str, Any], *, on_conflict: str) -> Record:
        name = self._table(table, "upsert")
        with self._lock:
            key = record.get(on_conflict)
            existing = next(
                (row for row in self._tables[name].values() if row.get(on_conflict) == key),
                None,
            )
            if existing is None:
                return self.insert(name, record)
            merged = {**existing, **record, "id": existing["id"]}
            self._check_unique(name, merged, "upsert", ignore_id=existing["id"])
            self._check_references(name, merged, "upsert")
            self._tables[name][existing["id"]] = merged
            return copy.deepcopy(merged)

    def select(
        self,
        table: str,
        where: Filter | None = None,
        *,
        columns: Sequence[str] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        name = self._table(table, "select")
        with self._lock:
            rows = self._matching(name, where)
            if order_by is not None:
                # None sorts first ascending, last descending
                rows.sort(
                    key=lambda row: (row.get(order_by) is not None, row.get(order_by) or ""),
                    reverse=descending,
                )
            if columns is not None:
                return [
                    {column: copy.deepcopy(row.get(column)) for column in columns}
                    for row in rows
                ]
            return [copy.deepcopy(row) for row in rows]

    def update(self, table: str, values: Mapping[str, Any], where: Filter) -> list[Record]:
        name = self._table(table, "update")
        with self._lock:
            updated: list[Record] = []
            for row in self._matching(name, where):
                changed = {**row, **values, "id": row["id"]}
                self._check_unique(name, changed, "update", ignore_id=row["id"])
                self._check_references(name, changed, "update")
                updated.append(changed)
            for row in updated:
                self._tables[name][row["id"]] = row
            return [copy.deepcopy(row) for row in updated]

    def delete(self, table: str, where: Filter) -> int:
        name = self._table(table, "delete")
        with self._lock:
            doomed = self._matching(name, where)
            doomed_ids = {row["id"] for row in doomed}
            for fk in references_to(name):
                referenced = {row.get(fk.parent_column) for row in doomed} - {None}
                if not referenced:
                    continue
                blocking = [
                    child
                    for child in self._tables[fk.child].values()
                    if child.get(fk.column) in referenced
                    and not (fk.child is name and child["id"] in doomed_ids)
                ]
                if blocking:
                    msg = (
                        f"update or delete on table \"{name}\" violates foreign key on "
                        f"\"{fk.child}.{fk.column}\" ({len(blocking)} referencing rows)"
                    )
                    raise ForeignKeyViolationError(msg, table=name, operation="delete")
            for row_id in doomed_ids:
                del self._tables[name][row_id]
            return len(doomed_ids)

    # -- helpers ------------------------------------------------------------

    def seed(self, table: str, *records: Mapping[str, Any]) -> list[Record]:
        """Insert fixture rows, with the same constraint checks as ``insert``."""
        return [self.insert(table, record) for record in records]

    def count(self, table: str, where: Filter | None = None) -> int:
        name = self._table(table, "select")
        with self._lock:
            return len(self._matching(name, where))

    def _table(self, table: str, operation: str) -> Table:
        try:
            return Table(table)
        except ValueError as exc:
            msg = f"Unknown table: {table}"
            raise StoreError(msg, table=str(table), operation=operation) from exc

    def _matching(self, table: Table, where: Filter | None) -> list[Record]:
        rows = list(self._tables[table].values())
        if where is None:
            return rows
        if where.is_void:
            return []
        return [row for row in rows if where.matches(row)]

    def _check_unique(
        self,
        table: Table,
        row: Record,
        operation: str,
        *,
        ignore_id: str | None = None,
    ) -> None:
        for column in UNIQUE_COLUMNS.get(table, ()):
            value = row.get(column)
            if value is None:
                continue
            for other in self._tables[table].values():
                if other["id"] != ignore_id and other.get(column) == value:
                    msg = f"duplicate key value violates unique constraint \"{table}_{column}_key\""
                    raise UniqueViolationError(msg, table=table, operation=operation)

    def _check_references(self, table: Table, row: Record, operation: str) -> None:
        for fk in foreign_keys_of(table):
            value = row.get(fk.column)
            if value is None:
                continue
            if not any(
                parent.get(fk.parent_column) == value
                for parent in self._tables[fk.parent].values()
            ):
                msg = (
                    f"insert or update on table \"{table}\" violates foreign key "
                    f"\"{fk.column}\" -> {fk.parent}.{fk.parent_column}"
                )
                raise ForeignKeyViolationError(msg, table=table, operation=operation)


class InMemoryIdentityProvider:
    """``IdentityProviderPort`` keeping identities in a dict.

    Args:
        removal_allowed: When False, ``remove_identity`` fails the way the
            hosted service does when called without admin credentials.
    """

    def __init__(self, *, removal_allowed: bool = True) -> None:
        self.removal_allowed = removal_allowed
        self.identities: dict[str, dict[str, Any]] = {}

    def create_identity(
        self,
        email: str,
        password: str,
        metadata: Mapping[str, Any] | None = None,
        *,
        redirect_to: str | None = None,
    ) -> str:
        if not password:
            msg = "Password is required"
            raise IdentityProviderError(msg, status_code=422)
        if any(entry["email"].casefold() == email.casefold() for entry in self.identities.values()):
            msg = "User already registered"
            raise IdentityProviderError(msg, status_code=422)
        identity_id = str(uuid4())
        self.identities[identity_id] = {
            "email": email,
            "metadata": dict(metadata or {}),
            "redirect_to": redirect_to,
        }
        return identity_id

    def remove_identity(self, identity_id: str) -> None:
        if not self.removal_allowed:
            msg = "User not allowed"
            raise IdentityProviderError(msg, status_code=403)
        self.identities.pop(identity_id, None)


class RecordingJobDispatcher:
    """``JobDispatcherPort`` that records invocations instead of running them."""

    def __init__(self) -> None:
        self.invocations: list[tuple[str, dict[str, Any]]] = []

    def invoke_async_job(self, job_name: str, payload: Mapping[str, Any]) -> None:
        self.invocations.append((job_name, dict(payload)))
        logger.debug("job_recorded", extra={"job": job_name})
