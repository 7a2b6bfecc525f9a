"""Read-side listing of customer accounts for the admin console."""

from __future__ import annotations

from typing import TYPE_CHECKING

from taxprotest.domain.records import Table

if TYPE_CHECKING:
    from taxprotest.foundation.domain.ports import Record, RecordStorePort


class AccountDirectory:
    """Lists customer profiles, newest first."""

    def __init__(self, store: RecordStorePort) -> None:
        self._store = store

    def list_profiles(self) -> list[Record]:
        return self._store.select(Table.PROFILES, order_by="created_at", descending=True)
