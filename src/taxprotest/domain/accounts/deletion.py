"""Cascading deletion of a customer account.

Removes every row that transitively references a profile, then the profile,
then the login identity. Runs in two phases:

1. Discovery (read-only): properties of the user with their contact and
   owner ids, protests of those properties, owners created by the user.
2. Deletion: tables in ``deletion_order()``, children before parents, each
   reporting how many rows it removed.

Completed deletion steps are not undone when a later step fails; running the
deletion again finishes the job, since every step is idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from taxprotest.domain.records import SchemaError, Table, deletion_order
from taxprotest.foundation.domain.exceptions import WorkflowStepError
from taxprotest.foundation.domain.ports import Filter, IdentityProviderError, StoreError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from taxprotest.foundation.domain.ports import (
        IdentityProviderPort,
        Record,
        RecordStorePort,
    )

logger = logging.getLogger(__name__)


@dataclass
class AccountDeletionResult:
    """Result of an account deletion.

    Attributes:
        user_id: Identity id of the deleted account.
        display_name: Name used in the summary message.
        deleted: Rows removed per table, in the order the tables were processed.
        identity_removed: Whether the login identity was removed.
    """

    user_id: str
    display_name: str
    deleted: dict[str, int] = field(default_factory=dict)
    identity_removed: bool = False

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted.values())

    @property
    def tables_processed(self) -> list[str]:
        return list(self.deleted)

    @property
    def summary(self) -> str:
        message = (
            f"User {self.display_name} and all associated data deleted successfully "
            f"({self.total_deleted} records removed)"
        )
        if not self.identity_removed:
            message += "; the login identity could not be removed and must be deleted separately"
        return message


class AccountDeletionError(WorkflowStepError):
    """Raised when a deletion step fails.

    Attributes:
        table: Table whose step failed.
        result: Counts for the steps completed before the failure.
    """

    error_code: str = "ACCOUNT_DELETION_FAILED"

    def __init__(self, table: str, reason: str, result: AccountDeletionResult) -> None:
        super().__init__(f"delete_{table}", reason)
        self.table = table
        self.result = result


@dataclass(frozen=True, slots=True)
class RecordClosure:
    """Ids discovered for one account before anything is deleted."""

    property_ids: tuple[str, ...] = ()
    protest_ids: tuple[str, ...] = ()
    contact_ids: tuple[str, ...] = ()
    owner_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class DeletionOutcome:
    """Per-account outcome of a bulk deletion."""

    user_id: str
    result: AccountDeletionResult | None = None
    error: AccountDeletionError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def _ids(rows: Iterable[Record], column: str = "id") -> tuple[str, ...]:
    return tuple(dict.fromkeys(row[column] for row in rows if row.get(column) is not None))


class AccountDeletionService:
    """Deletes a customer's whole record graph.

    Attributes:
        _store: Record store holding every customer table.
        _identity: Identity service the login identity is removed from.
    """

    def __init__(self, store: RecordStorePort, identity: IdentityProviderPort) -> None:
        self._store = store
        self._identity = identity

    def delete_account(
        self,
        user_id: str,
        display_name: str | None = None,
    ) -> AccountDeletionResult:
        """Delete every record belonging to ``user_id``, then the identity.

        Args:
            user_id: Identity id of the account.
            display_name: Name shown in the summary; defaults to ``user_id``.

        Returns:
            AccountDeletionResult with per-table counts. A second run for the
            same user reports zero everywhere.

        Raises:
            AccountDeletionError: If discovery or a deletion step fails. The
                attached result holds the counts of the completed steps.
        """
        result = AccountDeletionResult(user_id=user_id, display_name=display_name or user_id)
        logger.info("account_deletion_started", extra={"user_id": user_id})

        closure = self._discover(user_id, result)
        targets = self._targets(user_id, closure)

        for table in deletion_order():
            if table not in targets:
                msg = f"No deletion filter declared for table {table}"
                raise SchemaError(msg)
            count = 0
            for where in targets[table]:
                if where.is_void:
                    continue
                try:
                    count += self._store.delete(table, where)
                except StoreError as exc:
                    logger.error(
                        "account_deletion_step_failed",
                        extra={"user_id": user_id, "table": table.value, "reason": str(exc)},
                    )
                    raise AccountDeletionError(table.value, str(exc), result) from exc
            result.deleted[table.value] = count
            logger.debug(
                "account_deletion_step_completed",
                extra={"user_id": user_id, "table": table.value, "count": count},
            )

        result.identity_removed = self._remove_identity(user_id)
        logger.info(
            "account_deletion_completed",
            extra={
                "user_id": user_id,
                "total_deleted": result.total_deleted,
                "identity_removed": result.identity_removed,
            },
        )
        return result

    def delete_accounts(self, accounts: Iterable[tuple[str, str | None]]) -> list[DeletionOutcome]:
        """Delete several accounts one after another.

        A failure for one account is recorded in its outcome and does not stop
        the remaining deletions.
        """
        outcomes: list[DeletionOutcome] = []
        for user_id, display_name in accounts:
            try:
                result = self.delete_account(user_id, display_name)
            except AccountDeletionError as exc:
                outcomes.append(DeletionOutcome(user_id=user_id, result=exc.result, error=exc))
            else:
                outcomes.append(DeletionOutcome(user_id=user_id, result=result))
        failed = sum(1 for outcome in outcomes if not outcome.succeeded)
        logger.info(
            "account_bulk_deletion_completed",
            extra={"requested": len(outcomes), "failed": failed},
        )
        return outcomes

    def _discover(self, user_id: str, result: AccountDeletionResult) -> RecordClosure:
        try:
            properties = self._store.select(
                Table.PROPERTIES,
                Filter.eq("user_id", user_id),
                columns=("id", "contact_id", "owner_id"),
            )
            property_ids = _ids(properties)
            protests = (
                self._store.select(
                    Table.PROTESTS, Filter.in_("property_id", property_ids), columns=("id",)
                )
                if property_ids
                else []
            )
            owners = self._store.select(
                Table.OWNERS, Filter.eq("created_by_user_id", user_id), columns=("id",)
            )
        except StoreError as exc:
            logger.error(
                "account_deletion_discovery_failed",
                extra={"user_id": user_id, "reason": str(exc)},
            )
            raise AccountDeletionError(exc.table or "discovery", str(exc), result) from exc

        closure = RecordClosure(
            property_ids=property_ids,
            protest_ids=_ids(protests),
            contact_ids=_ids(properties, "contact_id"),
            owner_ids=_ids(owners),
        )
        logger.info(
            "account_deletion_discovered",
            extra={
                "user_id": user_id,
                "properties": len(closure.property_ids),
                "protests": len(closure.protest_ids),
                "contacts": len(closure.contact_ids),
                "owners": len(closure.owner_ids),
            },
        )
        return closure

    @staticmethod
    def _targets(user_id: str, closure: RecordClosure) -> dict[Table, tuple[Filter, ...]]:
        """Filters selecting the account's rows in each table.

        Several tables are matched both by user id and through a parent id set,
        so rows stamped with another user id but attached to this account's
        properties or owners cannot block the parent delete.
        """
        by_user = Filter.eq("user_id", user_id)
        by_property = Filter.in_("property_id", closure.property_ids)
        return {
            Table.BILLS: (
                by_user,
                Filter.in_("protest_id", closure.protest_ids),
                Filter.in_("owner_id", closure.owner_ids),
            ),
            Table.CUSTOMER_DOCUMENTS: (by_user, by_property),
            Table.PROPERTY_COMMUNICATIONS: (by_property,),
            Table.COMMUNICATIONS: (Filter.in_("contact_id", closure.contact_ids),),
            Table.PROTESTS: (Filter.in_("id", closure.protest_ids),),
            Table.APPLICATIONS: (by_user, by_property),
            Table.PROPERTIES: (Filter.in_("id", closure.property_ids),),
            Table.CONTACTS: (Filter.in_("id", closure.contact_ids),),
            Table.OWNERS: (Filter.in_("id", closure.owner_ids),),
            Table.CREDIT_TRANSACTIONS: (by_user,),
            Table.VERIFICATION_CODES: (by_user,),
            Table.REFERRAL_RELATIONSHIPS: (Filter.any_eq(referrer_id=user_id, referee_id=user_id),),
            Table.PROFILES: (by_user,),
        }

    def _remove_identity(self, user_id: str) -> bool:
        try:
            self._identity.remove_identity(user_id)
        except IdentityProviderError as exc:
            logger.warning(
                "account_identity_removal_failed",
                extra={"user_id": user_id, "reason": exc.message, "status_code": exc.status_code},
            )
            return False
        return True
