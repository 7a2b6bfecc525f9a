"""Entity graph schema for the customer record graph.

Declares the tables a customer's data lives in and the foreign keys between
them. ``FOREIGN_KEYS`` is the single source the creation and deletion
orderings are derived from; nothing else hard-codes table order.

Tie-breaking between tables that are equally ready is by ``Table``
declaration order, earliest first for deletion and latest first for
creation, so both orderings are deterministic and mirror each other.

Example:
    >>> from taxprotest.domain.records import Table, deletion_order
    >>> deletion_order()[0], deletion_order()[-1]
    (<Table.BILLS: 'bills'>, <Table.PROFILES: 'profiles'>)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence


class SchemaError(ValueError):
    """Raised when an ordering cannot be derived or a plan contradicts the schema."""


class Table(StrEnum):
    """Tables of the customer record graph.

    Declared leaf-first: the declaration order is the preferred deletion
    order among tables with no dependency between them.
    """

    BILLS = "bills"
    CUSTOMER_DOCUMENTS = "customer_documents"
    PROPERTY_COMMUNICATIONS = "property_communications"
    COMMUNICATIONS = "communications"
    PROTESTS = "protests"
    APPLICATIONS = "applications"
    PROPERTIES = "properties"
    CONTACTS = "contacts"
    OWNERS = "owners"
    CREDIT_TRANSACTIONS = "credit_transactions"
    VERIFICATION_CODES = "verification_codes"
    REFERRAL_RELATIONSHIPS = "referral_relationships"
    PROFILES = "profiles"


@dataclass(frozen=True, slots=True)
class ForeignKey:
    """``child.column`` references ``parent.parent_column``."""

    child: Table
    column: str
    parent: Table
    parent_column: str = "id"


FOREIGN_KEYS: tuple[ForeignKey, ...] = (
    ForeignKey(Table.OWNERS, "created_by_user_id", Table.PROFILES, "user_id"),
    ForeignKey(Table.PROPERTIES, "user_id", Table.PROFILES, "user_id"),
    ForeignKey(Table.PROPERTIES, "owner_id", Table.OWNERS),
    ForeignKey(Table.PROPERTIES, "contact_id", Table.CONTACTS),
    ForeignKey(Table.APPLICATIONS, "user_id", Table.PROFILES, "user_id"),
    ForeignKey(Table.APPLICATIONS, "property_id", Table.PROPERTIES),
    ForeignKey(Table.PROTESTS, "property_id", Table.PROPERTIES),
    ForeignKey(Table.BILLS, "user_id", Table.PROFILES, "user_id"),
    ForeignKey(Table.BILLS, "owner_id", Table.OWNERS),
    ForeignKey(Table.BILLS, "protest_id", Table.PROTESTS),
    ForeignKey(Table.CUSTOMER_DOCUMENTS, "user_id", Table.PROFILES, "user_id"),
    ForeignKey(Table.CUSTOMER_DOCUMENTS, "property_id", Table.PROPERTIES),
    ForeignKey(Table.COMMUNICATIONS, "contact_id", Table.CONTACTS),
    ForeignKey(Table.PROPERTY_COMMUNICATIONS, "property_id", Table.PROPERTIES),
    ForeignKey(Table.PROPERTY_COMMUNICATIONS, "communication_id", Table.COMMUNICATIONS),
    ForeignKey(Table.CREDIT_TRANSACTIONS, "user_id", Table.PROFILES, "user_id"),
    ForeignKey(Table.VERIFICATION_CODES, "user_id", Table.PROFILES, "user_id"),
    ForeignKey(Table.REFERRAL_RELATIONSHIPS, "referrer_id", Table.PROFILES, "user_id"),
    ForeignKey(Table.REFERRAL_RELATIONSHIPS, "referee_id", Table.PROFILES, "user_id"),
)

_RANK: dict[Table, int] = {table: index for index, table in enumerate(Table)}


def foreign_keys_of(table: Table) -> tuple[ForeignKey, ...]:
    """FK edges declared on ``table`` (the columns it uses to reference others)."""
    return tuple(fk for fk in FOREIGN_KEYS if fk.child is table)


def references_to(table: Table) -> tuple[ForeignKey, ...]:
    """FK edges pointing at ``table`` from other tables."""
    return tuple(fk for fk in FOREIGN_KEYS if fk.parent is table)


def parents(table: Table) -> set[Table]:
    """Tables ``table`` references."""
    return {fk.parent for fk in foreign_keys_of(table)}


def children(table: Table) -> set[Table]:
    """Tables that reference ``table``."""
    return {fk.child for fk in references_to(table)}


def _ancestors(table: Table) -> set[Table]:
    closure = {table}
    frontier = [table]
    while frontier:
        for parent in parents(frontier.pop()):
            if parent not in closure:
                closure.add(parent)
                frontier.append(parent)
    return closure


def _sort(
    tables: set[Table],
    blockers: Callable[[Table], set[Table]],
    *,
    latest_first: bool,
) -> list[Table]:
    """Kahn's algorithm over ``tables``; a table is ready once its blockers are placed."""
    pending = {table: (blockers(table) & tables) - {table} for table in tables}
    ordered: list[Table] = []
    while pending:
        ready = [table for table, waiting in pending.items() if not waiting]
        if not ready:
            msg = f"Foreign key cycle among tables: {sorted(pending)}"
            raise SchemaError(msg)
        pick = max if latest_first else min
        chosen = pick(ready, key=_RANK.__getitem__)
        ordered.append(chosen)
        del pending[chosen]
        for waiting in pending.values():
            waiting.discard(chosen)
    return ordered


def dependency_order(table: Table | None = None) -> list[Table]:
    """Parents-before-children order over the ancestor closure of ``table``.

    Args:
        table: Table whose prerequisites are wanted (included in the result).
            When omitted, the whole graph is ordered.

    Returns:
        Tables in an order where every table follows all tables it references.

    Raises:
        SchemaError: If the graph has a cycle.
    """
    tables = _ancestors(table) if table is not None else set(Table)
    return _sort(tables, parents, latest_first=True)


def deletion_order(tables: Iterable[Table] | None = None) -> list[Table]:
    """Children-before-parents order, the order rows can be deleted in.

    Args:
        tables: Subset to order. When omitted, every table is included.

    Returns:
        Tables in an order where no table precedes a table that references it.

    Raises:
        SchemaError: If the graph has a cycle.
    """
    subset = set(tables) if tables is not None else set(Table)
    return _sort(subset, children, latest_first=False)


def validate_creation_plan(plan: Sequence[Table]) -> None:
    """Check that ``plan`` never creates a row before a parent it references.

    Only parents that appear in the plan are checked; parents outside the plan
    are assumed to exist already.

    Raises:
        SchemaError: If a duplicate table or an out-of-order step is found.
    """
    if len(set(plan)) != len(plan):
        msg = f"Creation plan repeats a table: {[str(t) for t in plan]}"
        raise SchemaError(msg)
    position = {table: index for index, table in enumerate(plan)}
    for index, table in enumerate(plan):
        for parent in parents(table):
            if position.get(parent, -1) > index:
                msg = f"Creation plan inserts {table} before its parent {parent}"
                raise SchemaError(msg)
