"""Port interface for the tabular record store.

Records are plain dictionaries keyed by column name. Every row carries a
generated ``id``; tables are addressed by name so the domain can pass
``Table`` members (a ``StrEnum``) directly.

Example:
    >>> from taxprotest.foundation.domain.ports import Filter, RecordStorePort
    >>> def count_properties(store: RecordStorePort, user_id: str) -> int:
    ...     return len(store.select("properties", Filter.eq("user_id", user_id)))
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

Record = dict[str, Any]


class StoreError(Exception):
    """Raised when the record store rejects or fails an operation.

    Attributes:
        table: Table the operation targeted, when known.
        operation: Operation name (insert, upsert, select, update, delete).
    """

    def __init__(
        self,
        message: str,
        *,
        table: str | None = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.table = table
        self.operation = operation


class UniqueViolationError(StoreError):
    """Raised when a write would duplicate a unique column value."""


class ForeignKeyViolationError(StoreError):
    """Raised when a write or delete would break a foreign key reference."""


@dataclass(frozen=True, slots=True)
class Condition:
    """A single column predicate.

    Attributes:
        column: Column name.
        operator: ``eq`` for equality, ``in`` for membership.
        value: Compared value, or a tuple of values for ``in``.
    """

    column: str
    operator: Literal["eq", "in"]
    value: Any

    def matches(self, record: Mapping[str, Any]) -> bool:
        actual = record.get(self.column)
        if self.operator == "in":
            return actual in self.value
        return bool(actual == self.value)

    @property
    def is_void(self) -> bool:
        """True for an ``in`` condition over an empty set."""
        return self.operator == "in" and not self.value


@dataclass(frozen=True, slots=True)
class Filter:
    """Row filter: a conjunction of conditions, or a disjunction of equalities.

    An ``in`` condition over an empty collection matches nothing, so a
    conjunctive filter containing one is void.

    Example:
        >>> Filter.eq("user_id", "u1").and_in("property_id", ["p1", "p2"])
        >>> Filter.any_eq(referrer_id="u1", referee_id="u1")
    """

    conditions: tuple[Condition, ...]
    disjunctive: bool = False

    def __post_init__(self) -> None:
        if not self.conditions:
            msg = "Filter requires at least one condition"
            raise ValueError(msg)
        if self.disjunctive and any(c.operator != "eq" for c in self.conditions):
            msg = "Disjunctive filters support equality conditions only"
            raise ValueError(msg)

    @classmethod
    def eq(cls, column: str, value: Any) -> Filter:
        return cls((Condition(column, "eq", value),))

    @classmethod
    def in_(cls, column: str, values: Iterable[Any]) -> Filter:
        return cls((Condition(column, "in", tuple(dict.fromkeys(values))),))

    @classmethod
    def any_eq(cls, **columns: Any) -> Filter:
        """Match rows where any of the given columns equals its value."""
        return cls(
            tuple(Condition(column, "eq", value) for column, value in columns.items()),
            disjunctive=True,
        )

    def and_eq(self, column: str, value: Any) -> Filter:
        return self._extend(Condition(column, "eq", value))

    def and_in(self, column: str, values: Iterable[Any]) -> Filter:
        return self._extend(Condition(column, "in", tuple(dict.fromkeys(values))))

    def _extend(self, condition: Condition) -> Filter:
        if self.disjunctive:
            msg = "Cannot extend a disjunctive filter"
            raise ValueError(msg)
        return Filter((*self.conditions, condition))

    @property
    def is_void(self) -> bool:
        """True when the filter can match no row at all."""
        if self.disjunctive:
            return False
        return any(condition.is_void for condition in self.conditions)

    def matches(self, record: Mapping[str, Any]) -> bool:
        if self.disjunctive:
            return any(condition.matches(record) for condition in self.conditions)
        return all(condition.matches(record) for condition in self.conditions)


@runtime_checkable
class RecordStorePort(Protocol):
    """Port for the backing table store.

    Implementations report failures by raising ``StoreError`` (or one of its
    subclasses); they never return partial error payloads.
    """

    def insert(self, table: str, record: Mapping[str, Any]) -> Record:
        """Insert one row and return it as stored, including its generated ``id``."""
        ...

    def upsert(self, table: str, record: Mapping[str, Any], *, on_conflict: str) -> Record:
        """Insert a row, or merge into the existing row sharing ``on_conflict``."""
        ...

    def select(
        self,
        table: str,
        where: Filter | None = None,
        *,
        columns: Sequence[str] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Record]:
        """Return matching rows, optionally projected and ordered."""
        ...

    def update(self, table: str, values: Mapping[str, Any], where: Filter) -> list[Record]:
        """Apply ``values`` to matching rows and return the updated rows."""
        ...

    def delete(self, table: str, where: Filter) -> int:
        """Delete matching rows and return how many were removed."""
        ...
