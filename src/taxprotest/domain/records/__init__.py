"""Customer record graph: tables, foreign keys and the orderings derived from them."""

from taxprotest.domain.records.schema import (
    FOREIGN_KEYS,
    ForeignKey,
    SchemaError,
    Table,
    children,
    deletion_order,
    dependency_order,
    foreign_keys_of,
    parents,
    references_to,
    validate_creation_plan,
)

__all__ = [
    "FOREIGN_KEYS",
    "ForeignKey",
    "SchemaError",
    "Table",
    "children",
    "deletion_order",
    "dependency_order",
    "foreign_keys_of",
    "parents",
    "references_to",
    "validate_creation_plan",
]
