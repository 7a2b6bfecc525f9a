"""Customer account lifecycle: listing and cascading deletion."""

from taxprotest.domain.accounts.deletion import (
    AccountDeletionError,
    AccountDeletionResult,
    AccountDeletionService,
    DeletionOutcome,
    RecordClosure,
)
from taxprotest.domain.accounts.directory import AccountDirectory

__all__ = [
    "AccountDeletionError",
    "AccountDeletionResult",
    "AccountDeletionService",
    "AccountDirectory",
    "DeletionOutcome",
    "RecordClosure",
]
