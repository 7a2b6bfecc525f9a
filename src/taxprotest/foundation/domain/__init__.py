"""Taxprotest Foundation Domain -- pure Python domain primitives.

This package provides the building blocks shared by every bounded context:
exceptions, customer value objects, and the port interfaces for the record
store, identity service and job dispatcher.
"""

from taxprotest.foundation.domain.customer_value_objects import (
    Email,
    PersonName,
    SitusAddress,
)
from taxprotest.foundation.domain.exceptions import (
    ConflictError,
    DomainError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
    WorkflowStepError,
)
from taxprotest.foundation.domain.ports import (
    Filter,
    IdentityProviderError,
    IdentityProviderPort,
    JobDispatcherPort,
    JobDispatchError,
    Record,
    RecordStorePort,
    StoreError,
)

__all__ = [
    "ConflictError",
    "DomainError",
    "Email",
    "Filter",
    "IdentityProviderError",
    "IdentityProviderPort",
    "InvalidStateTransitionError",
    "JobDispatchError",
    "JobDispatcherPort",
    "NotFoundError",
    "PersonName",
    "Record",
    "RecordStorePort",
    "SitusAddress",
    "StoreError",
    "ValidationError",
    "WorkflowStepError",
]
