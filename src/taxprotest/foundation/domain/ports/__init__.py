"""Port interfaces for the taxprotest domain layer.

Ports define the contracts the domain relies on; adapters in
``taxprotest.infra.persistence`` implement them.
"""

from taxprotest.foundation.domain.ports.identity_provider import (
    IdentityProviderError,
    IdentityProviderPort,
)
from taxprotest.foundation.domain.ports.job_dispatcher import (
    JobDispatcherPort,
    JobDispatchError,
)
from taxprotest.foundation.domain.ports.record_store import (
    Condition,
    Filter,
    ForeignKeyViolationError,
    Record,
    RecordStorePort,
    StoreError,
    UniqueViolationError,
)

__all__ = [
    "Condition",
    "Filter",
    "ForeignKeyViolationError",
    "IdentityProviderError",
    "IdentityProviderPort",
    "JobDispatchError",
    "JobDispatcherPort",
    "Record",
    "RecordStorePort",
    "StoreError",
    "UniqueViolationError",
]
