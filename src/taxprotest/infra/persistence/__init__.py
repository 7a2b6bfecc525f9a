"""Record store, identity and job adapters (Supabase REST and in-memory)."""

from taxprotest.infra.persistence.backend import (
    Backend,
    create_backend,
    create_memory_backend,
    create_supabase_backend,
)
from taxprotest.infra.persistence.memory import (
    InMemoryIdentityProvider,
    InMemoryRecordStore,
    RecordingJobDispatcher,
)
from taxprotest.infra.persistence.settings import (
    PersistenceSettings,
    SupabaseSettings,
    get_persistence_settings,
    get_supabase_settings,
)
from taxprotest.infra.persistence.supabase import (
    SupabaseFunctionDispatcher,
    SupabaseIdentityProvider,
    SupabaseRecordStore,
    SupabaseRequestError,
    SupabaseRestClient,
    encode_filter,
)

__all__ = [
    "Backend",
    "InMemoryIdentityProvider",
    "InMemoryRecordStore",
    "PersistenceSettings",
    "RecordingJobDispatcher",
    "SupabaseFunctionDispatcher",
    "SupabaseIdentityProvider",
    "SupabaseRecordStore",
    "SupabaseRequestError",
    "SupabaseRestClient",
    "SupabaseSettings",
    "create_backend",
    "create_memory_backend",
    "create_supabase_backend",
    "encode_filter",
    "get_persistence_settings",
    "get_supabase_settings",
]
