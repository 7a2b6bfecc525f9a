"""Backend selection: wires the port implementations chosen by configuration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from taxprotest.infra.persistence.memory import (
    InMemoryIdentityProvider,
    InMemoryRecordStore,
    RecordingJobDispatcher,
)
from taxprotest.infra.persistence.settings import PersistenceSettings, SupabaseSettings
from taxprotest.infra.persistence.supabase import (
    SupabaseFunctionDispatcher,
    SupabaseIdentityProvider,
    SupabaseRecordStore,
    SupabaseRestClient,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from taxprotest.foundation.domain.ports import (
        IdentityProviderPort,
        JobDispatcherPort,
        RecordStorePort,
    )

logger = logging.getLogger(__name__)


def _noop() -> None:
    return None


@dataclass(frozen=True)
class Backend:
    """The three collaborators every workflow needs, plus a cleanup hook.

    Attributes:
        name: ``supabase`` or ``memory``.
        store: Record store.
        identity: Identity service.
        jobs: Job dispatcher.
        close: Releases network resources held by the adapters.
    """

    name: str
    store: RecordStorePort
    identity: IdentityProviderPort
    jobs: JobDispatcherPort
    close: Callable[[], None] = field(default=_noop)


def create_memory_backend(*, removal_allowed: bool = True) -> Backend:
    """In-process backend with FK enforcement."""
    return Backend(
        name="memory",
        store=InMemoryRecordStore(),
        identity=InMemoryIdentityProvider(removal_allowed=removal_allowed),
        jobs=RecordingJobDispatcher(),
    )


def create_supabase_backend(
    settings: SupabaseSettings,
    *,
    client: httpx.Client | None = None,
) -> Backend:
    """Backend talking to a hosted Supabase project.

    Raises:
        ValueError: If the project URL or service role key is missing.
    """
    if not settings.configured:
        msg = "Supabase backend requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY"
        raise ValueError(msg)
    rest = SupabaseRestClient(settings, client=client)
    return Backend(
        name="supabase",
        store=SupabaseRecordStore(rest),
        identity=SupabaseIdentityProvider(rest),
        jobs=SupabaseFunctionDispatcher(rest),
        close=rest.close,
    )


def create_backend(
    settings: PersistenceSettings | None = None,
    *,
    supabase: SupabaseSettings | None = None,
) -> Backend:
    """Build the backend named by ``settings.backend``.

    Args:
        settings: Backend selection. Defaults to environment configuration.
        supabase: Supabase settings, read from the environment when omitted
            and the Supabase backend is selected.

    Returns:
        A fresh Backend; nothing is shared between calls.
    """
    if settings is None:
        settings = PersistenceSettings()
    if settings.backend == "supabase":
        backend = create_supabase_backend(supabase or SupabaseSettings())
    else:
        backend = create_memory_backend()
    logger.info("persistence_backend_selected", extra={"backend": backend.name})
    return backend
