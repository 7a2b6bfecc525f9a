"""FastAPI dependencies exposing the application services.

Services are built once by ``create_app`` and kept on ``app.state.services``;
endpoints receive them through the ``*Dep`` aliases below.

Usage in endpoint::

    @router.get("/accounts")
    def list_accounts(directory: AccountDirectoryDep) -> list[ProfileSummary]: ...
"""

# NOTE: Do NOT use ``from __future__ import annotations`` here.
# The ``Annotated`` aliases must be runtime objects for FastAPI to resolve
# them, including under pytest --import-mode=importlib.

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request

from taxprotest.domain.accounts import AccountDeletionService, AccountDirectory
from taxprotest.domain.intake import IntakeSettings, IntakeWorkflow
from taxprotest.domain.protest import ProtestStatusService
from taxprotest.infra.persistence import Backend


@dataclass(frozen=True)
class Services:
    """Every service the HTTP layer calls, sharing one backend."""

    backend: Backend
    intake: IntakeWorkflow
    deletion: AccountDeletionService
    directory: AccountDirectory
    protests: ProtestStatusService


def build_services(backend: Backend, intake_settings: IntakeSettings | None = None) -> Services:
    """Wire the domain services onto ``backend``."""
    return Services(
        backend=backend,
        intake=IntakeWorkflow(backend.store, backend.identity, backend.jobs, intake_settings),
        deletion=AccountDeletionService(backend.store, backend.identity),
        directory=AccountDirectory(backend.store),
        protests=ProtestStatusService(backend.store),
    )


def get_services(request: Request) -> Services:
    """Retrieve the service container from app state."""
    return request.app.state.services  # type: ignore[no-any-return]


def get_backend(request: Request) -> Backend:
    return get_services(request).backend


def get_intake_workflow(request: Request) -> IntakeWorkflow:
    return get_services(request).intake


def get_account_deletion_service(request: Request) -> AccountDeletionService:
    return get_services(request).deletion


def get_account_directory(request: Request) -> AccountDirectory:
    return get_services(request).directory


def get_protest_service(request: Request) -> ProtestStatusService:
    return get_services(request).protests


BackendDep = Annotated[Backend, Depends(get_backend)]
IntakeWorkflowDep = Annotated[IntakeWorkflow, Depends(get_intake_workflow)]
AccountDeletionDep = Annotated[AccountDeletionService, Depends(get_account_deletion_service)]
AccountDirectoryDep = Annotated[AccountDirectory, Depends(get_account_directory)]
ProtestServiceDep = Annotated[ProtestStatusService, Depends(get_protest_service)]
