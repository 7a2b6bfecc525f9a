"""Shared fixtures: an in-memory backend and signup form payloads."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

from taxprotest.domain.intake import IntakeSettings, IntakeSubmission, IntakeWorkflow
from taxprotest.infra.persistence import Backend, create_memory_backend

if TYPE_CHECKING:
    from collections.abc import Callable

    from taxprotest.infra.persistence import (
        InMemoryIdentityProvider,
        InMemoryRecordStore,
        RecordingJobDispatcher,
    )


def make_payload(**overrides: Any) -> dict[str, Any]:
    """Camel-case signup form for a homeowner at 1 Main St."""
    payload: dict[str, Any] = {
        "email": "a@x.com",
        "firstName": "Ann",
        "lastName": "Lee",
        "phone": "555-0100",
        "address": "1 Main St",
        "formattedAddress": "1 Main St, Austin, TX 78701, USA",
        "placeId": "ChIJ-main-st",
        "county": "Travis County",
        "estimatedSavings": 1200.0,
        "role": "homeowner",
        "agreeToUpdates": True,
        "signature": "Ann Lee",
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def backend() -> Backend:
    return create_memory_backend()


@pytest.fixture()
def store(backend: Backend) -> InMemoryRecordStore:
    return backend.store  # type: ignore[return-value]


@pytest.fixture()
def identity(backend: Backend) -> InMemoryIdentityProvider:
    return backend.identity  # type: ignore[return-value]


@pytest.fixture()
def jobs(backend: Backend) -> RecordingJobDispatcher:
    return backend.jobs  # type: ignore[return-value]


@pytest.fixture()
def intake_settings() -> IntakeSettings:
    return IntakeSettings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture()
def workflow(backend: Backend, intake_settings: IntakeSettings) -> IntakeWorkflow:
    return IntakeWorkflow(backend.store, backend.identity, backend.jobs, intake_settings)


@pytest.fixture()
def payload_factory() -> Callable[..., dict[str, Any]]:
    return make_payload


@pytest.fixture()
def submission_factory() -> Callable[..., IntakeSubmission]:
    """Build a submission from ``make_payload`` with camel-case overrides."""

    def _factory(**overrides: Any) -> IntakeSubmission:
        return IntakeSubmission.model_validate(make_payload(**overrides))

    return _factory
