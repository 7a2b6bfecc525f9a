"""Port interface for fire-and-forget server-side jobs (e.g. form PDF generation)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping


class JobDispatchError(Exception):
    """Raised when a job could not be handed off."""

    def __init__(self, job_name: str, reason: str) -> None:
        super().__init__(f"Job '{job_name}' dispatch failed: {reason}")
        self.job_name = job_name
        self.reason = reason


@runtime_checkable
class JobDispatcherPort(Protocol):
    """Port for invoking named asynchronous jobs.

    Callers treat dispatch as best-effort and never wait for the job result.
    """

    def invoke_async_job(self, job_name: str, payload: Mapping[str, Any]) -> None: ...
