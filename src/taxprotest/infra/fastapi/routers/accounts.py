"""Customer account REST API router for the admin console and customer portal."""

# NOTE: no ``from __future__ import annotations``; see dependencies.py.

from typing import Any, Self

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from taxprotest.domain.accounts import AccountDeletionResult, DeletionOutcome
from taxprotest.infra.fastapi.dependencies import (
    AccountDeletionDep,
    AccountDirectoryDep,
    IntakeWorkflowDep,
)
from taxprotest.infra.fastapi.routers.intake import IntakeResponse, SubmitApplicationRequest

router = APIRouter(prefix="/accounts", tags=["accounts"])


# -- Request / Response models ------------------------------------------------


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProfileSummary(_CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str | None = None
    user_id: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    role: str | None = None
    is_authenticated: bool = False
    created_at: str | None = None


class AccountDeletionResponse(_CamelModel):
    success: bool = True
    user_id: str
    summary: str
    deleted: dict[str, int]
    total_deleted: int
    identity_removed: bool

    @classmethod
    def from_result(cls, result: AccountDeletionResult) -> Self:
        return cls(
            user_id=result.user_id,
            summary=result.summary,
            deleted=dict(result.deleted),
            total_deleted=result.total_deleted,
            identity_removed=result.identity_removed,
        )


class AccountToDelete(_CamelModel):
    user_id: str
    display_name: str | None = None


class BulkDeletionRequest(_CamelModel):
    accounts: list[AccountToDelete] = Field(min_length=1)


class BulkDeletionItem(_CamelModel):
    user_id: str
    success: bool
    summary: str | None = None
    total_deleted: int = 0
    error: str | None = None
    failed_table: str | None = None

    @classmethod
    def from_outcome(cls, outcome: DeletionOutcome) -> Self:
        if outcome.error is not None:
            return cls(
                user_id=outcome.user_id,
                success=False,
                total_deleted=outcome.error.result.total_deleted,
                error=str(outcome.error),
                failed_table=outcome.error.table,
            )
        result = outcome.result
        return cls(
            user_id=outcome.user_id,
            success=True,
            summary=result.summary if result else None,
            total_deleted=result.total_deleted if result else 0,
        )


# -- Endpoints ----------------------------------------------------------------


@router.get("")
def list_accounts(directory: AccountDirectoryDep) -> list[ProfileSummary]:
    """All customer profiles, newest first."""
    return [ProfileSummary.model_validate(_stringify(row)) for row in directory.list_profiles()]


@router.post("/deletions")
def delete_accounts(
    body: BulkDeletionRequest,
    service: AccountDeletionDep,
) -> list[BulkDeletionItem]:
    """Delete several accounts; one failure does not stop the rest."""
    outcomes = service.delete_accounts(
        (account.user_id, account.display_name) for account in body.accounts
    )
    return [BulkDeletionItem.from_outcome(outcome) for outcome in outcomes]


@router.delete("/{user_id}")
def delete_account(
    user_id: str,
    service: AccountDeletionDep,
    display_name: str | None = None,
) -> AccountDeletionResponse:
    """Delete an account and everything attached to it."""
    result = service.delete_account(user_id, display_name)
    return AccountDeletionResponse.from_result(result)


@router.post("/{user_id}/properties", status_code=201)
def add_property(
    user_id: str,
    body: SubmitApplicationRequest,
    request: Request,
    workflow: IntakeWorkflowDep,
) -> IntakeResponse:
    """Register another property for an existing customer."""
    origin = body.origin or request.headers.get("origin")
    result = workflow.add_property(user_id, body.form_data, origin=origin)
    return IntakeResponse.from_result(result)


# -- Helpers ------------------------------------------------------------------


def _stringify(row: dict[str, Any]) -> dict[str, Any]:
    created_at = row.get("created_at")
    if created_at is not None and not isinstance(created_at, str):
        return {**row, "created_at": str(created_at)}
    return row
