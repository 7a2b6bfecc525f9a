"""Signup intake REST API router.

Accepts the multi-step signup form as one submission and creates the
customer's record graph.
"""

# NOTE: no ``from __future__ import annotations``; see dependencies.py.

from typing import Self

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from taxprotest.domain.intake import IntakeResult, IntakeSubmission
from taxprotest.infra.fastapi.dependencies import IntakeWorkflowDep

router = APIRouter(tags=["intake"])


# -- Request / Response models ------------------------------------------------


class SubmitApplicationRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    form_data: IntakeSubmission
    origin: str | None = None


class IntakeResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    user_id: str
    profile_id: str
    property_id: str
    requires_email_confirmation: bool
    message: str
    redirect_to: str | None = None

    @classmethod
    def from_result(cls, result: IntakeResult) -> Self:
        return cls(
            user_id=result.user_id,
            profile_id=result.profile_id,
            property_id=result.property_id,
            requires_email_confirmation=result.requires_email_confirmation,
            message=result.message,
            redirect_to=result.redirect_to,
        )


# -- Endpoints ----------------------------------------------------------------


@router.post("/applications", status_code=201)
def submit_application(
    body: SubmitApplicationRequest,
    request: Request,
    workflow: IntakeWorkflowDep,
) -> IntakeResponse:
    """Register a new customer with their first property."""
    origin = body.origin or request.headers.get("origin")
    result = workflow.submit(body.form_data, origin=origin)
    return IntakeResponse.from_result(result)
