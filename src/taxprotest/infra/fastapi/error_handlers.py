"""RFC 7807 Problem Details exception handlers for FastAPI.

Translates domain exceptions into standardized HTTP responses following
RFC 7807 Problem Details for HTTP APIs. All handlers return responses with
Content-Type: application/problem+json.

Usage:
    from taxprotest.infra.fastapi.error_handlers import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from taxprotest.foundation.domain.exceptions import (
    ConflictError,
    DomainError,
    NotFoundError,
    ValidationError,
    WorkflowStepError,
)
from taxprotest.infra.fastapi.middleware.request_id import get_request_id

if TYPE_CHECKING:
    from fastapi import FastAPI, Request

logger = logging.getLogger(__name__)

PROBLEM_MEDIA_TYPE = "application/problem+json"


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details response model.

    Standard fields: type, title, status, detail, instance.

    Extension fields:
    - error_code: Machine-readable error code for client handling
    - context: Structured debugging information
    - correlation_id: Request correlation ID (5xx errors only)
    """

    type: str = Field(
        ...,
        description="URI reference identifying problem type",
        examples=["/errors/not-found", "/errors/conflict"],
    )
    title: str = Field(
        ...,
        description="Short human-readable summary",
        examples=["Resource Not Found", "Conflict"],
    )
    status: int = Field(..., ge=400, le=599, description="HTTP status code")
    detail: str = Field(..., description="Human-readable explanation")
    instance: str | None = Field(
        default=None,
        description="URI reference to specific occurrence (request path)",
    )
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code",
        examples=["EMAIL_EXISTS_PENDING", "DUPLICATE_PROPERTY"],
    )
    context: dict[str, Any] | None = Field(
        default=None,
        description="Structured debugging information",
    )
    correlation_id: str | None = Field(
        default=None,
        description="Request correlation ID for support requests",
    )


_SENSITIVE_PATTERNS = [
    (
        re.compile(r"bearer\s+[A-Za-z0-9._~+/=-]+", re.IGNORECASE),
        "Bearer [REDACTED]",
    ),
    (
        re.compile(r"password\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "password=[REDACTED]",
    ),
    (
        re.compile(r"secret\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "secret=[REDACTED]",
    ),
    (
        re.compile(r"token\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "token=[REDACTED]",
    ),
    (
        re.compile(r"api[_-]?key\s*=\s*['\"]?[^'\"\s]+['\"]?", re.IGNORECASE),
        "api_key=[REDACTED]",
    ),
]

_SENSITIVE_KEYS = frozenset(
    {"password", "secret", "token", "api_key", "apikey", "credential", "signature"}
)


def _create_problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def _get_correlation_id() -> str:
    """Request id set by RequestIdMiddleware, or "unknown" outside a request."""
    return get_request_id() or "unknown"


def _sanitize_context(context: dict[str, Any] | None) -> dict[str, Any] | None:
    """Make exception context safe for a response body.

    Drops sensitive keys, redacts credentials inside strings, and converts
    values JSON cannot carry to strings.
    """
    if context is None:
        return None

    sanitized = {}
    for key, value in context.items():
        if _is_sensitive_key(key):
            continue
        sanitized[key] = _sanitize_value(value)

    return sanitized if sanitized else None


def _is_sensitive_key(key: str) -> bool:
    return key.lower() in _SENSITIVE_KEYS


def _sanitize_value(value: Any) -> Any:
    if isinstance(value, UUID | Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, str):
        return _redact_sensitive_strings(value)
    if isinstance(value, dict):
        return _sanitize_context(value)
    if isinstance(value, list | tuple):
        return [_sanitize_value(v) for v in value]
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


def _redact_sensitive_strings(text: str) -> str:
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result


async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    """Translate NotFoundError to 404 with RFC 7807 problem details."""
    problem = ProblemDetail(
        type="/errors/not-found",
        title="Resource Not Found",
        status=404,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def validation_error_handler(
    request: Request,
    exc: ValidationError,
) -> JSONResponse:
    """Translate ValidationError (including missing form fields) to 422."""
    problem = ProblemDetail(
        type="/errors/validation-error",
        title="Validation Error",
        status=422,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def conflict_error_handler(
    request: Request,
    exc: ConflictError,
) -> JSONResponse:
    """Translate ConflictError to 409.

    Covers duplicate emails and addresses and invalid protest status moves;
    the client branches on ``error_code`` (e.g. ``EMAIL_EXISTS_AUTHENTICATED``
    carries ``redirect_to`` in its context).
    """
    problem = ProblemDetail(
        type="/errors/conflict",
        title="Conflict",
        status=409,
        detail=exc.reason,
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def domain_error_handler(
    request: Request,
    exc: DomainError,
) -> JSONResponse:
    """Translate generic DomainError to 400 Bad Request.

    Fallback for domain errors without a more specific handler.
    """
    problem = ProblemDetail(
        type="/errors/domain-error",
        title="Bad Request",
        status=400,
        detail=str(exc),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=_sanitize_context(exc.context),
    )
    return _create_problem_response(problem)


async def workflow_step_error_handler(
    request: Request,
    exc: WorkflowStepError,
) -> JSONResponse:
    """Translate a failed intake or deletion step to 502 Bad Gateway.

    The request was acceptable; a dependency (record store, identity
    service) failed partway through. The step name tells support where.
    """
    correlation_id = _get_correlation_id()
    logger.error(
        "workflow_step_failed",
        extra={
            "correlation_id": correlation_id,
            "path": str(request.url.path),
            "step": exc.step,
            "error_code": exc.error_code,
        },
    )
    context: dict[str, Any] = {"step": exc.step}
    compensated = getattr(exc, "compensated", None)
    if compensated is not None:
        context["compensated"] = compensated
    problem = ProblemDetail(
        type="/errors/upstream-failure",
        title="Bad Gateway",
        status=502,
        detail=_redact_sensitive_strings(str(exc)),
        instance=str(request.url.path),
        error_code=exc.error_code,
        context=context,
        correlation_id=correlation_id,
    )
    return _create_problem_response(problem)


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Translate FastAPI's request body, query and path validation errors to 422."""
    errors = [
        {
            "loc": list(error.get("loc", [])),
            "msg": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]

    problem = ProblemDetail(
        type="/errors/request-validation-error",
        title="Request Validation Error",
        status=422,
        detail="Request validation failed",
        instance=str(request.url.path),
        error_code="REQUEST_VALIDATION_ERROR",
        context={"errors": errors},
    )
    return _create_problem_response(problem)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Catch-all handler for unhandled exceptions.

    Logs full exception details but returns a sanitized response with a
    correlation ID. When ``app.state.debug`` is set (``APP_DEBUG``) the
    exception type and message are included.
    """
    correlation_id = _get_correlation_id()

    logger.exception(
        "unhandled_exception",
        extra={
            "correlation_id": correlation_id,
            "path": str(request.url.path),
            "method": request.method,
            "exception_type": type(exc).__name__,
        },
    )

    debug_mode = getattr(request.app.state, "debug", False)

    if debug_mode:
        detail = f"{type(exc).__name__}: {exc}"
        context: dict[str, Any] | None = {"exception_type": type(exc).__name__}
    else:
        detail = "An internal error occurred. Please contact support with the correlation ID."
        context = None

    problem = ProblemDetail(
        type="/errors/internal-error",
        title="Internal Server Error",
        status=500,
        detail=detail,
        instance=str(request.url.path),
        error_code="INTERNAL_ERROR",
        context=context,
        correlation_id=correlation_id,
    )
    return _create_problem_response(problem)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on a FastAPI application.

    Starlette resolves handlers by walking the exception's MRO, so each
    subclass below gets its own status:

    1. NotFoundError -> 404
    2. ValidationError -> 422
    3. ConflictError -> 409 (incl. InvalidStateTransitionError)
    4. DomainError -> 400 (base class fallback)
    5. WorkflowStepError -> 502 (IntakeStepError, AccountDeletionError, ProtestStepError)
    6. RequestValidationError -> 422 (Pydantic)
    7. Exception -> 500 (catch-all)
    """
    # Type ignores: Starlette's handler typing expects the base Exception signature
    app.add_exception_handler(
        NotFoundError,
        not_found_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ValidationError,
        validation_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        ConflictError,
        conflict_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        DomainError,
        domain_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        WorkflowStepError,
        workflow_step_error_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(
        RequestValidationError,
        request_validation_handler,  # type: ignore[arg-type]
    )
    app.add_exception_handler(Exception, unhandled_exception_handler)
