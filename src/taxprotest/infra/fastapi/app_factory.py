"""FastAPI application factory.

Provides :func:`create_app` which wires the persistence backend, domain
services, routers, middleware, error handlers and lifespan hooks.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.middleware.cors import CORSMiddleware

from fastapi import FastAPI
from taxprotest.infra.fastapi._health import router as health_router
from taxprotest.infra.fastapi.dependencies import build_services
from taxprotest.infra.fastapi.error_handlers import register_exception_handlers
from taxprotest.infra.fastapi.lifespan import (
    backend_lifespan,
    compose_lifespan,
    observability_lifespan,
)
from taxprotest.infra.fastapi.middleware.request_id import RequestIdMiddleware
from taxprotest.infra.fastapi.routers import accounts_router, intake_router, protests_router
from taxprotest.infra.fastapi.settings import AppSettings
from taxprotest.infra.persistence import create_backend

if TYPE_CHECKING:
    from fastapi import APIRouter
    from taxprotest.domain.intake import IntakeSettings
    from taxprotest.infra.fastapi.lifespan import LifespanHook
    from taxprotest.infra.persistence import Backend

logger = logging.getLogger(__name__)


def create_app(
    settings: AppSettings | None = None,
    *,
    backend: Backend | None = None,
    intake_settings: IntakeSettings | None = None,
    extra_routers: list[APIRouter] | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        backend: Persistence backend. If ``None``, one is built from the
            environment and closed on shutdown; a backend passed in is left
            open for its owner to close.
        intake_settings: Intake workflow settings. If ``None``, loaded from
            environment.
        extra_routers: Additional routers to include after the built-in ones.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or AppSettings()

    lifespan_hooks: list[LifespanHook] = []
    if settings.configure_logging:
        lifespan_hooks.append(observability_lifespan)
    if backend is None:
        backend = create_backend()
        lifespan_hooks.append(backend_lifespan(backend))

    # --- Create FastAPI app ---
    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        lifespan=compose_lifespan(lifespan_hooks),
    )
    # Kept off FastAPI(debug=...), which replaces the 500 handler with
    # Starlette's plain-text traceback page.
    app.state.debug = settings.debug
    app.state.services = build_services(backend, intake_settings)

    # --- Middleware (Starlette runs the last added first) ---
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors.allow_origins,
        allow_credentials=settings.cors.allow_credentials,
        allow_methods=settings.cors.allow_methods,
        allow_headers=settings.cors.allow_headers,
        expose_headers=settings.cors.expose_headers,
    )

    register_exception_handlers(app)

    # --- Routers ---
    routers: list[APIRouter] = [
        health_router,
        intake_router,
        accounts_router,
        protests_router,
        *(extra_routers or []),
    ]
    for router in routers:
        app.include_router(router)
        logger.info("Included router: %r", router)

    logger.info("app_created", extra={"backend": backend.name})
    return app
