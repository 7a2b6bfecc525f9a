"""Lifespan composition for the taxprotest app factory.

Composes lifespan hooks into a single FastAPI-compatible lifespan context
manager. Hooks start in list order and shut down in reverse.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import TYPE_CHECKING, Any

from taxprotest.infra.observability import configure_logging, get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Sequence
    from contextlib import AbstractAsyncContextManager

    from fastapi import FastAPI

    from taxprotest.infra.persistence import Backend

    LifespanHook = Callable[[FastAPI], AbstractAsyncContextManager[None]]

logger = logging.getLogger(__name__)


def compose_lifespan(hooks: Sequence[LifespanHook]) -> Any:
    """Create a composite lifespan from ordered hooks.

    Args:
        hooks: Async context manager factories taking the app.

    Returns:
        An async context manager factory suitable for FastAPI's ``lifespan`` parameter.
    """
    ordered = list(hooks)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as stack:
            for hook in ordered:
                logger.info("Entering lifespan hook: %r", hook)
                await stack.enter_async_context(hook(app))
            yield

    return lifespan


@asynccontextmanager
async def observability_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Configure structlog on startup."""
    configure_logging()
    get_logger(__name__).info("app_started", title=app.title, version=app.version)
    yield
    get_logger(__name__).info("app_stopped", title=app.title)


def backend_lifespan(backend: Backend) -> LifespanHook:
    """Hook releasing the backend's network resources on shutdown."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("persistence_backend_ready", extra={"backend": backend.name})
        try:
            yield
        finally:
            backend.close()
            logger.info("persistence_backend_closed", extra={"backend": backend.name})

    return _lifespan
