"""Taxprotest Infra FastAPI -- error handlers, middleware, dependencies, app factory."""

from taxprotest.infra.fastapi.app_factory import create_app
from taxprotest.infra.fastapi.dependencies import Services, build_services
from taxprotest.infra.fastapi.error_handlers import (
    ProblemDetail,
    register_exception_handlers,
)
from taxprotest.infra.fastapi.middleware.request_id import (
    RequestIdMiddleware,
    get_request_id,
)
from taxprotest.infra.fastapi.settings import AppSettings, CORSSettings

__all__ = [
    "AppSettings",
    "CORSSettings",
    "ProblemDetail",
    "RequestIdMiddleware",
    "Services",
    "build_services",
    "create_app",
    "get_request_id",
    "register_exception_handlers",
]
