"""REST API routers included by ``create_app``."""

from taxprotest.infra.fastapi.routers.accounts import router as accounts_router
from taxprotest.infra.fastapi.routers.intake import router as intake_router
from taxprotest.infra.fastapi.routers.protests import router as protests_router

__all__ = [
    "accounts_router",
    "intake_router",
    "protests_router",
]
