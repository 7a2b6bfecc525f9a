"""Aggregated health check endpoint.

Reports record store reachability and overall application readiness.
"""

# NOTE: no ``from __future__ import annotations``; see dependencies.py.

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from taxprotest.domain.records import Table
from taxprotest.foundation.domain.ports import Filter, RecordStorePort, StoreError
from taxprotest.infra.fastapi.dependencies import BackendDep

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)

# Matches no row; the check only proves the store answers.
_NIL_ID = "00000000-0000-0000-0000-000000000000"


def _check_store(store: RecordStorePort) -> dict[str, str]:
    """Check record store reachability with an empty lookup."""
    try:
        store.select(Table.PROFILES, Filter.eq("id", _NIL_ID), columns=("id",))
    except StoreError as exc:
        logger.warning("health_check: record store unhealthy: %s", exc)
        return {"status": "error", "detail": exc.message}
    return {"status": "ok"}


@router.get("/healthz")
def healthz(backend: BackendDep) -> Any:
    """Aggregated health check endpoint.

    Returns HTTP 200 when the record store answers, HTTP 503 otherwise.
    """
    checks: dict[str, dict[str, str]] = {"store": _check_store(backend.store)}

    all_ok = all(c["status"] == "ok" for c in checks.values())
    result = {
        "status": "ok" if all_ok else "degraded",
        "backend": backend.name,
        "checks": checks,
    }

    status_code = 200 if all_ok else 503
    return JSONResponse(content=result, status_code=status_code)
