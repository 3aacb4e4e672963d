"""Liveness and readiness probes.

``/health`` reports which provider was selected for every capability, which
makes a misrouted deployment (say, database search where HTTP search was
intended) visible without reading the logs.  ``/ready`` gates traffic on the
catalog database being reachable.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from feed_core.composition import Capability
from sqlalchemy import text

from feed_api import __version__
from feed_api.dependencies import CompositionRootDep, ScopeDep
from feed_api.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(root: CompositionRootDep) -> HealthResponse:
    """Return service status and the selected backend per capability.

    Selection only; no backend is constructed by this endpoint.
    """
    return HealthResponse(status="healthy", version=__version__, backends=root.describe())


@router.get("/ready")
async def readiness_probe(scope: ScopeDep) -> JSONResponse:
    """Readiness probe.

    Returns HTTP 200 with ``"ready"``, or HTTP 503 with ``"not_ready"`` if
    the catalog database cannot be reached.
    """
    checks: dict[str, str] = {"db": "ok"}
    overall = "ready"

    if Capability.DATABASE_CONTEXT in scope.root.registry:
        try:
            context = scope.get(Capability.DATABASE_CONTEXT)
            await context.session.execute(text("SELECT 1"))
        except Exception as exc:
            logger.error("Readiness: DB check failed: %s", exc)
            checks["db"] = "unavailable"
            overall = "not_ready"
    else:
        checks["db"] = "not_configured"

    return JSONResponse(
        status_code=200 if overall == "ready" else 503,
        content={"status": overall, "version": __version__, "checks": checks},
    )
