# ============================================================================
# HEALTH CHECK ROUTER
# ============================================================================
# STATUS: Infrastructure - FastAPI health endpoints
# PURPOSE: Serve the registry snapshot and process liveness
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Check Router

FastAPI router serving already-computed health state. No endpoint here
performs network I/O; all reads come from the HealthRegistry.

Endpoints:
    GET /health  - Aggregated snapshot
                   {service, status, timestamp, database, dependencies}
                   200 when healthy, 503 otherwise.

    GET /livez   - Process liveness (always 200 while the loop runs)

    GET /        - Service info and endpoint index

The registry is read from app.state.health_registry, set by main.create_app().
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from health.registry import HealthRegistry
from __version__ import __version__, BUILD_DATE

logger = logging.getLogger(__name__)

health_router = APIRouter(tags=["Health"])


def get_health_registry(request: Request) -> HealthRegistry:
    """Dependency: the registry attached to the running app."""
    return request.app.state.health_registry


# ============================================================================
# HEALTH SNAPSHOT
# ============================================================================

@health_router.get("/health")
def health_status(registry: HealthRegistry = Depends(get_health_registry)):
    """
    Aggregated health snapshot.

    Overall status follows the backing store only. Dependency liveness is
    included for information.

    Returns:
        200: Backing store connected
        503: Backing store disconnected
    """
    snapshot = registry.snapshot()
    return JSONResponse(
        status_code=snapshot.http_status_code,
        content=snapshot.to_dict(),
    )


# ============================================================================
# LIVENESS PROBE
# ============================================================================

@health_router.get("/livez")
async def liveness_probe():
    """
    Kubernetes liveness probe.

    Returns 200 if the process is alive. No external checks.
    """
    return {"status": "alive", "version": __version__, "build_date": BUILD_DATE}


# ============================================================================
# ROOT
# ============================================================================

@health_router.get("/")
async def root(registry: HealthRegistry = Depends(get_health_registry)):
    """Service info."""
    return {
        "service": registry.service_name,
        "message": "Liveness reporting sidecar",
        "version": __version__,
        "endpoints": {
            "health": "/health",
            "livez": "/livez",
        },
    }


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "health_router",
    "get_health_registry",
]
