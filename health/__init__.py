# ============================================================================
# HEALTH MODULE
# ============================================================================
# STATUS: Core - Health-state engine
# PURPOSE: Backing store lifecycle, dependency probes, aggregated verdict
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Module

Health-state engine for the liveness sidecar:
- /livez: Process alive (instant, for Kubernetes liveness probe)
- /health: Aggregated snapshot (backing store + dependencies)

Architecture:
- HealthRegistry: Thread-safe aggregate, the only shared mutable state
- StoreConnectionManager: Pool create / verify / destroy state machine
- DependencyChecker: Parallel, timeout-bounded GET <url>/health probes
- HealthPoller: Two independent timers driving the above

Usage:
    from health import HealthRegistry, HealthPoller, health_router

    registry = HealthRegistry(service_name="orders")
    app.state.health_registry = registry
    app.include_router(health_router)
"""

from health.registry import HealthRegistry
from health.checks import (
    PoolState,
    PoolTransition,
    StoreConnectionManager,
    DependencyChecker,
)
from health.poller import HealthPoller
from health.router import health_router, get_health_registry

__all__ = [
    # Registry
    "HealthRegistry",
    # Checks
    "PoolState",
    "PoolTransition",
    "StoreConnectionManager",
    "DependencyChecker",
    # Poller
    "HealthPoller",
    # Router
    "health_router",
    "get_health_registry",
]
