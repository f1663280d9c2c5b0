# ============================================================================
# HEALTH CHECKS
# ============================================================================
# STATUS: Core - Health check implementations
# PURPOSE: Backing store and dependency liveness checks
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Checks

- database: StoreConnectionManager (pool lifecycle + liveness probe)
- dependencies: DependencyChecker (parallel GET <url>/health probes)

Both write into a HealthRegistry and never raise to their callers.
"""

from health.checks.database import (
    PoolState,
    PoolTransition,
    StoreConnectionManager,
)
from health.checks.dependencies import DependencyChecker, health_url

__all__ = [
    # Backing store
    "PoolState",
    "PoolTransition",
    "StoreConnectionManager",
    # Dependencies
    "DependencyChecker",
    "health_url",
]
