# ============================================================================
# HEALTH REGISTRY
# ============================================================================
# STATUS: Core - Single source of truth for instance health
# PURPOSE: Concurrency-safe aggregate of store and dependency status
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Registry

Holds the last known backing store status and per-dependency liveness.

Writers:
    StoreConnectionManager -> set_store_status()
    DependencyChecker      -> set_dependency_status()

Readers:
    /health route          -> snapshot()

All access goes through one lock. Writers hold it only to assign a value
and readers only to copy a small mapping, so a read never waits on
network I/O.

Usage:
    registry = HealthRegistry(service_name="orders")
    registry.set_store_status(StoreStatus.CONNECTED)
    registry.set_dependency_status("http://billing:8080", True)

    snapshot = registry.snapshot()
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from core.contracts import StoreStatus, OverallStatus, HealthSnapshot

logger = logging.getLogger(__name__)


class HealthRegistry:
    """
    Thread-safe health state.

    Dependency entries are created on first probe and never removed.
    """

    def __init__(self, service_name: str = "unknown-service"):
        self.service_name = service_name
        self._lock = threading.Lock()
        self._store_status = StoreStatus.DISCONNECTED
        self._dependencies: Dict[str, bool] = {}

    def set_store_status(self, status: StoreStatus) -> None:
        """Record backing store status."""
        with self._lock:
            previous = self._store_status
            self._store_status = status

        if previous != status:
            logger.info(f"Backing store status: {previous.value} -> {status.value}")

    def set_dependency_status(self, url: str, healthy: bool) -> None:
        """Record liveness for one dependency."""
        with self._lock:
            self._dependencies[url] = healthy

    @property
    def store_status(self) -> StoreStatus:
        with self._lock:
            return self._store_status

    def get_dependency_status(self, url: str) -> Optional[bool]:
        """Last known liveness, or None if never probed."""
        with self._lock:
            return self._dependencies.get(url)

    def snapshot(self) -> HealthSnapshot:
        """
        Build an immutable view of current state.

        The dependency mapping is copied; later writes do not affect
        a snapshot already returned.
        """
        with self._lock:
            store_status = self._store_status
            dependencies = dict(self._dependencies)

        return HealthSnapshot(
            service=self.service_name,
            status=OverallStatus.from_store(store_status),
            timestamp=datetime.now(timezone.utc),
            database=store_status,
            dependencies=dependencies,
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._dependencies)

    def __contains__(self, url: str) -> bool:
        with self._lock:
            return url in self._dependencies


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HealthRegistry",
]
