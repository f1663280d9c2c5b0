# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Health status enums and snapshot contract
# PURPOSE: Define the values that cross the registry / HTTP boundary
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: StoreStatus, OverallStatus, HealthSnapshot
# DEPENDENCIES: enum, pydantic
# ============================================================================
"""
Base contracts for the liveness sidecar.

These define the values written by the pollers and read by the query
interface:
- StoreStatus: backing store reachability
- OverallStatus: the instance verdict served on /health
- HealthSnapshot: immutable point-in-time view of the registry
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field


# ============================================================================
# STATUS ENUMS
# ============================================================================

class StoreStatus(str, Enum):
    """
    Backing store reachability.

    Written only by the store connection manager. Starts DISCONNECTED.
    """
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class OverallStatus(str, Enum):
    """
    Instance verdict.

    HEALTHY iff the backing store is CONNECTED. Dependency liveness is
    reported but never gates this value.
    """
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"

    @classmethod
    def from_store(cls, store_status: StoreStatus) -> "OverallStatus":
        """Derive the verdict from backing store status."""
        if store_status == StoreStatus.CONNECTED:
            return cls.HEALTHY
        return cls.UNHEALTHY

    @property
    def http_status_code(self) -> int:
        """HTTP status served for this verdict."""
        return 200 if self == OverallStatus.HEALTHY else 503


# ============================================================================
# SNAPSHOT
# ============================================================================

class HealthSnapshot(BaseModel):
    """
    Immutable read of the health registry.

    Built on demand for every query, never cached.
    """
    service: str
    status: OverallStatus
    timestamp: datetime
    database: StoreStatus
    dependencies: Dict[str, bool] = Field(default_factory=dict)

    model_config = {"frozen": True}

    @property
    def is_healthy(self) -> bool:
        return self.status == OverallStatus.HEALTHY

    @property
    def http_status_code(self) -> int:
        return self.status.http_status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "service": self.service,
            "status": self.status.value,
            "timestamp": self.timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "database": self.database.value,
            "dependencies": dict(self.dependencies),
        }


__all__ = [
    "StoreStatus",
    "OverallStatus",
    "HealthSnapshot",
]
