# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export core contracts
# LAST_REVIEWED: 19 OCT 2026
# ============================================================================

from core.contracts import StoreStatus, OverallStatus, HealthSnapshot

__all__ = [
    # Enums
    "StoreStatus",
    "OverallStatus",
    # Models
    "HealthSnapshot",
]
