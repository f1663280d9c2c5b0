# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Provides centralized configuration and defaults for the liveness sidecar.
"""

from core.config.defaults import (
    PoolDefaults,
    PollDefaults,
    SidecarConfig,
    parse_dependencies,
    get_config,
    reset_config,
)

__all__ = [
    "PoolDefaults",
    "PollDefaults",
    "SidecarConfig",
    "parse_dependencies",
    "get_config",
    "reset_config",
]
