# ============================================================================
# VERSION - LIVENESS SIDECAR
# ============================================================================
"""
Version information for the liveness sidecar.

This is the single source of truth for the application version.
Updated manually for each release.
"""
# Version format: major.minor.patch
__version__ = "0.3.1"

# Build metadata
BUILD_DATE = "2026-10-19"

