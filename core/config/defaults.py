# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for pool sizing, poll intervals, service config
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides the fixed deployment constants and the service configuration.
These can be overridden via environment variables.

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import json
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple


def _positive_float(name: str, default: float) -> float:
    """Read a positive float from the environment."""
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    value = float(raw)
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class PoolDefaults:
    """
    Defaults for the backing store connection pool.

    Fixed constants in this deployment.
    """
    min_size: int = 1
    max_size: int = 5
    connect_timeout_seconds: float = 10.0
    idle_timeout_seconds: float = 30.0
    close_timeout_seconds: float = 5.0

    # "require" encrypts without verifying the server certificate,
    # which the self-signed database certificates need
    sslmode: str = "require"

    probe_query: str = "SELECT 1"


@dataclass(frozen=True)
class PollDefaults:
    """
    Defaults for the periodic health pollers.

    The store and dependency timers are independent.
    """
    store_interval_seconds: float = 60.0
    dependency_interval_seconds: float = 60.0
    dependency_timeout_seconds: float = 5.0
    shutdown_grace_seconds: float = 15.0

    @classmethod
    def from_env(cls) -> "PollDefaults":
        """Create from environment variables."""
        store_interval = _positive_float("POLL_INTERVAL_SECONDS", 60.0)
        return cls(
            store_interval_seconds=store_interval,
            dependency_interval_seconds=_positive_float(
                "DEPENDENCY_POLL_INTERVAL_SECONDS", store_interval
            ),
            dependency_timeout_seconds=_positive_float(
                "DEPENDENCY_TIMEOUT_SECONDS", 5.0
            ),
            shutdown_grace_seconds=_positive_float("SHUTDOWN_GRACE_SECONDS", 15.0),
        )


def parse_dependencies(raw: Optional[str]) -> Tuple[str, ...]:
    """
    Parse the DEPENDENCIES value.

    Expects a JSON array of URL strings. Duplicates are dropped,
    keeping the first occurrence.

    Raises:
        ValueError: If the value is not a JSON array of strings
    """
    if raw is None or not raw.strip():
        return ()

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"DEPENDENCIES must be a JSON array: {e}") from e

    if not isinstance(parsed, list):
        raise ValueError(
            f"DEPENDENCIES must be a JSON array, got {type(parsed).__name__}"
        )

    urls = []
    for item in parsed:
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"DEPENDENCIES entries must be non-empty strings: {item!r}")
        url = item.strip()
        if url not in urls:
            urls.append(url)

    return tuple(urls)


@dataclass(frozen=True)
class SidecarConfig:
    """
    Service configuration.

    Plain values consumed by the health engine and the HTTP layer.
    """
    service_name: str = "unknown-service"
    dependencies: Tuple[str, ...] = ()
    db_secret_id: Optional[str] = None
    managed_identity_client_id: Optional[str] = None

    host: str = "0.0.0.0"
    port: int = 3000

    log_level: str = "INFO"
    log_format: str = "human"

    pool: PoolDefaults = field(default_factory=PoolDefaults)
    poll: PollDefaults = field(default_factory=PollDefaults)

    @classmethod
    def from_env(cls) -> "SidecarConfig":
        """
        Load configuration from environment variables.

        Variables:
            SERVICE_NAME: Name reported in the health response
            DEPENDENCIES: JSON array of downstream base URLs
            DB_SECRET_ID: Key Vault secret URI holding the connection string
            AZURE_CLIENT_ID: Optional user-assigned managed identity client ID
            HOST / PORT: Listening address
            POLL_INTERVAL_SECONDS: Store poll interval (default 60)
            DEPENDENCY_POLL_INTERVAL_SECONDS: Dependency poll interval
            DEPENDENCY_TIMEOUT_SECONDS: Per-probe timeout (default 5)
            LOG_LEVEL / LOG_FORMAT: Logging configuration
        """
        return cls(
            service_name=os.getenv("SERVICE_NAME") or "unknown-service",
            dependencies=parse_dependencies(os.getenv("DEPENDENCIES")),
            db_secret_id=os.getenv("DB_SECRET_ID") or None,
            managed_identity_client_id=os.getenv("AZURE_CLIENT_ID") or None,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3000")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "human").lower(),
            poll=PollDefaults.from_env(),
        )


# ============================================================================
# GLOBAL ACCESS
# ============================================================================

_config: Optional[SidecarConfig] = None


def get_config() -> SidecarConfig:
    """Get the process configuration (loaded once from the environment)."""
    global _config
    if _config is None:
        _config = SidecarConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (for testing)."""
    global _config
    _config = None
