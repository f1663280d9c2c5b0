# ============================================================================
# LIVENESS SIDECAR - MAIN APPLICATION
# ============================================================================
# STATUS: Core - FastAPI application entry point
# PURPOSE: Wire registry, store manager, dependency checker and poller
# CREATED: 19 OCT 2026
# ============================================================================
"""
Liveness Sidecar Main Application

FastAPI application that:
1. Serves the aggregated health snapshot on /health
2. Keeps the backing store pool alive (create / verify / recreate)
3. Polls declared dependencies in the background

Usage:
    uvicorn main:app --host 0.0.0.0 --port 3000
    python main.py
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE
from core.config import SidecarConfig, get_config
from core.logging import configure_logging, get_logger, ComponentType
from health import (
    HealthRegistry,
    StoreConnectionManager,
    DependencyChecker,
    HealthPoller,
    health_router,
)
from health.checks.database import PoolFactory, SecretProvider
from infrastructure.secrets import KeyVaultSecretProvider

logger = get_logger(__name__, component=ComponentType.API)


def create_app(
    config: Optional[SidecarConfig] = None,
    secret_provider: Optional[SecretProvider] = None,
    pool_factory: Optional[PoolFactory] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Service configuration (defaults to environment)
        secret_provider: Connection string source (defaults to Key Vault)
        pool_factory: Pool constructor (defaults to psycopg_pool)
        http_client: Client for dependency probes (defaults to a new one)

    Returns:
        FastAPI app with the health registry on app.state
    """
    config = config or get_config()

    registry = HealthRegistry(service_name=config.service_name)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Runs the startup checks and timers on startup, drains them on
        shutdown.
        """
        logger.info(
            f"Starting {config.service_name} v{__version__} (Build {BUILD_DATE})"
        )
        logger.info(f"Dependencies: {len(config.dependencies)}")

        provider = secret_provider or KeyVaultSecretProvider(
            config.db_secret_id,
            managed_identity_client_id=config.managed_identity_client_id,
        )
        store_manager = StoreConnectionManager(
            registry,
            provider,
            settings=config.pool,
            pool_factory=pool_factory,
        )
        dependency_checker = DependencyChecker(
            registry,
            config.dependencies,
            timeout_seconds=config.poll.dependency_timeout_seconds,
            client=http_client,
        )
        poller = HealthPoller(
            store_manager,
            dependency_checker,
            store_interval=config.poll.store_interval_seconds,
            dependency_interval=config.poll.dependency_interval_seconds,
            shutdown_grace=config.poll.shutdown_grace_seconds,
        )

        app.state.store_manager = store_manager
        app.state.dependency_checker = dependency_checker
        app.state.poller = poller

        # Initial store connection and dependency round, then timers.
        # A store that is not ready yet is retried by the store timer.
        await poller.start()
        logger.info("Service started successfully")

        yield

        logger.info("Shutting down gracefully...")

        await poller.stop()
        await dependency_checker.close()
        await store_manager.close()
        if isinstance(provider, KeyVaultSecretProvider):
            await provider.close()

        logger.info("Service stopped")

    app = FastAPI(
        title=config.service_name,
        description="Liveness reporting sidecar",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.health_registry = registry

    # Include health check routes (no prefix - /, /livez, /health)
    app.include_router(health_router)

    return app


config = get_config()

configure_logging(
    level=config.log_level,
    json_output=config.log_format == "json",
    service=config.service_name,
)

app = create_app(config)


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
