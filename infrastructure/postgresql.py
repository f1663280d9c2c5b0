# ============================================================================
# POSTGRESQL CONNECTION INFRASTRUCTURE
# ============================================================================
# STATUS: Infrastructure - PostgreSQL pool construction and teardown
# PURPOSE: Build, probe and close the backing store connection pool
# CREATED: 19 OCT 2026
# ============================================================================
"""
PostgreSQL Connection Infrastructure

Builds the async connection pool used for backing store liveness checks:
- Bounded pool (psycopg_pool.AsyncConnectionPool)
- Connection and acquisition timeouts
- sslmode forced to the configured value (require by default)
- Best-effort teardown that never raises

Usage:
    pool = await open_pool(conninfo, PoolDefaults())
    duration_ms = await probe_pool(pool, PoolDefaults())
    await close_pool_quietly(pool)
"""

import logging
import time
from typing import Optional

import psycopg
from psycopg.conninfo import conninfo_to_dict, make_conninfo
from psycopg_pool import AsyncConnectionPool

from core.config import PoolDefaults

logger = logging.getLogger(__name__)


def mask_conninfo(conninfo: str) -> str:
    """
    Render a connection string without credentials.

    Returns:
        "host:port/dbname" or a placeholder if unparseable
    """
    try:
        params = conninfo_to_dict(conninfo)
    except psycopg.Error:
        return "<unparseable conninfo>"

    host = params.get("host") or "localhost"
    port = params.get("port") or "5432"
    dbname = params.get("dbname") or ""
    return f"{host}:{port}/{dbname}"


def build_conninfo(conninfo: str, settings: PoolDefaults) -> str:
    """
    Apply pool settings to a connection string.

    Accepts both URL and key/value formats. sslmode and connect_timeout
    from settings override anything in the original string.
    """
    return make_conninfo(
        conninfo,
        sslmode=settings.sslmode,
        connect_timeout=int(settings.connect_timeout_seconds),
    )


async def open_pool(
    conninfo: str,
    settings: Optional[PoolDefaults] = None,
) -> AsyncConnectionPool:
    """
    Construct and open a bounded connection pool.

    Waits for the minimum number of connections, bounded by the
    connect timeout. A pool that fails to open is closed before the
    error propagates.

    Args:
        conninfo: Connection string from the secret store
        settings: Pool sizing and timeouts

    Returns:
        Opened AsyncConnectionPool

    Raises:
        psycopg.Error, psycopg_pool.PoolTimeout: On connection failure
    """
    settings = settings or PoolDefaults()

    logger.info(f"Initializing connection pool: {mask_conninfo(conninfo)}")

    pool = AsyncConnectionPool(
        conninfo=build_conninfo(conninfo, settings),
        min_size=settings.min_size,
        max_size=settings.max_size,
        timeout=settings.connect_timeout_seconds,
        max_idle=settings.idle_timeout_seconds,
        open=False,  # We'll open it explicitly
        name="backing-store",
    )

    try:
        await pool.open(wait=True, timeout=settings.connect_timeout_seconds)
    except BaseException:
        await close_pool_quietly(pool, settings.close_timeout_seconds)
        raise

    logger.info(
        f"Connection pool opened (min={settings.min_size}, max={settings.max_size})"
    )
    return pool


async def probe_pool(
    pool: AsyncConnectionPool,
    settings: Optional[PoolDefaults] = None,
) -> float:
    """
    Acquire a connection, run the probe query, release it.

    Returns:
        Elapsed time in milliseconds

    Raises:
        Any error from acquisition or the query
    """
    settings = settings or PoolDefaults()

    start = time.monotonic()
    async with pool.connection(timeout=settings.connect_timeout_seconds) as conn:
        await conn.execute(settings.probe_query)
    return (time.monotonic() - start) * 1000


async def close_pool_quietly(
    pool: AsyncConnectionPool,
    timeout: float = 5.0,
) -> None:
    """Close a pool, logging and swallowing any error."""
    try:
        await pool.close(timeout=timeout)
    except Exception as e:
        logger.warning(f"Ignoring error during pool cleanup: {type(e).__name__}: {e}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "mask_conninfo",
    "build_conninfo",
    "open_pool",
    "probe_pool",
    "close_pool_quietly",
]
