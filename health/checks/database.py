# ============================================================================
# BACKING STORE CONNECTION MANAGER
# ============================================================================
# STATUS: Core - Connection pool lifecycle and liveness
# PURPOSE: Lazy create / verify / tear down / recreate of the store pool
# CREATED: 19 OCT 2026
# ============================================================================
"""
Backing Store Connection Manager

Owns the single connection pool to the backing store and keeps the
registry's store status current.

Pool State Machine:
------------------
    ABSENT  --CREATE-->         PRESENT   (secret + pool + probe succeeded)
    ABSENT  --CREATE_FAILED-->  ABSENT    (any step failed, partial pool closed)
    PRESENT --VERIFY_OK-->      PRESENT
    PRESENT --VERIFY_FAILED-->  ABSENT    (pool destroyed)

Each scheduled cycle performs exactly one transition: from ABSENT it
tries to create, from PRESENT it verifies. Creation and verification
never happen in the same cycle, so a cycle is bounded by one timeout
class. Recovery after an outage needs nothing but the next tick.

Concurrency:
-----------
The pool reference is guarded by an asyncio.Lock. A verify in flight
holds the lock, so an overlapping cycle cannot tear the pool down under
it. An initialization already in flight is not duplicated: a second
ensure_connection() returns immediately.

No error escapes this class. Failures become a registry write plus a
log line.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

from core.config import PoolDefaults
from core.contracts import StoreStatus
from core.logging import ComponentType, get_logger, log_checkpoint, log_context
from health.registry import HealthRegistry
from infrastructure.postgresql import open_pool, probe_pool, close_pool_quietly

logger = get_logger(__name__, component=ComponentType.STORE)


class PoolState(str, Enum):
    """Connection pool lifecycle states."""
    ABSENT = "absent"
    PRESENT = "present"


class PoolTransition(str, Enum):
    """Named transitions of the pool state machine."""
    CREATE = "create"                # ABSENT -> PRESENT
    CREATE_FAILED = "create_failed"  # ABSENT -> ABSENT
    VERIFY_OK = "verify_ok"          # PRESENT -> PRESENT
    VERIFY_FAILED = "verify_failed"  # PRESENT -> ABSENT (destroy)

    @property
    def target(self) -> PoolState:
        """State the machine is in after this transition."""
        if self in (PoolTransition.CREATE, PoolTransition.VERIFY_OK):
            return PoolState.PRESENT
        return PoolState.ABSENT


class SecretProvider(Protocol):
    """Source of the backing store connection string."""

    async def get_connection_string(self) -> str:
        ...


PoolFactory = Callable[[str, PoolDefaults], Awaitable[Any]]


class StoreConnectionManager:
    """
    Lifecycle owner of the backing store connection pool.

    Usage:
        manager = StoreConnectionManager(registry, secret_provider)
        await manager.ensure_connection()   # startup
        await manager.run_cycle()           # every tick
        await manager.close()               # shutdown
    """

    def __init__(
        self,
        registry: HealthRegistry,
        secret_provider: SecretProvider,
        settings: Optional[PoolDefaults] = None,
        pool_factory: Optional[PoolFactory] = None,
    ):
        """
        Initialize manager.

        Args:
            registry: Health registry to write store status into
            secret_provider: Connection string source
            settings: Pool sizing and timeouts
            pool_factory: Builds an opened pool from (conninfo, settings)
        """
        self.registry = registry
        self.secret_provider = secret_provider
        self.settings = settings or PoolDefaults()
        self._pool_factory = pool_factory or open_pool

        self._pool: Optional[Any] = None
        self._lock = asyncio.Lock()
        self._initializing = False
        self._last_transition: Optional[PoolTransition] = None

        # Metrics
        self._pools_created = 0
        self._pools_destroyed = 0
        self._last_probe_ms: Optional[float] = None

    @property
    def state(self) -> PoolState:
        return PoolState.PRESENT if self._pool is not None else PoolState.ABSENT

    @property
    def last_transition(self) -> Optional[PoolTransition]:
        return self._last_transition

    @property
    def stats(self) -> dict:
        """Lifecycle counters for observability."""
        return {
            "state": self.state.value,
            "last_transition": self._last_transition.value if self._last_transition else None,
            "pools_created": self._pools_created,
            "pools_destroyed": self._pools_destroyed,
            "last_probe_ms": self._last_probe_ms,
        }

    # ------------------------------------------------------------------------
    # CYCLE
    # ------------------------------------------------------------------------

    async def run_cycle(self) -> Optional[PoolTransition]:
        """
        Perform one scheduled cycle.

        Creates the pool if absent, otherwise verifies it. Never both.

        Returns:
            The transition taken (None if skipped because an
            initialization was already in flight)
        """
        if self.state == PoolState.ABSENT:
            if not self._initializing:
                logger.warning("Database pool not initialized, attempting to initialize...")
            return await self.ensure_connection()
        return await self.verify_connection()

    # ------------------------------------------------------------------------
    # TRANSITIONS
    # ------------------------------------------------------------------------

    async def ensure_connection(self) -> Optional[PoolTransition]:
        """
        Create the pool if none exists.

        Fetches the connection string, builds the pool and probes it once.
        On any failure the registry is set DISCONNECTED and no pool is
        installed; the next cycle retries.
        """
        if self._initializing:
            logger.info("Database initialization already in progress, skipping")
            return None

        self._initializing = True
        try:
            async with self._lock:
                if self._pool is not None:
                    return self._last_transition

                with log_context(component="store", operation="create"):
                    return await self._create()
        finally:
            self._initializing = False

    async def verify_connection(self) -> Optional[PoolTransition]:
        """
        Probe the existing pool.

        On failure the pool is destroyed so the next cycle recreates it.
        """
        async with self._lock:
            if self._pool is None:
                return self._last_transition

            with log_context(component="store", operation="verify"):
                return await self._verify()

    async def close(self) -> None:
        """Tear down the pool at shutdown."""
        async with self._lock:
            if self._pool is not None:
                await self._destroy()
                logger.info("Database pool closed")

    # ------------------------------------------------------------------------
    # INTERNALS (called with the lock held)
    # ------------------------------------------------------------------------

    async def _create(self) -> PoolTransition:
        pool = None
        try:
            conninfo = await self.secret_provider.get_connection_string()
            pool = await self._pool_factory(conninfo, self.settings)
            duration_ms = await probe_pool(pool, self.settings)
        except Exception as e:
            logger.error(f"Failed to initialize database: {type(e).__name__}: {e}")
            if pool is not None:
                await close_pool_quietly(pool, self.settings.close_timeout_seconds)
            self.registry.set_store_status(StoreStatus.DISCONNECTED)
            return self._transition(
                PoolTransition.CREATE_FAILED,
                error=type(e).__name__,
            )
        except BaseException:
            # Cancelled mid-create: the pool was never installed, close it here
            if pool is not None:
                await close_pool_quietly(pool, self.settings.close_timeout_seconds)
            raise

        self._pool = pool
        self._pools_created += 1
        self._last_probe_ms = duration_ms
        logger.info(f"Database connection established ({duration_ms:.0f}ms)")
        self.registry.set_store_status(StoreStatus.CONNECTED)
        return self._transition(PoolTransition.CREATE, duration_ms=round(duration_ms, 1))

    async def _verify(self) -> PoolTransition:
        try:
            duration_ms = await probe_pool(self._pool, self.settings)
        except Exception as e:
            logger.error(f"Database ping failed: {type(e).__name__}: {e}")
            self.registry.set_store_status(StoreStatus.DISCONNECTED)
            await self._destroy()
            logger.warning("Database pool destroyed, will reinitialize on next ping")
            return self._transition(
                PoolTransition.VERIFY_FAILED,
                error=type(e).__name__,
            )

        self._last_probe_ms = duration_ms
        logger.info(f"Database ping successful ({duration_ms:.0f}ms)")
        self.registry.set_store_status(StoreStatus.CONNECTED)
        return self._transition(PoolTransition.VERIFY_OK, duration_ms=round(duration_ms, 1))

    async def _destroy(self) -> None:
        pool, self._pool = self._pool, None
        await close_pool_quietly(pool, self.settings.close_timeout_seconds)
        self._pools_destroyed += 1

    def _transition(self, transition: PoolTransition, **data) -> PoolTransition:
        self._last_transition = transition
        if transition != PoolTransition.VERIFY_OK:
            log_checkpoint(
                f"store_{transition.value}",
                data={
                    "state": transition.target.value,
                    "pools_created": self._pools_created,
                    "pools_destroyed": self._pools_destroyed,
                    **data,
                },
            )
        return transition


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "PoolState",
    "PoolTransition",
    "SecretProvider",
    "PoolFactory",
    "StoreConnectionManager",
]
