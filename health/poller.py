# ============================================================================
# HEALTH POLLER
# ============================================================================
# STATUS: Core - Periodic store and dependency checks
# PURPOSE: Drive the store cycle and dependency rounds on fixed intervals
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Poller

Runs two independent timers as background tasks:
1. Store timer: StoreConnectionManager.run_cycle() every store interval
2. Dependency timer: DependencyChecker.check_all() every dependency interval
   (only started when dependencies are declared)

Startup:
    start() first runs one ensure_connection() and, if dependencies are
    declared, one check_all(), so the first snapshot is meaningful.

Ticks:
    Every tick spawns its cycle as a tracked task and goes back to
    sleeping. A slow cycle never delays the next tick; overlapping cycles
    are safe because the store manager guards its pool and dependency
    writes are per URL.

Shutdown:
    stop() signals both timers, waits for in-flight cycles up to the
    grace period, then cancels whatever is left.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Optional, Set

from core.logging import ComponentType, get_logger, log_context
from health.checks.database import StoreConnectionManager
from health.checks.dependencies import DependencyChecker

logger = get_logger(__name__, component=ComponentType.POLLER)


class HealthPoller:
    """
    Owner of the two periodic health tasks.

    Holds no health state itself; results flow into the registry through
    the store manager and dependency checker.
    """

    def __init__(
        self,
        store_manager: StoreConnectionManager,
        dependency_checker: DependencyChecker,
        store_interval: float = 60.0,
        dependency_interval: Optional[float] = None,
        shutdown_grace: float = 15.0,
    ):
        """
        Initialize poller.

        Args:
            store_manager: Backing store lifecycle owner
            dependency_checker: Dependency prober
            store_interval: Seconds between store cycles
            dependency_interval: Seconds between dependency rounds
                (defaults to store_interval)
            shutdown_grace: Seconds stop() waits for in-flight cycles
        """
        self.store_manager = store_manager
        self.dependency_checker = dependency_checker
        self.store_interval = store_interval
        self.dependency_interval = dependency_interval or store_interval
        self.shutdown_grace = shutdown_grace

        self._running = False
        self._stop_event = asyncio.Event()

        # Background tasks
        self._store_task: Optional[asyncio.Task] = None
        self._dependency_task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()

        # Metrics
        self._started_at: Optional[datetime] = None
        self._ticks: Dict[str, int] = {"store": 0, "dependencies": 0}
        self._last_tick_at: Dict[str, Optional[datetime]] = {
            "store": None,
            "dependencies": None,
        }
        self._errors = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def stats(self) -> dict:
        """Poller counters for observability."""
        return {
            "running": self._running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "store_interval": self.store_interval,
            "dependency_interval": self.dependency_interval,
            "ticks": dict(self._ticks),
            "last_tick_at": {
                name: ts.isoformat() if ts else None
                for name, ts in self._last_tick_at.items()
            },
            "in_flight": len(self._in_flight),
            "errors": self._errors,
        }

    async def start(self) -> None:
        """
        Run the startup checks, then start the timers.
        """
        if self._running:
            logger.warning("Poller already running")
            return

        # Initial checks (synchronous, before timers begin)
        with log_context(component="poller", operation="startup"):
            await self.store_manager.ensure_connection()
            if self.dependency_checker.has_dependencies:
                await self.dependency_checker.check_all()

        self._running = True
        self._started_at = datetime.now(timezone.utc)
        self._stop_event.clear()

        self._store_task = asyncio.create_task(
            self._timer_loop("store", self.store_interval, self.store_manager.run_cycle),
            name="health-poller-store",
        )

        if self.dependency_checker.has_dependencies:
            self._dependency_task = asyncio.create_task(
                self._timer_loop(
                    "dependencies",
                    self.dependency_interval,
                    self.dependency_checker.check_all,
                ),
                name="health-poller-dependencies",
            )

        logger.info(
            f"Ping timers started (store interval: {self.store_interval}s, "
            f"dependency interval: "
            f"{self.dependency_interval if self._dependency_task else 'disabled'}"
            f"{'s' if self._dependency_task else ''})"
        )

    async def stop(self) -> None:
        """
        Stop both timers and wait for in-flight cycles.
        """
        if not self._running:
            return

        logger.info("Stopping health poller...")
        self._running = False
        self._stop_event.set()

        timers = [t for t in (self._store_task, self._dependency_task) if t]
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)

        if self._in_flight:
            logger.info(f"Waiting for {len(self._in_flight)} in-flight health cycles")
            done, pending = await asyncio.wait(
                set(self._in_flight),
                timeout=self.shutdown_grace,
            )
            for task in pending:
                task.cancel()
            if pending:
                logger.warning(
                    f"Cancelled {len(pending)} health cycles after "
                    f"{self.shutdown_grace}s grace period"
                )
                await asyncio.gather(*pending, return_exceptions=True)

        self._store_task = None
        self._dependency_task = None
        logger.info("Health poller stopped")

    # ------------------------------------------------------------------------
    # TIMERS
    # ------------------------------------------------------------------------

    async def _timer_loop(
        self,
        name: str,
        interval: float,
        cycle: Callable[[], Awaitable[object]],
    ) -> None:
        """Fire `cycle` every `interval` seconds until stopped."""
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
                break  # stop requested
            except asyncio.TimeoutError:
                pass

            self._ticks[name] += 1
            self._last_tick_at[name] = datetime.now(timezone.utc)

            task = asyncio.create_task(
                self._run_cycle(name, cycle),
                name=f"health-cycle-{name}-{self._ticks[name]}",
            )
            self._in_flight.add(task)
            task.add_done_callback(self._in_flight.discard)

    async def _run_cycle(
        self,
        name: str,
        cycle: Callable[[], Awaitable[object]],
    ) -> None:
        with log_context(component="poller", operation=name):
            try:
                await cycle()
            except Exception as e:
                # Components report their own failures; this only catches bugs
                self._errors += 1
                logger.exception(f"Health cycle '{name}' raised: {e}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HealthPoller",
]
