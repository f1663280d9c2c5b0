# ============================================================================
# DEPENDENCY HEALTH CHECKS
# ============================================================================
# STATUS: Core - Downstream service liveness probes
# PURPOSE: Parallel, timeout-bounded GET <url>/health against declared peers
# CREATED: 19 OCT 2026
# ============================================================================
"""
Dependency Health Checks

Probes every declared downstream service on each round:
- One GET <url>/health per dependency, following redirects
- All probes run concurrently; a hanging peer never delays the others
- Each probe is hard-bounded (default 5s) and counts as failed past it
- Results are written to the registry per URL as each probe finishes

Dependency liveness is informational. It never changes the overall
verdict, which follows the backing store only.
"""

import asyncio
import time
from typing import Dict, Iterable, Optional, Tuple

import httpx

from core.logging import ComponentType, get_logger, log_context
from health.registry import HealthRegistry

logger = get_logger(__name__, component=ComponentType.DEPENDENCIES)

HEALTH_PATH = "/health"


def health_url(base_url: str) -> str:
    """Probe URL for a dependency base URL."""
    return f"{base_url.rstrip('/')}{HEALTH_PATH}"


class DependencyChecker:
    """
    Liveness prober for a fixed set of dependency URLs.

    The URL set is fixed at construction. One httpx.AsyncClient is shared
    by all probes and closed by close().
    """

    def __init__(
        self,
        registry: HealthRegistry,
        urls: Iterable[str] = (),
        timeout_seconds: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize checker.

        Args:
            registry: Health registry to write dependency status into
            urls: Declared dependency base URLs (registry keys)
            timeout_seconds: Hard bound for each probe
            client: Optional preconfigured client (tests inject a mock transport)
        """
        self.registry = registry
        self.urls: Tuple[str, ...] = tuple(dict.fromkeys(urls))
        self.timeout_seconds = timeout_seconds
        self._client = client
        self._owns_client = client is None

        # Metrics
        self._rounds = 0
        self._last_healthy_count: Optional[int] = None

    @property
    def has_dependencies(self) -> bool:
        return bool(self.urls)

    @property
    def stats(self) -> dict:
        return {
            "declared": len(self.urls),
            "rounds": self._rounds,
            "last_healthy_count": self._last_healthy_count,
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
        return self._client

    async def check_one(self, url: str) -> bool:
        """
        Probe a single dependency.

        Returns:
            True iff a response arrived within the timeout with a 2xx status.
            Transport errors, timeouts and non-2xx all return False.
        """
        start = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._get_client().get(health_url(url), follow_redirects=True),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Dependency {url} ping timed out after {self.timeout_seconds}s"
            )
            return False
        except httpx.TimeoutException:
            logger.warning(
                f"Dependency {url} ping timed out after {self.timeout_seconds}s"
            )
            return False
        except httpx.HTTPError as e:
            logger.error(f"Failed to ping dependency {url}: {type(e).__name__}: {e}")
            return False
        except Exception as e:
            logger.exception(f"Unexpected error pinging dependency {url}: {e}")
            return False

        duration_ms = (time.monotonic() - start) * 1000
        success = response.is_success
        logger.info(
            f"Dependency {url} ping {'successful' if success else 'failed'} "
            f"(status={response.status_code}, {duration_ms:.0f}ms)"
        )
        return success

    async def _check_and_record(self, url: str) -> bool:
        with log_context(component="dependencies", dependency=url):
            healthy = await self.check_one(url)
        self.registry.set_dependency_status(url, healthy)
        return healthy

    async def check_all(self) -> Dict[str, bool]:
        """
        Probe every declared dependency concurrently.

        No-op when no dependencies are declared. Waits for every probe
        regardless of individual outcome.

        Returns:
            Mapping of URL to liveness for this round
        """
        if not self.urls:
            return {}

        logger.info(f"Pinging {len(self.urls)} dependencies...")

        outcomes = await asyncio.gather(
            *(self._check_and_record(url) for url in self.urls),
            return_exceptions=True,
        )

        results: Dict[str, bool] = {}
        for url, outcome in zip(self.urls, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Dependency probe for {url} raised: {outcome!r}")
                self.registry.set_dependency_status(url, False)
                results[url] = False
            else:
                results[url] = outcome

        healthy_count = sum(1 for ok in results.values() if ok)
        self._rounds += 1
        self._last_healthy_count = healthy_count

        logger.info(
            f"Dependency health check: {healthy_count}/{len(self.urls)} healthy"
        )
        return results

    async def close(self) -> None:
        """Close the HTTP client if this checker created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HEALTH_PATH",
    "health_url",
    "DependencyChecker",
]
