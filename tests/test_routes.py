# ============================================================================
# HEALTH ROUTE + APP WIRING TESTS
# ============================================================================
# STATUS: Tests - Query interface and application lifespan
# PURPOSE: Verify /health rendering, status codes and startup/shutdown wiring
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Route + App Wiring Tests

Tests the query interface (health/router.py) and main.create_app().

Uses FastAPI TestClient for endpoint tests and httpx.ASGITransport for
the in-loop latency test. The backing store and Key Vault are faked.

Run with:
    pytest tests/test_routes.py -v
"""

import asyncio
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from __version__ import BUILD_DATE, __version__
from core.config import PollDefaults, SidecarConfig
from core.contracts import StoreStatus
from health.checks.dependencies import DependencyChecker
from main import create_app
from tests.fakes import FakeDatabase, FakeSecretProvider


# ============================================================================
# FIXTURES
# ============================================================================

def _config(dependencies=()):
    return SidecarConfig(
        service_name="orders-api",
        dependencies=tuple(dependencies),
        db_secret_id="https://vault.vault.azure.net/secrets/orders-db",
        poll=PollDefaults(store_interval_seconds=60.0, dependency_interval_seconds=60.0),
    )


@pytest.fixture
def app():
    return create_app(
        _config(),
        secret_provider=FakeSecretProvider(),
        pool_factory=FakeDatabase().pool_factory,
    )


# ============================================================================
# /health RENDERING (no lifespan)
# ============================================================================

class TestHealthEndpoint:

    def test_unhealthy_before_any_check(self, app):
        client = TestClient(app)

        response = client.get("/health")

        assert response.status_code == 503
        body = response.json()
        assert body["service"] == "orders-api"
        assert body["status"] == "unhealthy"
        assert body["database"] == "disconnected"
        assert body["dependencies"] == {}

    def test_healthy_with_dependencies(self, app):
        registry = app.state.health_registry
        registry.set_store_status(StoreStatus.CONNECTED)
        registry.set_dependency_status("A", True)
        registry.set_dependency_status("B", False)

        response = TestClient(app).get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["dependencies"] == {"A": True, "B": False}

    def test_response_fields(self, app):
        body = TestClient(app).get("/health").json()

        assert set(body) == {"service", "status", "timestamp", "database", "dependencies"}
        assert body["timestamp"].endswith("Z")

    def test_failed_dependencies_do_not_cause_503(self, app):
        registry = app.state.health_registry
        registry.set_store_status(StoreStatus.CONNECTED)
        registry.set_dependency_status("http://billing:8080", False)

        response = TestClient(app).get("/health")

        assert response.status_code == 200


class TestInfoEndpoints:

    def test_root(self, app):
        body = TestClient(app).get("/").json()

        assert body["service"] == "orders-api"
        assert body["endpoints"]["health"] == "/health"

    def test_livez(self, app):
        response = TestClient(app).get("/livez")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "alive"
        assert body["version"] == __version__
        assert body["build_date"] == BUILD_DATE


# ============================================================================
# LIFESPAN
# ============================================================================

class TestLifespan:

    def test_startup_checks_then_shutdown_teardown(self):
        db = FakeDatabase()
        http_client = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200 if request.url.host == "billing" else 500)
            )
        )
        app = create_app(
            _config(["http://billing:8080", "http://ledger:8080"]),
            secret_provider=FakeSecretProvider(),
            pool_factory=db.pool_factory,
            http_client=http_client,
        )

        with TestClient(app) as client:
            response = client.get("/health")
            poller_running = app.state.poller.is_running

        assert poller_running
        assert response.status_code == 200
        assert response.json()["dependencies"] == {
            "http://billing:8080": True,
            "http://ledger:8080": False,
        }
        # Pool torn down at shutdown
        assert len(db.pools) == 1
        assert db.live_pools == []
        assert app.state.poller.is_running is False

    def test_store_unavailable_at_startup_still_serves(self):
        db = FakeDatabase()
        db.go_down()
        app = create_app(
            _config(),
            secret_provider=FakeSecretProvider(),
            pool_factory=db.pool_factory,
        )

        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"


# ============================================================================
# READ LATENCY
# ============================================================================

class TestReadLatency:

    def test_health_read_not_blocked_by_in_flight_probe(self, app):
        registry = app.state.health_registry
        registry.set_store_status(StoreStatus.CONNECTED)

        async def hang(request):
            await asyncio.sleep(5)
            return httpx.Response(200)

        probe_client = httpx.AsyncClient(transport=httpx.MockTransport(hang))
        checker = DependencyChecker(
            registry, ["http://slow:8080"], timeout_seconds=5.0, client=probe_client
        )

        async def scenario():
            round_task = asyncio.create_task(checker.check_all())
            await asyncio.sleep(0.01)

            async with httpx.AsyncClient(
                transport=httpx.ASGITransport(app=app), base_url="http://sidecar"
            ) as client:
                start = time.monotonic()
                response = await client.get("/health")
                elapsed = time.monotonic() - start

            round_done = round_task.done()
            round_task.cancel()
            await asyncio.gather(round_task, return_exceptions=True)
            await probe_client.aclose()
            return response, elapsed, round_done

        response, elapsed, round_done = asyncio.run(scenario())

        assert round_done is False
        assert response.status_code == 200
        assert elapsed < 0.5
