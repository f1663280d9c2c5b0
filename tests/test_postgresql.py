# ============================================================================
# POSTGRESQL INFRASTRUCTURE TESTS
# ============================================================================
# STATUS: Tests - Connection string handling and pool helpers
# PURPOSE: Verify conninfo masking, TLS settings, probing and quiet teardown
# CREATED: 19 OCT 2026
# ============================================================================
"""
PostgreSQL Infrastructure Tests

No database needed: pool helpers run against tests.fakes.FakePool.

Run with:
    pytest tests/test_postgresql.py -v
"""

import asyncio

import psycopg
import pytest
from psycopg.conninfo import conninfo_to_dict

from core.config import PoolDefaults
from infrastructure.postgresql import (
    build_conninfo,
    close_pool_quietly,
    mask_conninfo,
    probe_pool,
)


class TestMaskConninfo:

    @pytest.mark.parametrize("conninfo,expected", [
        ("postgresql://app:pw@db.internal:6432/orders", "db.internal:6432/orders"),
        ("host=db.internal dbname=orders user=app password=pw", "db.internal:5432/orders"),
        ("postgresql:///orders", "localhost:5432/orders"),
    ])
    def test_hides_credentials(self, conninfo, expected):
        masked = mask_conninfo(conninfo)
        assert masked == expected
        assert "pw" not in masked

    def test_unparseable(self):
        assert mask_conninfo("host=db dbname") == "<unparseable conninfo>"


class TestBuildConninfo:

    def test_applies_tls_and_timeout(self):
        params = conninfo_to_dict(
            build_conninfo("postgresql://app:pw@db:5432/orders", PoolDefaults())
        )

        assert params["host"] == "db"
        assert params["dbname"] == "orders"
        assert params["sslmode"] == "require"
        assert params["connect_timeout"] == "10"

    def test_overrides_sslmode_from_secret(self):
        params = conninfo_to_dict(
            build_conninfo("host=db dbname=orders sslmode=disable", PoolDefaults())
        )

        assert params["sslmode"] == "require"


class TestPoolHelpers:

    def test_probe_runs_query(self, fake_db):
        pool = asyncio.run(fake_db.pool_factory("host=db", PoolDefaults()))

        elapsed_ms = asyncio.run(probe_pool(pool, PoolDefaults()))

        assert elapsed_ms >= 0
        assert fake_db.queries == ["SELECT 1"]
        assert pool.checked_out == 0

    def test_probe_propagates_failure(self, fake_db):
        pool = asyncio.run(fake_db.pool_factory("host=db", PoolDefaults()))
        fake_db.answer_queries = False

        with pytest.raises(psycopg.OperationalError):
            asyncio.run(probe_pool(pool, PoolDefaults()))
        assert pool.checked_out == 0

    def test_close_quietly_swallows_errors(self, fake_db):
        pool = asyncio.run(fake_db.pool_factory("host=db", PoolDefaults()))
        fake_db.close_raises = True

        asyncio.run(close_pool_quietly(pool, timeout=1.0))

        assert pool.closed
        assert pool.close_calls == 1
