# ============================================================================
# SHARED TEST FIXTURES
# ============================================================================
# STATUS: Tests - Common fixtures
# PURPOSE: Registry and fake collaborators shared across test modules
# CREATED: 19 OCT 2026
# ============================================================================

import pytest

from health.registry import HealthRegistry
from tests.fakes import FakeDatabase, FakeSecretProvider


@pytest.fixture
def registry():
    return HealthRegistry(service_name="orders-api")


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def secret_provider():
    return FakeSecretProvider()
