"""Test configuration and shared fixtures.

Pattern: Pytest fixtures, conftest.py
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from flex_consensus.core.config import Settings, get_settings
from tests.fakes.fake_providers import FakeProvider, make_fake_providers


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_settings() -> Settings:
    """Create test settings with safe defaults (no .env, in-memory storage)."""
    return Settings(
        _env_file=None,
        environment="test",
        log_level="DEBUG",
        provider_timeout_seconds=1.0,
        orchestration_timeout_seconds=5.0,
        database_path=None,
        estimated_seconds=15,
    )


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    """Reset the cached settings singleton between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================================
# Provider Fixtures
# ============================================================================

@pytest.fixture
def fake_providers() -> dict[str, FakeProvider]:
    """Four healthy fake providers."""
    return make_fake_providers()


# ============================================================================
# Clock Fixtures
# ============================================================================

class FrozenClock:
    """Settable UTC clock for quota and store tests."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def frozen_clock() -> FrozenClock:
    return FrozenClock(datetime(2024, 3, 14, 12, 0, tzinfo=UTC))


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest.fixture
def client(
    test_settings: Settings,
    fake_providers: dict[str, FakeProvider],
) -> Iterator[TestClient]:
    """TestClient over an app wired with fake providers (lifespan entered)."""
    from flex_consensus.main import create_app

    app = create_app(settings=test_settings, adapters=fake_providers)
    with TestClient(app) as test_client:
        yield test_client
