"""Tests for health API routes."""

from fastapi.testclient import TestClient

from flex_consensus.api.routes.health import (
    HealthStatus,
    ProviderHealth,
    ProviderState,
    calculate_overall_status,
    router,
)
from flex_consensus.core.config import Settings
from flex_consensus.main import create_app
from tests.fakes.fake_providers import make_fake_providers


class TestHealthRouteConfiguration:
    """Tests for health route configuration."""

    def test_router_has_health_tag(self) -> None:
        assert "Health" in router.tags


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_all_configured_is_healthy(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "flex-consensus"
        assert data["pending_queries"] == 0
        assert data["uptime_seconds"] is not None
        assert [p["name"] for p in data["providers"]] == ["gpt5", "claude", "gemini", "grok"]
        assert all(p["status"] == "configured" for p in data["providers"])

    def test_missing_key_is_degraded(self, test_settings: Settings) -> None:
        providers = make_fake_providers(grok={"is_configured": False})

        with TestClient(create_app(settings=test_settings, adapters=providers)) as client:
            data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["providers"][3] == {"name": "grok", "status": "missing_key"}

    def test_liveness(self, client: TestClient) -> None:
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True


class TestOverallStatus:
    """Tests for calculate_overall_status()."""

    def test_none_configured_is_unhealthy(self) -> None:
        providers = [ProviderHealth(name="gpt5", status=ProviderState.MISSING_KEY)]

        assert calculate_overall_status(providers) is HealthStatus.UNHEALTHY

    def test_no_providers_is_unhealthy(self) -> None:
        assert calculate_overall_status([]) is HealthStatus.UNHEALTHY
