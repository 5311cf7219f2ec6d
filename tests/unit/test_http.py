"""Unit tests for flex_consensus.core.http.

Tests the shared provider HTTP client factory.
"""

import httpx
import pytest

from flex_consensus.core.config import Settings
from flex_consensus.core.constants import Timeouts
from flex_consensus.core.http import HTTPClientFactory


class TestHTTPClientFactory:
    """Tests for HTTPClientFactory class."""

    @pytest.fixture
    def factory(self) -> HTTPClientFactory:
        return HTTPClientFactory(Settings(_env_file=None, provider_timeout_seconds=12.0))

    def test_build_timeout_uses_settings(self, factory: HTTPClientFactory) -> None:
        timeout = factory.build_timeout()

        assert timeout.read == 12.0
        assert timeout.connect == Timeouts.HTTP_CONNECT

    def test_build_timeout_override(self, factory: HTTPClientFactory) -> None:
        assert factory.build_timeout(3.0).read == 3.0

    @pytest.mark.asyncio
    async def test_create_client_returns_async_client(self, factory: HTTPClientFactory) -> None:
        client = factory.create_client()
        try:
            assert isinstance(client, httpx.AsyncClient)
            assert client.timeout.read == 12.0
        finally:
            await client.aclose()

    @pytest.mark.asyncio
    async def test_create_client_accepts_transport(self, factory: HTTPClientFactory) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(204))
        client = factory.create_client(transport=transport)
        try:
            response = await client.get("https://provider.test/ping")
            assert response.status_code == 204
        finally:
            await client.aclose()
