"""HTTP client factory for provider communication.

All provider adapters share one pooled httpx.AsyncClient created here and
closed by the application lifespan.

Pattern: Factory Pattern
"""

from typing import Any

import httpx

from flex_consensus.core.config import Settings, get_settings
from flex_consensus.core.constants import Timeouts
from flex_consensus.core.logging import get_logger


logger = get_logger(__name__)

_MAX_CONNECTIONS = 100
_MAX_KEEPALIVE = 20


class HTTPClientFactory:
    """Factory for creating the shared provider HTTP client.

    Provides centralized client creation with:
    - Consistent timeout configuration
    - Connection pooling limits

    Example:
        ```python
        factory = HTTPClientFactory()
        client = factory.create_client()
        try:
            response = await client.post(url, json=payload)
        finally:
            await client.aclose()
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the HTTP client factory.

        Args:
            settings: Application settings. Uses get_settings() if not provided.
        """
        self._settings = settings or get_settings()

    def build_timeout(self, timeout: float | None = None) -> httpx.Timeout:
        """Build the httpx timeout used for provider calls."""
        request_timeout = timeout or self._settings.provider_timeout_seconds
        return httpx.Timeout(request_timeout, connect=Timeouts.HTTP_CONNECT)

    def create_client(
        self,
        timeout: float | None = None,
        **kwargs: Any,
    ) -> httpx.AsyncClient:
        """Create a standalone HTTP client (caller manages lifecycle).

        Args:
            timeout: Request timeout in seconds.
            **kwargs: Additional arguments passed to httpx.AsyncClient.

        Returns:
            Configured httpx.AsyncClient instance.

        Warning:
            Caller is responsible for calling `await client.aclose()`.
        """
        request_timeout = self.build_timeout(timeout)
        logger.debug(
            "Creating provider HTTP client",
            timeout=request_timeout.read,
        )
        kwargs.setdefault(
            "limits",
            httpx.Limits(
                max_connections=_MAX_CONNECTIONS,
                max_keepalive_connections=_MAX_KEEPALIVE,
            ),
        )
        return httpx.AsyncClient(timeout=request_timeout, **kwargs)
