"""Tests for per-request log correlation."""

import pytest
from fastapi.testclient import TestClient

from flex_consensus.api.middleware import REQUEST_ID_HEADER, resolve_request_id


_TEST_HEADERS = {"X-Caller-Id": "user-1", "X-Plan-Tier": "free"}


class TestResolveRequestId:
    """Tests for resolve_request_id()."""

    def test_incoming_id_kept(self) -> None:
        assert resolve_request_id("  req-123  ") == "req-123"

    @pytest.mark.parametrize("value", [None, "", "   ", "r" * 65, "bad\nid"])
    def test_unusable_id_replaced(self, value: str | None) -> None:
        generated = resolve_request_id(value)

        assert len(generated) == 32
        assert generated != value


class TestRequestContextMiddleware:
    """Tests for the X-Request-ID round trip."""

    def test_incoming_request_id_echoed(self, client: TestClient) -> None:
        response = client.get("/v1/user/stats", headers={**_TEST_HEADERS, REQUEST_ID_HEADER: "req-abc"})

        assert response.headers[REQUEST_ID_HEADER] == "req-abc"

    def test_request_id_generated_when_missing(self, client: TestClient) -> None:
        first = client.get("/health").headers[REQUEST_ID_HEADER]
        second = client.get("/health").headers[REQUEST_ID_HEADER]

        assert first and second
        assert first != second

    def test_error_responses_carry_request_id(self, client: TestClient) -> None:
        response = client.get("/v1/queries/qry_0_missing/results", headers=_TEST_HEADERS)

        assert response.status_code == 404
        assert REQUEST_ID_HEADER in response.headers
