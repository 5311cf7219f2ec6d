"""Per-request log correlation.

Binds `request_id` (from X-Request-ID, generated when absent) and the
caller's `caller_id` into the structlog context for the duration of the
request, and echoes the request id back on the response.
"""

import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from flex_consensus.core.logging import bind_request_context, clear_request_context


REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 64


def resolve_request_id(header_value: str | None) -> str:
    """Use the incoming request id when usable, otherwise a fresh one."""
    value = (header_value or "").strip()
    if value and len(value) <= _MAX_REQUEST_ID_LENGTH and value.isprintable():
        return value
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Scope correlation ids to one HTTP request."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        bind_request_context(
            request_id=request_id,
            caller_id=(request.headers.get("X-Caller-Id") or "").strip() or None,
        )
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


__all__ = ["REQUEST_ID_HEADER", "RequestContextMiddleware", "resolve_request_id"]
