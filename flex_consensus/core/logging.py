"""Structured logging for the consensus service.

Every entry carries the service name and environment, plus whatever
request context is bound for the current task:

    request_id  set by RequestContextMiddleware for each HTTP request
    caller_id   the X-Caller-Id of that request
    query_id    bound once a submission has been stored

Background query tasks copy the context of the request that dispatched
them, so provider calls and consensus logs stay correlated with the
submission. Provider API keys never reach the output.
"""

import logging
import sys
from collections.abc import MutableMapping
from typing import Any

import structlog
from structlog.types import Processor

from flex_consensus.core.config import Settings, get_settings


CONTEXT_KEYS = ("request_id", "caller_id", "query_id")

_REDACTED = "***"
_SECRET_MARKERS = ("api_key", "authorization", "x-api-key")
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def add_service_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Stamp the service name and environment on an entry."""
    settings = get_settings()
    event_dict.setdefault("service", settings.service_name)
    event_dict.setdefault("environment", settings.environment)
    return event_dict


def redact_secrets(
    logger: logging.Logger,
    method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Mask provider credentials, including inside a logged `headers` dict."""
    for key in list(event_dict):
        if any(marker in key.lower() for marker in _SECRET_MARKERS):
            event_dict[key] = _REDACTED
    headers = event_dict.get("headers")
    if isinstance(headers, dict):
        event_dict["headers"] = {
            name: _REDACTED if name.lower() in _SECRET_MARKERS else value
            for name, value in headers.items()
        }
    return event_dict


def build_processors(json_output: bool) -> list[Processor]:
    """Processor chain: context, level, timestamp, service, redaction, renderer."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_service_context,
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_output:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    return processors


def configure_logging(settings: Settings | None = None) -> None:
    """Configure structlog and the stdlib loggers used by leaf modules.

    JSON output in production and staging, coloured console output otherwise.
    Call once at startup: loggers are cached on first use and keep the
    configuration they were first used with.
    """
    settings = settings or get_settings()
    level = logging.getLevelName(settings.log_level.upper())

    structlog.configure(
        processors=build_processors(settings.environment in ("production", "staging")),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        stream=sys.stdout,
        level=level,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_request_context(**values: str | None) -> None:
    """Bind correlation ids for the current task; None values are skipped.

    Raises:
        ValueError: A key outside CONTEXT_KEYS.
    """
    unknown = set(values) - set(CONTEXT_KEYS)
    if unknown:
        raise ValueError(f"Unknown log context key(s): {', '.join(sorted(unknown))}")
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    )


def clear_request_context() -> None:
    """Drop every correlation id bound in the current task."""
    structlog.contextvars.unbind_contextvars(*CONTEXT_KEYS)


def get_request_context() -> dict[str, Any]:
    """Correlation ids currently bound (subset of CONTEXT_KEYS)."""
    bound = structlog.contextvars.get_contextvars()
    return {key: bound[key] for key in CONTEXT_KEYS if key in bound}


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Structured logger, e.g. `get_logger(__name__).info("Query admitted", remaining=9)`."""
    return structlog.get_logger(name)
