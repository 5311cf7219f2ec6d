"""
Main entry point for the flex-consensus service.

Creates the FastAPI application instance for uvicorn and wires the core
components into `app.state`:

    adapters -> Orchestrator -> QueryWorker -> QueryService
    QuotaTracker (PlanPolicy + usage store), QueryStore, Notifier

Storage is SQLite when FLEX_DATABASE_PATH is set, in-memory otherwise.
"""

from collections.abc import AsyncGenerator, Mapping
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from flex_consensus.api.error_handlers import register_error_handlers
from flex_consensus.api.middleware import RequestContextMiddleware
from flex_consensus.api.routes.health import router as health_router
from flex_consensus.api.routes.health import set_service_start_time
from flex_consensus.api.routes.queries import router as queries_router
from flex_consensus.api.routes.users import router as users_router
from flex_consensus.core.config import Settings, get_settings
from flex_consensus.core.http import HTTPClientFactory
from flex_consensus.core.logging import configure_logging, get_logger
from flex_consensus.notifications.notifier import Notifier
from flex_consensus.orchestration.orchestrator import Orchestrator
from flex_consensus.orchestration.worker import QueryWorker
from flex_consensus.providers.protocols import ProviderAdapterProtocol
from flex_consensus.providers.registry import build_default_adapters
from flex_consensus.queries.sqlite_store import SQLiteQueryStore
from flex_consensus.queries.store import InMemoryQueryStore, QueryStore
from flex_consensus.quota.policy import PlanPolicy
from flex_consensus.quota.stores import InMemoryUsageStore, SQLiteUsageStore, UsageStore
from flex_consensus.quota.tracker import QuotaTracker
from flex_consensus.service import QueryService


# Configure structured logging on module load
configure_logging()
logger = get_logger(__name__)


def wire_services(
    app: FastAPI,
    settings: Settings,
    adapters: Mapping[str, ProviderAdapterProtocol],
) -> QueryWorker:
    """Build the core components and attach them to `app.state`.

    Returns:
        The QueryWorker, so the caller can drain it on shutdown.
    """
    query_store: QueryStore
    usage_store: UsageStore
    if settings.database_path:
        query_store = SQLiteQueryStore(settings.database_path)
        usage_store = SQLiteUsageStore(settings.database_path)
        logger.info("Using SQLite storage", path=settings.database_path)
    else:
        query_store = InMemoryQueryStore()
        usage_store = InMemoryUsageStore()
        logger.info("Using in-memory storage")

    orchestrator = Orchestrator(adapters)
    notifier = Notifier()
    worker = QueryWorker(
        orchestrator,
        query_store,
        notifier,
        max_concurrency=settings.max_concurrent_queries,
        deadline=settings.orchestration_timeout_seconds,
    )
    quota = QuotaTracker(PlanPolicy(settings.plan_limits), usage_store)

    app.state.settings = settings
    app.state.adapters = dict(adapters)
    app.state.notifier = notifier
    app.state.worker = worker
    app.state.query_service = QueryService(
        orchestrator,
        query_store,
        quota,
        worker,
        estimated_seconds=settings.estimated_seconds,
    )
    return worker


def create_app(
    settings: Settings | None = None,
    adapters: Mapping[str, ProviderAdapterProtocol] | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings. Uses get_settings() if not provided.
        adapters: Provider adapters to use instead of the HTTP adapters
            built from settings.

    Registers:
    - queries_router: POST /v1/queries/submit, GET /v1/queries[...]
    - users_router: GET /v1/user/stats
    - health_router: GET /health, /health/live
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan manager.

        On startup: create the shared HTTP client, adapters and services
        On shutdown: drain the worker, then close the HTTP client
        """
        logger.info("Starting flex-consensus service", port=settings.port)
        set_service_start_time()

        client = None
        active_adapters = adapters
        if active_adapters is None:
            client = HTTPClientFactory(settings).create_client()
            active_adapters = build_default_adapters(settings, client)

        worker = wire_services(app, settings, active_adapters)
        logger.info("Providers ready", providers=list(active_adapters))

        yield

        logger.info("Shutting down flex-consensus service")
        await worker.shutdown()
        if client is not None:
            await client.aclose()
            logger.info("Provider HTTP client closed")

    app = FastAPI(
        title="Flex Consensus Service",
        description="Multi-provider question answering with consensus aggregation",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    register_error_handlers(app)

    app.include_router(queries_router)
    app.include_router(users_router)
    app.include_router(health_router)

    return app


def run() -> None:
    """Console entry point: serve the application with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "flex_consensus.main:app",
        host="0.0.0.0",
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


# Create application instance
app = create_app()
