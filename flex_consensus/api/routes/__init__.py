"""API routes module.

This module exports all API routers for registration in main.py.
"""

from flex_consensus.api.routes.health import router as health_router
from flex_consensus.api.routes.queries import router as queries_router
from flex_consensus.api.routes.users import router as users_router


__all__ = ["health_router", "queries_router", "users_router"]
