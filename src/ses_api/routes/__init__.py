"""API route modules."""

from ses_api.routes.audit import router as audit_router
from ses_api.routes.catalog import router as catalog_router
from ses_api.routes.environments import router as environments_router
from ses_api.routes.fleetwise import router as fleetwise_router
from ses_api.routes.health import router as health_router

__all__ = [
    "audit_router",
    "catalog_router",
    "environments_router",
    "fleetwise_router",
    "health_router",
]
