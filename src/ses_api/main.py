"""Main FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ses_api import __version__
from ses_api.core.config import get_settings
from ses_api.core.telemetry import setup_telemetry
from ses_api.routes import (
    audit_router,
    catalog_router,
    environments_router,
    fleetwise_router,
    health_router,
)
from ses_api.services.provisioning import get_provisioning_orchestrator

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown events."""
    settings = get_settings()

    # Startup
    logger.info(f"Starting {settings.app_name} in {settings.environment} mode")

    settings.ensure_data_dirs()
    logger.info(f"Data directory: {settings.data_dir}")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await get_provisioning_orchestrator().shutdown()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Environment lifecycle API: validate, estimate, provision and audit "
        "environments, optionally backed by AWS IoT FleetWise",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_telemetry(app, settings)

    # Include routers
    app.include_router(health_router)
    app.include_router(catalog_router)
    app.include_router(environments_router)
    app.include_router(fleetwise_router)
    app.include_router(audit_router)

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "ses_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
