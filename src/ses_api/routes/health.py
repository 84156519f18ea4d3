"""Health check endpoints for liveness and readiness checks."""

from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ses_api import __version__
from ses_api.core.config import Settings, get_settings
from ses_api.services.provisioning import (
    ProvisioningOrchestrator,
    get_provisioning_orchestrator,
)

SettingsDep = Annotated[Settings, Depends(get_settings)]
OrchestratorDep = Annotated[ProvisioningOrchestrator, Depends(get_provisioning_orchestrator)]

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    version: str
    environment: str


class ReadinessResponse(BaseModel):
    """Readiness check response with component status."""

    status: str
    timestamp: datetime
    checks: dict[str, Any]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Basic liveness check."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=__version__,
        environment=settings.environment,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    settings: SettingsDep,
    orchestrator: OrchestratorDep,
) -> ReadinessResponse:
    """Readiness check.

    Verifies the metadata directory used by the record stores exists and
    reports how many provisioning workflows are in flight.
    """
    checks: dict[str, Any] = {}

    metadata_dir = settings.data_dir / "metadata"
    checks["metadata_directory"] = {
        "status": "ok" if metadata_dir.exists() else "error",
        "path": str(metadata_dir),
    }
    checks["workflows"] = {
        "status": "ok",
        "active": sum(orchestrator.active_workflows().values()),
    }

    all_ok = all(check.get("status") == "ok" for check in checks.values())

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        timestamp=datetime.utcnow(),
        checks=checks,
    )
