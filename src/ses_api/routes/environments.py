"""Environment routes for managing environment lifecycle."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from pydantic import BaseModel

from ses_api.models.audit import StateTransition
from ses_api.models.common import EnvironmentStatus
from ses_api.models.environment import (
    ArtifactUpload,
    Environment,
    EnvironmentLogEntry,
    EnvironmentMetrics,
    EnvironmentSpec,
    EnvironmentStatusSummary,
    EnvironmentUpdate,
)
from ses_api.services.environment import (
    EnvironmentNotFoundError,
    EnvironmentService,
    InvalidStateTransitionError,
    SpecValidationError,
    get_environment_service,
)
from ses_api.services.provisioning import (
    ProvisioningOrchestrator,
    get_provisioning_orchestrator,
)

logger = logging.getLogger(__name__)

EnvironmentServiceDep = Annotated[EnvironmentService, Depends(get_environment_service)]
OrchestratorDep = Annotated[ProvisioningOrchestrator, Depends(get_provisioning_orchestrator)]

router = APIRouter(prefix="/api/v1/environments", tags=["environments"])


# -----------------------------------------------------------------------------
# Request/Response Models
# -----------------------------------------------------------------------------


class EnvironmentResponse(BaseModel):
    """Response wrapper for environment operations."""

    environment: Environment


class EnvironmentsListResponse(BaseModel):
    """Response for list environments operation."""

    environments: list[Environment]
    total: int


class HistoryResponse(BaseModel):
    """State transitions of an environment, oldest first."""

    environment_id: str
    transitions: list[StateTransition]


class UploadResponse(BaseModel):
    """Response for an artifact upload."""

    upload: ArtifactUpload


class UploadsListResponse(BaseModel):
    """Artifacts uploaded to an environment, oldest first."""

    uploads: list[ArtifactUpload]
    total: int


class LogsResponse(BaseModel):
    """Activity log of an environment, newest first."""

    environment_id: str
    logs: list[EnvironmentLogEntry]


def _not_found(env_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Environment not found: {env_id}",
    )


# -----------------------------------------------------------------------------
# CRUD Endpoints
# -----------------------------------------------------------------------------


@router.get("", response_model=EnvironmentsListResponse)
async def list_environments(
    env_service: EnvironmentServiceDep,
    env_status: EnvironmentStatus | None = Query(None, alias="status", description="Filter by status"),
    owner: str | None = Query(None, description="Filter by owner"),
) -> EnvironmentsListResponse:
    """List environments, newest first, with optional filters."""
    environments = env_service.list_environments(status=env_status, owner=owner)
    return EnvironmentsListResponse(environments=environments, total=len(environments))


@router.post("", response_model=EnvironmentResponse, status_code=status.HTTP_201_CREATED)
async def create_environment(
    spec: EnvironmentSpec,
    orchestrator: OrchestratorDep,
) -> EnvironmentResponse:
    """Create a new environment.

    The specification is validated first; on failure nothing is stored and
    the ValidationResult is returned with status 422. A created environment
    starts in PENDING status.
    """
    try:
        environment = orchestrator.create_environment(spec)
    except SpecValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.result.model_dump(),
        ) from e

    return EnvironmentResponse(environment=environment)


@router.get("/{env_id}", response_model=EnvironmentResponse)
async def get_environment(
    env_id: str,
    env_service: EnvironmentServiceDep,
) -> EnvironmentResponse:
    """Get an environment by ID."""
    environment = env_service.get_environment(env_id)
    if environment is None:
        raise _not_found(env_id)

    return EnvironmentResponse(environment=environment)


@router.put("/{env_id}", response_model=EnvironmentResponse)
async def update_environment(
    env_id: str,
    update: EnvironmentUpdate,
    env_service: EnvironmentServiceDep,
) -> EnvironmentResponse:
    """Update an environment's descriptive fields.

    Only name, description, owner, tags, network, priority and duration can
    be changed; any other key is rejected with 422.
    """
    try:
        environment = env_service.update_environment(env_id, update)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e

    return EnvironmentResponse(environment=environment)


@router.delete("/{env_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_environment(
    env_id: str,
    orchestrator: OrchestratorDep,
) -> None:
    """Delete an environment by ID.

    Allowed from any state. The environment's history stays queryable.
    """
    try:
        orchestrator.delete(env_id)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e


# -----------------------------------------------------------------------------
# Lifecycle Endpoints
# -----------------------------------------------------------------------------


@router.post(
    "/{env_id}/provision",
    response_model=EnvironmentResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def provision_environment(
    env_id: str,
    orchestrator: OrchestratorDep,
) -> EnvironmentResponse:
    """Start provisioning an environment.

    Accepted from PENDING, STOPPED or ERROR status; the workflow continues in
    the background. Any other state answers 409.
    """
    try:
        environment = orchestrator.provision(env_id)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e
    except InvalidStateTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e

    return EnvironmentResponse(environment=environment)


@router.post("/{env_id}/start", response_model=EnvironmentResponse)
async def start_environment(
    env_id: str,
    orchestrator: OrchestratorDep,
) -> EnvironmentResponse:
    """Set an environment to RUNNING."""
    try:
        environment = orchestrator.start(env_id)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e

    return EnvironmentResponse(environment=environment)


@router.post("/{env_id}/stop", response_model=EnvironmentResponse)
async def stop_environment(
    env_id: str,
    orchestrator: OrchestratorDep,
) -> EnvironmentResponse:
    """Set an environment to STOPPED.

    A provisioning workflow that is still running is not interrupted.
    """
    try:
        environment = orchestrator.stop(env_id)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e

    return EnvironmentResponse(environment=environment)


@router.post(
    "/{env_id}/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_artifact(
    env_id: str,
    env_service: EnvironmentServiceDep,
    file: UploadFile = File(...),
    file_type: str = Form(""),
    version: str = Form(""),
) -> UploadResponse:
    """Upload an artifact (binary or configuration) to an environment."""
    content = await file.read()

    try:
        upload = env_service.record_upload(
            env_id,
            filename=file.filename or "unnamed",
            size=len(content),
            file_type=file_type,
            version=version,
        )
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e

    return UploadResponse(upload=upload)


@router.get("/{env_id}/uploads", response_model=UploadsListResponse)
async def list_uploads(
    env_id: str,
    env_service: EnvironmentServiceDep,
) -> UploadsListResponse:
    """List the artifacts uploaded to an environment."""
    try:
        uploads = env_service.list_uploads(env_id)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e

    return UploadsListResponse(uploads=uploads, total=len(uploads))


# -----------------------------------------------------------------------------
# Status Endpoints
# -----------------------------------------------------------------------------


@router.get("/{env_id}/status", response_model=EnvironmentStatusSummary)
async def get_environment_status(
    env_id: str,
    env_service: EnvironmentServiceDep,
) -> EnvironmentStatusSummary:
    """Get status, health, uptime and accrued cost of an environment."""
    try:
        return env_service.get_status(env_id)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e


@router.get("/{env_id}/history", response_model=HistoryResponse)
async def get_environment_history(
    env_id: str,
    env_service: EnvironmentServiceDep,
) -> HistoryResponse:
    """Get the state transitions of an environment, oldest first.

    Also answers for deleted environments.
    """
    transitions = env_service.get_history(env_id)
    return HistoryResponse(environment_id=env_id, transitions=transitions)


@router.get("/{env_id}/metrics", response_model=EnvironmentMetrics)
async def get_environment_metrics(
    env_id: str,
    env_service: EnvironmentServiceDep,
) -> EnvironmentMetrics:
    """Sample current resource usage of an environment.

    Usage is only reported while the environment is RUNNING.
    """
    try:
        return env_service.get_metrics(env_id)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e


@router.get("/{env_id}/logs", response_model=LogsResponse)
async def get_environment_logs(
    env_id: str,
    env_service: EnvironmentServiceDep,
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of entries"),
) -> LogsResponse:
    """Get the activity log of an environment, newest first."""
    try:
        logs = env_service.get_logs(env_id, limit=limit)
    except EnvironmentNotFoundError as e:
        raise _not_found(env_id) from e

    return LogsResponse(environment_id=env_id, logs=logs)
