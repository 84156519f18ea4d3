"""FleetWise routes for managing vehicles, campaigns and fleets directly.

These endpoints talk to the fleet backend synchronously, so they are plain
``def`` handlers and run in FastAPI's threadpool.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel

from ses_api.core.config import Settings, get_settings
from ses_api.models.fleet import CampaignAction, CampaignConfig, VehicleConfig, VehicleUpdate
from ses_api.services.fleet_backend import (
    DEFAULT_LIST_LIMIT,
    FleetBackend,
    FleetBackendError,
    FleetResourceNotFoundError,
)
from ses_api.services.provisioning import (
    ProvisioningOrchestrator,
    get_provisioning_orchestrator,
)

logger = logging.getLogger(__name__)

SettingsDep = Annotated[Settings, Depends(get_settings)]
OrchestratorDep = Annotated[ProvisioningOrchestrator, Depends(get_provisioning_orchestrator)]

router = APIRouter(prefix="/api/v1/fleetwise", tags=["fleetwise"])


# -----------------------------------------------------------------------------
# Request/Response Models
# -----------------------------------------------------------------------------


class BatchCreateVehiclesRequest(BaseModel):
    """Request body for creating several vehicles at once."""

    vehicles: list[VehicleConfig]
    region: str = ""


class BatchCreateVehiclesResponse(BaseModel):
    """Outcome of a batch vehicle creation."""

    created_count: int
    created_arns: list[str]
    errors: list[str] = []


class VehicleCreatedResponse(BaseModel):
    """Response for a created vehicle."""

    vehicle: str
    arn: str


class VehiclesListResponse(BaseModel):
    """Response for list vehicles operation."""

    vehicles: list[dict[str, Any]]
    count: int


class CampaignCreatedResponse(BaseModel):
    """Response for a created campaign."""

    campaign: str
    arn: str


class UpdateCampaignRequest(BaseModel):
    """Request body for changing a campaign's state."""

    action: CampaignAction


class CampaignsListResponse(BaseModel):
    """Response for list campaigns operation."""

    campaigns: list[dict[str, Any]]
    count: int


class CreateFleetRequest(BaseModel):
    """Request body for creating a fleet."""

    fleet_id: str
    signal_catalog_arn: str
    description: str = ""
    region: str = ""


class FleetCreatedResponse(BaseModel):
    """Response for a created fleet."""

    fleet: str
    arn: str


class AssociateVehicleRequest(BaseModel):
    """Request body for adding a vehicle to a fleet."""

    vehicle_name: str


class AssociationResponse(BaseModel):
    """Response for a vehicle-to-fleet association."""

    vehicle: str
    fleet: str


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


def _backend_error(e: FleetBackendError) -> HTTPException:
    if isinstance(e, FleetResourceNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


def _build_backend(
    orchestrator: ProvisioningOrchestrator, settings: Settings, region: str | None
) -> FleetBackend:
    try:
        return orchestrator.fleet_backend_factory(region or settings.fleet_default_region)
    except FleetBackendError as e:
        logger.error(f"Unable to build fleet backend: {e}")
        raise _backend_error(e) from e


def get_fleet_backend(
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
    region: str | None = Query(None, description="AWS region (defaults to the configured one)"),
) -> FleetBackend:
    """Fleet backend for the region given in the query string."""
    return _build_backend(orchestrator, settings, region)


FleetBackendDep = Annotated[FleetBackend, Depends(get_fleet_backend)]


# -----------------------------------------------------------------------------
# Vehicle Endpoints
# -----------------------------------------------------------------------------


@router.post(
    "/vehicles",
    response_model=VehicleCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_vehicle(vehicle: VehicleConfig, backend: FleetBackendDep) -> VehicleCreatedResponse:
    """Create a single vehicle."""
    try:
        arn = backend.create_vehicle(vehicle)
    except FleetBackendError as e:
        raise _backend_error(e) from e

    return VehicleCreatedResponse(vehicle=vehicle.name, arn=arn)


@router.post(
    "/vehicles/batch",
    response_model=BatchCreateVehiclesResponse,
    status_code=status.HTTP_201_CREATED,
)
def batch_create_vehicles(
    request: BatchCreateVehiclesRequest,
    response: Response,
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
) -> BatchCreateVehiclesResponse:
    """Create vehicles in batches.

    Answers 206 when some vehicles could not be created; the errors are
    listed in the response.
    """
    backend = _build_backend(orchestrator, settings, request.region)
    result = backend.batch_create_vehicles(request.vehicles)

    if result.errors:
        response.status_code = status.HTTP_206_PARTIAL_CONTENT
    return BatchCreateVehiclesResponse(
        created_count=len(result.created),
        created_arns=result.created,
        errors=result.errors,
    )


@router.get("/vehicles", response_model=VehiclesListResponse)
def list_vehicles(
    backend: FleetBackendDep,
    model_manifest_arn: str = Query("", description="Only vehicles of this model manifest"),
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=100, description="Maximum results"),
) -> VehiclesListResponse:
    """List vehicles."""
    try:
        vehicles = backend.list_vehicles(model_manifest_arn, limit)
    except FleetBackendError as e:
        raise _backend_error(e) from e

    return VehiclesListResponse(vehicles=vehicles, count=len(vehicles))


@router.get("/vehicles/{name}")
def get_vehicle(name: str, backend: FleetBackendDep) -> dict[str, Any]:
    """Describe a vehicle."""
    try:
        return backend.get_vehicle(name)
    except FleetBackendError as e:
        raise _backend_error(e) from e


@router.put("/vehicles/{name}", response_model=MessageResponse)
def update_vehicle(
    name: str,
    updates: VehicleUpdate,
    backend: FleetBackendDep,
) -> MessageResponse:
    """Change a vehicle's manifests or replace its attributes."""
    try:
        backend.update_vehicle(name, updates)
    except FleetBackendError as e:
        raise _backend_error(e) from e

    return MessageResponse(message=f"Vehicle {name} updated")


@router.delete("/vehicles/{name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vehicle(name: str, backend: FleetBackendDep) -> None:
    """Delete a vehicle."""
    try:
        backend.delete_vehicle(name)
    except FleetBackendError as e:
        raise _backend_error(e) from e


@router.get("/vehicles/{name}/status")
def get_vehicle_status(name: str, backend: FleetBackendDep) -> dict[str, Any]:
    """Campaign deployment status of a vehicle."""
    try:
        return backend.get_vehicle_status(name)
    except FleetBackendError as e:
        raise _backend_error(e) from e


# -----------------------------------------------------------------------------
# Campaign Endpoints
# -----------------------------------------------------------------------------


@router.post(
    "/campaigns",
    response_model=CampaignCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_campaign(
    campaign: CampaignConfig, backend: FleetBackendDep
) -> CampaignCreatedResponse:
    """Create a data collection campaign."""
    try:
        arn = backend.create_campaign(campaign)
    except FleetBackendError as e:
        raise _backend_error(e) from e

    return CampaignCreatedResponse(campaign=campaign.name, arn=arn)


@router.get("/campaigns", response_model=CampaignsListResponse)
def list_campaigns(
    backend: FleetBackendDep,
    limit: int = Query(DEFAULT_LIST_LIMIT, ge=1, le=100, description="Maximum results"),
) -> CampaignsListResponse:
    """List campaigns."""
    try:
        campaigns = backend.list_campaigns(limit)
    except FleetBackendError as e:
        raise _backend_error(e) from e

    return CampaignsListResponse(campaigns=campaigns, count=len(campaigns))


@router.get("/campaigns/{name}")
def get_campaign(name: str, backend: FleetBackendDep) -> dict[str, Any]:
    """Describe a campaign."""
    try:
        return backend.get_campaign(name)
    except FleetBackendError as e:
        raise _backend_error(e) from e


@router.put("/campaigns/{name}", response_model=MessageResponse)
def update_campaign(
    name: str,
    request: UpdateCampaignRequest,
    backend: FleetBackendDep,
) -> MessageResponse:
    """Approve, suspend, resume or update a campaign."""
    try:
        backend.update_campaign(name, request.action)
    except FleetBackendError as e:
        raise _backend_error(e) from e

    return MessageResponse(message=f"Campaign {name} updated with action {request.action}")


@router.delete("/campaigns/{name}", status_code=status.HTTP_204_NO_CONTENT)
def delete_campaign(name: str, backend: FleetBackendDep) -> None:
    """Delete a campaign."""
    try:
        backend.delete_campaign(name)
    except FleetBackendError as e:
        raise _backend_error(e) from e


# -----------------------------------------------------------------------------
# Fleet Endpoints
# -----------------------------------------------------------------------------


@router.post(
    "/fleets",
    response_model=FleetCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_fleet(
    request: CreateFleetRequest,
    orchestrator: OrchestratorDep,
    settings: SettingsDep,
) -> FleetCreatedResponse:
    """Create a fleet."""
    backend = _build_backend(orchestrator, settings, request.region)
    try:
        arn = backend.create_fleet(
            request.fleet_id, request.description, request.signal_catalog_arn
        )
    except FleetBackendError as e:
        raise _backend_error(e) from e

    return FleetCreatedResponse(fleet=request.fleet_id, arn=arn)


@router.post("/fleets/{fleet_id}/vehicles", response_model=AssociationResponse)
def associate_vehicle(
    fleet_id: str,
    request: AssociateVehicleRequest,
    backend: FleetBackendDep,
) -> AssociationResponse:
    """Add a vehicle to a fleet."""
    try:
        backend.associate_vehicle_to_fleet(request.vehicle_name, fleet_id)
    except FleetBackendError as e:
        raise _backend_error(e) from e

    return AssociationResponse(vehicle=request.vehicle_name, fleet=fleet_id)
