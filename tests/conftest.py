"""Pytest configuration and shared fixtures for ses-platform-api tests."""

import os
import tempfile
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from ses_api.core.config import Settings
from ses_api.core.store import MemoryStore
from ses_api.models.audit import AuditLog, StateTransition
from ses_api.models.environment import (
    ArtifactUpload,
    ComputeConfig,
    Environment,
    EnvironmentSpec,
)
from ses_api.models.fleet import (
    BatchCreateResult,
    CampaignAction,
    CampaignConfig,
    FleetConfig,
    VehicleConfig,
    VehicleUpdate,
)
from ses_api.services.audit import AuditService
from ses_api.services.environment import EnvironmentService
from ses_api.services.fleet_backend import (
    DEFAULT_LIST_LIMIT,
    FleetBackend,
    FleetBackendError,
    FleetResourceNotFoundError,
)
from ses_api.services.provisioning import ProvisioningOrchestrator


class RecordingFleetBackend(FleetBackend):
    """FleetBackend that records calls and fails on request."""

    def __init__(
        self,
        fail_fleet: bool = False,
        fail_vehicles: bool = False,
        fail_association: bool = False,
        fail_campaign: bool = False,
        fail_deletes: bool = False,
    ) -> None:
        self.fail_fleet = fail_fleet
        self.fail_vehicles = fail_vehicles
        self.fail_association = fail_association
        self.fail_campaign = fail_campaign
        self.fail_deletes = fail_deletes
        self.calls: list[tuple[str, object]] = []
        self.campaigns: list[CampaignConfig] = []
        self.vehicles: list[VehicleConfig] = []

    def create_fleet(self, fleet_id: str, description: str, signal_catalog_arn: str) -> str:
        self.calls.append(("create_fleet", fleet_id))
        if self.fail_fleet:
            raise FleetBackendError("AccessDenied")
        return f"arn:fleet/{fleet_id}"

    def batch_create_vehicles(self, vehicles: list[VehicleConfig]) -> BatchCreateResult:
        self.calls.append(("batch_create_vehicles", [v.name for v in vehicles]))
        self.vehicles.extend(vehicles)
        if self.fail_vehicles:
            return BatchCreateResult(errors=[f"vehicle {v.name}: failed" for v in vehicles])
        return BatchCreateResult(created=[f"arn:vehicle/{v.name}" for v in vehicles])

    def associate_vehicle_to_fleet(self, vehicle_name: str, fleet_id: str) -> None:
        self.calls.append(("associate_vehicle_to_fleet", vehicle_name))
        if self.fail_association:
            raise FleetBackendError("ResourceNotFound")

    def create_campaign(self, campaign: CampaignConfig) -> str:
        self.calls.append(("create_campaign", campaign.name))
        self.campaigns.append(campaign)
        if self.fail_campaign:
            raise FleetBackendError("ValidationException")
        return f"arn:campaign/{campaign.name}"

    def delete_vehicle(self, vehicle_name: str) -> None:
        self.calls.append(("delete_vehicle", vehicle_name))
        if self.fail_deletes:
            raise FleetBackendError("ResourceNotFound")

    def delete_campaign(self, campaign_name: str) -> None:
        self.calls.append(("delete_campaign", campaign_name))
        if self.fail_deletes:
            raise FleetBackendError("ResourceNotFound")

    def create_vehicle(self, vehicle: VehicleConfig) -> str:
        self.calls.append(("create_vehicle", vehicle.name))
        self.vehicles.append(vehicle)
        return f"arn:vehicle/{vehicle.name}"

    def _vehicle(self, vehicle_name: str) -> VehicleConfig:
        for vehicle in self.vehicles:
            if vehicle.name == vehicle_name:
                return vehicle
        raise FleetResourceNotFoundError(f"vehicle {vehicle_name} not found")

    def get_vehicle(self, vehicle_name: str) -> dict[str, Any]:
        self.calls.append(("get_vehicle", vehicle_name))
        vehicle = self._vehicle(vehicle_name)
        return {
            "vehicleName": vehicle.name,
            "arn": f"arn:vehicle/{vehicle.name}",
            "attributes": dict(vehicle.attributes),
        }

    def update_vehicle(self, vehicle_name: str, updates: VehicleUpdate) -> None:
        self.calls.append(("update_vehicle", vehicle_name))
        vehicle = self._vehicle(vehicle_name)
        if updates.attributes:
            vehicle.attributes = dict(updates.attributes)

    def get_vehicle_status(self, vehicle_name: str) -> dict[str, Any]:
        self.calls.append(("get_vehicle_status", vehicle_name))
        self._vehicle(vehicle_name)
        return {
            "campaigns": [
                {"campaignName": c.name, "vehicleName": vehicle_name, "status": "HEALTHY"}
                for c in self.campaigns
            ]
        }

    def list_vehicles(
        self, model_manifest_arn: str = "", max_results: int = DEFAULT_LIST_LIMIT
    ) -> list[dict[str, Any]]:
        self.calls.append(("list_vehicles", model_manifest_arn))
        return [
            {"vehicleName": v.name, "arn": f"arn:vehicle/{v.name}"}
            for v in self.vehicles
            if not model_manifest_arn or v.model_manifest_arn == model_manifest_arn
        ][:max_results]

    def get_campaign(self, campaign_name: str) -> dict[str, Any]:
        self.calls.append(("get_campaign", campaign_name))
        for campaign in self.campaigns:
            if campaign.name == campaign_name:
                return {"name": campaign.name, "targetArn": campaign.target_arn}
        raise FleetResourceNotFoundError(f"campaign {campaign_name} not found")

    def update_campaign(self, campaign_name: str, action: CampaignAction) -> None:
        self.calls.append(("update_campaign", (campaign_name, action)))
        self.get_campaign(campaign_name)

    def list_campaigns(self, max_results: int = DEFAULT_LIST_LIMIT) -> list[dict[str, Any]]:
        self.calls.append(("list_campaigns", max_results))
        return [{"name": c.name} for c in self.campaigns][:max_results]

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


def make_spec(**overrides) -> EnvironmentSpec:
    """A valid specification; keyword arguments override fields."""
    values = {
        "name": "test-env",
        "owner": "alice",
        "capabilities": ["C01"],
        "compute": ComputeConfig(cpu=2, memory=4, instances=1),
        "storage": 10,
    }
    values.update(overrides)
    return EnvironmentSpec(**values)


def make_fleet_config(**overrides) -> FleetConfig:
    """A fleet config with a fleet, two vehicles and a campaign."""
    values = {
        "region": "eu-central-1",
        "signal_catalog_arn": "arn:aws:iotfleetwise:eu-central-1:123:signal-catalog/default",
        "model_manifest_arn": "arn:aws:iotfleetwise:eu-central-1:123:model-manifest/m",
        "decoder_manifest_arn": "arn:aws:iotfleetwise:eu-central-1:123:decoder-manifest/d",
        "fleet_id": "test-fleet",
        "campaign_arn": "arn:aws:iotfleetwise:eu-central-1:123:campaign/c",
        "vehicle_names": ["vehicle-1", "vehicle-2"],
        "data_destination_s3": "arn:aws:s3:::fleet-data",
    }
    values.update(overrides)
    return FleetConfig(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Test settings with a temporary data directory and no delays."""
    settings = Settings(
        data_dir=tmp_path,
        otel_enabled=False,
        provision_on_create=False,
        provisioning_stage_interval_seconds=0.0,
        fleet_validation_delay_seconds=0.0,
        uptime_tick_seconds=0.01,
    )
    settings.ensure_data_dirs()
    return settings


@pytest.fixture
def audit_service(settings: Settings) -> AuditService:
    """AuditService over in-memory stores."""
    return AuditService(
        settings=settings,
        transition_store=MemoryStore[StateTransition](model_class=StateTransition),
        audit_store=MemoryStore[AuditLog](model_class=AuditLog),
    )


@pytest.fixture
def env_service(settings: Settings, audit_service: AuditService) -> EnvironmentService:
    """EnvironmentService over in-memory stores."""
    return EnvironmentService(
        settings=settings,
        environment_store=MemoryStore[Environment](model_class=Environment),
        upload_store=MemoryStore[ArtifactUpload](model_class=ArtifactUpload),
        audit_service=audit_service,
    )


@pytest.fixture
def fleet_backend() -> RecordingFleetBackend:
    """A fleet backend stub that succeeds on every call."""
    return RecordingFleetBackend()


@pytest.fixture
def orchestrator(
    settings: Settings,
    env_service: EnvironmentService,
    audit_service: AuditService,
    fleet_backend: RecordingFleetBackend,
) -> ProvisioningOrchestrator:
    """ProvisioningOrchestrator wired to the stub fleet backend."""
    return ProvisioningOrchestrator(
        settings=settings,
        environment_service=env_service,
        audit_service=audit_service,
        fleet_backend_factory=lambda region: fleet_backend,
    )


API_TEST_ENV = {
    "SES_OTEL_ENABLED": "false",
    "SES_PROVISION_ON_CREATE": "false",
    "SES_PROVISIONING_STAGE_INTERVAL_SECONDS": "0",
    "SES_FLEET_VALIDATION_DELAY_SECONDS": "0",
    "SES_UPTIME_TICK_SECONDS": "3600",
}


def _reset_services() -> None:
    import ses_api.services.audit as audit_module
    import ses_api.services.environment as env_module
    import ses_api.services.provisioning as provisioning_module
    from ses_api.core.config import get_settings

    get_settings.cache_clear()
    audit_module.reset_audit_service()
    env_module.reset_environment_service()
    provisioning_module.reset_provisioning_orchestrator()


@pytest.fixture
def api_client() -> Iterator[TestClient]:
    """Test client for a fresh app with fresh service state and temp directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        overrides = {**API_TEST_ENV, "SES_DATA_DIR": tmpdir}
        previous = {key: os.environ.get(key) for key in overrides}
        os.environ.update(overrides)
        _reset_services()

        from ses_api.main import create_app

        app = create_app()

        try:
            with TestClient(app) as test_client:
                yield test_client
        finally:
            for key, value in previous.items():
                if value is None:
                    os.environ.pop(key, None)
                else:
                    os.environ[key] = value
            _reset_services()
