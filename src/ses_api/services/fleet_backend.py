"""Fleet backend adapter for provisioning vehicle fleets (AWS IoT FleetWise)."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ses_api.models.fleet import (
    BatchCreateResult,
    CampaignAction,
    CampaignConfig,
    CollectionScheme,
    DataDestination,
    FleetConfig,
    SignalToCollect,
    VehicleConfig,
    VehicleUpdate,
)

logger = logging.getLogger(__name__)

# FleetWise accepts at most 10 vehicles per BatchCreateVehicle call
VEHICLE_BATCH_SIZE = 10

# Default campaign collection settings
CAMPAIGN_PERIOD_MS = 10000
CAMPAIGN_SIGNAL = "Vehicle.Speed"
CAMPAIGN_MAX_SAMPLE_COUNT = 1000
CAMPAIGN_MIN_SAMPLING_INTERVAL_MS = 100

# Page size for vehicle and campaign listings
DEFAULT_LIST_LIMIT = 50


class FleetBackendError(Exception):
    """Raised when a call to the fleet backend fails."""

    pass


class FleetResourceNotFoundError(FleetBackendError):
    """Raised when the requested fleet resource does not exist."""

    pass


@dataclass
class FleetProvisionResult:
    """Outcome of provisioning an environment's fleet resources.

    Attributes:
        fleet_ref: Reference of the created fleet, if one was requested
        vehicle_refs: References of the vehicles that were created
        vehicle_errors: One message per vehicle (or batch) that failed
        association_errors: One message per failed vehicle-to-fleet association
        campaign_ref: Reference of the created campaign, if any
        campaign_error: Error message if campaign creation failed
    """

    fleet_ref: str | None = None
    vehicle_refs: list[str] = field(default_factory=list)
    vehicle_errors: list[str] = field(default_factory=list)
    association_errors: list[str] = field(default_factory=list)
    campaign_ref: str | None = None
    campaign_error: str | None = None

    def summary(self) -> dict[str, Any]:
        """Counts suitable for transition metadata."""
        return {
            "fleet": self.fleet_ref,
            "vehicles_created": len(self.vehicle_refs),
            "vehicle_errors": len(self.vehicle_errors),
            "association_errors": len(self.association_errors),
            "campaign": self.campaign_ref,
        }


def campaign_name_for(env_id: str) -> str:
    """Campaign name used for an environment."""
    return f"campaign-{env_id}"


def build_vehicle_configs(env_id: str, config: FleetConfig) -> list[VehicleConfig]:
    """Vehicle definitions for every vehicle name in the fleet config."""
    created_at = datetime.utcnow().isoformat(timespec="seconds") + "Z"
    return [
        VehicleConfig(
            name=name,
            model_manifest_arn=config.model_manifest_arn,
            decoder_manifest_arn=config.decoder_manifest_arn,
            attributes={"EnvironmentID": env_id, "CreatedAt": created_at},
            create_iot_thing=True,
        )
        for name in config.vehicle_names
    ]


def build_campaign_config(
    env_id: str, config: FleetConfig, vehicle_refs: list[str]
) -> CampaignConfig:
    """Data collection campaign for an environment.

    Targets the fleet when one is configured, otherwise the first created
    vehicle.
    """
    destinations: list[DataDestination] = []
    if config.data_destination_s3:
        destinations.append(
            DataDestination(
                type="s3",
                s3_bucket_arn=config.data_destination_s3,
                s3_prefix=f"fleetwise/{env_id}/",
                s3_data_format="JSON",
                s3_storage_compression="GZIP",
            )
        )
    if config.data_destination_mqtt:
        destinations.append(
            DataDestination(type="mqtt", mqtt_topic_arn=config.data_destination_mqtt)
        )

    target_arn = config.fleet_id
    if not target_arn and vehicle_refs:
        target_arn = vehicle_refs[0]

    return CampaignConfig(
        name=campaign_name_for(env_id),
        description=f"Data collection campaign for environment {env_id}",
        signal_catalog_arn=config.signal_catalog_arn,
        target_arn=target_arn,
        collection_scheme=CollectionScheme(type="time-based", period_ms=CAMPAIGN_PERIOD_MS),
        signals_to_collect=[
            SignalToCollect(
                name=CAMPAIGN_SIGNAL,
                max_sample_count=CAMPAIGN_MAX_SAMPLE_COUNT,
                minimum_sampling_interval_ms=CAMPAIGN_MIN_SAMPLING_INTERVAL_MS,
            )
        ],
        data_destinations=destinations,
        compression="SNAPPY" if config.enable_compression else "OFF",
        diagnostics_mode="SEND_ACTIVE_DTCS" if config.enable_diagnostics else "OFF",
        spooling_mode="TO_DISK" if config.enable_spooling else "OFF",
    )


class FleetBackend(ABC):
    """Capability-oriented client for a fleet provisioning provider.

    Single-resource operations raise FleetBackendError on failure, or
    FleetResourceNotFoundError when the named resource does not exist. The
    composite operations decide which failures are fatal: only fleet
    creation aborts provisioning; vehicle, association and campaign failures
    are logged and reported in the result.
    """

    @abstractmethod
    def create_fleet(self, fleet_id: str, description: str, signal_catalog_arn: str) -> str:
        """Create a fleet and return its reference."""

    @abstractmethod
    def batch_create_vehicles(self, vehicles: list[VehicleConfig]) -> BatchCreateResult:
        """Create vehicles; partial success is reported, not raised."""

    @abstractmethod
    def associate_vehicle_to_fleet(self, vehicle_name: str, fleet_id: str) -> None:
        """Add a vehicle to a fleet."""

    @abstractmethod
    def create_campaign(self, campaign: CampaignConfig) -> str:
        """Create a data collection campaign and return its reference."""

    @abstractmethod
    def delete_vehicle(self, vehicle_name: str) -> None:
        """Delete a vehicle."""

    @abstractmethod
    def delete_campaign(self, campaign_name: str) -> None:
        """Delete a campaign."""

    @abstractmethod
    def create_vehicle(self, vehicle: VehicleConfig) -> str:
        """Create a single vehicle and return its reference."""

    @abstractmethod
    def get_vehicle(self, vehicle_name: str) -> dict[str, Any]:
        """Describe a vehicle."""

    @abstractmethod
    def update_vehicle(self, vehicle_name: str, updates: VehicleUpdate) -> None:
        """Change a vehicle's manifests or attributes."""

    @abstractmethod
    def get_vehicle_status(self, vehicle_name: str) -> dict[str, Any]:
        """Campaign deployment status of a vehicle."""

    @abstractmethod
    def list_vehicles(
        self, model_manifest_arn: str = "", max_results: int = DEFAULT_LIST_LIMIT
    ) -> list[dict[str, Any]]:
        """Vehicle summaries, optionally limited to one model manifest."""

    @abstractmethod
    def get_campaign(self, campaign_name: str) -> dict[str, Any]:
        """Describe a campaign."""

    @abstractmethod
    def update_campaign(self, campaign_name: str, action: CampaignAction) -> None:
        """Approve, suspend, resume or update a campaign."""

    @abstractmethod
    def list_campaigns(self, max_results: int = DEFAULT_LIST_LIMIT) -> list[dict[str, Any]]:
        """Campaign summaries."""

    def provision_environment(self, env_id: str, config: FleetConfig) -> FleetProvisionResult:
        """Create the fleet resources for an environment.

        Args:
            env_id: Environment being provisioned
            config: Fleet configuration of the environment

        Returns:
            FleetProvisionResult describing what was created

        Raises:
            FleetBackendError: If the fleet itself cannot be created
        """
        logger.info(f"Provisioning fleet resources for environment {env_id}")
        result = FleetProvisionResult()

        if config.fleet_id:
            try:
                result.fleet_ref = self.create_fleet(
                    config.fleet_id,
                    f"Fleet for environment {env_id}",
                    config.signal_catalog_arn,
                )
            except FleetBackendError as e:
                raise FleetBackendError(f"failed to create fleet: {e}") from e

        batch = self.batch_create_vehicles(build_vehicle_configs(env_id, config))
        result.vehicle_refs = batch.created
        result.vehicle_errors = batch.errors
        if batch.errors:
            logger.warning(f"Errors creating vehicles for {env_id}: {batch.errors}")
        logger.info(f"Created {len(batch.created)} vehicles for environment {env_id}")

        if config.fleet_id:
            for name in config.vehicle_names:
                try:
                    self.associate_vehicle_to_fleet(name, config.fleet_id)
                except FleetBackendError as e:
                    logger.warning(f"Failed to associate vehicle {name} to fleet: {e}")
                    result.association_errors.append(f"{name}: {e}")

        if config.campaign_arn:
            campaign = build_campaign_config(env_id, config, result.vehicle_refs)
            try:
                result.campaign_ref = self.create_campaign(campaign)
            except FleetBackendError as e:
                logger.warning(f"Failed to create campaign for {env_id}: {e}")
                result.campaign_error = str(e)

        logger.info(f"Provisioned fleet resources for environment {env_id}")
        return result

    def deprovision_environment(self, env_id: str, config: FleetConfig) -> list[str]:
        """Best-effort removal of an environment's campaign and vehicles.

        Fleets, signal catalogs and manifests are left in place since other
        environments may share them.

        Returns:
            Error messages for the cleanup steps that failed
        """
        logger.info(f"De-provisioning fleet resources for environment {env_id}")
        errors: list[str] = []

        if config.campaign_arn:
            try:
                self.delete_campaign(campaign_name_for(env_id))
            except FleetBackendError as e:
                logger.warning(f"Failed to delete campaign for {env_id}: {e}")
                errors.append(f"campaign: {e}")

        for name in config.vehicle_names:
            try:
                self.delete_vehicle(name)
            except FleetBackendError as e:
                logger.warning(f"Failed to delete vehicle {name}: {e}")
                errors.append(f"{name}: {e}")

        return errors


class FleetWiseBackend(FleetBackend):
    """FleetBackend backed by the AWS IoT FleetWise API via boto3.

    Example:
        ```python
        backend = FleetWiseBackend(region="eu-central-1")
        result = backend.provision_environment("env-123", fleet_config)
        print(result.summary())
        ```
    """

    def __init__(self, region: str, client: Any | None = None) -> None:
        """Initialize the backend.

        Args:
            region: AWS region of the FleetWise resources
            client: Optional pre-built boto3 ``iotfleetwise`` client

        Raises:
            FleetBackendError: If the boto3 client cannot be created
        """
        self.region = region
        if client is None:
            try:
                client = boto3.client("iotfleetwise", region_name=region)
            except BotoCoreError as e:
                raise FleetBackendError(f"unable to create FleetWise client: {e}") from e
        self._client = client

    def _call(self, operation: str, **params: Any) -> dict[str, Any]:
        """Invoke a client operation, converting AWS errors."""
        try:
            return getattr(self._client, operation)(**params)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ResourceNotFoundException":
                raise FleetResourceNotFoundError(f"{operation} failed: {e}") from e
            raise FleetBackendError(f"{operation} failed: {e}") from e
        except BotoCoreError as e:
            raise FleetBackendError(f"{operation} failed: {e}") from e

    @staticmethod
    def _without_metadata(response: dict[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in response.items() if k != "ResponseMetadata"}

    @staticmethod
    def _vehicle_request(vehicle: VehicleConfig) -> dict[str, Any]:
        return {
            "vehicleName": vehicle.name,
            "modelManifestArn": vehicle.model_manifest_arn,
            "decoderManifestArn": vehicle.decoder_manifest_arn,
            "attributes": dict(vehicle.attributes),
            "associationBehavior": (
                "CreateIotThing" if vehicle.create_iot_thing else "ValidateIotThingExists"
            ),
        }

    def create_fleet(self, fleet_id: str, description: str, signal_catalog_arn: str) -> str:
        logger.info(f"Creating fleet: {fleet_id}")
        response = self._call(
            "create_fleet",
            fleetId=fleet_id,
            description=description,
            signalCatalogArn=signal_catalog_arn,
        )
        logger.info(f"Created fleet {fleet_id} ({response['arn']})")
        return response["arn"]

    def batch_create_vehicles(self, vehicles: list[VehicleConfig]) -> BatchCreateResult:
        result = BatchCreateResult()

        for start in range(0, len(vehicles), VEHICLE_BATCH_SIZE):
            batch = vehicles[start : start + VEHICLE_BATCH_SIZE]
            try:
                response = self._call(
                    "batch_create_vehicle",
                    vehicles=[self._vehicle_request(v) for v in batch],
                )
            except FleetBackendError as e:
                result.errors.append(f"batch create failed: {e}")
                continue

            for created in response.get("vehicles", []):
                if created.get("arn"):
                    result.created.append(created["arn"])
                    logger.info(f"Created vehicle {created.get('vehicleName')} ({created['arn']})")

            for error in response.get("errors", []):
                result.errors.append(
                    f"vehicle {error.get('vehicleName')}: "
                    f"{error.get('code')} - {error.get('message')}"
                )

        return result

    def associate_vehicle_to_fleet(self, vehicle_name: str, fleet_id: str) -> None:
        logger.info(f"Associating vehicle {vehicle_name} to fleet {fleet_id}")
        self._call("associate_vehicle_fleet", vehicleName=vehicle_name, fleetId=fleet_id)

    @staticmethod
    def _collection_scheme(scheme: CollectionScheme) -> dict[str, Any]:
        if scheme.type == "condition-based":
            return {
                "conditionBasedCollectionScheme": {
                    "expression": scheme.expression,
                    "minimumTriggerIntervalMs": scheme.minimum_trigger_interval_ms,
                    "triggerMode": scheme.trigger_mode,
                    "conditionLanguageVersion": 1,
                }
            }
        return {"timeBasedCollectionScheme": {"periodMs": scheme.period_ms}}

    @staticmethod
    def _destination(destination: DataDestination) -> dict[str, Any]:
        if destination.type == "s3":
            return {
                "s3Config": {
                    "bucketArn": destination.s3_bucket_arn,
                    "dataFormat": destination.s3_data_format,
                    "storageCompressionFormat": destination.s3_storage_compression,
                    "prefix": destination.s3_prefix,
                }
            }
        if destination.type == "timestream":
            return {
                "timestreamConfig": {
                    "timestreamTableArn": destination.timestream_table_arn,
                    "executionRoleArn": destination.timestream_execution_role,
                }
            }
        return {
            "mqttTopicConfig": {
                "mqttTopicArn": destination.mqtt_topic_arn,
                "executionRoleArn": destination.mqtt_execution_role,
            }
        }

    def create_campaign(self, campaign: CampaignConfig) -> str:
        logger.info(f"Creating campaign: {campaign.name}")
        params: dict[str, Any] = {
            "name": campaign.name,
            "description": campaign.description,
            "signalCatalogArn": campaign.signal_catalog_arn,
            "targetArn": campaign.target_arn,
            "collectionScheme": self._collection_scheme(campaign.collection_scheme),
            "signalsToCollect": [
                {
                    "name": s.name,
                    "maxSampleCount": s.max_sample_count,
                    "minimumSamplingIntervalMs": s.minimum_sampling_interval_ms,
                }
                for s in campaign.signals_to_collect
            ],
            "compression": campaign.compression,
            "diagnosticsMode": campaign.diagnostics_mode,
            "spoolingMode": campaign.spooling_mode,
            "postTriggerCollectionDuration": campaign.post_trigger_duration_ms,
        }
        if campaign.data_destinations:
            params["dataDestinationConfigs"] = [
                self._destination(d) for d in campaign.data_destinations
            ]
        if campaign.data_extra_dimensions:
            params["dataExtraDimensions"] = campaign.data_extra_dimensions

        response = self._call("create_campaign", **params)
        logger.info(f"Created campaign {campaign.name} ({response['arn']})")
        return response["arn"]

    def delete_vehicle(self, vehicle_name: str) -> None:
        logger.info(f"Deleting vehicle: {vehicle_name}")
        self._call("delete_vehicle", vehicleName=vehicle_name)

    def delete_campaign(self, campaign_name: str) -> None:
        logger.info(f"Deleting campaign: {campaign_name}")
        self._call("delete_campaign", name=campaign_name)

    def create_vehicle(self, vehicle: VehicleConfig) -> str:
        logger.info(f"Creating vehicle: {vehicle.name}")
        response = self._call("create_vehicle", **self._vehicle_request(vehicle))
        logger.info(f"Created vehicle {vehicle.name} ({response['arn']})")
        return response["arn"]

    def get_vehicle(self, vehicle_name: str) -> dict[str, Any]:
        return self._without_metadata(self._call("get_vehicle", vehicleName=vehicle_name))

    def update_vehicle(self, vehicle_name: str, updates: VehicleUpdate) -> None:
        logger.info(f"Updating vehicle: {vehicle_name}")
        params: dict[str, Any] = {"vehicleName": vehicle_name}
        if updates.model_manifest_arn:
            params["modelManifestArn"] = updates.model_manifest_arn
        if updates.decoder_manifest_arn:
            params["decoderManifestArn"] = updates.decoder_manifest_arn
        if updates.attributes:
            params["attributes"] = dict(updates.attributes)
            params["attributeUpdateMode"] = "Overwrite"
        self._call("update_vehicle", **params)

    def get_vehicle_status(self, vehicle_name: str) -> dict[str, Any]:
        return self._without_metadata(
            self._call("get_vehicle_status", vehicleName=vehicle_name)
        )

    def list_vehicles(
        self, model_manifest_arn: str = "", max_results: int = DEFAULT_LIST_LIMIT
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"maxResults": max_results}
        if model_manifest_arn:
            params["modelManifestArn"] = model_manifest_arn
        return self._call("list_vehicles", **params).get("vehicleSummaries", [])

    def get_campaign(self, campaign_name: str) -> dict[str, Any]:
        return self._without_metadata(self._call("get_campaign", name=campaign_name))

    def update_campaign(self, campaign_name: str, action: CampaignAction) -> None:
        logger.info(f"Updating campaign {campaign_name} with action: {action}")
        self._call("update_campaign", name=campaign_name, action=action)

    def list_campaigns(self, max_results: int = DEFAULT_LIST_LIMIT) -> list[dict[str, Any]]:
        return self._call("list_campaigns", maxResults=max_results).get(
            "campaignSummaries", []
        )


def default_fleet_backend_factory(region: str) -> FleetBackend:
    """Build the AWS-backed adapter for a region."""
    return FleetWiseBackend(region=region)
