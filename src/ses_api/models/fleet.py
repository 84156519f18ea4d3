"""Fleet backend models for AWS IoT FleetWise provisioning."""

from typing import Literal

from pydantic import BaseModel, Field


class FleetConfig(BaseModel):
    """Fleet configuration attached to an environment.

    Describes which fleet, vehicles and data collection campaign should be
    created when the environment is provisioned through the fleet backend.

    Example:
        ```python
        config = FleetConfig(
            region="eu-central-1",
            signal_catalog_arn="arn:aws:iotfleetwise:...:signal-catalog/default",
            fleet_id="test-fleet",
            vehicle_names=["veh-1", "veh-2"],
        )
        ```
    """

    region: str = ""
    signal_catalog_arn: str = ""
    model_manifest_arn: str = ""
    decoder_manifest_arn: str = ""
    fleet_id: str = ""
    campaign_arn: str = ""
    vehicle_names: list[str] = Field(default_factory=list)
    data_destination_s3: str = ""
    data_destination_mqtt: str = ""
    enable_compression: bool = False
    enable_spooling: bool = False
    enable_diagnostics: bool = False


class VehicleConfig(BaseModel):
    """Configuration for a single vehicle to create."""

    name: str
    model_manifest_arn: str = ""
    decoder_manifest_arn: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    create_iot_thing: bool = True


class VehicleUpdate(BaseModel):
    """Changes applied to an existing vehicle.

    Empty manifest ARNs leave the vehicle's manifests unchanged; non-empty
    ``attributes`` replace the vehicle's attributes.
    """

    model_manifest_arn: str = ""
    decoder_manifest_arn: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)


class CollectionScheme(BaseModel):
    """How a campaign collects data."""

    type: Literal["time-based", "condition-based"] = "time-based"
    period_ms: int = 0
    expression: str = ""
    minimum_trigger_interval_ms: int = 0
    trigger_mode: Literal["ALWAYS", "RISING_EDGE"] = "ALWAYS"


class SignalToCollect(BaseModel):
    """A signal sampled by a campaign."""

    name: str
    max_sample_count: int
    minimum_sampling_interval_ms: int


class DataDestination(BaseModel):
    """Where campaign data is delivered."""

    type: Literal["s3", "timestream", "mqtt"]
    s3_bucket_arn: str = ""
    s3_prefix: str = ""
    s3_data_format: Literal["JSON", "PARQUET"] = "JSON"
    s3_storage_compression: Literal["NONE", "GZIP"] = "NONE"
    timestream_table_arn: str = ""
    timestream_execution_role: str = ""
    mqtt_topic_arn: str = ""
    mqtt_execution_role: str = ""


class CampaignConfig(BaseModel):
    """Data collection campaign definition."""

    name: str
    description: str = ""
    signal_catalog_arn: str = ""
    target_arn: str = ""
    collection_scheme: CollectionScheme = Field(default_factory=CollectionScheme)
    signals_to_collect: list[SignalToCollect] = Field(default_factory=list)
    data_destinations: list[DataDestination] = Field(default_factory=list)
    compression: Literal["OFF", "SNAPPY"] = "OFF"
    diagnostics_mode: Literal["OFF", "SEND_ACTIVE_DTCS"] = "OFF"
    spooling_mode: Literal["OFF", "TO_DISK"] = "OFF"
    data_extra_dimensions: list[str] = Field(default_factory=list)
    post_trigger_duration_ms: int = 0


class BatchCreateResult(BaseModel):
    """Outcome of a batch vehicle creation.

    Partial failure is normal: ``created`` holds the references of vehicles
    that were created, ``errors`` one message per failed vehicle or batch.
    """

    created: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


CampaignAction = Literal["APPROVE", "SUSPEND", "RESUME", "UPDATE"]
