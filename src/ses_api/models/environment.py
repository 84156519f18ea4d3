"""Environment models: user specification, lifecycle record and derived views."""

import time
from datetime import datetime
from typing import Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from ses_api.models.common import EnvironmentStatus
from ses_api.models.fleet import FleetConfig


def generate_environment_id() -> str:
    """Generate a time-derived environment ID that is unique per call."""
    return f"env-{int(time.time())}-{uuid4().hex[:8]}"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid4())


class ComputeConfig(BaseModel):
    """Compute request for an environment.

    Attributes:
        cpu: vCPUs per instance
        memory: Memory per instance in GB
        instances: Number of instances
    """

    cpu: int = 0
    memory: int = 0
    instances: int = 0


class EnvironmentSpec(BaseModel):
    """Declarative description of a requested environment.

    The capability list keeps the caller's order for display; validation
    treats it as a set.

    Example:
        ```python
        spec = EnvironmentSpec(
            name="load-test",
            owner="alice",
            capabilities=["C01", "C02", "C03"],
            compute=ComputeConfig(cpu=4, memory=16, instances=2),
            storage=100,
        )
        ```
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    description: str = ""
    owner: str = ""
    tags: str = ""
    capabilities: list[str] = Field(default_factory=list)
    enablers: dict[str, Any] = Field(default_factory=dict)
    compute: ComputeConfig = Field(default_factory=ComputeConfig)
    storage: int = 0
    network: str = ""
    priority: str = ""
    duration: int = 0
    fleet_config: FleetConfig | None = Field(
        default=None,
        validation_alias=AliasChoices("fleet_config", "fleetwise_config"),
    )
    use_fleet_backend: bool = Field(
        default=False,
        validation_alias=AliasChoices("use_fleet_backend", "use_real_aws_backend"),
    )


class Environment(EnvironmentSpec):
    """A user-requested environment tracked through its lifecycle.

    Holds a copy of the accepted specification plus lifecycle state. Only
    the environment and provisioning services write this record.

    Attributes:
        id: Unique identifier, time-derived
        status: Current lifecycle status
        health: Health score between 0 and 100
        uptime: Human-readable uptime, e.g. "1d 3h"
        estimated_cost: Daily cost estimate fixed at creation
        actual_cost: Cost accrued while running
        created_at: Timestamp when the environment was created
        updated_at: Timestamp of the last write
    """

    id: str = Field(default_factory=generate_environment_id)
    status: EnvironmentStatus = EnvironmentStatus.PENDING
    health: int = Field(default=100, ge=0, le=100)
    uptime: str = "0h"
    estimated_cost: float = 0.0
    actual_cost: float = 0.0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def uses_fleet_backend(self) -> bool:
        """Whether provisioning should be delegated to the fleet backend."""
        return self.use_fleet_backend and self.fleet_config is not None


class EnvironmentUpdate(BaseModel):
    """Partial update of an environment's descriptive fields.

    Only these fields may be patched; lifecycle fields are owned by the
    provisioning workflow and unknown keys are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    owner: str | None = None
    tags: str | None = None
    network: str | None = None
    priority: str | None = None
    duration: int | None = None

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller explicitly set."""
        return self.model_dump(exclude_unset=True)


class EnvironmentStatusSummary(BaseModel):
    """Compact status view of an environment."""

    id: str
    status: EnvironmentStatus
    health: int
    uptime: str
    cost: float


class ValidationResult(BaseModel):
    """Result of validating an environment specification."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class CostEstimate(BaseModel):
    """Deterministic cost estimate for a specification."""

    daily_cost: float
    monthly_cost: float
    breakdown: dict[str, float]
    optimization_tip: str | None = None


class ArtifactUpload(BaseModel):
    """An artifact (binary or config) uploaded to an environment."""

    id: str = Field(default_factory=generate_uuid)
    environment_id: str
    filename: str
    file_type: str = ""
    version: str = ""
    size: int = 0
    status: str = "completed"
    created_at: datetime = Field(default_factory=datetime.utcnow)


class EnvironmentMetrics(BaseModel):
    """Point-in-time resource usage sample of an environment.

    Usage figures are percentages; network figures are in KB/s. Only a
    RUNNING environment reports non-zero usage.
    """

    environment_id: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    cpu_usage: float = 0.0
    memory_usage: float = 0.0
    disk_usage: float = 0.0
    network_in: float = 0.0
    network_out: float = 0.0


class EnvironmentLogEntry(BaseModel):
    """One line of an environment's activity log."""

    timestamp: datetime
    level: str
    message: str
