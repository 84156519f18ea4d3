"""Pydantic models for SES platform entities."""

from ses_api.models.audit import AuditLog, AuditLogListResponse, StateTransition
from ses_api.models.capability import Capability, Enabler, EnvironmentTemplate
from ses_api.models.common import SYSTEM_USER, AuditAction, EnvironmentStatus
from ses_api.models.environment import (
    ArtifactUpload,
    ComputeConfig,
    CostEstimate,
    Environment,
    EnvironmentLogEntry,
    EnvironmentMetrics,
    EnvironmentSpec,
    EnvironmentStatusSummary,
    EnvironmentUpdate,
    ValidationResult,
)
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

__all__ = [
    "SYSTEM_USER",
    "ArtifactUpload",
    "AuditAction",
    "AuditLog",
    "AuditLogListResponse",
    "BatchCreateResult",
    "CampaignAction",
    "CampaignConfig",
    "Capability",
    "CollectionScheme",
    "ComputeConfig",
    "CostEstimate",
    "DataDestination",
    "Enabler",
    "Environment",
    "EnvironmentLogEntry",
    "EnvironmentMetrics",
    "EnvironmentSpec",
    "EnvironmentStatus",
    "EnvironmentStatusSummary",
    "EnvironmentTemplate",
    "EnvironmentUpdate",
    "FleetConfig",
    "SignalToCollect",
    "StateTransition",
    "ValidationResult",
    "VehicleConfig",
    "VehicleUpdate",
]
