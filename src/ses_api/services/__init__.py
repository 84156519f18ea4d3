"""Service layer for business logic."""

from ses_api.services.audit import AuditService, get_audit_service
from ses_api.services.capabilities import CapabilityGraph, get_capability_graph
from ses_api.services.cost import CostModel, CostRates, get_cost_model
from ses_api.services.environment import (
    EnvironmentNotFoundError,
    EnvironmentService,
    InvalidStateTransitionError,
    SpecValidationError,
    get_environment_service,
)
from ses_api.services.fleet_backend import (
    FleetBackend,
    FleetBackendError,
    FleetProvisionResult,
    FleetResourceNotFoundError,
    FleetWiseBackend,
)
from ses_api.services.provisioning import (
    ProvisioningOrchestrator,
    get_provisioning_orchestrator,
)
from ses_api.services.validator import SpecValidator, get_spec_validator, validate_spec

__all__ = [
    # Audit
    "AuditService",
    "get_audit_service",
    # Capabilities
    "CapabilityGraph",
    "get_capability_graph",
    # Cost
    "CostModel",
    "CostRates",
    "get_cost_model",
    # Environment
    "EnvironmentNotFoundError",
    "EnvironmentService",
    "InvalidStateTransitionError",
    "SpecValidationError",
    "get_environment_service",
    # Fleet backend
    "FleetBackend",
    "FleetBackendError",
    "FleetProvisionResult",
    "FleetResourceNotFoundError",
    "FleetWiseBackend",
    # Provisioning
    "ProvisioningOrchestrator",
    "get_provisioning_orchestrator",
    # Validation
    "SpecValidator",
    "get_spec_validator",
    "validate_spec",
]
