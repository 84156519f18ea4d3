"""Environment specification validation against the capability graph."""

import logging

from ses_api.models.environment import EnvironmentSpec, ValidationResult
from ses_api.services.capabilities import CapabilityGraph, get_capability_graph

logger = logging.getLogger(__name__)


class SpecValidator:
    """Validates environment specifications.

    Every rule is applied independently and all violations are collected.
    Dependencies are checked one level deep: each requested capability's
    direct dependencies must also be requested. Storage below 1 GB is only a
    warning.
    """

    def __init__(self, graph: CapabilityGraph | None = None) -> None:
        self.graph = graph or get_capability_graph()

    def validate(self, spec: EnvironmentSpec) -> ValidationResult:
        """Validate a specification.

        Args:
            spec: Candidate environment specification

        Returns:
            ValidationResult; ``valid`` is True iff there are no errors
        """
        errors: list[str] = []
        warnings: list[str] = []
        requested = set(spec.capabilities)

        for capability_id in spec.capabilities:
            if capability_id not in self.graph:
                errors.append(f"Capability {capability_id} not found")
                continue

            for dependency_id in self.graph.dependencies_of(capability_id):
                if dependency_id not in requested:
                    errors.append(f"Capability {capability_id} requires {dependency_id}")

        if spec.compute.cpu < 1:
            errors.append("CPU must be at least 1")
        if spec.compute.memory < 1:
            errors.append("Memory must be at least 1 GB")
        if spec.storage < 1:
            warnings.append("Storage should be at least 1 GB")

        if errors:
            logger.debug(f"Specification '{spec.name}' failed validation: {errors}")

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)


def validate_spec(
    spec: EnvironmentSpec, graph: CapabilityGraph | None = None
) -> ValidationResult:
    """Validate ``spec`` against ``graph`` (the global graph by default)."""
    return SpecValidator(graph).validate(spec)


def get_spec_validator() -> SpecValidator:
    """Get a SpecValidator bound to the global capability graph."""
    return SpecValidator()
