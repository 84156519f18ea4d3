"""Capability graph: static capability, enabler and template reference data."""

import logging

from ses_api.models.capability import Capability, Enabler, EnvironmentTemplate

logger = logging.getLogger(__name__)


# Seeded catalog. C14 is referenced by C19 but intentionally not defined, so
# requesting C19 can never be fully satisfied.
DEFAULT_CAPABILITIES: list[Capability] = [
    Capability(
        id="C01",
        name="Spec Authoring & Validation",
        description="Web editor and services to author SES",
        enablers=["E02", "E17", "E11", "E20"],
    ),
    Capability(
        id="C02",
        name="Parsing & Internal Modeling",
        description="Convert validated SES into normalized models",
        enablers=["E03", "E04", "E17", "E01"],
        dependencies=["C01"],
    ),
    Capability(
        id="C03",
        name="Planning Engine",
        description="Generates execution plan",
        enablers=["E03", "E04", "E08", "E16"],
        dependencies=["C01", "C02"],
    ),
    Capability(
        id="C04",
        name="Provisioning Automation",
        description="Executes plan to create infrastructure",
        enablers=["E05", "E04", "E01", "E18", "E20"],
        dependencies=["C03", "C09"],
    ),
    Capability(
        id="C06",
        name="Monitoring & Metrics",
        description="Collects infrastructure metrics",
        enablers=["E06", "E07", "E11", "E19"],
        dependencies=["C04"],
    ),
    Capability(
        id="C08",
        name="Cost Management",
        description="Real-time cost tracking",
        enablers=["E08", "E16", "E06", "E11"],
        dependencies=["C06"],
    ),
    Capability(
        id="C09",
        name="Security & Compliance",
        description="Credential vault, RBAC",
        enablers=["E09", "E10", "E19", "E01"],
    ),
    Capability(
        id="C12",
        name="Simulation Execution",
        description="Runs scenarios",
        enablers=["E12", "E13", "E04", "E06", "E20"],
        dependencies=["C04"],
    ),
    Capability(
        id="C19",
        name="AWS Automotive Integration",
        description="Real AWS IoT FleetWise integration for vehicle simulation",
        enablers=["E05", "E21", "E01", "E18", "E20"],
        dependencies=["C04", "C09", "C14"],
    ),
]

DEFAULT_ENABLERS: list[Enabler] = [
    Enabler(id="E01", name="Core Platform Infra", description="DB, storage, vault"),
    Enabler(id="E02", name="Schema & Validation", description="JSON/YAML validators"),
    Enabler(id="E03", name="Graph & Planning", description="DAG construction"),
    Enabler(id="E04", name="Execution Framework", description="Workflow engine"),
    Enabler(id="E06", name="Metrics Stack", description="Prometheus, time-series"),
    Enabler(id="E08", name="Cost Engine", description="Pricing cache"),
    Enabler(id="E09", name="Security/RBAC", description="Auth, MFA"),
    Enabler(id="E11", name="UI Components", description="Web editor, dashboards"),
]

DEFAULT_TEMPLATES: list[EnvironmentTemplate] = [
    EnvironmentTemplate(
        id="tmpl-001",
        name="Standard Load Test",
        description="Pre-configured for load testing",
        capabilities=["C01", "C02", "C03", "C04", "C06", "C12"],
        popularity=145,
        cost=98.50,
    ),
    EnvironmentTemplate(
        id="tmpl-002",
        name="Full Production Mirror",
        description="Complete production environment",
        capabilities=["C01", "C02", "C03", "C04", "C06", "C08", "C09", "C12"],
        popularity=89,
        cost=287.20,
    ),
]


class CapabilityGraph:
    """Immutable mapping of capability ID to capability and its dependencies.

    Example:
        ```python
        graph = get_capability_graph()
        graph.dependencies_of("C04")  # ["C03", "C09"]
        graph.get("C99")  # None
        ```
    """

    def __init__(
        self,
        capabilities: list[Capability] | None = None,
        enablers: list[Enabler] | None = None,
        templates: list[EnvironmentTemplate] | None = None,
    ) -> None:
        """Initialize the graph.

        Args:
            capabilities: Capability catalog (defaults to the seeded catalog)
            enablers: Enabler catalog (defaults to the seeded catalog)
            templates: Environment templates (defaults to the seeded templates)
        """
        caps = DEFAULT_CAPABILITIES if capabilities is None else capabilities
        self._capabilities: dict[str, Capability] = {c.id: c for c in caps}
        self._enablers = list(DEFAULT_ENABLERS if enablers is None else enablers)
        self._templates = list(DEFAULT_TEMPLATES if templates is None else templates)

    def __contains__(self, capability_id: object) -> bool:
        return capability_id in self._capabilities

    def get(self, capability_id: str) -> Capability | None:
        """Get a capability by ID, or None if unknown."""
        return self._capabilities.get(capability_id)

    def dependencies_of(self, capability_id: str) -> list[str]:
        """Direct dependencies of a capability (empty for unknown IDs)."""
        capability = self._capabilities.get(capability_id)
        if capability is None:
            return []
        return list(capability.dependencies)

    def list_capabilities(self) -> list[Capability]:
        """All capabilities in catalog order."""
        return list(self._capabilities.values())

    def list_enablers(self) -> list[Enabler]:
        """All enablers in catalog order."""
        return list(self._enablers)

    def list_templates(self) -> list[EnvironmentTemplate]:
        """All environment templates."""
        return list(self._templates)


# Global graph instance
_capability_graph: CapabilityGraph | None = None


def get_capability_graph() -> CapabilityGraph:
    """Get the global CapabilityGraph instance."""
    global _capability_graph
    if _capability_graph is None:
        _capability_graph = CapabilityGraph()
        logger.info(
            f"Capability graph initialized with "
            f"{len(_capability_graph.list_capabilities())} capabilities"
        )
    return _capability_graph
