"""Tests for the capability graph and SpecValidator."""

import pytest
from conftest import make_spec

from ses_api.models.capability import Capability
from ses_api.models.environment import ComputeConfig
from ses_api.services.capabilities import CapabilityGraph, get_capability_graph
from ses_api.services.validator import SpecValidator, validate_spec


class TestCapabilityGraph:
    """Tests for the seeded catalog."""

    def test_seeded_capabilities(self):
        graph = CapabilityGraph()
        ids = [c.id for c in graph.list_capabilities()]

        assert ids == ["C01", "C02", "C03", "C04", "C06", "C08", "C09", "C12", "C19"]

    def test_dependencies_of(self):
        graph = CapabilityGraph()

        assert graph.dependencies_of("C04") == ["C03", "C09"]
        assert graph.dependencies_of("C01") == []
        assert graph.dependencies_of("C99") == []

    def test_c14_is_not_in_catalog(self):
        graph = CapabilityGraph()

        assert "C14" not in graph
        assert "C14" in graph.dependencies_of("C19")

    def test_enablers_and_templates(self):
        graph = CapabilityGraph()

        assert [e.id for e in graph.list_enablers()][0] == "E01"
        assert {t.id for t in graph.list_templates()} == {"tmpl-001", "tmpl-002"}

    def test_get_capability_graph_is_shared(self):
        assert get_capability_graph() is get_capability_graph()


class TestSpecValidator:
    """Tests for specification validation rules."""

    def test_valid_spec(self):
        result = validate_spec(make_spec(capabilities=["C01", "C02"]))

        assert result.valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_missing_dependency(self):
        result = validate_spec(make_spec(capabilities=["C04"]))

        assert result.valid is False
        assert "Capability C04 requires C03" in result.errors
        assert "Capability C04 requires C09" in result.errors

    def test_unknown_capability(self):
        result = validate_spec(make_spec(capabilities=["C99"]))

        assert result.valid is False
        assert result.errors == ["Capability C99 not found"]

    def test_c19_always_reports_c14(self):
        spec = make_spec(capabilities=["C01", "C02", "C03", "C04", "C09", "C19"])

        result = validate_spec(spec)

        assert result.valid is False
        assert result.errors == ["Capability C19 requires C14"]

    def test_dependency_check_is_one_level_deep(self):
        # C06 -> C04 -> C03/C09; only the direct dependency is required
        result = validate_spec(make_spec(capabilities=["C06", "C04"]))

        assert "Capability C06 requires C04" not in result.errors
        assert "Capability C04 requires C03" in result.errors

    def test_capability_order_does_not_matter(self):
        forward = validate_spec(make_spec(capabilities=["C01", "C02", "C03"]))
        backward = validate_spec(make_spec(capabilities=["C03", "C02", "C01"]))

        assert forward.valid is backward.valid is True

    def test_empty_capability_list_is_valid(self):
        assert validate_spec(make_spec(capabilities=[])).valid is True

    def test_cpu_and_memory_lower_bounds(self):
        spec = make_spec(compute=ComputeConfig(cpu=0, memory=0, instances=1))

        result = validate_spec(spec)

        assert result.valid is False
        assert "CPU must be at least 1" in result.errors
        assert "Memory must be at least 1 GB" in result.errors

    def test_small_storage_is_only_a_warning(self):
        result = validate_spec(make_spec(storage=0))

        assert result.valid is True
        assert result.warnings == ["Storage should be at least 1 GB"]

    def test_collects_all_errors(self):
        spec = make_spec(
            capabilities=["C99", "C02"],
            compute=ComputeConfig(cpu=0, memory=1, instances=1),
        )

        result = validate_spec(spec)

        assert result.errors == [
            "Capability C99 not found",
            "Capability C02 requires C01",
            "CPU must be at least 1",
        ]

    @pytest.mark.parametrize("template_id", ["tmpl-001", "tmpl-002"])
    def test_templates_validate_as_in_catalog(self, template_id):
        graph = CapabilityGraph()
        template = next(t for t in graph.list_templates() if t.id == template_id)

        result = SpecValidator(graph).validate(make_spec(capabilities=template.capabilities))

        # C04 depends on C09, which tmpl-001 does not include
        assert result.valid is (template_id == "tmpl-002")

    def test_custom_graph(self):
        graph = CapabilityGraph(
            capabilities=[
                Capability(id="A", name="A"),
                Capability(id="B", name="B", dependencies=["A"]),
            ]
        )

        assert validate_spec(make_spec(capabilities=["B"]), graph).errors == [
            "Capability B requires A"
        ]
        assert validate_spec(make_spec(capabilities=["A", "B"]), graph).valid is True
