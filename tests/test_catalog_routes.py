"""Tests for catalog, validation and cost routes."""

import pytest
from fastapi.testclient import TestClient

from ses_api.main import app


@pytest.fixture
def client() -> TestClient:
    """Create a test client."""
    return TestClient(app)


def test_list_capabilities(client: TestClient) -> None:
    response = client.get("/api/v1/capabilities")

    assert response.status_code == 200
    capabilities = {c["id"]: c for c in response.json()}
    assert capabilities["C04"]["dependencies"] == ["C03", "C09"]
    assert "C14" not in capabilities


def test_list_enablers(client: TestClient) -> None:
    response = client.get("/api/v1/enablers")

    assert response.status_code == 200
    assert {"id", "name", "description"} <= set(response.json()[0])


def test_list_templates(client: TestClient) -> None:
    templates = client.get("/api/v1/templates").json()

    assert [t["id"] for t in templates] == ["tmpl-001", "tmpl-002"]


def test_validate_reports_errors_with_200(client: TestClient) -> None:
    response = client.post(
        "/api/v1/validate",
        json={
            "name": "x",
            "capabilities": ["C19"],
            "compute": {"cpu": 0, "memory": 2, "instances": 1},
            "storage": 0,
        },
    )

    assert response.status_code == 200
    result = response.json()
    assert result["valid"] is False
    assert "Capability C19 requires C14" in result["errors"]
    assert "CPU must be at least 1" in result["errors"]
    assert result["warnings"] == ["Storage should be at least 1 GB"]


def test_validate_valid_spec(client: TestClient) -> None:
    response = client.post(
        "/api/v1/validate",
        json={
            "name": "x",
            "capabilities": ["C01"],
            "compute": {"cpu": 1, "memory": 1, "instances": 1},
            "storage": 1,
        },
    )

    assert response.json() == {"valid": True, "errors": [], "warnings": []}


def test_cost_estimate(client: TestClient) -> None:
    response = client.post(
        "/api/v1/cost/estimate",
        json={
            "name": "x",
            "capabilities": ["C01", "C02", "C03"],
            "compute": {"cpu": 4, "memory": 16, "instances": 8},
            "storage": 100,
        },
    )

    assert response.status_code == 200
    estimate = response.json()
    assert estimate["daily_cost"] == pytest.approx(25.6 + 10.0 + 15.0)
    assert estimate["monthly_cost"] == pytest.approx(estimate["daily_cost"] * 30)
    assert estimate["optimization_tip"] is not None
