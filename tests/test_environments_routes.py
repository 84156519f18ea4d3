"""Tests for environment API routes."""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client(api_client: TestClient) -> TestClient:
    return api_client


def wait_for_workflows(client: TestClient) -> None:
    """Block until background provisioning in the app's event loop is done."""
    from ses_api.services.provisioning import get_provisioning_orchestrator

    client.portal.call(get_provisioning_orchestrator().wait_for_workflows)


def spec_payload(**overrides) -> dict:
    payload = {
        "name": "route-env",
        "owner": "alice",
        "capabilities": ["C01", "C02"],
        "compute": {"cpu": 2, "memory": 4, "instances": 1},
        "storage": 20,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def environment(client: TestClient) -> dict:
    """Create an environment for testing."""
    response = client.post("/api/v1/environments", json=spec_payload())
    assert response.status_code == 201
    return response.json()["environment"]


class TestCreateEnvironment:
    """Tests for POST /api/v1/environments."""

    def test_create(self, client: TestClient) -> None:
        response = client.post("/api/v1/environments", json=spec_payload())

        assert response.status_code == 201
        env = response.json()["environment"]
        assert env["id"].startswith("env-")
        assert env["status"] == "pending"
        assert env["health"] == 100
        assert env["uptime"] == "0h"
        assert env["estimated_cost"] == pytest.approx(0.4 + 2.0 + 10.0)

    def test_invalid_spec_returns_validation_result(self, client: TestClient) -> None:
        response = client.post("/api/v1/environments", json=spec_payload(capabilities=["C04"]))

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["valid"] is False
        assert "Capability C04 requires C03" in detail["errors"]
        assert client.get("/api/v1/environments").json()["total"] == 0

    def test_missing_name_is_rejected(self, client: TestClient) -> None:
        payload = spec_payload()
        del payload["name"]

        assert client.post("/api/v1/environments", json=payload).status_code == 422

    def test_legacy_fleet_field_names(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/environments",
            json=spec_payload(
                fleetwise_config={"region": "eu-west-1", "vehicle_names": ["v1"]},
                use_real_aws_backend=True,
            ),
        )

        env = response.json()["environment"]
        assert env["use_fleet_backend"] is True
        assert env["fleet_config"]["vehicle_names"] == ["v1"]


class TestReadEnvironments:
    """Tests for list/get."""

    def test_list_empty(self, client: TestClient) -> None:
        data = client.get("/api/v1/environments").json()

        assert data == {"environments": [], "total": 0}

    def test_list_filters(self, client: TestClient, environment: dict) -> None:
        client.post("/api/v1/environments", json=spec_payload(owner="bob"))

        assert client.get("/api/v1/environments").json()["total"] == 2
        assert client.get("/api/v1/environments?owner=alice").json()["total"] == 1
        assert client.get("/api/v1/environments?status=pending").json()["total"] == 2
        assert client.get("/api/v1/environments?status=running").json()["total"] == 0

    def test_get(self, client: TestClient, environment: dict) -> None:
        response = client.get(f"/api/v1/environments/{environment['id']}")

        assert response.status_code == 200
        assert response.json()["environment"]["name"] == "route-env"

    def test_get_missing(self, client: TestClient) -> None:
        assert client.get("/api/v1/environments/env-0-deadbeef").status_code == 404


class TestUpdateEnvironment:
    """Tests for PUT /api/v1/environments/{id}."""

    def test_update_whitelisted(self, client: TestClient, environment: dict) -> None:
        response = client.put(
            f"/api/v1/environments/{environment['id']}",
            json={"name": "renamed", "tags": "load,eu"},
        )

        assert response.status_code == 200
        env = response.json()["environment"]
        assert env["name"] == "renamed"
        assert env["tags"] == "load,eu"

    def test_update_rejects_status(self, client: TestClient, environment: dict) -> None:
        response = client.put(
            f"/api/v1/environments/{environment['id']}", json={"status": "running"}
        )

        assert response.status_code == 422

    def test_update_missing(self, client: TestClient) -> None:
        response = client.put("/api/v1/environments/env-0-deadbeef", json={"name": "x"})

        assert response.status_code == 404


class TestLifecycle:
    """Tests for provision/start/stop/delete."""

    def test_provision_runs_to_running(self, client: TestClient, environment: dict) -> None:
        env_id = environment["id"]

        response = client.post(f"/api/v1/environments/{env_id}/provision")
        assert response.status_code == 202
        assert response.json()["environment"]["status"] == "provisioning"

        wait_for_workflows(client)

        status_data = client.get(f"/api/v1/environments/{env_id}/status").json()
        assert status_data["id"] == env_id
        assert status_data["status"] == "running"
        assert 90 <= status_data["health"] <= 99

        history = client.get(f"/api/v1/environments/{env_id}/history").json()
        assert len(history["transitions"]) == 5
        assert history["transitions"][-1]["to_state"] == "running"

    def test_provision_conflict(self, client: TestClient, environment: dict) -> None:
        env_id = environment["id"]
        client.post(f"/api/v1/environments/{env_id}/provision")
        wait_for_workflows(client)

        response = client.post(f"/api/v1/environments/{env_id}/provision")

        assert response.status_code == 409
        assert len(client.get(f"/api/v1/environments/{env_id}/history").json()["transitions"]) == 5

    def test_provision_missing(self, client: TestClient) -> None:
        assert client.post("/api/v1/environments/env-0-deadbeef/provision").status_code == 404

    def test_start_and_stop(self, client: TestClient, environment: dict) -> None:
        env_id = environment["id"]

        started = client.post(f"/api/v1/environments/{env_id}/start")
        stopped = client.post(f"/api/v1/environments/{env_id}/stop")

        assert started.json()["environment"]["status"] == "running"
        assert stopped.json()["environment"]["status"] == "stopped"
        reasons = [
            t["reason"]
            for t in client.get(f"/api/v1/environments/{env_id}/history").json()["transitions"]
        ]
        assert reasons == ["Status changed to running", "Status changed to stopped"]

    def test_stop_missing(self, client: TestClient) -> None:
        assert client.post("/api/v1/environments/env-0-deadbeef/stop").status_code == 404

    def test_delete_keeps_history(self, client: TestClient, environment: dict) -> None:
        env_id = environment["id"]

        response = client.delete(f"/api/v1/environments/{env_id}")

        assert response.status_code == 204
        assert client.get(f"/api/v1/environments/{env_id}").status_code == 404
        transitions = client.get(f"/api/v1/environments/{env_id}/history").json()["transitions"]
        assert transitions[-1]["to_state"] == "deleted"
        assert transitions[-1]["reason"] == "User requested deletion"

    def test_delete_missing(self, client: TestClient) -> None:
        assert client.delete("/api/v1/environments/env-0-deadbeef").status_code == 404


class TestUploads:
    """Tests for POST /api/v1/environments/{id}/upload."""

    def test_upload(self, client: TestClient, environment: dict) -> None:
        response = client.post(
            f"/api/v1/environments/{environment['id']}/upload",
            files={"file": ("firmware.bin", b"\x00\x01\x02\x03", "application/octet-stream")},
            data={"file_type": "binary", "version": "2.1.0"},
        )

        assert response.status_code == 201
        upload = response.json()["upload"]
        assert upload["filename"] == "firmware.bin"
        assert upload["size"] == 4
        assert upload["version"] == "2.1.0"
        assert upload["status"] == "completed"

    def test_upload_missing_environment(self, client: TestClient) -> None:
        response = client.post(
            "/api/v1/environments/env-0-deadbeef/upload",
            files={"file": ("firmware.bin", b"x", "application/octet-stream")},
        )

        assert response.status_code == 404

    def test_list_uploads(self, client: TestClient, environment: dict) -> None:
        env_id = environment["id"]
        for name in ("firmware.bin", "config.yaml"):
            client.post(
                f"/api/v1/environments/{env_id}/upload",
                files={"file": (name, b"data", "application/octet-stream")},
            )

        data = client.get(f"/api/v1/environments/{env_id}/uploads").json()

        assert data["total"] == 2
        assert [u["filename"] for u in data["uploads"]] == ["firmware.bin", "config.yaml"]

    def test_list_uploads_missing_environment(self, client: TestClient) -> None:
        assert client.get("/api/v1/environments/env-0-deadbeef/uploads").status_code == 404


class TestMetricsAndLogs:
    """Tests for GET /metrics and /logs."""

    def test_metrics_are_zero_unless_running(self, client: TestClient, environment: dict) -> None:
        data = client.get(f"/api/v1/environments/{environment['id']}/metrics").json()

        assert data["environment_id"] == environment["id"]
        assert data["cpu_usage"] == 0
        assert data["network_out"] == 0

    def test_metrics_while_running(self, client: TestClient, environment: dict) -> None:
        env_id = environment["id"]
        client.post(f"/api/v1/environments/{env_id}/start")

        data = client.get(f"/api/v1/environments/{env_id}/metrics").json()

        assert 0 <= data["cpu_usage"] <= 100
        assert 0 <= data["memory_usage"] <= 100
        assert 0 <= data["network_in"] <= 1000

    def test_metrics_missing(self, client: TestClient) -> None:
        assert client.get("/api/v1/environments/env-0-deadbeef/metrics").status_code == 404

    def test_logs_follow_transitions_newest_first(
        self, client: TestClient, environment: dict
    ) -> None:
        env_id = environment["id"]
        client.post(f"/api/v1/environments/{env_id}/start")
        client.post(f"/api/v1/environments/{env_id}/stop")

        data = client.get(f"/api/v1/environments/{env_id}/logs").json()

        assert data["environment_id"] == env_id
        assert [entry["message"] for entry in data["logs"]] == [
            "running -> stopped: Status changed to stopped",
            "pending -> running: Status changed to running",
        ]
        assert {entry["level"] for entry in data["logs"]} == {"INFO"}

    def test_logs_limit(self, client: TestClient, environment: dict) -> None:
        env_id = environment["id"]
        client.post(f"/api/v1/environments/{env_id}/start")
        client.post(f"/api/v1/environments/{env_id}/stop")

        data = client.get(f"/api/v1/environments/{env_id}/logs?limit=1").json()

        assert len(data["logs"]) == 1

    def test_logs_missing(self, client: TestClient) -> None:
        assert client.get("/api/v1/environments/env-0-deadbeef/logs").status_code == 404


class TestAudit:
    """Tests for GET /api/v1/audit."""

    def test_audit_trail_for_environment(self, client: TestClient, environment: dict) -> None:
        env_id = environment["id"]
        client.put(f"/api/v1/environments/{env_id}", json={"priority": "high"})
        client.delete(f"/api/v1/environments/{env_id}")

        data = client.get(f"/api/v1/audit?environment_id={env_id}").json()

        assert data["total"] == 3
        assert [e["action"] for e in data["entries"]] == ["deleted", "updated", "created"]
        assert all(e["user_id"] == "alice" for e in data["entries"])

    def test_audit_filter_by_action(self, client: TestClient, environment: dict) -> None:
        data = client.get("/api/v1/audit?action=created").json()

        assert data["total"] == 1
        assert data["entries"][0]["environment_id"] == environment["id"]
