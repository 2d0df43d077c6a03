"""Tests for the HTTP API."""

import textwrap

import pytest
from fastapi.testclient import TestClient

from loadflow.api.server import create_app
from loadflow.service import LoadService

SCENARIO_MODULE = '''
from loadflow.scenarios import load


@load(order=2, concurrency=2, duration=0.2, interval=0.05)
async def quick():
    """Always succeeds."""
    return True


@load(order=1, concurrency=1, duration=0.1, interval=0.05)
async def warmup():
    return True


@load(order=0)
def helper():
    pass
'''


@pytest.fixture
def service(tmp_path):
    scenarios_dir = tmp_path / "scenarios"
    scenarios_dir.mkdir()
    (scenarios_dir / "quick.py").write_text(textwrap.dedent(SCENARIO_MODULE))
    return LoadService(db_path=tmp_path / "api.db", scenarios_dir=scenarios_dir)


@pytest.fixture
def client(service):
    with TestClient(create_app(service)) as client:
        yield client


class TestHealth:
    """Tests for service endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_stats(self, client):
        response = client.get("/api/stats")

        assert response.status_code == 200
        data = response.json()
        assert data["running"] is True
        assert data["scenarios_loaded"] == 2
        assert data["worker_mode"] == "hybrid"
        assert data["results_by_scenario"] == {}

    def test_lifespan_stops_service(self, service):
        with TestClient(create_app(service)):
            assert service.is_running
        assert not service.is_running


class TestScenarioEndpoints:
    """Tests for listing and running scenarios."""

    def test_list_in_execution_order(self, client):
        response = client.get("/api/scenarios")

        assert response.status_code == 200
        scenarios = response.json()
        assert [s["name"] for s in scenarios] == ["warmup", "quick"]
        assert scenarios[1]["description"] == "Always succeeds."
        assert scenarios[1]["settings"]["concurrency"] == 2
        assert scenarios[1]["settings"]["termination_mode"] == "duration"

    def test_run_scenario(self, client):
        response = client.post("/api/scenarios/quick/run")

        assert response.status_code == 201
        data = response.json()
        assert data["scenario_name"] == "quick"
        assert data["total"] > 0
        assert data["failure"] == 0
        assert data["success_rate"] == 1.0

        stats = client.get("/api/stats").json()
        assert stats["results_by_scenario"]["quick"]["runs"] == 1

    def test_run_unknown_scenario(self, client):
        response = client.post("/api/scenarios/nope/run")
        assert response.status_code == 404

    def test_run_ordering_only_function(self, client):
        response = client.post("/api/scenarios/helper/run")
        assert response.status_code == 404


class TestRunEndpoint:
    """Tests for ad-hoc HTTP runs."""

    def test_invalid_settings(self, client):
        response = client.post("/api/runs", json={
            "name": "bad",
            "url": "http://127.0.0.1:1/",
            "settings": {"concurrency": 0, "duration": 1, "interval": 1},
        })
        assert response.status_code == 422

    def test_unreachable_endpoint_counts_failures(self, client):
        response = client.post("/api/runs", json={
            "name": "unreachable",
            "url": "http://127.0.0.1:1/",
            "settings": {"concurrency": 1, "duration": 0.1, "interval": 0.05},
        })

        assert response.status_code == 201
        data = response.json()
        assert data["success"] == 0
        assert data["failure"] == data["total"]


class TestResultEndpoints:
    """Tests for browsing stored results."""

    def test_list_get_delete(self, client):
        run = client.post("/api/scenarios/warmup/run").json()

        results = client.get("/api/results").json()
        assert [r["id"] for r in results] == [run["id"]]
        assert client.get("/api/results", params={"scenario": "quick"}).json() == []

        response = client.get(f"/api/results/{run['id']}")
        assert response.status_code == 200
        assert response.json()["total"] == run["total"]

        assert client.delete(f"/api/results/{run['id']}").json() == {"deleted": True}
        assert client.delete(f"/api/results/{run['id']}").status_code == 404
        assert client.get(f"/api/results/{run['id']}").status_code == 404
