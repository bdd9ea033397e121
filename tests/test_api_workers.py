import pytest
from fastapi.testclient import TestClient

from courier_dispatch.container import Stores, build_container
from courier_dispatch.main import create_app


@pytest.fixture
def container(config, resolver, transport, events, route_store, order_store, billing_store, party_store):
    stores = Stores(routes=route_store, orders=order_store, billings=billing_store, parties=party_store)
    built = build_container(config, stores=stores, resolver=resolver, transport=transport, events=events)
    yield built
    built.manager.handle_shutdown(2.0)


@pytest.fixture
def api_client(container) -> TestClient:
    return TestClient(create_app(container))


def test_health(api_client: TestClient) -> None:
    response = api_client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_providers_lists_tiers(api_client: TestClient) -> None:
    response = api_client.get("/api/health/providers")

    assert response.status_code == 200
    body = response.json()
    assert body["geocoders"] == ["dict", "synthetic"]
    assert body["routers"] == ["straight", "synthetic"]
    assert "osrm_healthy" not in body


def test_workers_status(api_client: TestClient, container, config) -> None:
    container.transport.send(config.route_assignment_queue, "{}")

    response = api_client.get("/api/workers/status")

    assert response.status_code == 200
    body = response.json()
    assert body["manager_running"] is False
    assert body["workers"]["routeAssignment"]["depth"]["available"] == 1
    assert body["last_updated"]


def test_start_and_stop_worker(api_client: TestClient) -> None:
    started = api_client.post("/api/workers/routeAssignment/start")
    assert started.status_code == 200
    assert started.json()["status"]["workers"]["routeAssignment"]["running"] is True

    stopped = api_client.post("/api/workers/routeAssignment/stop")
    assert stopped.status_code == 200
    assert stopped.json()["status"]["workers"]["routeAssignment"]["running"] is False


def test_start_all_and_stop_all(api_client: TestClient) -> None:
    assert api_client.post("/api/workers/start-all").json()["status"]["manager_running"] is True
    assert api_client.post("/api/workers/stop-all").json()["status"]["manager_running"] is False


def test_unknown_worker_returns_404(api_client: TestClient) -> None:
    response = api_client.post("/api/workers/emailDigest/start")

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_002"


def test_purge_queue(api_client: TestClient, container, config) -> None:
    container.transport.send(config.invoice_generation_queue, "{}")

    response = api_client.post("/api/queues/invoiceGeneration/purge")

    assert response.status_code == 200
    assert response.json() == {"success": True, "queue": "invoiceGeneration", "purged": 1}
