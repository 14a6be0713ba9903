"""API tests for the LM service, run against an in-memory engine."""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Service apps are not installed packages
project_root = Path(__file__).parent.parent
sys.path.append(str(project_root / "service-lm"))

from app.main import app  # noqa: E402

from .conftest import MODEL_ID  # noqa: E402


@pytest.fixture
def client(manager, metrics):
    # Lifespan is skipped; state is wired by hand
    app.state.model_manager = manager
    app.state.metrics_collector = metrics
    yield TestClient(app)
    del app.state.model_manager
    del app.state.metrics_collector


def test_root_lists_endpoints(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["endpoints"]["embed"] == "/api/v1/embed"


def test_model_status_before_load(client):
    response = client.get("/api/v1/model")

    assert response.status_code == 200
    assert response.json() == {
        "model": MODEL_ID,
        "state": "unloaded",
        "downloaded": False,
        "engine_loaded": False,
    }


def test_ready_only_after_initialize(client):
    assert client.get("/ready").status_code == 503

    response = client.post("/api/v1/model/initialize")
    assert response.status_code == 200
    assert response.json() == {"model": MODEL_ID, "success": True, "state": "ready"}

    ready = client.get("/ready")
    assert ready.status_code == 200
    assert ready.json()["model"] == MODEL_ID


def test_download_endpoint(client, engine):
    response = client.post("/api/v1/model/download")

    assert response.status_code == 200
    assert response.json()["state"] == "unloaded"
    assert engine.downloaded is True


def test_embed_returns_float32_values(client):
    response = client.post("/api/v1/embed", json={"text": "hello"})

    assert response.status_code == 200
    body = response.json()
    assert body["model"] == MODEL_ID
    assert body["dimension"] == 4
    assert body["vector"][2] == pytest.approx(1 / 3, rel=1e-6)
    assert "X-Process-Time" in response.headers


def test_embed_reports_initialization_failure(client, engine):
    engine.fail_initialize = True

    response = client.post("/api/v1/embed", json={"text": "hello"})

    assert response.status_code == 503
    detail = response.json()["detail"]
    assert detail["failure"] == "initialization"
    assert "corrupt model file" in detail["error"]

    health = client.get("/health")
    assert health.status_code == 503
    assert health.json()["state"] == "failed"


def test_embed_rejects_missing_text(client):
    response = client.post("/api/v1/embed", json={})
    assert response.status_code == 422


def test_complete(client, engine):
    response = client.post(
        "/api/v1/complete",
        json={"messages": [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "ping"},
        ]},
    )

    assert response.status_code == 200
    assert response.json()["response"] == "echo: ping"
    messages, params = engine.completion_calls[0]
    assert [m.role for m in messages] == ["system", "user"]
    assert params.max_tokens == 200


def test_unload_endpoint(client, engine):
    client.post("/api/v1/model/initialize")

    response = client.post("/api/v1/model/unload")

    assert response.status_code == 200
    assert response.json()["state"] == "unloaded"
    assert engine.loaded is False


def test_health_and_live(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["state"] == "unloaded"

    assert client.get("/live").json()["status"] == "alive"


def test_metrics_endpoint(client):
    client.post("/api/v1/embed", json={"text": "hello"})

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "lm_embedding_requests_total" in response.text
    assert "http_requests_total" in response.text
