import pytest

from app.core import health as health_module
from app.core.errors import StorageUnavailable


@pytest.fixture(autouse=True)
def _mock_env(monkeypatch):
    monkeypatch.setattr(health_module.settings, "environment", "test")
    yield


def test_health_live_returns_ok(client) -> None:
    response = client.get("/api/v1/health/live")
    assert response.status_code == 200
    payload = response.json()["data"]
    assert payload.get("status") == "ok"
    assert "timestamp" in payload


def test_health_ready_ok(client) -> None:
    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    payload = response.json()["data"]
    assert payload.get("status") == "ok"
    assert payload.get("ready") is True
    assert payload["environment"] == "test"
    assert payload["checks"]["storage"] == {"status": "ok", "backend": "memory"}


def test_health_ready_degraded(client, store, monkeypatch) -> None:
    async def bad_ping():
        raise StorageUnavailable("Storage timed out during ping")

    monkeypatch.setattr(store, "ping", bad_ping)

    response = client.get("/api/v1/health/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["code"] == "degraded"
    assert body["data"]["ready"] is False
    assert body["data"]["checks"]["storage"]["status"] == "error"
