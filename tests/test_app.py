"""App-level middleware and health checks."""

import pytest
from fastapi.testclient import TestClient

from schoolhub import app as app_module
from schoolhub.config import reset_settings_cache
from schoolhub.service.runtime import get_runtime
from schoolhub.storage.errors import StoreError


@pytest.fixture
def client():
    return TestClient(app_module.app)


def test_healthz_reports_store(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"]["store"] == {"status": "healthy", "type": "memory"}


def test_healthz_unhealthy_store(client, monkeypatch):
    def down():
        raise StoreError("key-value store unavailable")

    monkeypatch.setattr(get_runtime().kv, "verify_connection", down)
    assert client.get("/healthz").json()["status"] == "unhealthy"


def test_request_id_is_echoed(client):
    response = client.get("/healthz", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_request_id_generated(client):
    assert client.get("/healthz").headers["X-Request-ID"]


def test_security_headers(client):
    response = client.get("/healthz")
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Cache-Control"] == "no-store"


def test_runtime_singleton():
    assert get_runtime() is get_runtime()


def test_cors_origins_follow_cached_settings(monkeypatch):
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://school.example, https://admin.school.example")
    reset_settings_cache()
    assert app_module._allowed_origins() == ["https://school.example", "https://admin.school.example"]
    assert not hasattr(app_module, "_settings")
