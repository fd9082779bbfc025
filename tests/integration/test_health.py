"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from ladder_tracker.main import app

# No context manager: the lifespan (pool, Redis, Riot client) is not started
client = TestClient(app)

HEALTHY_DB = {
    "healthy": True,
    "service": "database_pool",
    "pool_stats": {"pool_size": 2, "pool_available": 2, "pool_utilization_percent": 0.0},
}


def test_healthz_endpoint():
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "ladder-tracker"}


def test_readyz_all_services_healthy(monkeypatch):
    """Database healthy, Redis unconfigured, Riot client present, secret set."""
    monkeypatch.setattr(app.state, "riot_client", object(), raising=False)
    with (
        patch("ladder_tracker.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
        patch("ladder_tracker.routes.health.settings.CRON_SECRET", "cron-test-secret"),
        patch("ladder_tracker.routes.health.settings.REDIS_URL", None),
    ):
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True

    checks = data["checks"]
    assert checks["database"]["ok"] is True
    assert checks["database"]["pool_size"] == 2
    assert checks["redis"] == {"ok": True, "configured": False}
    assert checks["riot_client"]["ok"] is True
    assert checks["configuration"]["issues"] is None


def test_readyz_database_unhealthy(monkeypatch):
    monkeypatch.setattr(app.state, "riot_client", object(), raising=False)
    unhealthy = {"healthy": False, "error": "Pool not initialized", "service": "database_pool"}
    with (
        patch("ladder_tracker.routes.health.db_health_check", AsyncMock(return_value=unhealthy)),
        patch("ladder_tracker.routes.health.settings.REDIS_URL", None),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Pool not initialized"


def test_readyz_without_riot_client(monkeypatch):
    monkeypatch.delattr(app.state, "riot_client", raising=False)
    with (
        patch("ladder_tracker.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
        patch("ladder_tracker.routes.health.settings.REDIS_URL", None),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    assert data["checks"]["riot_client"]["ok"] is False


def test_readyz_reports_redis_when_configured(monkeypatch):
    monkeypatch.setattr(app.state, "riot_client", object(), raising=False)
    with (
        patch("ladder_tracker.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
        patch("ladder_tracker.routes.health.settings.REDIS_URL", "redis://localhost:6379/0"),
        patch("ladder_tracker.routes.health.fast_redis.ping", AsyncMock(return_value=False)),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["checks"]["redis"]["ok"] is False
    assert data["overall_ok"] is False


def test_database_health_endpoint():
    with patch(
        "ladder_tracker.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)
    ):
        response = client.get("/health/database")

    assert response.status_code == 200
    assert response.json()["healthy"] is True
