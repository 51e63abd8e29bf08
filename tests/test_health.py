"""Health check endpoint tests."""

import pytest

from ordefy import __version__


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "ordefy-webhooks"
    assert data["version"] == __version__


@pytest.mark.asyncio
async def test_liveness(client):
    response = await client.get("/api/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


@pytest.mark.asyncio
async def test_readiness_checks_database(client):
    response = await client.get("/api/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] == "ok"
    assert data["checks"]["worker"] == "disabled"


@pytest.mark.asyncio
async def test_metrics_endpoint_exposes_queue_counters(client):
    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "ordefy_webhooks_received_total" in response.text
    assert "ordefy_webhook_jobs_total" in response.text
