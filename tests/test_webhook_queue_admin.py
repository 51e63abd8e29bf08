"""Tests for the webhook queue admin API."""

from datetime import timedelta

import pytest

from ordefy.db.base import utcnow

from factories import fetch_job, fetch_jobs, make_job, order_payload

BASE = "/api/admin/webhook-queue"


@pytest.mark.asyncio
async def test_admin_requires_key(client, admin_key):
    r = await client.get(f"{BASE}/stats")
    assert r.status_code == 401
    r = await client.get(f"{BASE}/stats", headers={"X-Admin-Key": "wrong"})
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_admin_disabled_without_configured_key(client):
    r = await client.get(f"{BASE}/stats", headers={"X-Admin-Key": ""})
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "AUTHENTICATION_ERROR"


@pytest.mark.asyncio
async def test_stats_counts_by_status(client, admin_key, db_session):
    old = utcnow() - timedelta(hours=2)
    await make_job(db_session, "orders/create", order_payload(order_id=1), created_at=old)
    await make_job(db_session, "orders/create", order_payload(order_id=2))
    await make_job(db_session, "orders/create", order_payload(order_id=3), status="processing", updated_at=old)
    await make_job(db_session, "orders/create", order_payload(order_id=4), status="completed", completed_at=utcnow())
    await make_job(db_session, "orders/create", order_payload(order_id=5), status="failed")
    await make_job(db_session, "orders/create", order_payload(order_id=6), status="failed", store_id="store_other")

    r = await client.get(f"{BASE}/stats", headers=admin_key)
    assert r.status_code == 200
    data = r.json()
    assert data["pending"] == 2
    assert data["processing"] == 1
    assert data["completed"] == 1
    assert data["failed"] == 2
    assert data["total"] == 6
    assert data["stale_processing"] == 1
    assert data["oldest_pending_age_seconds"] >= 7000

    r = await client.get(f"{BASE}/stats", params={"store_id": "store_other"}, headers=admin_key)
    data = r.json()
    assert data["total"] == 1
    assert data["failed"] == 1
    assert data["pending"] == 0
    assert data["oldest_pending_age_seconds"] is None


@pytest.mark.asyncio
async def test_cleanup_endpoint(client, admin_key, db_session, session_factory):
    old = utcnow() - timedelta(days=30)
    await make_job(db_session, "orders/create", order_payload(order_id=1), status="completed", completed_at=old)
    await make_job(db_session, "orders/create", order_payload(order_id=2), status="failed", created_at=old)

    r = await client.post(f"{BASE}/cleanup", headers=admin_key)
    assert r.status_code == 200
    assert r.json()["deleted_jobs"] == 1
    assert [j.status for j in await fetch_jobs(session_factory)] == ["failed"]


@pytest.mark.asyncio
async def test_list_failed_jobs_with_filters(client, admin_key, db_session):
    await make_job(db_session, "orders/create", order_payload(order_id=1), status="failed", last_error="boom")
    await make_job(db_session, "products/update", {"id": 2}, status="failed")
    await make_job(db_session, "orders/create", order_payload(order_id=3))

    r = await client.get(f"{BASE}/failed", headers=admin_key)
    assert r.status_code == 200
    assert {j["topic"] for j in r.json()} == {"orders/create", "products/update"}
    assert all(j["status"] == "failed" for j in r.json())

    r = await client.get(f"{BASE}/failed", params={"topic": "orders/create"}, headers=admin_key)
    jobs = r.json()
    assert len(jobs) == 1
    assert jobs[0]["last_error"] == "boom"
    assert "payload" not in jobs[0]


@pytest.mark.asyncio
async def test_get_job_detail(client, admin_key, db_session):
    job = await make_job(db_session, "orders/create", order_payload())

    r = await client.get(f"{BASE}/{job.id}", headers=admin_key)
    assert r.status_code == 200
    data = r.json()
    assert data["id"] == job.id
    assert data["payload"]["id"] == 5001
    assert data["idempotency_key"] == job.idempotency_key


@pytest.mark.asyncio
async def test_get_unknown_job(client, admin_key):
    r = await client.get(f"{BASE}/whq_missing", headers=admin_key)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_retry_failed_job_keeps_attempts(client, admin_key, db_session, session_factory):
    job = await make_job(
        db_session, "orders/create", order_payload(),
        status="failed", attempts=5, last_error="boom", next_attempt_at=utcnow() - timedelta(days=1),
    )

    before = utcnow()
    r = await client.post(f"{BASE}/{job.id}/retry", headers=admin_key)
    assert r.status_code == 200
    assert r.json()["status"] == "pending"

    row = await fetch_job(session_factory, job.id)
    assert row.status == "pending"
    assert row.attempts == 5
    assert row.next_attempt_at >= before


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["pending", "processing", "completed"])
async def test_retry_rejects_non_failed_job(client, admin_key, db_session, status):
    job = await make_job(db_session, "orders/create", order_payload(), status=status)

    r = await client.post(f"{BASE}/{job.id}/retry", headers=admin_key)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_retry_unknown_job(client, admin_key):
    r = await client.post(f"{BASE}/whq_missing/retry", headers=admin_key)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_requeue_stale_processing(client, admin_key, db_session, session_factory):
    stale = await make_job(
        db_session, "orders/create", order_payload(order_id=1),
        status="processing", updated_at=utcnow() - timedelta(hours=1),
    )
    fresh = await make_job(db_session, "orders/create", order_payload(order_id=2), status="processing")

    r = await client.post(f"{BASE}/requeue-stale", headers=admin_key)
    assert r.status_code == 200
    assert r.json() == {"requeued": 1}

    assert (await fetch_job(session_factory, stale.id)).status == "pending"
    assert (await fetch_job(session_factory, fresh.id)).status == "processing"
