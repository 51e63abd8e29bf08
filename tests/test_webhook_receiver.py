"""Tests for the Shopify webhook receiver endpoint."""

import json

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ordefy.api.routes.shopify_webhooks import topic_from_slug
from ordefy.db.models.idempotency import WebhookIdempotencyKeyRow
from ordefy.db.models.integration import ShopifyIntegrationRow
from ordefy.errors.exceptions import ValidationError
from ordefy.services.signature import compute_hmac, sign_payload
from ordefy.workers.processor import QueueWorker

from factories import SHOP_DOMAIN, STORE_ID, fetch_jobs, order_payload, signed_request

WEBHOOK_URL = "/api/shopify/webhook/orders-create"


def test_topic_from_slug():
    assert topic_from_slug("orders-create") == "orders/create"
    assert topic_from_slug("orders-updated") == "orders/updated"
    assert topic_from_slug("app-uninstalled") == "app/uninstalled"
    assert topic_from_slug("customers-data_request") == "customers/data_request"
    assert topic_from_slug("inventory_levels-update") == "inventory_levels/update"


@pytest.mark.parametrize("slug", ["orders", "Orders-Create", "orders/create", "-create", "orders-", "orders-cre4te"])
def test_topic_from_slug_rejects_malformed(slug):
    with pytest.raises(ValidationError):
        topic_from_slug(slug)


@pytest.mark.asyncio
async def test_accepted_webhook_creates_pending_job(client, integration, session_factory):
    body, headers = signed_request(order_payload())
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["accepted"] is True
    assert data["duplicate"] is False
    assert data["status"] == "pending"
    assert data["job_id"].startswith("whq_")
    assert r.headers["X-Trace-Id"]

    jobs = await fetch_jobs(session_factory)
    assert len(jobs) == 1
    job = jobs[0]
    assert job.id == data["job_id"]
    assert job.status == "pending"
    assert job.attempts == 0
    assert job.topic == "orders/create"
    assert job.store_id == STORE_ID
    assert job.integration_id == integration.integration_id
    assert job.shop_domain == SHOP_DOMAIN
    assert job.payload["id"] == 5001
    assert job.signature == headers["X-Shopify-Hmac-Sha256"]
    assert job.last_error is None
    assert job.completed_at is None


@pytest.mark.asyncio
async def test_plural_route_alias(client, integration, session_factory):
    body, headers = signed_request(order_payload())
    r = await client.post("/api/shopify/webhooks/orders-create", content=body, headers=headers)
    assert r.status_code == 200
    jobs = await fetch_jobs(session_factory)
    assert [j.topic for j in jobs] == ["orders/create"]


@pytest.mark.asyncio
async def test_hex_signature_accepted(client, integration, session_factory):
    body = json.dumps(order_payload()).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Shop-Domain": SHOP_DOMAIN,
        "X-Shopify-Hmac-Sha256": compute_hmac(body, "shpss_test_secret").hex(),
    }
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 200
    assert len(await fetch_jobs(session_factory)) == 1


@pytest.mark.asyncio
async def test_invalid_signature_rejected_without_row(client, integration, session_factory):
    body, headers = signed_request(order_payload(), secret="wrong-secret")
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 401
    error = r.json()["error"]
    assert error["code"] == "AUTHENTICATION_ERROR"
    assert error["trace_id"]
    assert await fetch_jobs(session_factory) == []


@pytest.mark.asyncio
async def test_tampered_body_rejected(client, integration, session_factory):
    body, headers = signed_request(order_payload())
    tampered = body.replace(b"39.98", b"0.01")
    r = await client.post(WEBHOOK_URL, content=tampered, headers=headers)
    assert r.status_code == 401
    assert await fetch_jobs(session_factory) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("missing", ["X-Shopify-Shop-Domain", "X-Shopify-Hmac-Sha256"])
async def test_missing_shopify_headers(client, integration, session_factory, missing):
    body, headers = signed_request(order_payload())
    del headers[missing]
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 401
    assert await fetch_jobs(session_factory) == []


@pytest.mark.asyncio
async def test_unknown_shop_domain(client, integration, session_factory):
    body, headers = signed_request(order_payload(), shop_domain="other-store.myshopify.com")
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "UNKNOWN_TENANT"
    assert await fetch_jobs(session_factory) == []


@pytest.mark.asyncio
async def test_inactive_integration_treated_as_unknown(client, session_factory):
    async with session_factory() as session:
        session.add(ShopifyIntegrationRow(
            integration_id="int_paused",
            store_id=STORE_ID,
            shop_domain=SHOP_DOMAIN,
            webhook_secret="shpss_test_secret",
            status="inactive",
        ))
        await session.commit()

    body, headers = signed_request(order_payload())
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "UNKNOWN_TENANT"


@pytest.mark.asyncio
async def test_shop_domain_header_case_insensitive(client, integration, session_factory):
    body, headers = signed_request(order_payload(), shop_domain="Demo-Store.MyShopify.com")
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_app_secret_used_when_integration_has_none(client, session_factory, monkeypatch):
    from ordefy.config import settings

    monkeypatch.setattr(settings, "shopify_api_secret", "app-wide-secret")
    async with session_factory() as session:
        session.add(ShopifyIntegrationRow(
            integration_id="int_oauth",
            store_id=STORE_ID,
            shop_domain=SHOP_DOMAIN,
            webhook_secret=None,
            status="active",
        ))
        await session.commit()

    body, headers = signed_request(order_payload(), secret="app-wide-secret")
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_invalid_topic_slug(client, integration, session_factory):
    body, headers = signed_request(order_payload())
    r = await client.post("/api/shopify/webhook/OrdersCreate", content=body, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "INVALID_TOPIC"
    assert await fetch_jobs(session_factory) == []


@pytest.mark.asyncio
async def test_non_object_json_rejected(client, integration, session_factory):
    body = json.dumps([1, 2, 3]).encode("utf-8")
    _, headers = signed_request({})
    headers["X-Shopify-Hmac-Sha256"] = sign_payload(body, "shpss_test_secret")
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"
    assert await fetch_jobs(session_factory) == []


@pytest.mark.asyncio
async def test_duplicate_delivery_by_webhook_id(client, integration, session_factory):
    body, headers = signed_request(order_payload(), extra_headers={"X-Shopify-Webhook-Id": "b54557e4-0000"})

    first = await client.post(WEBHOOK_URL, content=body, headers=headers)
    second = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert second.json()["duplicate"] is True
    assert second.json()["job_id"] == first.json()["job_id"]
    assert len(await fetch_jobs(session_factory)) == 1


@pytest.mark.asyncio
async def test_duplicate_delivery_by_payload_fingerprint(client, integration, session_factory):
    body, headers = signed_request(order_payload())

    first = await client.post(WEBHOOK_URL, content=body, headers=headers)
    second = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert second.json()["duplicate"] is True
    assert second.json()["job_id"] == first.json()["job_id"]
    assert len(await fetch_jobs(session_factory)) == 1

    async with session_factory() as session:
        keys = (await session.execute(select(WebhookIdempotencyKeyRow))).scalars().all()
    assert len(keys) == 1
    assert keys[0].job_id == first.json()["job_id"]
    assert keys[0].idempotency_key.startswith("5001:orders/create:")


@pytest.mark.asyncio
async def test_new_resource_version_is_not_duplicate(client, integration, session_factory):
    body1, headers1 = signed_request(order_payload(updated_at="2026-03-01T10:00:00Z"))
    body2, headers2 = signed_request(order_payload(updated_at="2026-03-01T11:00:00Z"))

    first = await client.post(WEBHOOK_URL, content=body1, headers=headers1)
    second = await client.post(WEBHOOK_URL, content=body2, headers=headers2)

    assert second.json()["duplicate"] is False
    assert second.json()["job_id"] != first.json()["job_id"]
    assert len(await fetch_jobs(session_factory)) == 2


@pytest.mark.asyncio
async def test_replay_guard_drops_old_webhooks(client, integration, session_factory, monkeypatch):
    from ordefy.config import settings

    monkeypatch.setattr(settings, "webhook_max_age_seconds", 300)
    body, headers = signed_request(order_payload(updated_at="2020-01-01T00:00:00Z"))
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 200
    assert r.json()["accepted"] is False
    assert r.json()["job_id"] is None
    assert await fetch_jobs(session_factory) == []


@pytest.mark.asyncio
async def test_replay_guard_disabled_by_default(client, integration, session_factory):
    body, headers = signed_request(order_payload(updated_at="2020-01-01T00:00:00Z"))
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.json()["accepted"] is True
    assert len(await fetch_jobs(session_factory)) == 1


@pytest.mark.asyncio
async def test_persistence_failure_returns_503(client, integration, session_factory, monkeypatch):
    async def broken_enqueue(*args, **kwargs):
        raise SQLAlchemyError("database unavailable")

    monkeypatch.setattr("ordefy.api.routes.shopify_webhooks.enqueue_webhook", broken_enqueue)
    body, headers = signed_request(order_payload())
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 503
    assert r.json()["error"]["code"] == "SERVICE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_unknown_topic_is_still_enqueued(client, integration, session_factory):
    body, headers = signed_request({"id": 1, "created_at": "2026-03-01T10:00:00Z"})
    r = await client.post("/api/shopify/webhook/unknown-topic", content=body, headers=headers)
    assert r.status_code == 200
    jobs = await fetch_jobs(session_factory)
    assert [j.topic for j in jobs] == ["unknown/topic"]


@pytest.mark.asyncio
async def test_uninstall_completes_and_shop_is_then_refused(client, integration, session_factory):
    body, headers = signed_request({"id": 1, "domain": SHOP_DOMAIN})
    r = await client.post("/api/shopify/webhook/app-uninstalled", content=body, headers=headers)
    assert r.status_code == 200

    report = await QueueWorker(session_factory).run_once()
    assert report.completed == 1
    assert [j.status for j in await fetch_jobs(session_factory)] == ["completed"]

    body, headers = signed_request(order_payload())
    r = await client.post(WEBHOOK_URL, content=body, headers=headers)
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "UNKNOWN_TENANT"
