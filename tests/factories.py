"""Payload and request builders shared by the test modules."""

import json

from sqlalchemy import select

from ordefy.db.base import utcnow
from ordefy.db.models.webhook_job import WebhookJobRow
from ordefy.services.id_generator import generate_id
from ordefy.services.signature import sign_payload

SHOP_DOMAIN = "demo-store.myshopify.com"
STORE_ID = "store_demo"
WEBHOOK_SECRET = "shpss_test_secret"
ADMIN_KEY = "admin-test-key"


def signed_request(
    payload: dict,
    secret: str = WEBHOOK_SECRET,
    shop_domain: str = SHOP_DOMAIN,
    extra_headers: dict | None = None,
):
    """Body and headers for a webhook call signed the way Shopify signs it."""
    body = json.dumps(payload).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-Shopify-Shop-Domain": shop_domain,
        "X-Shopify-Hmac-Sha256": sign_payload(body, secret),
    }
    headers.update(extra_headers or {})
    return body, headers


def order_payload(order_id: int = 5001, updated_at: str = "2026-03-01T10:00:00Z", **overrides) -> dict:
    payload = {
        "id": order_id,
        "order_number": 1001,
        "email": "buyer@example.com",
        "total_price": "39.98",
        "currency": "USD",
        "financial_status": "paid",
        "fulfillment_status": None,
        "cancelled_at": None,
        "created_at": "2026-03-01T10:00:00Z",
        "updated_at": updated_at,
        "customer": {"first_name": "Ana", "last_name": "Gomez", "phone": "+595981000000"},
        "line_items": [
            {"product_id": 7001, "variant_id": 1, "title": "Demo T-Shirt", "sku": "TS-1", "quantity": 2, "price": "19.99"},
        ],
    }
    payload.update(overrides)
    return payload


def product_payload(product_id: int = 7001, stock: int = 10, updated_at: str = "2026-03-01T09:00:00Z", **overrides) -> dict:
    payload = {
        "id": product_id,
        "title": "Demo T-Shirt",
        "created_at": "2026-03-01T09:00:00Z",
        "updated_at": updated_at,
        "variants": [{"id": 1, "sku": "TS-1", "price": "19.99", "inventory_quantity": stock}],
    }
    payload.update(overrides)
    return payload


async def make_job(session, topic: str, payload: dict, **overrides):
    """Insert a due pending job directly, bypassing the receiver."""
    values = {
        "id": generate_id("whq_"),
        "store_id": STORE_ID,
        "integration_id": "int_demo",
        "shop_domain": SHOP_DOMAIN,
        "topic": topic,
        "payload": payload,
        "signature": "test-signature",
        "idempotency_key": f"{payload.get('id')}:{topic}:test",
        "status": "pending",
        "attempts": 0,
        "next_attempt_at": utcnow(),
    }
    values.update(overrides)
    job = WebhookJobRow(**values)
    session.add(job)
    await session.commit()
    return job


async def fetch_jobs(session_factory) -> list[WebhookJobRow]:
    """All queue rows, read through a fresh session."""
    async with session_factory() as session:
        result = await session.execute(select(WebhookJobRow).order_by(WebhookJobRow.created_at))
        return list(result.scalars().all())


async def fetch_job(session_factory, job_id: str) -> WebhookJobRow | None:
    async with session_factory() as session:
        return await session.get(WebhookJobRow, job_id)
