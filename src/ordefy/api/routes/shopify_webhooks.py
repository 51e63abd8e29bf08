"""Inbound Shopify webhook receiver.

Verifies, deduplicates and enqueues the callback, then answers right away.
Processing happens in the queue worker, so response time does not depend on
handler work. The same endpoint is mounted under ``/shopify/webhook/`` and
``/shopify/webhooks/`` because both forms exist in configured shop URLs.
"""

import json
import logging
import re
import time
from datetime import timedelta

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.api.middleware.rate_limit import limiter, webhook_rate_limit
from ordefy.config import settings
from ordefy.db.base import utcnow
from ordefy.dependencies import get_db
from ordefy.errors.exceptions import AuthenticationError, ServiceUnavailableError, ValidationError
from ordefy.metrics import WEBHOOKS_RECEIVED
from ordefy.models.enums import JobStatus
from ordefy.models.webhook_job import WebhookAccepted
from ordefy.repositories.integration_repo import IntegrationRepository
from ordefy.services.idempotency import build_idempotency_key, webhook_timestamp
from ordefy.services.signature import verify_signature
from ordefy.workers.base import parse_shopify_timestamp
from ordefy.workers.queue import enqueue_webhook

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Shopify Webhooks"])

WEBHOOK_PATH_PREFIXES = ("webhook", "webhooks")

_TOPIC_SLUG = re.compile(r"^[a-z_]+-[a-z_-]+$")


def topic_from_slug(topic_slug: str) -> str:
    """``orders-create`` -> ``orders/create``; only the first dash is the separator."""
    if not _TOPIC_SLUG.match(topic_slug):
        raise ValidationError(f"Invalid webhook topic '{topic_slug}'", code="INVALID_TOPIC")
    resource, action = topic_slug.split("-", 1)
    return f"{resource}/{action}"


def _parse_payload(request: Request, body: bytes) -> dict:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type.lower():
        raise ValidationError("Content-Type must be application/json")
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Webhook body is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Webhook body must be a JSON object")
    return payload


def _is_replayed(payload: dict) -> bool:
    max_age = settings.webhook_max_age_seconds
    if not max_age:
        return False
    occurred_at = parse_shopify_timestamp(webhook_timestamp(payload))
    return occurred_at is not None and occurred_at < utcnow() - timedelta(seconds=max_age)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


@limiter.limit(webhook_rate_limit)
async def receive_shopify_webhook(
    topic_slug: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> dict:
    started = time.monotonic()
    topic = topic_from_slug(topic_slug)

    shop_domain = request.headers.get("x-shopify-shop-domain", "").strip().lower()
    signature = request.headers.get("x-shopify-hmac-sha256", "").strip()
    if not shop_domain or not signature:
        WEBHOOKS_RECEIVED.labels(topic=topic, outcome="unauthenticated").inc()
        raise AuthenticationError("Missing Shopify webhook headers")

    body = await request.body()

    try:
        integration = await IntegrationRepository(db).get_active_by_shop_domain(shop_domain)
    except SQLAlchemyError:
        logger.exception("Integration lookup failed for %s", shop_domain)
        raise ServiceUnavailableError("Could not resolve shop, retry later")

    if integration is None:
        WEBHOOKS_RECEIVED.labels(topic=topic, outcome="unknown_tenant").inc()
        raise ValidationError(f"Unknown shop domain '{shop_domain}'", code="UNKNOWN_TENANT")

    secret = integration.webhook_secret or settings.shopify_api_secret
    if not verify_signature(body, signature, secret):
        WEBHOOKS_RECEIVED.labels(topic=topic, outcome="invalid_signature").inc()
        raise AuthenticationError("Invalid webhook signature")

    payload = _parse_payload(request, body)

    if _is_replayed(payload):
        logger.warning("Webhook for %s older than %ss, dropped", shop_domain, settings.webhook_max_age_seconds)
        WEBHOOKS_RECEIVED.labels(topic=topic, outcome="too_old").inc()
        return WebhookAccepted(
            accepted=False,
            message="Webhook too old",
            response_time_ms=_elapsed_ms(started),
        ).model_dump(mode="json")

    idempotency_key = build_idempotency_key(topic, payload, request.headers.get("x-shopify-webhook-id"))

    try:
        result = await enqueue_webhook(
            db,
            integration=integration,
            topic=topic,
            payload=payload,
            signature=signature,
            idempotency_key=idempotency_key,
        )
    except SQLAlchemyError:
        logger.exception("Failed to enqueue webhook (topic=%s, shop=%s)", topic, shop_domain)
        WEBHOOKS_RECEIVED.labels(topic=topic, outcome="persist_error").inc()
        raise ServiceUnavailableError("Could not persist webhook, retry later")

    elapsed = _elapsed_ms(started)
    if result.duplicate:
        WEBHOOKS_RECEIVED.labels(topic=topic, outcome="duplicate").inc()
        return WebhookAccepted(
            duplicate=True,
            job_id=result.job_id,
            message="Already received",
            response_time_ms=elapsed,
        ).model_dump(mode="json")

    WEBHOOKS_RECEIVED.labels(topic=topic, outcome="enqueued").inc()
    logger.info("Webhook queued in %dms: %s (job=%s)", elapsed, topic, result.job_id)
    return WebhookAccepted(
        job_id=result.job_id,
        status=JobStatus.PENDING,
        message="Webhook queued for processing",
        response_time_ms=elapsed,
    ).model_dump(mode="json")


for _prefix in WEBHOOK_PATH_PREFIXES:
    router.add_api_route(
        f"/shopify/{_prefix}/{{topic_slug}}",
        receive_shopify_webhook,
        methods=["POST"],
        name=f"receive_shopify_webhook_{_prefix}",
    )
