"""Durable enqueue of inbound webhooks."""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.config import settings
from ordefy.db.base import utcnow
from ordefy.db.models.integration import ShopifyIntegrationRow
from ordefy.db.models.webhook_job import WebhookJobRow
from ordefy.models.enums import JobStatus
from ordefy.repositories.idempotency_repo import IdempotencyKeyRepository
from ordefy.repositories.webhook_job_repo import WebhookJobRepository
from ordefy.services.id_generator import generate_id

logger = logging.getLogger(__name__)


@dataclass
class EnqueueResult:
    job_id: str
    duplicate: bool = False


async def enqueue_webhook(
    session: AsyncSession,
    integration: ShopifyIntegrationRow,
    topic: str,
    payload: dict,
    signature: str,
    idempotency_key: str,
) -> EnqueueResult:
    """Insert a pending job plus its idempotency key and commit.

    A live key for the same integration short-circuits to the original job.
    """
    integration_id = integration.integration_id
    store_id = integration.store_id
    keys = IdempotencyKeyRepository(session)
    existing = await keys.get_live(integration_id, idempotency_key)
    if existing:
        logger.info("Duplicate webhook %s (topic=%s, job=%s)", idempotency_key, topic, existing.job_id)
        return EnqueueResult(job_id=existing.job_id, duplicate=True)

    now = utcnow()
    job_id = generate_id("whq_")

    await keys.purge_for(integration_id, idempotency_key)
    await WebhookJobRepository(session).create(
        id=job_id,
        store_id=store_id,
        integration_id=integration_id,
        shop_domain=integration.shop_domain,
        topic=topic,
        payload=payload,
        signature=signature,
        idempotency_key=idempotency_key,
        status=JobStatus.PENDING,
        attempts=0,
        next_attempt_at=now,
    )

    try:
        await keys.create(
            id=generate_id("idk_"),
            integration_id=integration_id,
            idempotency_key=idempotency_key,
            topic=topic,
            job_id=job_id,
            created_at=now,
            expires_at=now + timedelta(hours=settings.idempotency_ttl_hours),
        )
        await session.commit()
    except IntegrityError:
        # Concurrent delivery of the same event won the insert
        await session.rollback()
        winner = await keys.get_live(integration_id, idempotency_key)
        if winner is None:
            raise
        logger.info("Duplicate webhook %s lost insert race (job=%s)", idempotency_key, winner.job_id)
        return EnqueueResult(job_id=winner.job_id, duplicate=True)

    logger.info("Enqueued webhook job %s (topic=%s, store=%s)", job_id, topic, store_id)
    return EnqueueResult(job_id=job_id)
