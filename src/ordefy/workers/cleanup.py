"""Retention sweep for the webhook queue."""

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.config import settings
from ordefy.db.base import utcnow
from ordefy.models.webhook_job import CleanupResult
from ordefy.repositories.idempotency_repo import IdempotencyKeyRepository
from ordefy.repositories.webhook_job_repo import WebhookJobRepository

logger = logging.getLogger(__name__)


async def cleanup_webhook_queue(session: AsyncSession, retention_days: int | None = None) -> CleanupResult:
    """Delete completed jobs older than the retention window and expired idempotency keys.

    Pending, processing and failed jobs are never touched. Safe to run repeatedly.
    """
    retention_days = settings.retention_days if retention_days is None else retention_days
    now = utcnow()
    cutoff = now - timedelta(days=retention_days)

    deleted_jobs = await WebhookJobRepository(session).delete_completed_before(cutoff)
    deleted_keys = await IdempotencyKeyRepository(session).delete_expired(now)
    await session.commit()

    logger.info(
        "Webhook queue cleanup removed %d completed jobs and %d expired idempotency keys (retention=%dd)",
        deleted_jobs, deleted_keys, retention_days,
    )
    return CleanupResult(
        deleted_jobs=deleted_jobs,
        deleted_idempotency_keys=deleted_keys,
        retention_days=retention_days,
    )
