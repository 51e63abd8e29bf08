"""Operator endpoints for inspecting and repairing the webhook queue."""

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.config import settings
from ordefy.db.base import utcnow
from ordefy.dependencies import RequireAdmin, get_db
from ordefy.errors.exceptions import ConflictError, NotFoundError
from ordefy.models.enums import JobStatus
from ordefy.models.webhook_job import QueueStats, WebhookJobDetail, WebhookJobModel
from ordefy.repositories.webhook_job_repo import WebhookJobRepository
from ordefy.workers.cleanup import cleanup_webhook_queue

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/webhook-queue", tags=["Webhook Queue"], dependencies=[RequireAdmin])


@router.get("/stats")
async def queue_stats(
    store_id: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> dict:
    repo = WebhookJobRepository(db)
    now = utcnow()
    counts = await repo.count_by_status(store_id)
    oldest = await repo.oldest_pending_created_at(store_id)
    stale = await repo.count_stale_processing(now - timedelta(seconds=settings.stale_processing_seconds), store_id)

    return QueueStats(
        pending=counts.get(JobStatus.PENDING, 0),
        processing=counts.get(JobStatus.PROCESSING, 0),
        completed=counts.get(JobStatus.COMPLETED, 0),
        failed=counts.get(JobStatus.FAILED, 0),
        total=sum(counts.values()),
        oldest_pending_age_seconds=(now - oldest).total_seconds() if oldest else None,
        stale_processing=stale,
    ).model_dump(mode="json")


@router.post("/cleanup")
async def run_cleanup(
    retention_days: int | None = Query(default=None, ge=0),
    db: AsyncSession = Depends(get_db),
) -> dict:
    result = await cleanup_webhook_queue(db, retention_days=retention_days)
    return result.model_dump(mode="json")


@router.get("/failed")
async def list_failed_jobs(
    store_id: str | None = Query(default=None),
    topic: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> list[dict]:
    rows = await WebhookJobRepository(db).list_jobs(
        status=JobStatus.FAILED, store_id=store_id, topic=topic, limit=limit,
    )
    return [WebhookJobModel.model_validate(row).model_dump(mode="json") for row in rows]


@router.post("/requeue-stale")
async def requeue_stale_jobs(db: AsyncSession = Depends(get_db)) -> dict:
    cutoff = utcnow() - timedelta(seconds=settings.stale_processing_seconds)
    requeued = await WebhookJobRepository(db).requeue_stale(cutoff)
    await db.commit()
    if requeued:
        logger.warning("Requeued %d stale processing jobs", requeued)
    return {"requeued": requeued}


@router.get("/{job_id}")
async def get_job(job_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    row = await WebhookJobRepository(db).get(job_id)
    if not row:
        raise NotFoundError("Webhook job", job_id)
    return WebhookJobDetail.model_validate(row).model_dump(mode="json")


@router.post("/{job_id}/retry")
async def retry_job(job_id: str, db: AsyncSession = Depends(get_db)) -> dict:
    repo = WebhookJobRepository(db)
    row = await repo.get(job_id)
    if not row:
        raise NotFoundError("Webhook job", job_id)
    if not await repo.requeue_failed(job_id):
        raise ConflictError(
            f"Webhook job '{job_id}' is {row.status}, only failed jobs can be retried",
            details={"status": row.status},
        )
    await db.commit()
    logger.info("Failed job %s requeued by operator", job_id)

    await db.refresh(row)
    return WebhookJobModel.model_validate(row).model_dump(mode="json")
