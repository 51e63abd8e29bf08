"""Webhook queue repository.

All status transitions are conditional updates guarded on the current status,
so two workers racing on the same row can never both win.
"""

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.base import utcnow
from ordefy.db.models.webhook_job import WebhookJobRow
from ordefy.models.enums import JobStatus
from ordefy.repositories.base import BaseRepository

_MAX_ERROR_LENGTH = 1000


def _truncate(error: str) -> str:
    return error[:_MAX_ERROR_LENGTH]


class WebhookJobRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, WebhookJobRow)

    async def get(self, job_id: str) -> WebhookJobRow | None:
        return await self.get_by_id("id", job_id)

    # --- Claim protocol ---

    async def find_claimable_ids(self, limit: int, now: datetime | None = None) -> list[str]:
        """Ids of pending jobs due for an attempt, oldest schedule first."""
        now = now or utcnow()
        stmt = (
            select(WebhookJobRow.id)
            .where(
                WebhookJobRow.status == JobStatus.PENDING,
                WebhookJobRow.next_attempt_at <= now,
            )
            .order_by(WebhookJobRow.next_attempt_at)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def try_claim(self, job_id: str) -> bool:
        """Flip one job pending -> processing. False if another worker got it first."""
        stmt = (
            update(WebhookJobRow)
            .where(WebhookJobRow.id == job_id, WebhookJobRow.status == JobStatus.PENDING)
            .values(status=JobStatus.PROCESSING, updated_at=utcnow())
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def claim_batch(self, limit: int, now: datetime | None = None) -> list[str]:
        """Claim up to ``limit`` eligible jobs and return the ids actually claimed."""
        candidates = await self.find_claimable_ids(limit, now)
        claimed = []
        for job_id in candidates:
            if await self.try_claim(job_id):
                claimed.append(job_id)
        return claimed

    # --- Outcome recording (guarded on status='processing') ---

    async def _update_processing(self, job_id: str, **values) -> bool:
        values.setdefault("updated_at", utcnow())
        stmt = (
            update(WebhookJobRow)
            .where(WebhookJobRow.id == job_id, WebhookJobRow.status == JobStatus.PROCESSING)
            .values(**values)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def mark_completed(self, job_id: str, attempts: int) -> bool:
        now = utcnow()
        return await self._update_processing(
            job_id,
            status=JobStatus.COMPLETED,
            attempts=attempts,
            completed_at=now,
            updated_at=now,
        )

    async def schedule_retry(self, job_id: str, attempts: int, next_attempt_at: datetime, error: str) -> bool:
        return await self._update_processing(
            job_id,
            status=JobStatus.PENDING,
            attempts=attempts,
            next_attempt_at=next_attempt_at,
            last_error=_truncate(error),
        )

    async def mark_failed(self, job_id: str, attempts: int, error: str) -> bool:
        return await self._update_processing(
            job_id,
            status=JobStatus.FAILED,
            attempts=attempts,
            last_error=_truncate(error),
        )

    # --- Diagnostics ---

    async def count_by_status(self, store_id: str | None = None) -> dict[str, int]:
        stmt = select(WebhookJobRow.status, func.count()).group_by(WebhookJobRow.status)
        if store_id:
            stmt = stmt.where(WebhookJobRow.store_id == store_id)
        result = await self.session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def oldest_pending_created_at(self, store_id: str | None = None) -> datetime | None:
        stmt = select(func.min(WebhookJobRow.created_at)).where(WebhookJobRow.status == JobStatus.PENDING)
        if store_id:
            stmt = stmt.where(WebhookJobRow.store_id == store_id)
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def count_stale_processing(self, updated_before: datetime, store_id: str | None = None) -> int:
        stmt = select(func.count()).select_from(WebhookJobRow).where(
            WebhookJobRow.status == JobStatus.PROCESSING,
            WebhookJobRow.updated_at < updated_before,
        )
        if store_id:
            stmt = stmt.where(WebhookJobRow.store_id == store_id)
        return (await self.session.execute(stmt)).scalar_one()

    async def list_jobs(
        self,
        status: str | None = None,
        store_id: str | None = None,
        topic: str | None = None,
        limit: int = 50,
    ) -> list[WebhookJobRow]:
        stmt = select(WebhookJobRow).order_by(WebhookJobRow.created_at.desc()).limit(limit)
        if status:
            stmt = stmt.where(WebhookJobRow.status == status)
        if store_id:
            stmt = stmt.where(WebhookJobRow.store_id == store_id)
        if topic:
            stmt = stmt.where(WebhookJobRow.topic == topic)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # --- Manual reprocessing ---

    async def requeue_failed(self, job_id: str) -> bool:
        """failed -> pending, due now. Attempts are kept."""
        now = utcnow()
        stmt = (
            update(WebhookJobRow)
            .where(WebhookJobRow.id == job_id, WebhookJobRow.status == JobStatus.FAILED)
            .values(status=JobStatus.PENDING, next_attempt_at=now, updated_at=now)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def requeue_stale(self, updated_before: datetime) -> int:
        """Return jobs stuck in processing since before ``updated_before`` to pending."""
        now = utcnow()
        stmt = (
            update(WebhookJobRow)
            .where(
                WebhookJobRow.status == JobStatus.PROCESSING,
                WebhookJobRow.updated_at < updated_before,
            )
            .values(status=JobStatus.PENDING, next_attempt_at=now, updated_at=now)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    # --- Cleanup ---

    async def delete_completed_before(self, cutoff: datetime) -> int:
        stmt = delete(WebhookJobRow).where(
            WebhookJobRow.status == JobStatus.COMPLETED,
            WebhookJobRow.completed_at < cutoff,
        )
        result = await self.session.execute(stmt)
        return result.rowcount
