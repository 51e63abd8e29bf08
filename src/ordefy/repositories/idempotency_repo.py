"""Webhook idempotency key repository."""

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.base import utcnow
from ordefy.db.models.idempotency import WebhookIdempotencyKeyRow
from ordefy.repositories.base import BaseRepository


class IdempotencyKeyRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, WebhookIdempotencyKeyRow)

    async def get_live(self, integration_id: str, idempotency_key: str) -> WebhookIdempotencyKeyRow | None:
        """Return the unexpired key row for this integration, if any."""
        stmt = select(WebhookIdempotencyKeyRow).where(
            WebhookIdempotencyKeyRow.integration_id == integration_id,
            WebhookIdempotencyKeyRow.idempotency_key == idempotency_key,
            WebhookIdempotencyKeyRow.expires_at > utcnow(),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def purge_for(self, integration_id: str, idempotency_key: str) -> None:
        """Drop an expired row so the unique constraint admits a fresh one."""
        stmt = delete(WebhookIdempotencyKeyRow).where(
            WebhookIdempotencyKeyRow.integration_id == integration_id,
            WebhookIdempotencyKeyRow.idempotency_key == idempotency_key,
            WebhookIdempotencyKeyRow.expires_at <= utcnow(),
        )
        await self.session.execute(stmt)

    async def delete_expired(self, now: datetime | None = None) -> int:
        stmt = delete(WebhookIdempotencyKeyRow).where(
            WebhookIdempotencyKeyRow.expires_at < (now or utcnow())
        )
        result = await self.session.execute(stmt)
        return result.rowcount
