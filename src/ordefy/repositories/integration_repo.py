"""Shopify integration repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.models.integration import ShopifyIntegrationRow
from ordefy.models.enums import IntegrationStatus
from ordefy.repositories.base import BaseRepository


class IntegrationRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ShopifyIntegrationRow)

    async def get_active_by_shop_domain(self, shop_domain: str) -> ShopifyIntegrationRow | None:
        stmt = select(ShopifyIntegrationRow).where(
            ShopifyIntegrationRow.shop_domain == shop_domain.strip().lower(),
            ShopifyIntegrationRow.status == IntegrationStatus.ACTIVE,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def deactivate(self, integration_id: str) -> bool:
        """Mark the integration inactive. False when it does not exist."""
        row = await self.get_by_id("integration_id", integration_id)
        if row is None:
            return False
        await self.update(row, status=IntegrationStatus.INACTIVE)
        return True
