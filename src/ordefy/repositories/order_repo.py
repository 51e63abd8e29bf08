"""Order and product repositories used by webhook handlers."""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.models.order import OrderRow
from ordefy.db.models.product import ProductRow
from ordefy.repositories.base import BaseRepository


class OrderRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, OrderRow)

    async def get_by_shopify_id(self, store_id: str, shopify_order_id: str) -> OrderRow | None:
        stmt = select(OrderRow).where(
            OrderRow.store_id == store_id,
            OrderRow.shopify_order_id == shopify_order_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_customer(
        self, store_id: str, email: str | None, shopify_order_ids: list[str]
    ) -> list[OrderRow]:
        """Orders placed with this email or listed by Shopify for the customer."""
        conditions = []
        if email:
            conditions.append(OrderRow.customer_email == email)
        if shopify_order_ids:
            conditions.append(OrderRow.shopify_order_id.in_(shopify_order_ids))
        if not conditions:
            return []
        stmt = select(OrderRow).where(OrderRow.store_id == store_id, or_(*conditions))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class ProductRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ProductRow)

    async def get_by_shopify_id(self, store_id: str, shopify_product_id: str) -> ProductRow | None:
        stmt = select(ProductRow).where(
            ProductRow.store_id == store_id,
            ProductRow.shopify_product_id == shopify_product_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
