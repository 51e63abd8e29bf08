"""Handlers for products/create, products/update and products/delete."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.models.product import ProductRow
from ordefy.db.models.webhook_job import WebhookJobRow
from ordefy.repositories.order_repo import ProductRepository
from ordefy.services.id_generator import generate_id
from ordefy.workers.base import WebhookHandler, is_stale, parse_shopify_timestamp, require_resource_id

logger = logging.getLogger(__name__)


def _product_fields(payload: dict) -> dict:
    variants = payload.get("variants") or []
    first = variants[0] if variants else {}
    return {
        "title": payload.get("title") or "Untitled",
        "sku": first.get("sku") or None,
        "price": float(first.get("price") or 0),
        "stock": sum(max(0, int(v.get("inventory_quantity") or 0)) for v in variants),
        "shopify_updated_at": parse_shopify_timestamp(payload.get("updated_at") or payload.get("created_at")),
    }


class ProductUpsertHandler(WebhookHandler):
    topic = "products/update"

    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        shopify_product_id = require_resource_id(job.payload)
        repo = ProductRepository(session)
        fields = _product_fields(job.payload)

        product = await repo.get_by_shopify_id(job.store_id, shopify_product_id)
        if product is None:
            product = ProductRow(
                product_id=generate_id("prd_"),
                store_id=job.store_id,
                shopify_product_id=shopify_product_id,
                **fields,
            )
            session.add(product)
            await session.flush()
            logger.info("Product created from webhook: %s (shopify=%s)", product.product_id, shopify_product_id)
            return

        if is_stale(product.shopify_updated_at, fields["shopify_updated_at"]):
            logger.info("Ignoring stale update for product %s", shopify_product_id)
            return

        await repo.update(product, **fields)
        logger.info("Product %s updated from webhook", product.product_id)


class ProductDeletedHandler(WebhookHandler):
    topic = "products/delete"

    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        shopify_product_id = require_resource_id(job.payload)
        repo = ProductRepository(session)

        product = await repo.get_by_shopify_id(job.store_id, shopify_product_id)
        if product is None:
            logger.info("Product %s already absent, nothing to delete", shopify_product_id)
            return

        await repo.delete(product)
        logger.info("Product %s deleted (shopify=%s)", product.product_id, shopify_product_id)
