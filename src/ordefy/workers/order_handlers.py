"""Handlers for orders/create and orders/updated."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.models.order import OrderRow
from ordefy.db.models.webhook_job import WebhookJobRow
from ordefy.models.enums import OrderStatus
from ordefy.repositories.order_repo import OrderRepository
from ordefy.services.id_generator import generate_id
from ordefy.services.order_status_hooks import derive_status, status_hooks
from ordefy.workers.base import WebhookHandler, is_stale, parse_shopify_timestamp, require_resource_id

logger = logging.getLogger(__name__)


def _customer_name(payload: dict) -> str:
    customer = payload.get("customer") or {}
    name = f"{customer.get('first_name') or ''} {customer.get('last_name') or ''}".strip()
    return name or "Unknown"


def _line_items(payload: dict) -> list[dict]:
    return [
        {
            "product_id": str(item["product_id"]) if item.get("product_id") is not None else None,
            "variant_id": str(item["variant_id"]) if item.get("variant_id") is not None else None,
            "title": item.get("title"),
            "sku": item.get("sku"),
            "quantity": int(item.get("quantity") or 0),
            "price": float(item.get("price") or 0),
        }
        for item in payload.get("line_items") or []
    ]


def _apply_payload(order: OrderRow, payload: dict) -> None:
    customer = payload.get("customer") or {}
    order.order_number = str(payload["order_number"]) if payload.get("order_number") is not None else order.order_number
    order.customer_name = _customer_name(payload)
    order.customer_email = customer.get("email") or payload.get("email")
    order.customer_phone = customer.get("phone") or payload.get("phone")
    order.total_price = float(payload.get("total_price") or 0)
    order.currency = payload.get("currency") or "USD"
    order.line_items = _line_items(payload)
    order.shopify_updated_at = parse_shopify_timestamp(payload.get("updated_at") or payload.get("created_at"))
    order.shopify_data = payload


async def _create_order(job: WebhookJobRow, shopify_order_id: str, session: AsyncSession) -> OrderRow:
    order = OrderRow(
        order_id=generate_id("ord_"),
        store_id=job.store_id,
        shopify_order_id=shopify_order_id,
        status=OrderStatus.PENDING,
    )
    _apply_payload(order, job.payload)
    session.add(order)
    await session.flush()

    new_status = derive_status(job.payload)
    await status_hooks.apply(order, OrderStatus.PENDING, new_status, session)
    order.status = new_status
    await session.flush()

    logger.info(
        "Order created from webhook: %s (shopify=%s, store=%s, status=%s)",
        order.order_id, shopify_order_id, job.store_id, new_status,
    )
    return order


class OrderCreatedHandler(WebhookHandler):
    topic = "orders/create"

    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        shopify_order_id = require_resource_id(job.payload)
        repo = OrderRepository(session)

        existing = await repo.get_by_shopify_id(job.store_id, shopify_order_id)
        if existing:
            logger.info("Order %s already synced, skipping create", shopify_order_id)
            return

        await _create_order(job, shopify_order_id, session)


class OrderUpdatedHandler(WebhookHandler):
    topic = "orders/updated"

    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        shopify_order_id = require_resource_id(job.payload)
        repo = OrderRepository(session)

        order = await repo.get_by_shopify_id(job.store_id, shopify_order_id)
        if order is None:
            # Update overtook the create event
            await _create_order(job, shopify_order_id, session)
            return

        incoming_ts = parse_shopify_timestamp(job.payload.get("updated_at"))
        if is_stale(order.shopify_updated_at, incoming_ts):
            logger.info(
                "Ignoring stale update for order %s (stored=%s, incoming=%s)",
                shopify_order_id, order.shopify_updated_at, incoming_ts,
            )
            return

        old_status = order.status
        old_line_items = list(order.line_items or [])
        new_status = derive_status(job.payload)
        _apply_payload(order, job.payload)
        await session.flush()

        applied = await status_hooks.apply(order, old_status, new_status, session, old_line_items)
        order.status = new_status
        await session.flush()

        logger.info(
            "Order %s updated (status %s -> %s, hooks=%d)",
            order.order_id, old_status, new_status, applied,
        )
