"""Handlers for app lifecycle and Shopify privacy compliance topics."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.models.webhook_job import WebhookJobRow
from ordefy.repositories.integration_repo import IntegrationRepository
from ordefy.repositories.order_repo import OrderRepository
from ordefy.workers.base import WebhookHandler

logger = logging.getLogger(__name__)

REDACTED = "REDACTED"
_PII_FIELDS = ("customer", "email", "phone", "billing_address", "shipping_address")


def _customer_orders_query(payload: dict) -> tuple[str | None, list[str]]:
    customer = payload.get("customer") or {}
    order_ids = [str(i) for i in (payload.get("orders_to_redact") or payload.get("orders_requested") or [])]
    return customer.get("email"), order_ids


class AppUninstalledHandler(WebhookHandler):
    """Deactivates the integration so further deliveries from the shop are refused."""

    topic = "app/uninstalled"

    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        found = await IntegrationRepository(session).deactivate(job.integration_id)
        if not found:
            logger.warning("App uninstalled for unknown integration %s", job.integration_id)
            return
        logger.info("Integration %s deactivated (shop=%s)", job.integration_id, job.shop_domain)


class CustomerDataRequestHandler(WebhookHandler):
    topic = "customers/data_request"

    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        email, order_ids = _customer_orders_query(job.payload)
        orders = await OrderRepository(session).list_for_customer(job.store_id, email, order_ids)
        logger.info(
            "Customer data request %s compiled (shop=%s, orders=%d)",
            (job.payload.get("data_request") or {}).get("id"), job.shop_domain, len(orders),
        )


class CustomerRedactHandler(WebhookHandler):
    """Strips customer PII from synced orders; financial fields are kept."""

    topic = "customers/redact"

    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        email, order_ids = _customer_orders_query(job.payload)
        orders = await OrderRepository(session).list_for_customer(job.store_id, email, order_ids)
        for order in orders:
            order.customer_name = REDACTED
            order.customer_email = None
            order.customer_phone = None
            if order.shopify_data:
                order.shopify_data = {k: v for k, v in order.shopify_data.items() if k not in _PII_FIELDS}
        await session.flush()
        logger.info("Customer redacted on %d orders (shop=%s)", len(orders), job.shop_domain)


class ShopRedactHandler(WebhookHandler):
    topic = "shop/redact"

    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        logger.info("Shop redaction acknowledged (shop=%s, store=%s)", job.shop_domain, job.store_id)
