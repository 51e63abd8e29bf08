"""SQLAlchemy ORM models - import all to register with Base.metadata."""

from ordefy.db.models.integration import ShopifyIntegrationRow
from ordefy.db.models.idempotency import WebhookIdempotencyKeyRow
from ordefy.db.models.order import OrderRow
from ordefy.db.models.product import ProductRow
from ordefy.db.models.webhook_job import WebhookJobRow

__all__ = [
    "ShopifyIntegrationRow",
    "WebhookIdempotencyKeyRow",
    "OrderRow",
    "ProductRow",
    "WebhookJobRow",
]
