"""Webhook queue, idempotency keys, integrations, orders and products.

Revision ID: 0001
Revises:
"""

import sqlalchemy as sa
from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "shopify_integrations",
        sa.Column("integration_id", sa.String(128), primary_key=True),
        sa.Column("store_id", sa.String(128), nullable=False, index=True),
        sa.Column("shop_domain", sa.String(255), nullable=False, unique=True),
        sa.Column("webhook_secret", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
    )

    op.create_table(
        "webhook_queue",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("store_id", sa.String(128), nullable=False),
        sa.Column("integration_id", sa.String(128), nullable=False),
        sa.Column("shop_domain", sa.String(255), nullable=False),
        sa.Column("topic", sa.String(100), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("signature", sa.String(255), nullable=False),
        sa.Column("idempotency_key", sa.String(500), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("attempts", sa.Integer, nullable=False, server_default="0"),
        sa.Column("next_attempt_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_error", sa.Text, nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="chk_webhook_queue_status",
        ),
        sa.CheckConstraint("attempts >= 0", name="chk_webhook_queue_attempts"),
    )
    op.create_index(
        "idx_webhook_queue_eligible",
        "webhook_queue",
        ["status", "next_attempt_at"],
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index("idx_webhook_queue_store_topic", "webhook_queue", ["store_id", "topic", "created_at"])
    op.create_index(
        "idx_webhook_queue_cleanup",
        "webhook_queue",
        ["status", "completed_at"],
        postgresql_where=sa.text("status = 'completed'"),
    )
    op.create_index("idx_webhook_queue_idempotency", "webhook_queue", ["idempotency_key"])

    op.create_table(
        "webhook_idempotency_keys",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("integration_id", sa.String(128), nullable=False),
        sa.Column("idempotency_key", sa.String(500), nullable=False),
        sa.Column("topic", sa.String(100), nullable=False),
        sa.Column("job_id", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False, index=True),
        sa.UniqueConstraint("integration_id", "idempotency_key", name="uq_webhook_idempotency_key"),
    )

    op.create_table(
        "orders",
        sa.Column("order_id", sa.String(64), primary_key=True),
        sa.Column("store_id", sa.String(128), nullable=False, index=True),
        sa.Column("shopify_order_id", sa.String(64), nullable=False),
        sa.Column("order_number", sa.String(64), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_email", sa.String(255), nullable=True),
        sa.Column("customer_phone", sa.String(64), nullable=True),
        sa.Column("total_price", sa.Float, nullable=False, server_default="0"),
        sa.Column("currency", sa.String(8), nullable=False, server_default="USD"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("line_items", sa.JSON, nullable=False),
        sa.Column("shopify_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("shopify_data", sa.JSON, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("store_id", "shopify_order_id", name="uq_orders_store_shopify_id"),
    )

    op.create_table(
        "products",
        sa.Column("product_id", sa.String(64), primary_key=True),
        sa.Column("store_id", sa.String(128), nullable=False, index=True),
        sa.Column("shopify_product_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("sku", sa.String(128), nullable=True),
        sa.Column("price", sa.Float, nullable=False, server_default="0"),
        sa.Column("stock", sa.Integer, nullable=False, server_default="0"),
        sa.Column("shopify_updated_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("store_id", "shopify_product_id", name="uq_products_store_shopify_id"),
    )


def downgrade() -> None:
    op.drop_table("products")
    op.drop_table("orders")
    op.drop_table("webhook_idempotency_keys")
    op.drop_index("idx_webhook_queue_idempotency", table_name="webhook_queue")
    op.drop_index("idx_webhook_queue_cleanup", table_name="webhook_queue")
    op.drop_index("idx_webhook_queue_store_topic", table_name="webhook_queue")
    op.drop_index("idx_webhook_queue_eligible", table_name="webhook_queue")
    op.drop_table("webhook_queue")
    op.drop_table("shopify_integrations")
