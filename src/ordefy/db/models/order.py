"""Order table (synchronized from Shopify)."""

from datetime import datetime

from sqlalchemy import JSON, Float, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ordefy.db.base import Base, TimestampMixin, UTCDateTime


class OrderRow(Base, TimestampMixin):
    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("store_id", "shopify_order_id", name="uq_orders_store_shopify_id"),
    )

    order_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    shopify_order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    order_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False, default="Unknown")
    customer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    customer_phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    total_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    line_items: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    shopify_updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    shopify_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
