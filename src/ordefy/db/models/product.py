"""Product table (synchronized from Shopify)."""

from datetime import datetime

from sqlalchemy import Float, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ordefy.db.base import Base, TimestampMixin, UTCDateTime


class ProductRow(Base, TimestampMixin):
    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("store_id", "shopify_product_id", name="uq_products_store_shopify_id"),
    )

    product_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    shopify_product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    sku: Mapped[str | None] = mapped_column(String(128), nullable=True)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    shopify_updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
