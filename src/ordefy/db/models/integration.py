"""Shopify integration (tenant) table."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from ordefy.db.base import Base, TimestampMixin


class ShopifyIntegrationRow(Base, TimestampMixin):
    __tablename__ = "shopify_integrations"

    integration_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    shop_domain: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    # Null falls back to the app-wide Shopify API secret
    webhook_secret: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
