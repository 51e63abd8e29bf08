"""Webhook idempotency key table."""

from datetime import datetime

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ordefy.db.base import Base, UTCDateTime, utcnow


class WebhookIdempotencyKeyRow(Base):
    __tablename__ = "webhook_idempotency_keys"
    __table_args__ = (
        UniqueConstraint("integration_id", "idempotency_key", name="uq_webhook_idempotency_key"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    integration_id: Mapped[str] = mapped_column(String(128), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(500), nullable=False)
    topic: Mapped[str] = mapped_column(String(100), nullable=False)
    job_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
