"""Webhook queue table."""

from datetime import datetime

from sqlalchemy import JSON, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ordefy.db.base import Base, TimestampMixin, UTCDateTime, utcnow


class WebhookJobRow(Base, TimestampMixin):
    __tablename__ = "webhook_queue"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="chk_webhook_queue_status",
        ),
        CheckConstraint("attempts >= 0", name="chk_webhook_queue_attempts"),
        Index("idx_webhook_queue_eligible", "status", "next_attempt_at"),
        Index("idx_webhook_queue_store_topic", "store_id", "topic", "created_at"),
        Index("idx_webhook_queue_cleanup", "status", "completed_at"),
        Index("idx_webhook_queue_idempotency", "idempotency_key"),
    )

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    store_id: Mapped[str] = mapped_column(String(128), nullable=False)
    integration_id: Mapped[str] = mapped_column(String(128), nullable=False)
    shop_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    topic: Mapped[str] = mapped_column(String(100), nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    signature: Mapped[str] = mapped_column(String(255), nullable=False)
    idempotency_key: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    next_attempt_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, default=utcnow)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
