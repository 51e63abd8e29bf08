"""Pydantic models for webhook queue API responses."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from ordefy.models.enums import JobStatus


class WebhookJobModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    store_id: str
    integration_id: str
    shop_domain: str
    topic: str
    status: JobStatus
    attempts: int
    next_attempt_at: datetime
    last_error: str | None = None
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class WebhookJobDetail(WebhookJobModel):
    payload: dict[str, Any]
    signature: str
    idempotency_key: str


class WebhookAccepted(BaseModel):
    """Receiver response. ``accepted`` is False only for replay-guard drops."""

    success: bool = True
    accepted: bool = True
    duplicate: bool = False
    job_id: str | None = None
    status: JobStatus | None = None
    message: str
    response_time_ms: int


class QueueStats(BaseModel):
    pending: int = 0
    processing: int = 0
    completed: int = 0
    failed: int = 0
    total: int = 0
    oldest_pending_age_seconds: float | None = None
    stale_processing: int = 0


class CleanupResult(BaseModel):
    deleted_jobs: int
    deleted_idempotency_keys: int
    retention_days: int
