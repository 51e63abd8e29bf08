"""Base handler interface for webhook jobs."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.models.webhook_job import WebhookJobRow
from ordefy.errors.exceptions import PermanentJobError


class WebhookHandler(ABC):
    """Processes the payload of one webhook topic.

    Delivery is at-least-once and unordered: ``handle`` may see the same job
    twice, or an older event after a newer one, and must converge to the same
    state. It may be cancelled mid-flight (handler timeout); its writes share
    the job's transaction and are rolled back in that case.

    Raise ``PermanentJobError`` for failures that retrying cannot fix. Any
    other exception is retried with backoff.
    """

    topic: str = ""

    @abstractmethod
    async def handle(self, job: WebhookJobRow, session: AsyncSession) -> None:
        ...


def require_resource_id(payload: dict) -> str:
    resource_id = payload.get("id")
    if resource_id is None or str(resource_id) == "":
        raise PermanentJobError("payload has no id")
    return str(resource_id)


def parse_shopify_timestamp(value) -> datetime | None:
    """Parse an ISO-8601 Shopify timestamp into aware UTC; None if absent or unparseable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_stale(stored: datetime | None, incoming: datetime | None) -> bool:
    """True when the stored entity already reflects a newer event."""
    return stored is not None and incoming is not None and incoming < stored
