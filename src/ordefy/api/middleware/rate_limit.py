"""Rate limiting using slowapi."""

import logging

from slowapi import Limiter
from slowapi.util import get_remote_address

from ordefy.config import settings

logger = logging.getLogger(__name__)


def webhook_rate_limit() -> str:
    """Per-client limit for inbound webhooks, read per request so it tracks settings."""
    return f"{settings.rate_limit_webhooks_per_minute}/minute"


limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


def setup_rate_limiter(app) -> None:
    """Attach the slowapi limiter to the FastAPI app."""
    app.state.limiter = limiter
    if not settings.rate_limit_enabled:
        logger.info("Rate limiting disabled")
        return
    logger.info(
        "Rate limiter configured (webhooks=%d/min, storage=%s)",
        settings.rate_limit_webhooks_per_minute,
        "memory" if settings.local_mode else "redis",
    )
