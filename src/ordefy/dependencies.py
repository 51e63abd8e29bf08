"""FastAPI dependency injection providers."""

import hmac
from collections.abc import AsyncGenerator

from fastapi import Depends, Request

from ordefy.config import settings
from ordefy.errors.exceptions import AuthenticationError


async def get_db(request: Request) -> AsyncGenerator:
    """Yield a database session from the app's session factory."""
    session_factory = request.app.state.db_session_factory
    async with session_factory() as session:
        yield session


async def require_admin(request: Request) -> None:
    """Check X-Admin-Key against the configured admin key in constant time."""
    configured = settings.admin_api_key
    if not configured:
        raise AuthenticationError("Admin API key not configured")
    presented = request.headers.get("x-admin-key", "")
    if not hmac.compare_digest(configured.encode("utf-8"), presented.encode("utf-8")):
        raise AuthenticationError("Invalid admin key")


RequireAdmin = Depends(require_admin)
