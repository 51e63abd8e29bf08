"""FastAPI exception handlers producing a uniform ErrorResponse."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from ordefy.errors.exceptions import AuthenticationError, OrdefyError, RateLimitedError
from ordefy.models.common import ErrorDetail, ErrorResponse

logger = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, code: str, message: str, details=None) -> JSONResponse:
    trace_id = getattr(request.state, "trace_id", "unknown")
    error_response = ErrorResponse(
        error=ErrorDetail(
            code=code,
            message=message,
            details=details,
            trace_id=trace_id,
            timestamp=datetime.now(timezone.utc),
        ),
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all custom exception handlers on the FastAPI app."""

    @app.exception_handler(OrdefyError)
    async def ordefy_error_handler(request: Request, exc: OrdefyError):
        if isinstance(exc, AuthenticationError):
            logger.warning(
                "request_rejected",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "shop_domain": request.headers.get("x-shopify-shop-domain", ""),
                    "reason": exc.message,
                },
            )
        return _error_response(request, exc.status_code, exc.code, exc.message, exc.details)

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit exceeded for %s on %s", request.client.host if request.client else "?", request.url.path)
        error = RateLimitedError(f"Rate limit exceeded: {exc.detail}")
        return _error_response(request, error.status_code, error.code, error.message)
