"""Custom exception classes for the Ordefy webhook service."""


class OrdefyError(Exception):
    """Base exception for Ordefy."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(OrdefyError):
    """Malformed request or payload."""

    def __init__(self, message: str, details=None, code: str = "VALIDATION_ERROR"):
        super().__init__(code, message, details, status_code=400)


class NotFoundError(OrdefyError):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
            status_code=404,
        )


class AuthenticationError(OrdefyError):
    """Missing or invalid credentials or webhook signature."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class ConflictError(OrdefyError):
    """Resource state conflict."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFLICT", message, details, status_code=409)


class ServiceUnavailableError(OrdefyError):
    """Transient backend failure; the caller should retry."""

    def __init__(self, message: str = "Service temporarily unavailable"):
        super().__init__("SERVICE_UNAVAILABLE", message, status_code=503)


class PermanentJobError(Exception):
    """Raised by a webhook handler for failures that must not be retried."""


class RateLimitedError(OrdefyError):
    """Caller exceeded its request budget."""

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__("RATE_LIMITED", message, status_code=429)
