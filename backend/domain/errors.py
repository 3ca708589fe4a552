"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to the standard error envelope by the global
exception handler in main.py. Each class carries a stable `code` that the
storefront uses to pick a toast message.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    code = "domain_error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        details: dict | None = None,
        headers: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    code = "not_found"

    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnauthorizedError(DomainError):
    """Missing or invalid access token (401)."""
    code = "unauthorized"

    def __init__(self, message: str = "Please sign in to continue", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class PermissionDeniedError(DomainError):
    """Authenticated but not allowed, e.g. non-admin or blocked account (403)."""
    code = "permission_denied"

    def __init__(self, message: str = "Permission denied", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class ConflictError(DomainError):
    """Order state does not allow the request, e.g. paying twice (409)."""
    code = "conflict"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT, details=details)


class RateLimitError(DomainError):
    """Too many attempts from one client (429)."""
    code = "rate_limited"

    def __init__(self, message: str, retry_after: int, headers: dict | None = None):
        headers = {"Retry-After": str(retry_after), **(headers or {})}
        super().__init__(message, status_code=status.HTTP_429_TOO_MANY_REQUESTS, headers=headers)


class PaymentProviderError(DomainError):
    """Stripe/Paystack unreachable or rejected the request (502)."""
    code = "payment_failed"

    def __init__(self, message: str = "Payment failed. Please try again.", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY, details=details)


class WebhookSignatureError(Exception):
    """
    Raised when an inbound provider webhook fails signature verification.

    Not an HTTPException: webhook routes answer providers with a short
    plain-text 400 instead of the JSON error envelope.
    """
    pass
