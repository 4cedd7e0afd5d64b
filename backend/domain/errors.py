"""
Custom domain exceptions for consistent error handling.

These exceptions are mapped to HTTP status codes by the global exception handler
in main.py. Upstream errors carry a generic message only; the underlying cause
is logged server-side where it is raised.
"""
from fastapi import HTTPException, status


class DomainError(HTTPException):
    """Base class for all domain-specific errors."""
    def __init__(self, message: str, status_code: int = status.HTTP_400_BAD_REQUEST, details: dict | None = None):
        super().__init__(status_code=status_code, detail=message)
        self.message = message
        self.details = details or {}


class NotFoundError(DomainError):
    """Resource not found (404)."""
    def __init__(self, resource_type: str, identifier: str, details: dict | None = None):
        message = f"{resource_type} not found: {identifier}"
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND, details=details)


class ValidationError(DomainError):
    """Validation error (400)."""
    def __init__(self, message: str, field: str | None = None, details: dict | None = None):
        if field:
            message = f"Validation error on {field}: {message}"
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnauthenticatedError(DomainError):
    """No credentials supplied (401)."""
    def __init__(self, message: str = "Authentication required", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class PermissionDeniedError(DomainError):
    """Credentials supplied but not accepted for this action (403)."""
    def __init__(self, message: str = "Permission denied", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN, details=details)


class SignatureMismatchError(DomainError):
    """Webhook signature did not verify (401)."""
    def __init__(self, message: str = "Invalid webhook signature", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED, details=details)


class PayloadTooLargeError(DomainError):
    """Uploaded file exceeds the configured ceiling (413)."""
    def __init__(self, limit_mb: int, details: dict | None = None):
        message = f"File exceeds the {limit_mb} MB upload limit"
        super().__init__(message, status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, details=details)


class RateLimitError(DomainError):
    """Rate limit exceeded (429)."""
    def __init__(self, message: str = "Rate limit exceeded", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_429_TOO_MANY_REQUESTS, details=details)


class UpstreamServiceError(DomainError):
    """Database, storage, gateway or mail call failed (500, generic message)."""
    def __init__(self, message: str = "Upstream service unavailable", details: dict | None = None):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, details=details)


class PaymentGatewayUnavailableError(UpstreamServiceError):
    """Payment gateway unreachable or refused the request."""
    def __init__(self, message: str = "Payment service is currently unavailable", details: dict | None = None):
        super().__init__(message, details=details)
