"""
Custom exceptions for the catalog service domain.

Transport failures (network, 5xx, 4xx, malformed responses) are raised.
Expected business outcomes such as an unknown or expired discount code are
returned as structured results instead and never appear here.
"""

from typing import Any, Optional


class CatalogServiceException(Exception):
    """Base exception for all catalog service errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class UpstreamError(CatalogServiceException):
    """Raised when a call to the upstream commerce API fails."""

    retryable = False

    def __init__(
        self,
        operation: str,
        reason: str,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        self.operation = operation
        self.reason = reason
        self.status_code = status_code
        message = f"Upstream call '{operation}' failed: {reason}"
        merged = {"operation": operation, "reason": reason, "status_code": status_code}
        merged.update(details or {})
        super().__init__(message=message, details=merged)

    def tag(self, **fields: Any) -> "UpstreamError":
        """Attach observability fields (attempt count etc.) to the error."""
        self.details.update(fields)
        return self


class NetworkError(UpstreamError):
    """Raised when the upstream could not be reached (connect, timeout, reset)."""

    retryable = True

    def __init__(self, operation: str, reason: str):
        super().__init__(operation=operation, reason=reason)


class ServerError(UpstreamError):
    """Raised when the upstream answers with a 5xx status."""

    retryable = True

    def __init__(self, operation: str, status_code: int, reason: Optional[str] = None):
        super().__init__(
            operation=operation,
            reason=reason or f"server error ({status_code})",
            status_code=status_code,
        )


class ClientError(UpstreamError):
    """Raised when the upstream rejects the request with a 4xx status."""

    def __init__(self, operation: str, status_code: int, reason: Optional[str] = None):
        super().__init__(
            operation=operation,
            reason=reason or f"client error ({status_code})",
            status_code=status_code,
        )


class ValidationError(UpstreamError):
    """Raised when an upstream response is malformed or misses required fields."""

    def __init__(self, operation: str, reason: str, missing_field: Optional[str] = None):
        super().__init__(
            operation=operation,
            reason=reason,
            details={"missing_field": missing_field},
        )


class StoreOfflineError(CatalogServiceException):
    """Raised when the upstream reports that online ordering is switched off."""

    def __init__(self, operation: str):
        super().__init__(
            message=(
                "Online ordering is currently unavailable. Please try again later "
                "or contact us directly for assistance."
            ),
            details={"operation": operation},
        )


class LocationNotFoundException(CatalogServiceException):
    """Raised when the upstream account has no usable store location."""

    def __init__(self, reason: str = "No locations found in upstream account"):
        super().__init__(message=reason, details={"reason": reason})
