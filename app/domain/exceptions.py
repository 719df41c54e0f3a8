"""Domain exceptions.

Errors raised by the catalog pipeline and application services. The API
layer maps each class to an HTTP status through ``status_code``.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    status_code: int = 400
    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# Request Errors
# ============================================================================


class MissingParameterError(DomainError):
    """Raised when a required request parameter is absent."""

    status_code = 400
    error_code = "MISSING_PARAMETER"

    def __init__(self, parameter: str, message: str | None = None) -> None:
        """Initialize missing parameter error.

        Args:
            parameter: Name of the missing parameter.
            message: Optional override for the default message.
        """
        super().__init__(
            message or f"Required parameter '{parameter}' is missing",
            details={"parameter": parameter},
        )


class AuthenticationError(DomainError):
    """Raised when the caller's Shopify credentials are missing or rejected."""

    error_code = "UNAUTHORIZED"

    def __init__(self, message: str, status_code: int = 401) -> None:
        """Initialize authentication error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status to answer with.
        """
        super().__init__(message, details={"status_code": status_code})
        self.status_code = status_code


class NotFoundError(DomainError):
    """Raised when a requested product, category or shop does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


# ============================================================================
# Remote Errors
# ============================================================================


class RemoteResponseInvalidError(DomainError):
    """Raised when Shopify keeps answering without a usable data envelope.

    The product fetcher raises this after its single field-downgrade
    retry has been spent, or immediately when no downgrade applies.
    """

    status_code = 502
    error_code = "REMOTE_RESPONSE_INVALID"

    def __init__(self, message: str, cursor: str | None = None) -> None:
        """Initialize remote response error.

        Args:
            message: Human-readable error message.
            cursor: Pagination cursor of the page that failed.
        """
        super().__init__(message, details={"cursor": cursor})
        self.cursor = cursor
