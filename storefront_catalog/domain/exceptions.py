"""Domain exceptions.

Errors raised by the catalog when a caller breaks a contract or when the
data it needs cannot be obtained. Partial price syncs are not errors and are
reported through ``PriceSyncReport`` instead.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

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
# Catalog Errors
# ============================================================================


class CatalogError(DomainError):
    """Base class for catalog lookup errors."""

    pass


class InvalidArgumentError(CatalogError):
    """Raised when a lookup is missing its identifying value."""

    error_code = "INVALID_ARGUMENT"

    def __init__(self, key: str) -> None:
        """Initialize invalid argument error.

        Args:
            key: Name of the identifying field that was empty.
        """
        super().__init__(
            f"Please provide the search key '{key}' for a single product lookup",
            details={"key": key},
        )


class ProductNotFoundError(CatalogError):
    """Raised when no product matches after the full retrieval path."""

    error_code = "PRODUCT_NOT_FOUND"

    def __init__(self, key: str, value: Any) -> None:
        """Initialize product not found error.

        Args:
            key: Field used for the lookup.
            value: Value that was searched for.
        """
        super().__init__(
            f"Product query returned empty result for {key}={value}",
            details={"key": key, "value": value},
        )


# ============================================================================
# Upstream Errors
# ============================================================================


class UpstreamUnavailableError(DomainError):
    """Raised when the search index or the commerce backend cannot be reached."""

    error_code = "UPSTREAM_UNAVAILABLE"

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        """Initialize upstream error.

        Args:
            service: Name of the failing upstream ("search", "platform").
            message: Description of the failure.
            status_code: HTTP status code, when one was received.
        """
        super().__init__(
            f"[{service}] {message}",
            details={"service": service, "status_code": status_code},
        )
        self.service = service
        self.status_code = status_code
