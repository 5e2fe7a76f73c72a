"""Domain layer - domain events and exceptions.

Example usage:
    from storefront_catalog.domain import ProductNotFoundError, ProductPriceUpdated
"""

from storefront_catalog.domain.base import DomainEvent
from storefront_catalog.domain.events import (
    EVENT_REGISTRY,
    ProductPriceUpdated,
    get_event_class,
)
from storefront_catalog.domain.exceptions import (
    CatalogError,
    DomainError,
    InvalidArgumentError,
    ProductNotFoundError,
    UpstreamUnavailableError,
)

__all__ = [
    # Base
    "DomainEvent",
    # Events
    "EVENT_REGISTRY",
    "ProductPriceUpdated",
    "get_event_class",
    # Exceptions
    "CatalogError",
    "DomainError",
    "InvalidArgumentError",
    "ProductNotFoundError",
    "UpstreamUnavailableError",
]
