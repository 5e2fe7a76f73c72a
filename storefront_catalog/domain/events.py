"""Domain events for the catalog.

Events are published to in-process subscribers through
``PriceUpdateNotifier``; they never carry the mutable product itself.
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from storefront_catalog.domain.base import DomainEvent


@dataclass(frozen=True)
class ProductPriceUpdated(DomainEvent):
    """Event raised after authoritative prices were copied onto a product."""

    event_type: ClassVar[str] = "product.price_updated"

    sku: str = ""
    sgn: str | None = None
    price: float | None = None
    price_incl_tax: float | None = None
    original_price_incl_tax: float | None = None
    special_price_incl_tax: float | None = None

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "sku": self.sku,
            "sgn": self.sgn,
            "price": self.price,
            "price_incl_tax": self.price_incl_tax,
            "original_price_incl_tax": self.original_price_incl_tax,
            "special_price_incl_tax": self.special_price_incl_tax,
        }


EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    ProductPriceUpdated.event_type: ProductPriceUpdated,
}


def get_event_class(event_type: str) -> type[DomainEvent] | None:
    """Get event class by event type string.

    Args:
        event_type: Event type identifier.

    Returns:
        Event class if registered, None otherwise.
    """
    return EVENT_REGISTRY.get(event_type)
