"""In-process price update notifications.

Subscribers are called synchronously, in subscription order, each time
authoritative prices land on a product.
"""

from collections.abc import Callable

import structlog

from storefront_catalog.catalog.models import Product
from storefront_catalog.domain.events import ProductPriceUpdated

logger = structlog.get_logger()

PriceUpdateListener = Callable[[ProductPriceUpdated, Product], None]


class PriceUpdateNotifier:
    """Observer registry for ``ProductPriceUpdated`` events.

    Example usage:
        notifier = PriceUpdateNotifier()
        unsubscribe = notifier.subscribe(lambda event, product: print(event.sku))
        ...
        unsubscribe()
    """

    def __init__(self) -> None:
        """Initialize notifier without listeners."""
        self._listeners: list[PriceUpdateListener] = []

    def subscribe(self, listener: PriceUpdateListener) -> Callable[[], None]:
        """Register a listener.

        Args:
            listener: Called with the event and the updated product.

        Returns:
            Function removing the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, product: Product) -> ProductPriceUpdated:
        """Notify all listeners about a product's new prices.

        A failing listener is logged and does not stop the others.

        Args:
            product: Product whose prices were just updated.

        Returns:
            The published event.
        """
        event = ProductPriceUpdated(
            aggregate_id=str(product.id) if product.id is not None else "",
            aggregate_type="Product",
            sku=product.sku or "",
            sgn=product.sgn,
            price=product.price,
            price_incl_tax=product.price_incl_tax,
            original_price_incl_tax=product.original_price_incl_tax,
            special_price_incl_tax=product.special_price_incl_tax,
        )
        for listener in list(self._listeners):
            try:
                listener(event, product)
            except Exception as e:
                logger.error(
                    "Price update listener failed",
                    sku=event.sku,
                    error=str(e),
                )
        return event

    def __len__(self) -> int:
        return len(self._listeners)
