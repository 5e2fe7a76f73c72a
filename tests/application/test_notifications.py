"""Tests for price update notifications."""

from storefront_catalog.application.notifications import PriceUpdateNotifier
from storefront_catalog.catalog.models import Product
from storefront_catalog.domain.events import ProductPriceUpdated


class TestPriceUpdateNotifier:
    """Tests for PriceUpdateNotifier."""

    def test_publish_reaches_subscribers_in_order(self) -> None:
        """Listeners are called in subscription order."""
        notifier = PriceUpdateNotifier()
        calls = []
        notifier.subscribe(lambda event, product: calls.append(("first", event.sku)))
        notifier.subscribe(lambda event, product: calls.append(("second", product.sku)))

        notifier.publish(Product(id=1, sku="S1", price=12.0))

        assert calls == [("first", "S1"), ("second", "S1")]

    def test_event_carries_prices(self) -> None:
        """The event is a snapshot of the published prices."""
        notifier = PriceUpdateNotifier()
        product = Product(id=1, sku="S1", price=12.0, price_incl_tax=13.2, sgn="abc")

        event = notifier.publish(product)

        assert isinstance(event, ProductPriceUpdated)
        assert event.aggregate_id == "1"
        assert event.price_incl_tax == 13.2
        assert event.sgn == "abc"

    def test_unsubscribe(self) -> None:
        """Unsubscribed listeners are no longer called."""
        notifier = PriceUpdateNotifier()
        calls = []
        unsubscribe = notifier.subscribe(lambda event, product: calls.append(event))

        unsubscribe()
        unsubscribe()
        notifier.publish(Product(sku="S1"))

        assert calls == []
        assert len(notifier) == 0

    def test_failing_listener_does_not_stop_others(self) -> None:
        """A raising listener is logged and skipped."""
        notifier = PriceUpdateNotifier()
        calls = []

        def broken(event, product):
            raise ValueError("boom")

        notifier.subscribe(broken)
        notifier.subscribe(lambda event, product: calls.append(event.sku))

        notifier.publish(Product(sku="S1"))

        assert calls == ["S1"]
