"""Tests for domain events and exceptions."""

import pytest

from storefront_catalog.domain import (
    DomainError,
    InvalidArgumentError,
    ProductNotFoundError,
    ProductPriceUpdated,
    UpstreamUnavailableError,
    get_event_class,
)


class TestProductPriceUpdated:
    """Tests for ProductPriceUpdated."""

    def test_to_dict(self) -> None:
        """Events serialize with their payload."""
        event = ProductPriceUpdated(
            aggregate_id="31",
            aggregate_type="Product",
            sku="S1",
            sgn="abc",
            price=12.0,
            price_incl_tax=13.2,
        )

        data = event.to_dict()

        assert data["event_type"] == "product.price_updated"
        assert data["aggregate_id"] == "31"
        assert data["payload"]["sku"] == "S1"
        assert data["payload"]["price_incl_tax"] == 13.2
        assert "occurred_at" in data

    def test_events_are_immutable(self) -> None:
        """Event fields cannot be reassigned."""
        event = ProductPriceUpdated(sku="S1")

        with pytest.raises(AttributeError):
            event.sku = "S2"

    def test_registry_lookup(self) -> None:
        """Event classes are found by type string."""
        assert get_event_class("product.price_updated") is ProductPriceUpdated
        assert get_event_class("unknown") is None


class TestExceptions:
    """Tests for domain exceptions."""

    def test_invalid_argument(self) -> None:
        """Invalid argument errors name the key."""
        error = InvalidArgumentError("sku")

        assert isinstance(error, DomainError)
        assert error.error_code == "INVALID_ARGUMENT"
        assert "sku" in error.message

    def test_product_not_found(self) -> None:
        """Not found errors carry the lookup."""
        error = ProductNotFoundError("sku", "WS12")

        assert error.error_code == "PRODUCT_NOT_FOUND"
        assert error.details == {"key": "sku", "value": "WS12"}

    def test_upstream_unavailable(self) -> None:
        """Upstream errors carry the service and status."""
        error = UpstreamUnavailableError("platform", "Price sync failed: 503", status_code=503)

        assert error.service == "platform"
        assert error.status_code == 503
        assert error.message == "[platform] Price sync failed: 503"
        assert str(error) == error.message
