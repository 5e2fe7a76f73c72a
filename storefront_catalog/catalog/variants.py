"""Variant selection for configurable products.

Selects the child of a configurable product that matches an attribute
configuration such as ``{"color": {"id": "7"}}`` or ``{"sku": "A-2"}``.
"""

import re
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from storefront_catalog.catalog.models import Product

logger = structlog.get_logger()

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_int(value: Any) -> int | None:
    """Parse the leading integer of a value.

    Attribute values come as ints from one source and as strings from
    another; both sides of a comparison go through this function.

    Args:
        value: Value to parse.

    Returns:
        Parsed integer, or None when the value has no leading integer.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def selection_id(selection: Any) -> Any:
    """Get the option id of a configuration entry.

    Args:
        selection: ``{"id": ..., "label": ...}`` mapping, object with ``id``
            or a bare value.

    Returns:
        The selected option id.
    """
    if isinstance(selection, Mapping):
        return selection.get("id")
    return getattr(selection, "id", selection)


def flatten_custom_attributes(product: Product) -> Product:
    """Expose each custom attribute as a field of the product.

    Declared product fields are never overwritten, which keeps the price
    tuple and the structural fields intact.

    Args:
        product: Product to update in place.

    Returns:
        The same product.
    """
    declared = type(product).model_fields
    for attr in product.custom_attributes:
        if attr.attribute_code in declared:
            continue
        setattr(product, attr.attribute_code, attr.value)
    return product


def matches_configuration(child: Product, configuration: Mapping[str, Any]) -> bool:
    """Check whether every configured attribute equals the child's value.

    Args:
        child: Candidate variant.
        configuration: Attribute code to selection mapping.

    Returns:
        True if all configured attributes match numerically.
    """
    for code, selection in configuration.items():
        expected = parse_int(selection_id(selection))
        actual = parse_int(child.attribute_value(code))
        if expected is None or actual is None or expected != actual:
            return False
    return True


class VariantResolver:
    """Resolves a configurable product to one of its children.

    Example usage:
        resolver = VariantResolver()
        variant = resolver.resolve(product, {"color": {"id": "7"}})
    """

    def __init__(self, is_online: Callable[[], bool] | None = None) -> None:
        """Initialize resolver.

        Args:
            is_online: Connectivity probe; defaults to always online.
        """
        self._is_online = is_online or (lambda: True)

    def resolve(
        self,
        product: Product,
        configuration: Mapping[str, Any] | None = None,
    ) -> Product:
        """Select the variant matching a configuration.

        A ``sku`` entry selects the child with that exact SKU. Otherwise every
        configured attribute must match. Without a match the first child is
        returned, so a configurable product with children always resolves to
        a child.

        Args:
            product: Product to resolve.
            configuration: Attribute code to selection mapping.

        Returns:
            The selected child, or the product itself when it has no children.
        """
        if not product.has_configurable_children:
            return product

        for child in product.configurable_children:
            flatten_custom_attributes(child)

        configuration = dict(configuration or {})
        wanted_sku = configuration.pop("sku", None)

        selected: Product | None = None
        if wanted_sku:
            selected = next(
                (c for c in product.configurable_children if c.sku == wanted_sku),
                None,
            )
        else:
            selected = next(
                (
                    c
                    for c in product.configurable_children
                    if matches_configuration(c, configuration)
                ),
                None,
            )

        if selected is None:
            logger.debug(
                "No variant matches configuration, using first child",
                sku=product.sku,
                configuration=configuration,
                wanted_sku=wanted_sku,
            )
            selected = product.configurable_children[0]

        # Offline pages may not have the variant image cached
        if not selected.image and not self._is_online():
            selected.image = product.image

        return selected
