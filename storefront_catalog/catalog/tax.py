"""Client-side tax calculation.

Turns the tax-exclusive prices of the search index into the full price
tuple for a country/region. The calculation only reads ``price`` and
``special_price``, so running it twice with the same rules gives the same
result.
"""

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field

from storefront_catalog.catalog.models import Product

logger = structlog.get_logger()


class TaxRate(BaseModel):
    """Rate of a tax rule for one country/region."""

    model_config = ConfigDict(extra="allow")

    tax_country_id: str
    tax_region_id: int | str | None = 0
    region_name: str | None = None
    rate: float = 0.0
    code: str | None = None


class TaxRule(BaseModel):
    """Tax rule binding product tax classes to rates."""

    model_config = ConfigDict(extra="allow")

    id: int | str | None = None
    code: str | None = None
    product_tax_class_ids: list[int] = Field(default_factory=list)
    rates: list[TaxRate] = Field(default_factory=list)


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _rate_applies(rate: TaxRate, country: str, region: str) -> bool:
    if rate.tax_country_id != country:
        return False
    return (
        not rate.region_name
        or rate.region_name == region
        or _as_int(rate.tax_region_id) == 0
    )


def find_tax_rate(
    tax_class_id: Any,
    tax_rules: list[TaxRule],
    country: str,
    region: str = "",
) -> float | None:
    """Find the percentage rate for a product tax class.

    Args:
        tax_class_id: Product tax class id.
        tax_rules: Available tax rules.
        country: ISO country code.
        region: Region name, empty for country-wide rates.

    Returns:
        Rate in percent, or None when no rule applies.
    """
    class_id = _as_int(tax_class_id)
    if class_id is None:
        return None

    rule = next((r for r in tax_rules if class_id in r.product_tax_class_ids), None)
    if rule is None:
        return None

    for rate in rule.rates:
        if _rate_applies(rate, country, region):
            return rate.rate
    return None


def apply_tax_rate(product: Product, rate: float) -> Product:
    """Compute the price tuple of a single product from its net prices.

    A special price only counts when it is positive and below ``price``.

    Args:
        product: Product to update in place.
        rate: Rate in percent.

    Returns:
        The same product.
    """
    if product.price is None:
        return product

    factor = rate / 100
    price = float(product.price)
    price_tax = round(price * factor, 2)

    product.price = price
    product.price_tax = price_tax
    product.price_incl_tax = round(price + price_tax, 2)

    product.original_price = price
    product.original_price_tax = price_tax
    product.original_price_incl_tax = product.price_incl_tax

    special = product.special_price
    if special and 0 < special < price:
        special_tax = round(special * factor, 2)
        product.special_price = float(special)
        product.special_price_tax = special_tax
        product.special_price_incl_tax = round(special + special_tax, 2)
    else:
        product.special_price = 0.0
        product.special_price_tax = 0.0
        product.special_price_incl_tax = 0.0

    return product


def calculate_product_tax(
    product: Product,
    tax_rules: list[TaxRule],
    country: str,
    region: str = "",
) -> Product:
    """Apply regional tax rules to a product and its configurable children.

    When no rule applies the rate is zero, so the tax-inclusive fields equal
    the net ones. Children without their own tax class use the parent's.

    Args:
        product: Product to update in place.
        tax_rules: Available tax rules.
        country: ISO country code.
        region: Region name.

    Returns:
        The same product.
    """
    rate = find_tax_rate(product.tax_class_id, tax_rules, country, region)
    if rate is None:
        logger.debug(
            "No tax rate found, using net prices",
            sku=product.sku,
            tax_class_id=product.tax_class_id,
            country=country,
            region=region,
        )
    apply_tax_rate(product, rate or 0.0)

    for child in product.configurable_children:
        child_class = (
            child.tax_class_id if child.tax_class_id is not None else product.tax_class_id
        )
        child_rate = find_tax_rate(child_class, tax_rules, country, region)
        apply_tax_rate(child, child_rate or 0.0)

    return product
