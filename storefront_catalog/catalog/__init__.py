"""Product catalog models and pure catalog logic.

Provides the product model, client-side tax calculation and variant
selection for configurable products.
"""

from storefront_catalog.catalog.keys import entity_key_name, product_cache_key
from storefront_catalog.catalog.models import (
    PRICE_FIELDS,
    Attribute,
    AttributeOption,
    Breadcrumbs,
    Category,
    ConfigurableOption,
    CustomAttribute,
    Product,
    ProductLink,
)
from storefront_catalog.catalog.tax import TaxRate, TaxRule, calculate_product_tax
from storefront_catalog.catalog.variants import VariantResolver, parse_int

__all__ = [
    # Keys
    "entity_key_name",
    "product_cache_key",
    # Models
    "PRICE_FIELDS",
    "Attribute",
    "AttributeOption",
    "Breadcrumbs",
    "Category",
    "ConfigurableOption",
    "CustomAttribute",
    "Product",
    "ProductLink",
    # Tax
    "TaxRate",
    "TaxRule",
    "calculate_product_tax",
    # Variants
    "VariantResolver",
    "parse_int",
]
