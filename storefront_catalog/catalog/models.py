"""Pydantic models for catalog products.

Products arrive as denormalized documents from the search index or the
local cache. Unknown document fields are preserved so that a product
written back to the cache round-trips without loss.
"""

from collections.abc import Iterator
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Attribute names of the price tuple. These are always written together.
PRICE_FIELDS: tuple[str, ...] = (
    "price",
    "price_incl_tax",
    "original_price",
    "original_price_incl_tax",
    "special_price",
    "special_price_incl_tax",
    "price_tax",
    "special_price_tax",
    "original_price_tax",
)


class CustomAttribute(BaseModel):
    """Raw platform attribute attached to a product."""

    model_config = ConfigDict(extra="allow")

    attribute_code: str
    value: Any = None


class ConfigurableOptionValue(BaseModel):
    """One selectable value of a configurable option."""

    model_config = ConfigDict(extra="allow")

    value_index: int | str | None = None
    label: str | None = None


class ConfigurableOption(BaseModel):
    """Attribute that distinguishes the children of a configurable product."""

    model_config = ConfigDict(extra="allow")

    attribute_id: int | str | None = None
    attribute_code: str | None = None
    label: str = ""
    values: list[ConfigurableOptionValue] = Field(default_factory=list)


class ProductLink(BaseModel):
    """Link from a product to an associated product.

    Attributes:
        sku: SKU of the product owning the link.
        link_type: Kind of link ("associated", "related", ...).
        linked_product_sku: SKU of the linked product.
        linked_product_type: Type of the linked product.
        product: Linked product once it has been prefetched.
    """

    model_config = ConfigDict(extra="allow")

    sku: str | None = None
    link_type: str | None = None
    linked_product_sku: str | None = None
    linked_product_type: str | None = None
    position: int | None = None
    product: "Product | None" = None

    @property
    def target_sku(self) -> str | None:
        """SKU to fetch for this link."""
        return self.linked_product_sku or self.sku


class ProductCategory(BaseModel):
    """Category reference stored on a product document."""

    model_config = ConfigDict(extra="allow")

    category_id: int | str
    name: str | None = None


class Product(BaseModel):
    """Catalog product.

    Price attributes use snake_case names; documents coming from the index
    and the cache use the camelCase aliases (``priceInclTax``, ...).

    Attributes:
        id: Platform-assigned identifier.
        sku: Stock keeping unit, used as the cache and search key.
        type_id: "simple", "configurable" or "grouped".
        price_is_current: Whether prices come from the platform and are fresh.
        price_refreshed_at: When prices were last copied from the platform.
        sgn: Price signature returned with the platform quote.
        configurable_children: Variants of a configurable product.
        configurable_options: Attributes that distinguish the variants.
        product_links: Links to associated products (grouped products).
        custom_attributes: Raw platform attributes.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int | str | None = None
    sku: str | None = None
    name: str | None = None
    type_id: str = "simple"
    image: str | None = None
    tax_class_id: int | str | None = None
    qty: float | None = None

    # Price tuple
    price: float | None = None
    price_incl_tax: float | None = Field(default=None, alias="priceInclTax")
    original_price: float | None = Field(default=None, alias="originalPrice")
    original_price_incl_tax: float | None = Field(
        default=None, alias="originalPriceInclTax"
    )
    special_price: float | None = None
    special_price_incl_tax: float | None = Field(
        default=None, alias="specialPriceInclTax"
    )
    price_tax: float | None = Field(default=None, alias="priceTax")
    special_price_tax: float | None = Field(default=None, alias="specialPriceTax")
    original_price_tax: float | None = Field(default=None, alias="originalPriceTax")

    # Freshness
    price_is_current: bool = False
    price_refreshed_at: datetime | None = None
    sgn: str | None = None

    configurable_children: list["Product"] = Field(default_factory=list)
    configurable_options: list[ConfigurableOption] = Field(default_factory=list)
    product_links: list[ProductLink] = Field(default_factory=list)
    custom_attributes: list[CustomAttribute] = Field(default_factory=list)
    category: list[ProductCategory] = Field(default_factory=list)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, sku={self.sku}, type={self.type_id})>"

    @property
    def has_configurable_children(self) -> bool:
        """Check whether the product has at least one variant."""
        return len(self.configurable_children) > 0

    def iter_with_children(self) -> Iterator["Product"]:
        """Yield the product followed by its configurable children."""
        yield self
        yield from self.configurable_children

    def clear_prices(self) -> None:
        """Null the price tuple and the freshness metadata."""
        for name in PRICE_FIELDS:
            setattr(self, name, None)
        self.price_is_current = False
        self.price_refreshed_at = None

    def copy_prices_from(self, other: "Product") -> None:
        """Overwrite the price tuple, signature and freshness with another's.

        Args:
            other: Product to copy price state from.
        """
        for name in PRICE_FIELDS:
            setattr(self, name, getattr(other, name))
        self.sgn = other.sgn
        self.price_is_current = other.price_is_current
        self.price_refreshed_at = other.price_refreshed_at

    def attribute_value(self, code: str) -> Any:
        """Look up an attribute by code.

        Declared fields and flattened attributes win over the raw
        ``custom_attributes`` list.

        Args:
            code: Attribute code.

        Returns:
            Attribute value, or None if the product does not carry it.
        """
        if code in type(self).model_fields:
            return getattr(self, code)
        extra = self.model_extra or {}
        if code in extra:
            return extra[code]
        for attr in self.custom_attributes:
            if attr.attribute_code == code:
                return attr.value
        return None

    def to_document(self) -> dict[str, Any]:
        """Serialize using index/cache field names."""
        return self.model_dump(mode="json", by_alias=True)

    def merged_with(self, variant: "Product") -> "Product":
        """Build a copy of this product with the variant's fields on top.

        Only fields the variant actually carries take part in the overlay,
        so a child without ``configurable_children`` does not erase the
        parent's.

        Args:
            variant: Variant whose fields win.

        Returns:
            New product; neither input is modified.
        """
        data = self.model_dump(by_alias=True)
        data.update(variant.model_dump(by_alias=True, exclude_unset=True))
        data.update(variant.model_extra or {})
        return Product.model_validate(data)

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "Product":
        """Create a product from an index or cache document.

        Args:
            data: Document fields.

        Returns:
            Product instance.
        """
        return cls.model_validate(data)


class BreadcrumbRoute(BaseModel):
    """One navigation step of the breadcrumb path."""

    name: str
    route_link: str


class Breadcrumbs(BaseModel):
    """Breadcrumb side output for the product page."""

    name: str | None = None
    routes: list[BreadcrumbRoute] = Field(default_factory=list)


class AttributeOption(BaseModel):
    """Label of one attribute option."""

    model_config = ConfigDict(extra="allow")

    value: int | str
    label: str = ""


class Attribute(BaseModel):
    """Attribute metadata used for option labels."""

    model_config = ConfigDict(extra="allow")

    attribute_id: int | str
    attribute_code: str
    frontend_label: str | None = None
    options: list[AttributeOption] = Field(default_factory=list)

    def option_label(self, option_id: Any) -> str:
        """Get the label of an option, matched as strings.

        Args:
            option_id: Option value (id) to look up.

        Returns:
            Option label, or an empty string when unknown.
        """
        for option in self.options:
            if str(option.value) == str(option_id):
                return option.label
        return ""


class Category(BaseModel):
    """Category metadata used for breadcrumbs."""

    model_config = ConfigDict(extra="allow")

    id: int | str
    name: str
    slug: str | None = None
    parent_id: int | str | None = None


ProductLink.model_rebuild()
Product.model_rebuild()
