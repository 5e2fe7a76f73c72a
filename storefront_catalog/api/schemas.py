"""API request/response schemas.

Products are returned as documents using the index field names
(``priceInclTax``, ...), the same shape the cache stores.
"""

from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | list[Any] = Field(
        default_factory=list, description="Additional error details"
    )
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


# ============================================================================
# Product Schemas
# ============================================================================


class BreadcrumbRouteSchema(BaseModel):
    """One breadcrumb step."""

    name: str
    route_link: str


class BreadcrumbsSchema(BaseModel):
    """Breadcrumbs of a product page."""

    name: str | None = None
    routes: list[BreadcrumbRouteSchema] = Field(default_factory=list)


class ProductResponse(BaseModel):
    """Product page payload."""

    product: dict[str, Any] = Field(..., description="Product as loaded")
    current: dict[str, Any] | None = Field(
        default=None, description="Selected variant overlaid on the product"
    )
    parent: dict[str, Any] | None = Field(
        default=None, description="Configurable parent of a simple product"
    )
    breadcrumbs: BreadcrumbsSchema = Field(default_factory=BreadcrumbsSchema)
    configuration: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Attribute code to selected option"
    )


class ProductSearchRequest(BaseModel):
    """Request to list products."""

    query: dict[str, Any] = Field(
        default_factory=lambda: {"query": {"match_all": {}}},
        description="Search query body",
    )
    start: int = Field(default=0, ge=0, description="Page offset")
    size: int = Field(default=50, ge=1, le=500, description="Page size")
    sort: str = Field(default="", description="Sort expression")


class ProductListResponse(BaseModel):
    """Page of products."""

    items: list[dict[str, Any]]
    total: int
    start: int
    size: int


class ConfigureRequest(BaseModel):
    """Request to select a variant."""

    configuration: dict[str, Any] = Field(
        default_factory=dict,
        description='Attribute selections, e.g. {"color": {"id": "7"}} or {"sku": "WS12-XS-Red"}',
    )
