"""Product API endpoints.

Provides:
- GET /products/{sku} - product page (product, selected variant, parent)
- POST /products/search - list products for a query
- POST /products/{sku}/configure - select a variant of a product
"""

from collections.abc import Iterator
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query

from storefront_catalog.api.schemas import (
    BreadcrumbsSchema,
    ConfigureRequest,
    ErrorResponse,
    ProductListResponse,
    ProductResponse,
    ProductSearchRequest,
)
from storefront_catalog.application.catalog_service import (
    CatalogService,
    get_catalog_service,
)
from storefront_catalog.catalog.models import Product

logger = structlog.get_logger()

router = APIRouter(prefix="/products", tags=["Products"])


# ============================================================================
# Dependencies
# ============================================================================


def get_service() -> Iterator[CatalogService]:
    """Get a request-scoped catalog service."""
    service = get_catalog_service()
    try:
        yield service
    finally:
        service.close()


# ============================================================================
# Converters
# ============================================================================


def product_page_response(service: CatalogService, product: Product) -> ProductResponse:
    """Build the product page payload from the service state."""
    state = service.state
    return ProductResponse(
        product=product.to_document(),
        current=state.current.to_document() if state.current is not None else None,
        parent=state.parent.to_document() if state.parent is not None else None,
        breadcrumbs=BreadcrumbsSchema.model_validate(state.breadcrumbs.model_dump()),
        configuration=state.current_configuration,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "/{sku}",
    response_model=ProductResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Get product page",
    description="Load a product cache first, reconcile prices and select a variant.",
)
async def get_product(
    sku: str,
    service: Annotated[CatalogService, Depends(get_service)],
    child_sku: Annotated[str | None, Query(description="Variant to select")] = None,
) -> ProductResponse:
    """Get a product with its selected variant.

    Args:
        sku: Product SKU.
        service: Catalog service.
        child_sku: SKU of the variant to select.

    Returns:
        Product, current variant, parent and breadcrumbs.

    Raises:
        DomainError: If the SKU is empty or unknown, or upstream fails.
    """
    product = await service.single({"sku": sku, "childSku": child_sku})

    if product.type_id == "simple":
        await service.check_configurable_parent(product)
    await service.setup_variants(product)
    await service.setup_breadcrumbs(product)

    return product_page_response(service, product)


@router.post(
    "/search",
    response_model=ProductListResponse,
    responses={502: {"model": ErrorResponse}},
    summary="Search products",
    description="Run a query against the index and reconcile the page.",
)
async def search_products(
    request: ProductSearchRequest,
    service: Annotated[CatalogService, Depends(get_service)],
) -> ProductListResponse:
    """List products for a query.

    Args:
        request: Query and paging.
        service: Catalog service.

    Returns:
        Page of products.

    Raises:
        UpstreamUnavailableError: If the index or the tax rules are unavailable.
    """
    result = await service.list(
        request.query,
        start=request.start,
        size=request.size,
        sort=request.sort,
    )
    if result.error is not None:
        raise result.error

    return ProductListResponse(
        items=[product.to_document() for product in result.items],
        total=result.total,
        start=result.start,
        size=result.size,
    )


@router.post(
    "/{sku}/configure",
    response_model=ProductResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Configure product",
    description="Select the variant of a configurable product matching attribute selections.",
)
async def configure_product(
    sku: str,
    request: ConfigureRequest,
    service: Annotated[CatalogService, Depends(get_service)],
) -> ProductResponse:
    """Select a variant.

    Args:
        sku: Product SKU.
        request: Attribute selections.
        service: Catalog service.

    Returns:
        Product with the selected variant as ``current``.

    Raises:
        DomainError: If the SKU is empty or unknown, or upstream fails.
    """
    product = await service.single({"sku": sku}, select_default_variant=False)

    variant = service.configure(product, request.configuration)
    logger.info("Product configured", sku=sku, variant_sku=variant.sku)
    await service.setup_variants(product)

    return product_page_response(service, product)
