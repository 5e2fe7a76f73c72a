"""Application layer module.

Contains the catalog service and price reconciliation that orchestrate
catalog logic and infrastructure.
"""

from storefront_catalog.application.catalog_service import (
    CatalogService,
    CatalogState,
    ProductListResult,
    get_catalog_service,
)
from storefront_catalog.application.notifications import PriceUpdateNotifier
from storefront_catalog.application.price_reconciler import (
    PlatformPriceSync,
    PriceReconciler,
    PriceSyncOptions,
    PriceSyncReport,
    get_price_reconciler,
    reset_price_reconciler,
    sync_product_price,
)

__all__ = [
    "CatalogService",
    "CatalogState",
    "ProductListResult",
    "get_catalog_service",
    "PriceUpdateNotifier",
    "PlatformPriceSync",
    "PriceReconciler",
    "PriceSyncOptions",
    "PriceSyncReport",
    "get_price_reconciler",
    "reset_price_reconciler",
    "sync_product_price",
]
