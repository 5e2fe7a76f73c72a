"""Price reconciliation.

Brings index prices in line with the commerce platform:

- client-side tax calculation from the index's net prices (optional)
- batched override with authoritative platform prices (optional)
- a background mode that returns products before the platform answers
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Protocol

import structlog

from storefront_catalog.application.notifications import PriceUpdateNotifier
from storefront_catalog.catalog.models import Product
from storefront_catalog.catalog.tax import calculate_product_tax
from storefront_catalog.domain.exceptions import UpstreamUnavailableError
from storefront_catalog.infrastructure.config import Settings
from storefront_catalog.infrastructure.platform_client import BackendPriceRecord
from storefront_catalog.infrastructure.providers import TaxRuleProvider

logger = structlog.get_logger()


# ============================================================================
# Configuration and Capabilities
# ============================================================================


@dataclass
class PriceSyncOptions:
    """Switches controlling tax calculation and platform price sync.

    Attributes:
        tax_calculate_server_side: Prices already include tax; skip local tax.
        tax_country: Country used for client-side tax.
        tax_region: Region used for client-side tax.
        always_sync_platform_prices_over: Override index prices with
            platform prices.
        clear_prices_before_platform_sync: Null index prices before syncing
            so they are never shown while the sync is pending.
        wait_for_platform_sync: Wait for the platform before returning.
        server_side_rendering: Running in a rendering context that always
            needs final prices.
    """

    tax_calculate_server_side: bool = False
    tax_country: str = "US"
    tax_region: str = ""
    always_sync_platform_prices_over: bool = False
    clear_prices_before_platform_sync: bool = False
    wait_for_platform_sync: bool = True
    server_side_rendering: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "PriceSyncOptions":
        """Create options from application settings.

        Args:
            settings: Application settings.

        Returns:
            PriceSyncOptions instance.
        """
        return cls(
            tax_calculate_server_side=settings.tax_calculate_server_side,
            tax_country=settings.tax_country,
            tax_region=settings.tax_region,
            always_sync_platform_prices_over=settings.always_sync_platform_prices_over,
            clear_prices_before_platform_sync=settings.clear_prices_before_platform_sync,
            wait_for_platform_sync=settings.wait_for_platform_sync,
            server_side_rendering=settings.server_side_rendering,
        )

    @property
    def returns_before_sync(self) -> bool:
        """Whether reconcile returns before the platform answered."""
        return not self.wait_for_platform_sync and not self.server_side_rendering


class PlatformPriceSync(Protocol):
    """Capability to download authoritative prices."""

    async def fetch_prices(self, skus: list[str]) -> list[BackendPriceRecord]:
        """Fetch price records for SKUs."""
        ...


@dataclass
class PriceSyncReport:
    """Outcome of one platform price sync.

    Attributes:
        requested_skus: SKUs sent to the platform.
        synced_skus: SKUs whose prices were overwritten.
        missing_skus: Requested SKUs without a platform record.
        error: Upstream failure, if the request itself failed.
    """

    requested_skus: list[str] = field(default_factory=list)
    synced_skus: list[str] = field(default_factory=list)
    missing_skus: list[str] = field(default_factory=list)
    error: UpstreamUnavailableError | None = None

    @property
    def complete(self) -> bool:
        """Check if every requested SKU got platform prices."""
        return self.error is None and not self.missing_skus


# ============================================================================
# Price Copy
# ============================================================================


def _difference(gross: float | None, net: float | None) -> float | None:
    if gross is None or net is None:
        return None
    return round(gross - net, 2)


def sync_product_price(
    product: Product,
    record: BackendPriceRecord,
    refreshed_at: datetime | None = None,
) -> Product:
    """Copy platform prices onto a product.

    A special price that is not below the regular price is not a
    promotion; the special fields are zeroed in that case.

    Args:
        product: Product to update in place.
        record: Platform price record.
        refreshed_at: Refresh timestamp, defaults to now.

    Returns:
        The same product.
    """
    product.sgn = record.sgn

    product.price_incl_tax = record.final_price
    product.original_price_incl_tax = record.regular_price
    product.special_price_incl_tax = record.special_price

    product.price = record.final_price_net
    product.original_price = record.regular_price_net
    product.special_price = record.special_price_net

    product.price_tax = _difference(product.price_incl_tax, product.price)
    product.original_price_tax = _difference(
        product.original_price_incl_tax, product.original_price
    )
    product.special_price_tax = _difference(
        product.special_price_incl_tax, product.special_price
    )

    if (
        product.price_incl_tax is not None
        and product.original_price_incl_tax is not None
        and product.price_incl_tax >= product.original_price_incl_tax
    ):
        product.special_price = 0.0
        product.special_price_incl_tax = 0.0
        product.special_price_tax = 0.0

    product.price_is_current = True
    product.price_refreshed_at = refreshed_at or datetime.now(timezone.utc)
    return product


# ============================================================================
# Reconciler
# ============================================================================


class PriceReconciler:
    """Reconciles product prices with tax rules and the commerce platform.

    Example usage:
        reconciler = PriceReconciler(
            platform=get_platform_client(),
            options=PriceSyncOptions.from_settings(settings),
            tax_rules=SearchTaxRuleProvider(get_search_client()),
        )
        products = await reconciler.reconcile(products)
    """

    def __init__(
        self,
        platform: PlatformPriceSync,
        options: PriceSyncOptions | None = None,
        tax_rules: TaxRuleProvider | None = None,
        notifier: PriceUpdateNotifier | None = None,
    ) -> None:
        """Initialize reconciler.

        Args:
            platform: Source of authoritative prices.
            options: Tax and sync switches.
            tax_rules: Source of tax rules for client-side tax.
            notifier: Receives an event per product with new prices.
        """
        self.platform = platform
        self.options = options if options is not None else PriceSyncOptions()
        self.tax_rules = tax_rules
        self.notifier = notifier if notifier is not None else PriceUpdateNotifier()
        self.last_report: PriceSyncReport | None = None
        self._pending: set[asyncio.Task[list[Product]]] = set()

    @property
    def pending(self) -> int:
        """Number of platform syncs still running."""
        return len(self._pending)

    async def reconcile(self, products: Iterable[Product]) -> list[Product]:
        """Calculate taxes (unless done server side), then sync platform prices.

        Args:
            products: Products to update in place.

        Returns:
            The same products, in order.

        Raises:
            UpstreamUnavailableError: If tax rules cannot be loaded.
        """
        products = list(products)
        if self.options.tax_calculate_server_side:
            logger.debug("Taxes calculated server side, skipping")
        else:
            await self.calculate_taxes(products)
        return await self.sync_platform_prices(products)

    async def calculate_taxes(self, products: list[Product]) -> list[Product]:
        """Apply client-side tax to products and their children.

        Args:
            products: Products to update in place.

        Returns:
            The same products.
        """
        if self.tax_rules is None:
            logger.warning("No tax rule provider configured, skipping tax calculation")
            return products

        rules = await self.tax_rules.list_rules()
        for product in products:
            calculate_product_tax(
                product,
                rules,
                self.options.tax_country,
                self.options.tax_region,
            )
        return products

    async def sync_platform_prices(self, products: Iterable[Product]) -> list[Product]:
        """Override prices with the platform's, if enabled.

        When the options allow returning early, products come back marked as
        not current and the background sync updates them in place later.

        Args:
            products: Products to update in place.

        Returns:
            The same products.
        """
        products = list(products)
        if not self.options.always_sync_platform_prices_over:
            return products

        if self.options.clear_prices_before_platform_sync:
            for product in products:
                for item in product.iter_with_children():
                    item.clear_prices()

        task = self.sync_prices_eventually(products)

        if not self.options.returns_before_sync:
            return await task

        logger.info(
            "Returning products, the prices yet to come from backend",
            count=len(products),
        )
        for product in products:
            product.price_is_current = False
            product.price_refreshed_at = None
        return products

    def sync_prices_eventually(
        self, products: list[Product]
    ) -> "asyncio.Task[list[Product]]":
        """Start a platform price sync in the background.

        The returned task always runs to completion and resolves to the same
        product list once prices are copied.

        Args:
            products: Products to update in place.

        Returns:
            Task resolving to the products.
        """
        skus = self.collect_skus(products)
        task = asyncio.create_task(self._run_sync(products, skus))
        self._pending.add(task)
        task.add_done_callback(self._on_sync_done)
        return task

    async def drain(self) -> None:
        """Wait until all background syncs have finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    @staticmethod
    def collect_skus(products: list[Product]) -> list[str]:
        """Get the SKUs to sync.

        Children are only included when a single product is synced;
        listing pages sync parents only.

        Args:
            products: Products to sync.

        Returns:
            Unique SKUs in first-seen order.
        """
        skus = [p.sku for p in products if p.sku]
        if len(products) == 1:
            skus.extend(c.sku for c in products[0].configurable_children if c.sku)
        return list(dict.fromkeys(skus))

    def apply_records(
        self,
        products: list[Product],
        records: list[BackendPriceRecord],
        requested_skus: list[str],
    ) -> PriceSyncReport:
        """Copy platform records onto products and their children by id.

        Args:
            products: Products to update in place.
            records: Platform price records.
            requested_skus: SKUs that were requested.

        Returns:
            Report of synced and missing SKUs.
        """
        by_id = {str(record.id): record for record in records}
        requested = set(requested_skus)
        report = PriceSyncReport(requested_skus=list(requested_skus))
        refreshed_at = datetime.now(timezone.utc)

        for product in products:
            for item in product.iter_with_children():
                record = by_id.get(str(item.id)) if item.id is not None else None
                if record is None:
                    if item.sku in requested:
                        report.missing_skus.append(item.sku)
                    continue
                sync_product_price(item, record, refreshed_at)
                report.synced_skus.append(item.sku or str(item.id))
                self.notifier.publish(item)

        return report

    async def _run_sync(self, products: list[Product], skus: list[str]) -> list[Product]:
        logger.info("Starting platform prices sync", skus=skus)
        try:
            records = await self.platform.fetch_prices(skus)
        except UpstreamUnavailableError as e:
            logger.warning(
                "Platform price sync failed, keeping index prices",
                error=e.message,
                skus=skus,
            )
            self.last_report = PriceSyncReport(requested_skus=skus, error=e)
            return products

        report = self.apply_records(products, records, skus)
        if report.missing_skus:
            logger.info(
                "Platform price sync incomplete",
                missing_skus=report.missing_skus,
                synced=len(report.synced_skus),
            )
        self.last_report = report
        return products

    def _on_sync_done(self, task: "asyncio.Task[list[Product]]") -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Platform price sync crashed", error=str(error))


# Global reconciler instance
_price_reconciler: PriceReconciler | None = None


def get_price_reconciler() -> PriceReconciler:
    """Get the price reconciler singleton.

    Returns:
        PriceReconciler wired to the platform client and the tax rules index.
    """
    global _price_reconciler
    if _price_reconciler is None:
        from storefront_catalog.infrastructure.config import settings
        from storefront_catalog.infrastructure.platform_client import get_platform_client
        from storefront_catalog.infrastructure.providers import SearchTaxRuleProvider
        from storefront_catalog.infrastructure.search_client import get_search_client

        _price_reconciler = PriceReconciler(
            platform=get_platform_client(),
            options=PriceSyncOptions.from_settings(settings),
            tax_rules=SearchTaxRuleProvider(get_search_client()),
        )
    return _price_reconciler


def reset_price_reconciler() -> None:
    """Reset price reconciler instance (for testing)."""
    global _price_reconciler
    _price_reconciler = None
