"""Catalog service.

Resolves products for display: cache first for single lookups, the search
index for lists, then price reconciliation and variant selection. Keeps the
per-instance catalog state (current, original, parent, ...).
"""

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import ValidationError

from storefront_catalog.application.price_reconciler import PriceReconciler
from storefront_catalog.catalog.keys import entity_key_name, product_cache_key
from storefront_catalog.catalog.models import (
    BreadcrumbRoute,
    Breadcrumbs,
    Category,
    Product,
)
from storefront_catalog.catalog.variants import VariantResolver
from storefront_catalog.domain.events import ProductPriceUpdated
from storefront_catalog.domain.exceptions import (
    DomainError,
    InvalidArgumentError,
    ProductNotFoundError,
    UpstreamUnavailableError,
)
from storefront_catalog.infrastructure.cache_store import ProductCacheStore
from storefront_catalog.infrastructure.providers import (
    AttributeProvider,
    CategoryProvider,
)
from storefront_catalog.infrastructure.search_client import (
    CatalogSearch,
    match_query,
)

logger = structlog.get_logger()


# ============================================================================
# Result and State Types
# ============================================================================


@dataclass
class ProductListResult:
    """Result of a product list query.

    Attributes:
        items: Reconciled products of the page.
        total: Total hits reported by the index.
        start: Offset of the page.
        size: Requested page size.
        error: Upstream failure; ``items`` is empty when set.
    """

    items: list[Product] = field(default_factory=list)
    total: int = 0
    start: int = 0
    size: int = 0
    error: DomainError | None = None

    @property
    def success(self) -> bool:
        """Check if the query succeeded."""
        return self.error is None


def _default_options() -> dict[str, list[dict[str, Any]]]:
    return {"color": [], "size": []}


@dataclass
class CatalogState:
    """Observable catalog state of one service instance.

    Attributes:
        current: Product as displayed, the selected variant overlaid on
            ``original``.
        original: Product as loaded.
        parent: Configurable parent of a simple ``original``.
        current_configuration: Attribute code to ``{attribute_code, id, label}``.
        current_options: Lower-cased option label to ``[{label, id}]``.
        breadcrumbs: Breadcrumb routes of the product page.
        related: Relation key to product list.
        list: Last committed list page.
    """

    current: Product | None = None
    original: Product | None = None
    parent: Product | None = None
    current_configuration: dict[str, dict[str, Any]] = field(default_factory=dict)
    current_options: dict[str, list[dict[str, Any]]] = field(
        default_factory=_default_options
    )
    breadcrumbs: Breadcrumbs = field(default_factory=Breadcrumbs)
    related: dict[str, list[Product]] = field(default_factory=dict)
    list: ProductListResult | None = None


def breadcrumb_routes(path: list[Category]) -> list[BreadcrumbRoute]:
    """Build breadcrumb routes for a category path.

    Args:
        path: Categories from the root down.

    Returns:
        One route per category.
    """
    return [
        BreadcrumbRoute(name=category.name, route_link=f"/c/{category.slug or category.id}")
        for category in path
    ]


# ============================================================================
# Catalog Service
# ============================================================================


class CatalogService:
    """Service for product retrieval and catalog state.

    Example usage:
        service = CatalogService(search, cache, reconciler)
        product = await service.single({"sku": "WS12", "childSku": "WS12-XS-Red"})
        service.state.current  # the selected variant over the product
    """

    def __init__(
        self,
        search: CatalogSearch,
        cache: ProductCacheStore,
        reconciler: PriceReconciler,
        resolver: VariantResolver | None = None,
        attributes: AttributeProvider | None = None,
        categories: CategoryProvider | None = None,
        state: CatalogState | None = None,
    ) -> None:
        """Initialize service.

        Args:
            search: Search index client.
            cache: Local product cache.
            reconciler: Price reconciler; its notifier keeps ``current`` fresh.
            resolver: Variant resolver.
            attributes: Attribute metadata for ``setup_variants``.
            categories: Category lookup for ``setup_breadcrumbs``.
            state: Initial state.
        """
        self._search = search
        self._cache = cache
        self._reconciler = reconciler
        self._resolver = resolver if resolver is not None else VariantResolver()
        self._attributes = attributes
        self._categories = categories
        self.state = state if state is not None else CatalogState()
        self._unsubscribe = reconciler.notifier.subscribe(self._on_price_updated)

    def close(self) -> None:
        """Stop following price updates."""
        self._unsubscribe()

    def _on_price_updated(self, event: ProductPriceUpdated, product: Product) -> None:
        current = self.state.current
        if current is None or current is product or not event.sku:
            return
        if current.sku == event.sku:
            current.copy_prices_from(product)
            logger.debug("Refreshed current product prices", sku=event.sku)

    # ------------------------------------------------------------------------
    # Single product
    # ------------------------------------------------------------------------

    async def single(
        self,
        options: Mapping[str, Any],
        key: str = "sku",
        set_current_product: bool = True,
        select_default_variant: bool = True,
    ) -> Product:
        """Load one product, cache first.

        Args:
            options: Lookup options; ``options[key]`` identifies the product,
                ``options["childSku"]`` optionally selects a variant.
            key: Identifying field.
            set_current_product: Commit the product as original/current.
            select_default_variant: Commit the resolved variant as current.

        Returns:
            The loaded product.

        Raises:
            InvalidArgumentError: If the key value is empty.
            ProductNotFoundError: If neither cache nor index has the product.
            UpstreamUnavailableError: If the index lookup failed.
        """
        value = options.get(key)
        if value is None or str(value).strip() == "":
            raise InvalidArgumentError(key)

        cache_key = entity_key_name(key, value)
        started = time.perf_counter()
        document = None
        try:
            document = await self._cache.get(cache_key)
        except Exception as e:
            logger.error("Cannot read product from cache", cache_key=cache_key, error=str(e))

        if document is not None:
            logger.debug(
                "Product loaded from cache",
                cache_key=cache_key,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            product = Product.from_document(document)
            await self._reconciler.sync_platform_prices([product])
            return self._setup_product(
                product, options, set_current_product, select_default_variant
            )

        logger.debug("Product cache miss, querying index", cache_key=cache_key)
        result = await self.list(
            match_query(key, value),
            start=0,
            size=1,
            prefetch_group_products=False,
            update_state=False,
        )
        if result.error is not None:
            raise result.error
        if not result.items:
            raise ProductNotFoundError(key, value)
        return self._setup_product(
            result.items[0], options, set_current_product, select_default_variant
        )

    def _setup_product(
        self,
        product: Product,
        options: Mapping[str, Any],
        set_current_product: bool,
        select_default_variant: bool,
    ) -> Product:
        if set_current_product:
            self.set_original(product)
        if product.type_id == "configurable" and product.has_configurable_children:
            self.configure(
                product,
                {"sku": options.get("childSku")},
                select_default_variant=select_default_variant and set_current_product,
            )
        elif set_current_product:
            self.set_current(product)
        return product

    # ------------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------------

    def configure(
        self,
        product: Product | None = None,
        configuration: Mapping[str, Any] | None = None,
        select_default_variant: bool = True,
    ) -> Product:
        """Select the variant matching a configuration.

        Args:
            product: Product to configure; defaults to ``current``.
            configuration: Attribute code to selection mapping.
            select_default_variant: Commit the variant as current.

        Returns:
            The selected variant, or the product when it has no children.

        Raises:
            InvalidArgumentError: If there is no product to configure.
        """
        if product is None:
            product = self.state.current
        if product is None:
            raise InvalidArgumentError("product")

        variant = self._resolver.resolve(product, configuration)
        if select_default_variant and product.has_configurable_children:
            self.set_current(variant)
        return variant

    def set_current(self, variant: Any) -> None:
        """Commit a variant over a copy of ``original`` as ``current``.

        Args:
            variant: Product to overlay.
        """
        if not isinstance(variant, Product):
            logger.debug("Unable to update current product", value_type=type(variant).__name__)
            return
        original = self.state.original
        if original is None:
            self.state.current = variant.model_copy(deep=True)
        else:
            self.state.current = original.merged_with(variant)

    def set_original(self, product: Any) -> None:
        """Commit a product as ``original``.

        Args:
            product: Loaded product.
        """
        if not isinstance(product, Product):
            logger.debug("Unable to update original product", value_type=type(product).__name__)
            return
        self.state.original = product

    def reset(self) -> None:
        """Restore ``current`` from ``original`` and clear the selection."""
        original = self.state.original
        if original is not None:
            self.state.current = original.model_copy(deep=True)
        else:
            self.state.current = Product()
        self.state.current_configuration = {}
        self.state.current_options = _default_options()
        self.state.parent = None

    def related(self, items: list[Product], key: str = "related-products") -> None:
        """Store related products under a key.

        Args:
            items: Related products.
            key: Relation key.
        """
        self.state.related[key] = items

    # ------------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------------

    async def setup_associated(self, product: Product) -> list[Product]:
        """Load the products linked to a grouped product and sum their prices.

        Args:
            product: Grouped product to update in place.

        Returns:
            The linked products that could be loaded.
        """
        if product.type_id != "grouped":
            return []

        product.price = 0
        product.price_incl_tax = 0
        product.price_tax = 0

        links = [
            link
            for link in product.product_links
            if link.link_type == "associated" and link.linked_product_type == "simple"
        ]

        async def load(link):
            logger.debug(
                "Prefetching grouped product link",
                sku=product.sku,
                linked_sku=link.target_sku,
            )
            associated = await self.single(
                {"sku": link.target_sku},
                set_current_product=False,
                select_default_variant=False,
            )
            associated.qty = 1
            link.product = associated
            product.price += associated.price or 0
            product.price_incl_tax += associated.price_incl_tax or 0
            product.price_tax += associated.price_tax or 0
            return associated

        outcomes = await asyncio.gather(*(load(link) for link in links), return_exceptions=True)

        loaded = []
        for link, outcome in zip(links, outcomes):
            if isinstance(outcome, Exception):
                logger.error(
                    "Cannot prefetch grouped product link",
                    sku=product.sku,
                    linked_sku=link.target_sku,
                    error=str(outcome),
                )
            else:
                loaded.append(outcome)
        return loaded

    async def check_configurable_parent(self, product: Product) -> Product | None:
        """Find the configurable parent of a simple product.

        Args:
            product: Simple product.

        Returns:
            The parent, also stored as ``state.parent``, or None.
        """
        if product.type_id != "simple" or not product.sku:
            return None

        result = await self.list(
            match_query("configurable_children.sku", product.sku),
            start=0,
            size=1,
            update_state=False,
        )
        if result.error is not None:
            logger.error(
                "Cannot load configurable parent",
                sku=product.sku,
                error=result.error.message,
            )
            return None
        if not result.items:
            return None

        self.state.parent = result.items[0]
        return self.state.parent

    async def setup_variants(self, product: Product) -> None:
        """Rebuild the available options and the current configuration.

        Args:
            product: Configurable product.
        """
        if product.type_id != "configurable" or self._attributes is None:
            return

        attribute_ids = [
            option.attribute_id
            for option in product.configurable_options
            if option.attribute_id is not None
        ]
        try:
            attributes = await self._attributes.list_by_ids(attribute_ids)
        except DomainError as e:
            logger.error("Cannot load product attributes", sku=product.sku, error=e.message)
            return

        by_id = {str(attribute.attribute_id): attribute for attribute in attributes}

        for option in product.configurable_options:
            attribute = by_id.get(str(option.attribute_id))
            if attribute is None:
                continue
            entries = self.state.current_options.setdefault(option.label.lower(), [])
            for value in option.values:
                label = attribute.option_label(value.value_index)
                if not label.strip():
                    continue
                if any(str(entry["id"]) == str(value.value_index) for entry in entries):
                    continue
                entries.append({"label": label, "id": value.value_index})

        selected = self.state.current
        if selected is None:
            return
        for option in product.configurable_options:
            attribute = by_id.get(str(option.attribute_id))
            if attribute is None:
                continue
            selected_attr = next(
                (
                    attr
                    for attr in selected.custom_attributes
                    if attr.attribute_code == attribute.attribute_code
                ),
                None,
            )
            if selected_attr is None:
                continue
            self.state.current_configuration[attribute.attribute_code] = {
                "attribute_code": attribute.attribute_code,
                "id": selected_attr.value,
                "label": attribute.option_label(selected_attr.value),
            }

    async def setup_breadcrumbs(
        self,
        product: Product,
        current_path: list[Category] | None = None,
    ) -> Breadcrumbs:
        """Build the breadcrumbs of a product page.

        Args:
            product: Displayed product.
            current_path: Known category path, root first.

        Returns:
            The breadcrumbs, also stored in the state.
        """
        path = list(current_path or [])
        if not path and product.category and self._categories is not None:
            try:
                for ref in reversed(product.category):
                    category = await self._categories.get_by_id(ref.category_id)
                    if category is not None:
                        path = await self._categories.path(category)
                        break
            except DomainError as e:
                logger.error("Cannot load product categories", sku=product.sku, error=e.message)

        self.state.breadcrumbs = Breadcrumbs(name=product.name, routes=breadcrumb_routes(path))
        return self.state.breadcrumbs

    # ------------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------------

    async def _store_in_cache(self, products: list[Product], cache_by_key: str) -> None:
        writes = []
        keys = []
        for product in products:
            document = product.to_document()
            cache_key = product_cache_key(document, cache_by_key)
            if cache_key is None:
                logger.warning("Product has no cache key, not cached", sku=product.sku)
                continue
            keys.append(cache_key)
            writes.append(self._cache.set(cache_key, document))

        outcomes = await asyncio.gather(*writes, return_exceptions=True)
        for cache_key, outcome in zip(keys, outcomes):
            if isinstance(outcome, Exception):
                logger.error("Cannot store cache", cache_key=cache_key, error=str(outcome))

    async def list(
        self,
        query: dict[str, Any],
        start: int = 0,
        size: int = 50,
        entity_type: str = "product",
        sort: str = "",
        cache_by_key: str = "sku",
        prefetch_group_products: bool = True,
        update_state: bool = True,
    ) -> ProductListResult:
        """Query the index and reconcile the page.

        Args:
            query: Search query body.
            start: Page offset.
            size: Page size.
            entity_type: Index entity type.
            sort: Sort expression.
            cache_by_key: Field used for cache keys.
            prefetch_group_products: Load links of grouped products.
            update_state: Commit the page as ``state.list``.

        Returns:
            Page of products; upstream failures are carried in ``error``.
        """
        try:
            search_result = await self._search.query(
                query, start=start, size=size, entity_type=entity_type, sort=sort
            )
            products = [Product.from_document(item) for item in search_result.items]
            await self._reconciler.reconcile(products)
        except DomainError as e:
            logger.error("Product list failed", error=e.message, entity_type=entity_type)
            return ProductListResult(start=start, size=size, error=e)
        except ValidationError as e:
            logger.error("Malformed product document", error=str(e), entity_type=entity_type)
            error = UpstreamUnavailableError("search", f"Malformed {entity_type} document")
            return ProductListResult(start=start, size=size, error=error)

        await self._store_in_cache(products, cache_by_key)

        if prefetch_group_products:
            for product in products:
                if product.type_id == "grouped":
                    await self.setup_associated(product)

        result = ProductListResult(
            items=products,
            total=search_result.total,
            start=start,
            size=size,
        )
        if update_state:
            self.state.list = result
        return result


def get_catalog_service(state: CatalogState | None = None) -> CatalogService:
    """Create a catalog service over the process-wide clients.

    Each caller gets its own state; clients, cache and reconciler are shared.

    Args:
        state: Initial state.

    Returns:
        CatalogService instance.
    """
    from storefront_catalog.application.price_reconciler import get_price_reconciler
    from storefront_catalog.infrastructure.cache_store import get_product_cache
    from storefront_catalog.infrastructure.config import settings
    from storefront_catalog.infrastructure.providers import (
        SearchAttributeProvider,
        SearchCategoryProvider,
    )
    from storefront_catalog.infrastructure.search_client import get_search_client

    search = get_search_client()
    return CatalogService(
        search=search,
        cache=get_product_cache(),
        reconciler=get_price_reconciler(),
        resolver=VariantResolver(is_online=lambda: not settings.offline_mode),
        attributes=SearchAttributeProvider(search),
        categories=SearchCategoryProvider(search),
        state=state,
    )
