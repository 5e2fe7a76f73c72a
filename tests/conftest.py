"""Shared fixtures: in-process fakes for the index, the platform and the cache."""

import asyncio
import copy
from collections.abc import Callable
from typing import Any

import pytest

from storefront_catalog.application.catalog_service import CatalogService
from storefront_catalog.application.notifications import PriceUpdateNotifier
from storefront_catalog.application.price_reconciler import (
    PriceReconciler,
    PriceSyncOptions,
)
from storefront_catalog.catalog.variants import VariantResolver
from storefront_catalog.infrastructure.cache_store import InMemoryProductCache
from storefront_catalog.infrastructure.platform_client import BackendPriceRecord
from storefront_catalog.infrastructure.providers import (
    SearchAttributeProvider,
    SearchCategoryProvider,
    SearchTaxRuleProvider,
)
from storefront_catalog.infrastructure.search_client import SearchResult


# ============================================================================
# Fakes
# ============================================================================


def _field_values(document: Any, path: list[str]) -> list[Any]:
    if not path:
        return [document]
    if isinstance(document, list):
        values = []
        for item in document:
            values.extend(_field_values(item, path))
        return values
    if not isinstance(document, dict) or path[0] not in document:
        return []
    return _field_values(document[path[0]], path[1:])


def _matches(document: dict[str, Any], query: dict[str, Any]) -> bool:
    body = query.get("query", {})
    if "match_all" in body:
        return True
    if "match" in body:
        ((field_name, value),) = body["match"].items()
        values = _field_values(document, field_name.split("."))
        return str(value) in [str(v) for v in values]
    if "bool" in body:
        ((field_name, accepted),) = body["bool"]["filter"]["terms"].items()
        values = _field_values(document, field_name.split("."))
        return any(str(v) in [str(a) for a in accepted] for v in values)
    return False


class FakeSearch:
    """Search index over in-memory documents grouped by entity type."""

    def __init__(self, documents: dict[str, list[dict[str, Any]]]) -> None:
        self.documents = documents
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.error: Exception | None = None

    def product_calls(self) -> int:
        return len([c for c in self.calls if c[0] == "product"])

    async def query(
        self,
        query: dict[str, Any],
        start: int = 0,
        size: int = 50,
        entity_type: str = "product",
        sort: str = "",
    ) -> SearchResult:
        self.calls.append((entity_type, query))
        if self.error is not None:
            raise self.error
        hits = [d for d in self.documents.get(entity_type, []) if _matches(d, query)]
        return SearchResult(
            items=copy.deepcopy(hits[start : start + size]),
            total=len(hits),
            start=start,
            size=size,
        )


class FakePlatform:
    """Commerce platform answering from a SKU to record mapping."""

    def __init__(self, records: dict[str, BackendPriceRecord] | None = None) -> None:
        self.records = records or {}
        self.calls: list[list[str]] = []
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None

    async def fetch_prices(self, skus: list[str]) -> list[BackendPriceRecord]:
        self.calls.append(list(skus))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return [self.records[sku] for sku in skus if sku in self.records]


# ============================================================================
# Catalog Data
# ============================================================================


TAX_RULES = [
    {
        "id": 1,
        "code": "Standard",
        "product_tax_class_ids": [2],
        "rates": [
            {"tax_country_id": "US", "tax_region_id": 0, "rate": 10.0, "code": "US-*"},
        ],
    }
]

ATTRIBUTES = [
    {
        "attribute_id": 93,
        "attribute_code": "color",
        "frontend_label": "Color",
        "options": [
            {"value": "5", "label": "Red"},
            {"value": "7", "label": "Blue"},
        ],
    }
]

CATEGORIES = [
    {"id": 1, "name": "Default", "slug": "default", "parent_id": None},
    {"id": 2, "name": "Women", "slug": "women", "parent_id": 1},
    {"id": 3, "name": "Tops", "slug": "women-tops", "parent_id": 2},
]


def _product_documents() -> list[dict[str, Any]]:
    return [
        {
            "id": 10,
            "sku": "A",
            "name": "Aurora Tee",
            "type_id": "configurable",
            "image": "/a.jpg",
            "tax_class_id": 2,
            "price": 20.0,
            "category": [{"category_id": 2, "name": "Women"}, {"category_id": 3, "name": "Tops"}],
            "configurable_options": [
                {
                    "attribute_id": 93,
                    "attribute_code": "color",
                    "label": "Color",
                    "values": [
                        {"value_index": 5, "label": "Red"},
                        {"value_index": 7, "label": "Blue"},
                    ],
                }
            ],
            "configurable_children": [
                {
                    "id": 11,
                    "sku": "A-1",
                    "name": "Aurora Tee Red",
                    "image": "/a-1.jpg",
                    "price": 20.0,
                    "custom_attributes": [{"attribute_code": "color", "value": "5"}],
                },
                {
                    "id": 12,
                    "sku": "A-2",
                    "name": "Aurora Tee Blue",
                    "price": 22.0,
                    "custom_attributes": [{"attribute_code": "color", "value": "7"}],
                },
            ],
        },
        {
            "id": 11,
            "sku": "A-1",
            "name": "Aurora Tee Red",
            "type_id": "simple",
            "tax_class_id": 2,
            "price": 20.0,
        },
        {"id": 31, "sku": "S1", "name": "Mug", "type_id": "simple", "tax_class_id": 2, "price": 10.0},
        {"id": 32, "sku": "S2", "name": "Plate", "type_id": "simple", "tax_class_id": 2, "price": 10.0},
        {
            "id": 30,
            "sku": "G",
            "name": "Breakfast Set",
            "type_id": "grouped",
            "product_links": [
                {
                    "sku": "G",
                    "link_type": "associated",
                    "linked_product_sku": "S1",
                    "linked_product_type": "simple",
                },
                {
                    "sku": "G",
                    "link_type": "associated",
                    "linked_product_sku": "S2",
                    "linked_product_type": "simple",
                },
                {
                    "sku": "G",
                    "link_type": "related",
                    "linked_product_sku": "A",
                    "linked_product_type": "configurable",
                },
            ],
        },
    ]


def make_record(
    product_id: int,
    sku: str,
    final_price: float,
    regular_price: float | None = None,
    special_price: float | None = None,
    sgn: str = "sig",
) -> BackendPriceRecord:
    """Build a platform record at a 10% tax rate."""

    def net(gross: float | None) -> float | None:
        return round(gross / 1.1, 2) if gross is not None else None

    regular_price = final_price if regular_price is None else regular_price
    return BackendPriceRecord(
        id=product_id,
        sku=sku,
        sgn=sgn,
        final_price=final_price,
        regular_price=regular_price,
        special_price=special_price,
        final_price_net=net(final_price),
        regular_price_net=net(regular_price),
        special_price_net=net(special_price),
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def record_factory() -> Callable[..., BackendPriceRecord]:
    """Factory for platform price records."""
    return make_record


@pytest.fixture
def fake_search() -> FakeSearch:
    """Search index holding products, tax rules, attributes and categories."""
    return FakeSearch(
        {
            "product": _product_documents(),
            "taxrule": copy.deepcopy(TAX_RULES),
            "attribute": copy.deepcopy(ATTRIBUTES),
            "category": copy.deepcopy(CATEGORIES),
        }
    )


@pytest.fixture
def fake_platform() -> FakePlatform:
    """Platform with records for every catalog product."""
    return FakePlatform(
        {
            "A": make_record(10, "A", 24.2),
            "A-1": make_record(11, "A-1", 22.0, 27.5, 22.0),
            "A-2": make_record(12, "A-2", 24.2),
            "S1": make_record(31, "S1", 13.2, sgn="s1-sig"),
            "S2": make_record(32, "S2", 13.2, sgn="s2-sig"),
        }
    )


@pytest.fixture
def cache() -> InMemoryProductCache:
    """Empty in-memory product cache."""
    return InMemoryProductCache()


@pytest.fixture
def notifier() -> PriceUpdateNotifier:
    """Price update notifier without listeners."""
    return PriceUpdateNotifier()


@pytest.fixture
def make_reconciler(
    fake_search: FakeSearch,
    fake_platform: FakePlatform,
    notifier: PriceUpdateNotifier,
) -> Callable[..., PriceReconciler]:
    """Factory for reconcilers with option overrides."""

    def factory(**overrides: Any) -> PriceReconciler:
        return PriceReconciler(
            platform=fake_platform,
            options=PriceSyncOptions(**overrides),
            tax_rules=SearchTaxRuleProvider(fake_search),
            notifier=notifier,
        )

    return factory


@pytest.fixture
def make_service(
    fake_search: FakeSearch,
    cache: InMemoryProductCache,
    make_reconciler: Callable[..., PriceReconciler],
) -> Callable[..., CatalogService]:
    """Factory for catalog services with reconciler option overrides."""

    def factory(resolver: VariantResolver | None = None, **overrides: Any) -> CatalogService:
        return CatalogService(
            search=fake_search,
            cache=cache,
            reconciler=make_reconciler(**overrides),
            resolver=resolver,
            attributes=SearchAttributeProvider(fake_search),
            categories=SearchCategoryProvider(fake_search),
        )

    return factory


@pytest.fixture
def service(make_service: Callable[..., CatalogService]) -> CatalogService:
    """Catalog service with client-side tax and platform sync disabled."""
    return make_service()
