"""Catalog metadata providers backed by the search index.

Tax rules, attributes and categories live in the same index as products,
under their own entity types.
"""

from typing import Any, Protocol

import structlog
from pydantic import BaseModel, ValidationError

from storefront_catalog.catalog.models import Attribute, Category
from storefront_catalog.catalog.tax import TaxRule
from storefront_catalog.domain.exceptions import UpstreamUnavailableError
from storefront_catalog.infrastructure.search_client import (
    CatalogSearch,
    match_query,
    terms_query,
)

logger = structlog.get_logger()

MATCH_ALL: dict[str, Any] = {"query": {"match_all": {}}}


def _validate_all(
    model: type[BaseModel], docs: list[dict[str, Any]], entity_type: str
) -> list[Any]:
    """Validate index documents, failing the whole batch on a malformed one."""
    try:
        return [model.model_validate(doc) for doc in docs]
    except ValidationError as e:
        logger.error("Malformed index document", entity_type=entity_type, error=str(e))
        raise UpstreamUnavailableError(
            "search", f"Malformed {entity_type} document"
        ) from e


# ============================================================================
# Capabilities
# ============================================================================


class TaxRuleProvider(Protocol):
    """Capability to list tax rules."""

    async def list_rules(self) -> list[TaxRule]:
        """List all tax rules."""
        ...


class AttributeProvider(Protocol):
    """Capability to load attribute metadata."""

    async def list_by_ids(self, attribute_ids: list[Any]) -> list[Attribute]:
        """Load attributes by id."""
        ...


class CategoryProvider(Protocol):
    """Capability to load categories."""

    async def get_by_id(self, category_id: Any) -> Category | None:
        """Load one category."""
        ...

    async def path(self, category: Category) -> list[Category]:
        """Get the path from the root category down to ``category``."""
        ...


# ============================================================================
# Search-backed implementations
# ============================================================================


class SearchTaxRuleProvider:
    """Tax rules from the ``taxrule`` entity type."""

    def __init__(self, search: CatalogSearch, page_size: int = 500) -> None:
        self._search = search
        self._page_size = page_size

    async def list_rules(self) -> list[TaxRule]:
        """List all tax rules.

        Returns:
            Tax rules.

        Raises:
            UpstreamUnavailableError: When the index fails or returns a
                malformed rule.
        """
        result = await self._search.query(
            MATCH_ALL, start=0, size=self._page_size, entity_type="taxrule"
        )
        return _validate_all(TaxRule, result.items, "taxrule")


class SearchAttributeProvider:
    """Attribute metadata from the ``attribute`` entity type."""

    def __init__(self, search: CatalogSearch) -> None:
        self._search = search

    async def list_by_ids(self, attribute_ids: list[Any]) -> list[Attribute]:
        """Load attributes by id.

        Args:
            attribute_ids: Attribute ids.

        Returns:
            Attributes found in the index.
        """
        if not attribute_ids:
            return []
        result = await self._search.query(
            terms_query("attribute_id", attribute_ids),
            start=0,
            size=len(attribute_ids),
            entity_type="attribute",
        )
        return _validate_all(Attribute, result.items, "attribute")


class SearchCategoryProvider:
    """Categories from the ``category`` entity type."""

    def __init__(self, search: CatalogSearch, max_depth: int = 10) -> None:
        self._search = search
        self._max_depth = max_depth

    async def get_by_id(self, category_id: Any) -> Category | None:
        """Load one category.

        Args:
            category_id: Category id.

        Returns:
            Category, or None when unknown.
        """
        result = await self._search.query(
            match_query("id", category_id), start=0, size=1, entity_type="category"
        )
        if not result.items:
            return None
        return _validate_all(Category, result.items[:1], "category")[0]

    async def path(self, category: Category) -> list[Category]:
        """Walk parent links up to the root.

        Args:
            category: Leaf category.

        Returns:
            Categories from the root down to ``category``.
        """
        path = [category]
        current = category
        while current.parent_id not in (None, 0, "0") and len(path) < self._max_depth:
            parent = await self.get_by_id(current.parent_id)
            if parent is None:
                break
            path.append(parent)
            current = parent
        path.reverse()
        return path
