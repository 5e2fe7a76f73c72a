"""Search index HTTP client.

Executes structured queries against the Elasticsearch-style catalog index
and returns the ``_source`` documents of the hits.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
import structlog

from storefront_catalog.domain.exceptions import UpstreamUnavailableError
from storefront_catalog.infrastructure.config import settings

logger = structlog.get_logger()


# ============================================================================
# Query Helpers
# ============================================================================


def match_query(field_name: str, value: Any) -> dict[str, Any]:
    """Build a query matching one field.

    Args:
        field_name: Document field (dotted paths allowed).
        value: Value to match.

    Returns:
        Query body.
    """
    return {"query": {"match": {field_name: value}}}


def terms_query(field_name: str, values: list[Any]) -> dict[str, Any]:
    """Build a query matching any of several values.

    Args:
        field_name: Document field.
        values: Accepted values.

    Returns:
        Query body.
    """
    return {"query": {"bool": {"filter": {"terms": {field_name: list(values)}}}}}


# ============================================================================
# Search Client
# ============================================================================


@dataclass
class SearchResult:
    """Page of documents returned by the index."""

    items: list[dict[str, Any]] = field(default_factory=list)
    total: int = 0
    start: int = 0
    size: int = 0


class CatalogSearch(Protocol):
    """Capability to query the search index."""

    async def query(
        self,
        query: dict[str, Any],
        start: int = 0,
        size: int = 50,
        entity_type: str = "product",
        sort: str = "",
    ) -> SearchResult:
        """Run a structured query."""
        ...


class SearchClient:
    """HTTP client for the catalog search index.

    Example usage:
        client = SearchClient("http://localhost:9200", "vue_storefront_catalog")
        result = await client.query(match_query("sku", "WS12"), size=1)
    """

    def __init__(
        self,
        base_url: str,
        index: str,
        timeout: float = 10.0,
    ) -> None:
        """Initialize search client.

        Args:
            base_url: Index base URL.
            index: Index name.
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.index = index
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def query(
        self,
        query: dict[str, Any],
        start: int = 0,
        size: int = 50,
        entity_type: str = "product",
        sort: str = "",
    ) -> SearchResult:
        """Run a structured query.

        Args:
            query: Query body (e.g. from ``match_query``).
            start: Offset of the first hit.
            size: Page size.
            entity_type: Document type ("product", "taxrule", ...).
            sort: Sort expression, empty for index order.

        Returns:
            Page of ``_source`` documents.

        Raises:
            UpstreamUnavailableError: On transport or HTTP errors.
        """
        params: dict[str, Any] = {"from": start, "size": size}
        if sort:
            params["sort"] = sort
        path = f"/{self.index}/{entity_type}/_search"

        try:
            client = await self._get_client()
            logger.debug(
                "Querying search index",
                path=path,
                start=start,
                size=size,
                sort=sort or None,
            )
            response = await client.post(path, json=query, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamUnavailableError("search", f"Request timed out: {path}") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailableError(
                "search",
                f"Search failed: {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise UpstreamUnavailableError("search", f"Request error: {e}") from e
        except ValueError as e:
            logger.error("Malformed search response", path=path, error=str(e))
            raise UpstreamUnavailableError("search", f"Invalid JSON response: {path}") from e

        try:
            hits = data.get("hits", {})
            total = hits.get("total", 0)
            if isinstance(total, dict):
                total = total.get("value", 0)
            return SearchResult(
                items=[hit.get("_source", {}) for hit in hits.get("hits", [])],
                total=int(total or 0),
                start=start,
                size=size,
            )
        except (AttributeError, TypeError, ValueError) as e:
            logger.error("Unexpected search response shape", path=path, error=str(e))
            raise UpstreamUnavailableError("search", f"Unexpected response: {path}") from e


# Global client instance
_search_client: SearchClient | None = None


def get_search_client() -> SearchClient:
    """Get the search client singleton.

    Returns:
        SearchClient configured from settings.
    """
    global _search_client
    if _search_client is None:
        _search_client = SearchClient(
            base_url=settings.search_url,
            index=settings.search_index,
            timeout=settings.request_timeout,
        )
    return _search_client
