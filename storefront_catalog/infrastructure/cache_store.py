"""Local product cache.

Stores product documents under entity keys (``"sku/<sku>"``) so that
single-product lookups can be answered without the search index.

Provides:
- ``InMemoryProductCache`` for tests and single-process use
- ``SqlProductCache`` persisting documents through SQLAlchemy
"""

import copy
from typing import Any, Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from storefront_catalog.infrastructure.config import settings
from storefront_catalog.infrastructure.database import (
    create_engine,
    create_session_factory,
    create_tables,
    session_scope,
)
from storefront_catalog.infrastructure.models import ProductCacheEntry

logger = structlog.get_logger()


class ProductCacheStore(Protocol):
    """Key/value store for product documents."""

    async def get(self, key: str) -> dict[str, Any] | None:
        """Get a document by key."""
        ...

    async def set(self, key: str, document: dict[str, Any]) -> None:
        """Store a document under key."""
        ...


class InMemoryProductCache:
    """In-memory product cache.

    Documents are copied on the way in and out so that callers never share
    mutable state with the cache.
    """

    def __init__(self) -> None:
        """Initialize empty cache."""
        self._documents: dict[str, dict[str, Any]] = {}

    async def get(self, key: str) -> dict[str, Any] | None:
        """Get a document by key.

        Args:
            key: Entity key.

        Returns:
            Copy of the stored document, or None.
        """
        document = self._documents.get(key)
        return copy.deepcopy(document) if document is not None else None

    async def set(self, key: str, document: dict[str, Any]) -> None:
        """Store a document.

        Args:
            key: Entity key.
            document: Product document.
        """
        self._documents[key] = copy.deepcopy(document)
        logger.debug("Stored product in cache", cache_key=key)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, key: object) -> bool:
        return key in self._documents

    def clear(self) -> None:
        """Remove all documents."""
        self._documents.clear()


class SqlProductCache:
    """Product cache persisted in the ``product_cache`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: AsyncEngine | None = None,
    ) -> None:
        """Initialize cache.

        Args:
            session_factory: Factory for database sessions.
            engine: Engine used to create the table on first use.
        """
        self._session_factory = session_factory
        self._engine = engine
        self._ready = engine is None

    async def _ensure_table(self) -> None:
        if not self._ready and self._engine is not None:
            await create_tables(self._engine)
            self._ready = True

    async def get(self, key: str) -> dict[str, Any] | None:
        """Get a document by key.

        Args:
            key: Entity key.

        Returns:
            Stored document, or None.
        """
        await self._ensure_table()
        async with session_scope(self._session_factory) as session:
            entry = await session.get(ProductCacheEntry, key)
            return dict(entry.document) if entry is not None else None

    async def set(self, key: str, document: dict[str, Any]) -> None:
        """Insert or replace a document.

        Args:
            key: Entity key.
            document: Product document.
        """
        await self._ensure_table()
        async with session_scope(self._session_factory) as session:
            await session.merge(ProductCacheEntry(key=key, document=document))
        logger.debug("Stored product in cache", cache_key=key)


# Global cache instance
_product_cache: ProductCacheStore | None = None


def get_product_cache() -> ProductCacheStore:
    """Get the configured product cache singleton.

    Returns:
        Product cache for the configured backend.
    """
    global _product_cache
    if _product_cache is None:
        if settings.cache_backend == "memory":
            _product_cache = InMemoryProductCache()
        else:
            engine = create_engine()
            _product_cache = SqlProductCache(create_session_factory(engine), engine)
    return _product_cache


def reset_product_cache() -> None:
    """Reset product cache instance (for testing)."""
    global _product_cache
    _product_cache = None
