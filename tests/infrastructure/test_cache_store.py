"""Tests for product cache stores."""

import pytest

from storefront_catalog.infrastructure import cache_store
from storefront_catalog.infrastructure.cache_store import (
    InMemoryProductCache,
    SqlProductCache,
    get_product_cache,
    reset_product_cache,
)
from storefront_catalog.infrastructure.database import (
    create_engine,
    create_session_factory,
)


class TestInMemoryProductCache:
    """Tests for InMemoryProductCache."""

    @pytest.mark.asyncio
    async def test_set_and_get(self) -> None:
        """Stored documents are returned by key."""
        cache = InMemoryProductCache()

        await cache.set("sku/S1", {"sku": "S1", "price": 10.0})

        assert await cache.get("sku/S1") == {"sku": "S1", "price": 10.0}
        assert await cache.get("sku/S2") is None
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_documents_are_copied(self) -> None:
        """Callers never share documents with the cache."""
        cache = InMemoryProductCache()
        document = {"sku": "S1", "stock": {"qty": 1}}

        await cache.set("sku/S1", document)
        document["stock"]["qty"] = 5
        loaded = await cache.get("sku/S1")
        loaded["sku"] = "changed"

        assert await cache.get("sku/S1") == {"sku": "S1", "stock": {"qty": 1}}

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        """Clearing removes all documents."""
        cache = InMemoryProductCache()
        await cache.set("sku/S1", {"sku": "S1"})

        cache.clear()

        assert "sku/S1" not in cache


class TestSqlProductCache:
    """Tests for SqlProductCache."""

    @pytest.mark.asyncio
    async def test_set_get_and_replace(self, tmp_path) -> None:
        """Documents persist and are replaced by key."""
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
        cache = SqlProductCache(create_session_factory(engine), engine)
        try:
            assert await cache.get("sku/S1") is None

            await cache.set("sku/S1", {"sku": "S1", "priceInclTax": 11.0})
            await cache.set("sku/S1", {"sku": "S1", "priceInclTax": 13.2})

            assert await cache.get("sku/S1") == {"sku": "S1", "priceInclTax": 13.2}
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path) -> None:
        """A second cache over the same database sees earlier writes."""
        engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}")
        try:
            await SqlProductCache(create_session_factory(engine), engine).set(
                "id/42", {"id": 42}
            )

            reopened = SqlProductCache(create_session_factory(engine), engine)

            assert await reopened.get("id/42") == {"id": 42}
        finally:
            await engine.dispose()


class TestGetProductCache:
    """Tests for the cache singleton."""

    def test_memory_backend(self, monkeypatch) -> None:
        """The memory backend gives an in-memory cache."""
        monkeypatch.setattr(cache_store.settings, "cache_backend", "memory")
        reset_product_cache()
        try:
            cache = get_product_cache()

            assert isinstance(cache, InMemoryProductCache)
            assert get_product_cache() is cache
        finally:
            reset_product_cache()
