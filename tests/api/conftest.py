"""Shared fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from storefront_catalog.api.products import get_service
from storefront_catalog.infrastructure.cache_store import get_product_cache
from storefront_catalog.main import app


@pytest.fixture
def client(service, cache) -> TestClient:
    """Create test client backed by the in-process catalog fakes."""
    app.dependency_overrides[get_service] = lambda: service
    app.dependency_overrides[get_product_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()
