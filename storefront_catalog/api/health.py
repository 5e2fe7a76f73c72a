"""Health check endpoints.

``/health`` reports liveness only. ``/ready`` round-trips the configured
product cache, so a missing or locked cache database keeps the instance out
of rotation.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from storefront_catalog.infrastructure.cache_store import (
    ProductCacheStore,
    get_product_cache,
)
from storefront_catalog.infrastructure.config import settings

logger = structlog.get_logger()

router = APIRouter()

READINESS_KEY = "health/ready"


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response schema."""

    status: str
    cache_backend: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="storefront-catalog",
        version=settings.api_version,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    cache: Annotated[ProductCacheStore, Depends(get_product_cache)],
) -> ReadinessResponse:
    """Check that the product cache answers reads.

    Args:
        cache: Configured product cache.

    Returns:
        Readiness status and the configured cache backend.

    Raises:
        HTTPException: 503 when the cache cannot be read.
    """
    try:
        await cache.get(READINESS_KEY)
    except Exception as e:
        logger.error("Product cache not ready", cache_backend=settings.cache_backend, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "error_code": "CACHE_UNAVAILABLE",
                "message": "Product cache is not available",
                "details": {"cache_backend": settings.cache_backend},
            },
        ) from e

    return ReadinessResponse(status="ready", cache_backend=settings.cache_backend)
