"""
Health check and cache administration router.
"""

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from catalog_service import __version__
from catalog_service.config import settings
from catalog_service.dependencies import get_catalog_service
from catalog_service.services.catalog_service import CatalogService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    timestamp: str
    service: str = settings.SERVICE_NAME
    version: str = __version__


class CacheStatsResponse(BaseModel):
    """Cache statistics response."""

    total: int
    valid: int
    expired: int
    max_size: int
    ttl: float
    hits: int
    misses: int
    evictions: int


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Basic health check endpoint - returns 200 if service is running",
)
async def health_check():
    """Always returns 200 OK while the process is serving requests."""
    return HealthResponse(status="healthy", timestamp=datetime.now(timezone.utc).isoformat())


@router.get("/cache/stats", response_model=CacheStatsResponse, summary="Catalog cache statistics")
async def cache_stats(service: CatalogService = Depends(get_catalog_service)):
    return CacheStatsResponse(**service.cache_stats())


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT, summary="Clear the catalog cache")
async def clear_cache(service: CatalogService = Depends(get_catalog_service)):
    service.clear_cache()
    logger.info("Catalog cache cleared via API")
