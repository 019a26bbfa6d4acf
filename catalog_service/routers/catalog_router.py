"""
Catalog API router.

Serves normalised products, categories and locations as JSON.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from catalog_service.catalog.availability import availability_text, is_available
from catalog_service.catalog.categories import iter_categories
from catalog_service.dependencies import get_catalog_service
from catalog_service.services.catalog_service import CatalogService

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["catalog"])


class ListResponse(BaseModel):
    """List payload with its size."""

    success: bool = True
    count: int
    data: List[Any]


class CategoriesResponse(BaseModel):
    success: bool = True
    data: List[Any]
    parents: List[str] = Field(description="Ids of roots that have subcategories")
    standalone: List[str] = Field(description="Ids of roots without subcategories")


class CategoryAvailability(BaseModel):
    id: str
    name: str
    level: int
    is_available: bool
    next_available_time: Optional[datetime] = None
    reason: Optional[str] = None
    text: str


@router.get("/products", response_model=ListResponse, summary="List products")
async def list_products(
    location_id: Optional[str] = Query(None, description="Only products sold at this location"),
    refresh: bool = Query(False, description="Bypass the product cache"),
    service: CatalogService = Depends(get_catalog_service),
):
    products = await service.get_products(force_refresh=refresh, location_id=location_id)
    logger.info("Products served", count=len(products), location_id=location_id, refresh=refresh)
    return ListResponse(count=len(products), data=jsonable_encoder(products))


@router.get("/categories", response_model=CategoriesResponse, summary="Category tree")
async def list_categories(service: CatalogService = Depends(get_catalog_service)):
    split = await service.get_category_hierarchy()
    return CategoriesResponse(
        data=jsonable_encoder(split.all),
        parents=[category.id for category in split.parents],
        standalone=[category.id for category in split.standalone],
    )


@router.get(
    "/categories/availability",
    response_model=List[CategoryAvailability],
    summary="Availability of every category",
)
async def category_availability(
    at: Optional[datetime] = Query(None, description="Evaluation time (server time if omitted)"),
    service: CatalogService = Depends(get_catalog_service),
):
    now = at or datetime.now(timezone.utc).astimezone()
    categories = await service.get_categories()

    results = []
    for category in iter_categories(categories):
        result = is_available(category, now)
        results.append(
            CategoryAvailability(
                id=category.id,
                name=category.name,
                level=category.level,
                is_available=result.is_available,
                next_available_time=result.next_available_time,
                reason=result.reason,
                text=availability_text(category, now),
            )
        )
    return results


@router.get("/locations", response_model=ListResponse, summary="Active store locations")
async def list_locations(service: CatalogService = Depends(get_catalog_service)):
    locations = await service.get_locations()
    return ListResponse(count=len(locations), data=jsonable_encoder(locations))
