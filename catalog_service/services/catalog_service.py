"""
Business logic service layer.

Orchestrates catalog reads: fetches raw catalog data through the API client,
normalises it, and serves it from an injected TTL cache.

Caching strategy:
1. Check the TTL cache (per-resource TTLs)
2. Fetch from the upstream proxy (retried with backoff)
3. Normalise and store

Concurrent misses on the same key are not coalesced; both callers fetch.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from catalog_service.cache.decorators import cached, make_cache_key
from catalog_service.cache.ttl_cache import TTLCache
from catalog_service.catalog.categories import (
    CategoryHierarchyBuilder,
    NavigationSplit,
    iter_categories,
    parse_categories,
    split_navigation,
)
from catalog_service.catalog.locations import map_locations
from catalog_service.catalog.mapper import (
    filter_products_by_location,
    map_image_urls,
    map_modifier_lists,
    map_products,
)
from catalog_service.catalog.units import map_measurement_units
from catalog_service.discounts.engine import DiscountEngine
from catalog_service.discounts.fallback import fallback_discounts
from catalog_service.discounts.mapper import map_discounts
from catalog_service.domain.entities import (
    Category,
    Discount,
    MeasurementUnit,
    ModifierList,
    Product,
    StoreLocation,
)
from catalog_service.domain.exceptions import LocationNotFoundException, UpstreamError
from catalog_service.infrastructure.catalog_api_client import CatalogApiClient

logger = logging.getLogger(__name__)

LOCATIONS_KEY = make_cache_key("locations")
MAIN_LOCATION_KEY = make_cache_key("main_location_id")
PRODUCTS_KEY = make_cache_key("products")
CATEGORIES_KEY = make_cache_key("categories")
MODIFIERS_KEY = make_cache_key("modifiers")
MEASUREMENT_UNITS_KEY = make_cache_key("measurement-units")
DISCOUNTS_KEY = make_cache_key("discounts")


@dataclass(frozen=True)
class ResourceTtls:
    """TTL in seconds per cached resource."""

    locations: float = 30 * 60
    products: float = 2 * 60
    categories: float = 60 * 60
    discounts: float = 15 * 60
    modifiers: float = 30 * 60


class CatalogService:
    """
    Catalog read service.

    The cache is constructed by the caller and injected so that tests and
    the app control its size, clock and durable backing.
    """

    def __init__(
        self,
        api_client: CatalogApiClient,
        cache: TTLCache,
        ttls: Optional[ResourceTtls] = None,
        hierarchy_builder: Optional[CategoryHierarchyBuilder] = None,
    ):
        """
        Initialize catalog service.

        Args:
            api_client: Upstream catalog API client
            cache: Cache shared by all catalog resources
            ttls: Per-resource TTLs (defaults if None)
            hierarchy_builder: Category forest builder
        """
        self.api_client = api_client
        self.cache = cache
        self.ttls = ttls or ResourceTtls()
        self.hierarchy_builder = hierarchy_builder or CategoryHierarchyBuilder()
        self.discount_engine = DiscountEngine(self.get_discounts)

        ttls = self.ttls
        self._cached_locations = cached(cache, key=LOCATIONS_KEY, ttl=ttls.locations)(
            self._load_locations
        )
        self._cached_main_location_id = cached(cache, key=MAIN_LOCATION_KEY, ttl=ttls.locations)(
            self._load_main_location_id
        )
        self._cached_modifiers = cached(cache, key=MODIFIERS_KEY, ttl=ttls.modifiers)(
            self._load_modifiers
        )
        self._cached_measurement_units = cached(
            cache, key=MEASUREMENT_UNITS_KEY, ttl=ttls.modifiers
        )(self._load_measurement_units)
        self._cached_categories = cached(cache, key=CATEGORIES_KEY, ttl=ttls.categories)(
            self._load_categories
        )
        self._cached_products = cached(cache, key=PRODUCTS_KEY, ttl=ttls.products)(
            self._load_products
        )
        self._cached_discounts = cached(cache, key=DISCOUNTS_KEY, ttl=ttls.discounts)(
            self._load_discounts
        )

    # Locations

    async def _load_locations(self) -> List[StoreLocation]:
        data = await self.api_client.fetch_locations()
        locations = map_locations(data)
        logger.info(f"Loaded {len(locations)} active locations")
        return locations

    async def get_locations(self) -> List[StoreLocation]:
        """Active store locations."""
        return await self._cached_locations()

    async def _load_main_location_id(self) -> str:
        data = await self.api_client.fetch_locations()
        locations = data.get("locations") or []
        if not locations or not locations[0].get("id"):
            raise LocationNotFoundException()
        return locations[0]["id"]

    async def get_main_location_id(self) -> str:
        """
        ID of the first location of the upstream account.

        Raises:
            LocationNotFoundException: If the account has no locations
        """
        return await self._cached_main_location_id()

    # Modifiers and measurement units

    async def _load_modifiers(self) -> List[ModifierList]:
        return map_modifier_lists(await self.api_client.fetch_modifiers())

    async def get_modifiers(self) -> List[ModifierList]:
        return await self._cached_modifiers()

    async def _load_measurement_units(self) -> List[MeasurementUnit]:
        try:
            return map_measurement_units(await self.api_client.fetch_measurement_units())
        except UpstreamError as e:
            # Accounts without custom units answer with an error.
            logger.warning(f"Measurement units unavailable, continuing without: {e.message}")
            return []

    async def get_measurement_units(self) -> List[MeasurementUnit]:
        return await self._cached_measurement_units()

    # Categories

    async def _load_categories(self) -> List[Category]:
        flat = parse_categories(await self.api_client.fetch_categories())
        forest = self.hierarchy_builder.build(flat)
        logger.info(f"Loaded {len(flat)} categories ({len(forest)} roots)")
        return forest

    async def get_categories(self) -> List[Category]:
        """Category forest, roots and siblings ordered by sort order."""
        return await self._cached_categories()

    async def get_category_hierarchy(self) -> NavigationSplit:
        return split_navigation(await self.get_categories())

    # Products

    async def _load_products(self) -> List[Product]:
        raw, modifier_lists, categories, units = await asyncio.gather(
            self.api_client.fetch_products(),
            self.get_modifiers(),
            self.get_categories(),
            self.get_measurement_units(),
        )

        category_names = {category.id: category.name for category in iter_categories(categories)}
        units_by_id = {unit.id: unit for unit in units if unit.id}

        products = map_products(
            raw.get("objects") or raw.get("items") or [],
            modifier_lists,
            category_names,
            map_image_urls(raw.get("related_objects")),
            units_by_id,
        )
        logger.info(f"Loaded {len(products)} products")
        return products

    async def get_products(
        self, force_refresh: bool = False, location_id: Optional[str] = None
    ) -> List[Product]:
        """
        All products, optionally limited to one location.

        The full product set is cached once; location filtering happens on
        the way out.

        Args:
            force_refresh: Drop the cached products first
            location_id: Only products sold at this location
        """
        if force_refresh:
            self.clear_products_cache()

        products = await self._cached_products()
        return filter_products_by_location(products, location_id)

    async def refresh_products(self, location_id: Optional[str] = None) -> List[Product]:
        return await self.get_products(force_refresh=True, location_id=location_id)

    # Discounts

    async def _load_discounts(self) -> List[Discount]:
        return map_discounts(await self.api_client.fetch_discounts())

    async def get_discounts(self) -> List[Discount]:
        """
        Discount catalog.

        If the upstream cannot be reached the built-in fallback set is
        returned (and not cached), so code entry keeps working.
        """
        try:
            return await self._cached_discounts()
        except UpstreamError as e:
            logger.warning(f"Discount catalog unavailable, using fallback discounts: {e.message}")
            return fallback_discounts()

    # Cache management

    def clear_products_cache(self) -> None:
        self.cache.delete(PRODUCTS_KEY)
        logger.info("Products cache cleared")

    def clear_categories_cache(self) -> None:
        self.cache.delete(CATEGORIES_KEY)
        logger.info("Categories cache cleared")

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Catalog cache cleared")

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    async def close(self) -> None:
        await self.api_client.close()
