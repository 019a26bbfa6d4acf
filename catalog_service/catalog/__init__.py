"""Catalog normalisation: products, categories, availability, locations, units."""

from catalog_service.catalog.availability import (
    AvailabilityEvaluator,
    AvailabilityResult,
    availability_text,
    filter_available_categories,
    is_available,
)
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
from catalog_service.catalog.units import format_unit, map_measurement_units

__all__ = [
    "AvailabilityEvaluator",
    "AvailabilityResult",
    "CategoryHierarchyBuilder",
    "NavigationSplit",
    "availability_text",
    "filter_available_categories",
    "filter_products_by_location",
    "format_unit",
    "is_available",
    "iter_categories",
    "map_image_urls",
    "map_locations",
    "map_measurement_units",
    "map_modifier_lists",
    "map_products",
    "parse_categories",
    "split_navigation",
]
