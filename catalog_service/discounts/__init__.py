"""Discount catalog mapping and validation."""

from catalog_service.discounts.engine import (
    DiscountEngine,
    calculate_applied_amount,
    calculate_total_discount,
)
from catalog_service.discounts.fallback import fallback_discounts
from catalog_service.discounts.mapper import map_discounts

__all__ = [
    "DiscountEngine",
    "calculate_applied_amount",
    "calculate_total_discount",
    "fallback_discounts",
    "map_discounts",
]
