"""
Domain entities for the storefront catalog.

Core business objects representing products, categories, discounts and
locations. These entities are framework-agnostic value objects: they are
built once by the mapping layer and replaced wholesale on refetch.

All money amounts are integers in minor currency units (cents).
"""

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Dict, Optional, Tuple


UNCATEGORIZED_ID = "uncategorized"
UNCATEGORIZED_NAME = "Uncategorized"


class DayOfWeek(str, Enum):
    """Days of the week as used by availability periods and discount rules."""

    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def parse(cls, value: str) -> "DayOfWeek":
        """
        Parse a full or three-letter day name (case-insensitive).

        Args:
            value: Day name such as "monday", "MON" or "Sunday"

        Returns:
            Matching DayOfWeek

        Raises:
            ValueError: If the value is not a recognised day name
        """
        normalized = value.strip().upper()
        for day in cls:
            if normalized in (day.value, day.value[:3]):
                return day
        raise ValueError(f"Invalid day of week: {value}")

    @classmethod
    def of(cls, moment: datetime) -> "DayOfWeek":
        """Return the weekday of a datetime."""
        return list(cls)[moment.weekday()]


class VariantKind(str, Enum):
    """Selection mode of a product variant."""

    SINGLE = "single"
    MULTIPLE = "multiple"


class DiscountType(str, Enum):
    """Kinds of discounts understood by the discount engine."""

    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    AUTOMATIC = "automatic"
    OTHER = "other"


class UnitType(str, Enum):
    """Physical dimension of a measurement unit."""

    WEIGHT = "weight"
    VOLUME = "volume"
    LENGTH = "length"
    AREA = "area"
    GENERIC = "generic"


@dataclass(frozen=True)
class MeasurementUnit:
    """Unit a product or option is sold by (e.g. 8 oz, 1 lb)."""

    abbreviation: str
    name: str
    type: UnitType = UnitType.GENERIC
    id: Optional[str] = None
    precision: int = 0


@dataclass(frozen=True)
class ProductVariantOption:
    """
    One selectable option of a variant.

    ``price_delta`` is None when choosing the option costs nothing extra,
    which is distinct from an explicitly priced option.
    """

    id: str
    name: str
    price_delta: Optional[int] = None
    measurement_unit: Optional[MeasurementUnit] = None
    unit_quantity: float = 1
    on_by_default: bool = False


@dataclass(frozen=True)
class ProductVariant:
    """A choice offered on a product (size, toppings, ...)."""

    id: str
    name: str
    kind: VariantKind
    options: Tuple[ProductVariantOption, ...] = ()
    min_selected: int = 0
    max_selected: Optional[int] = None

    @property
    def is_required(self) -> bool:
        return self.min_selected > 0


@dataclass(frozen=True)
class Product:
    """Normalized catalog product."""

    id: str
    name: str
    price: int
    category_ids: Tuple[str, ...]
    category_names: Tuple[str, ...] = ()
    description: str = ""
    variants: Tuple[ProductVariant, ...] = ()
    images: Tuple[str, ...] = ()
    ingredients: Tuple[str, ...] = ()
    measurement_unit: Optional[MeasurementUnit] = None
    unit_quantity: float = 1
    is_active: bool = True
    stockable: bool = True
    sellable: bool = True
    variation_id: Optional[str] = None
    present_at_all_locations: Optional[bool] = None
    present_at_location_ids: Tuple[str, ...] = ()

    @property
    def category_id(self) -> str:
        """Primary category id."""
        return self.category_ids[0] if self.category_ids else UNCATEGORIZED_ID


@dataclass(frozen=True)
class AvailabilityPeriod:
    """Recurring weekly window during which a category can be ordered."""

    start_time: time
    end_time: time
    day_of_week: Optional[DayOfWeek] = None
    id: Optional[str] = None

    @property
    def crosses_midnight(self) -> bool:
        return self.end_time < self.start_time


@dataclass(frozen=True)
class Category:
    """Node of the category forest."""

    id: str
    name: str
    description: str = ""
    parent_id: Optional[str] = None
    level: int = 0
    sort_order: int = 0
    subcategories: Tuple["Category", ...] = ()
    availability_periods: Tuple[AvailabilityPeriod, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class DiscountConditions:
    """Optional structured conditions a cart must satisfy."""

    minimum_quantity: Optional[int] = None
    applicable_item_ids: Tuple[str, ...] = ()
    applicable_category_ids: Tuple[str, ...] = ()
    days_of_week: Tuple[DayOfWeek, ...] = ()
    start_time: Optional[time] = None
    end_time: Optional[time] = None


@dataclass(frozen=True)
class Discount:
    """
    Discount definition.

    ``value`` is a percentage for PERCENTAGE discounts and an amount in
    minor units for FIXED_AMOUNT discounts.
    """

    id: str
    name: str
    type: DiscountType
    value: float
    code: Optional[str] = None
    description: str = ""
    min_order_amount: Optional[int] = None
    max_discount_amount: Optional[int] = None
    valid_from: Optional[datetime] = None
    valid_until: Optional[datetime] = None
    is_active: bool = True
    scope: str = "ORDER"
    conditions: Optional[DiscountConditions] = None


@dataclass(frozen=True)
class AppliedDiscount:
    """A discount together with the amount it takes off one cart."""

    discount: Discount
    applied_amount: int
    applied_to: str = "order"


@dataclass(frozen=True)
class DiscountValidationResult:
    """Outcome of validating a discount code against a cart."""

    is_valid: bool
    discount: Optional[Discount] = None
    applied_amount: Optional[int] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class CartItem:
    """The slice of a cart line the discount and pricing rules look at."""

    product_id: str
    quantity: int
    category_ids: Tuple[str, ...] = ()
    unit_price: int = 0


@dataclass(frozen=True)
class OrderLine:
    """
    A product in the cart together with the options the shopper picked.

    ``selections`` maps a variant id to one option name (single-select) or a
    tuple of option names (multi-select).
    """

    product: Product
    quantity: int
    selections: Dict[str, object] = field(default_factory=dict)
    special_instructions: str = ""


@dataclass(frozen=True)
class OpeningHours:
    """Opening hours of one weekday (HH:MM strings)."""

    open: str = ""
    close: str = ""
    closed: bool = True


@dataclass(frozen=True)
class StoreLocation:
    """Pickup location record."""

    id: str
    name: str
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    phone: str = ""
    email: str = ""
    hours: Dict[str, OpeningHours] = field(default_factory=dict)
    coordinates: Optional[Tuple[float, float]] = None
    features: Tuple[str, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class ModifierOption:
    """Single modifier inside an upstream modifier list."""

    id: str
    name: str
    price: Optional[int] = None
    ordinal: int = 0
    on_by_default: bool = False


@dataclass(frozen=True)
class ModifierList:
    """Upstream modifier list, normalized."""

    id: str
    name: str
    selection_type: str = "SINGLE"
    min_selected: int = 0
    max_selected: Optional[int] = None
    enabled: bool = True
    ordinal: int = 0
    modifiers: Tuple[ModifierOption, ...] = ()
