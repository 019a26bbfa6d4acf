"""
Built-in discounts served when the discount catalog cannot be fetched.
"""

from datetime import datetime, timezone
from typing import List

from catalog_service.domain.entities import Discount, DiscountType

_VALID_FROM = datetime(2024, 1, 1, tzinfo=timezone.utc)


def fallback_discounts() -> List[Discount]:
    return [
        Discount(
            id="welcome10",
            code="WELCOME10",
            name="10% Off Welcome Discount",
            description="Get 10% off your first order",
            type=DiscountType.PERCENTAGE,
            value=10,
            min_order_amount=2000,
            valid_from=_VALID_FROM,
        ),
        Discount(
            id="save5",
            code="SAVE5",
            name="$5 Off Order",
            description="Get $5 off orders over $25",
            type=DiscountType.FIXED_AMOUNT,
            value=500,
            min_order_amount=2500,
            valid_from=_VALID_FROM,
        ),
        Discount(
            id="student15",
            code="STUDENT15",
            name="15% Student Discount",
            description="Student discount - 15% off",
            type=DiscountType.PERCENTAGE,
            value=15,
            max_discount_amount=1000,
            valid_from=_VALID_FROM,
        ),
    ]
