"""
Discount validation engine.

Validates a shopper-entered code against the cart in a fixed order of
checks and computes the amount it takes off. Business outcomes (unknown
code, expired, unmet condition) come back as DiscountValidationResult and
are never raised.
"""

import logging
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple

from catalog_service import metrics
from catalog_service.domain.entities import (
    AppliedDiscount,
    CartItem,
    DayOfWeek,
    Discount,
    DiscountConditions,
    DiscountType,
    DiscountValidationResult,
)
from catalog_service.pricing import format_price

logger = logging.getLogger(__name__)

DiscountProvider = Callable[[], Awaitable[Sequence[Discount]]]
Clock = Callable[[], datetime]

INVALID_CODE = "Invalid discount code"
EXPIRED = "Discount code has expired"
VALIDATION_FAILED = "Failed to validate discount code"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Treat a naive datetime as UTC; aware values pass through."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def calculate_applied_amount(discount: Discount, subtotal: int) -> int:
    """
    Amount a discount takes off a subtotal (minor units).

    Percentages round half up and respect ``max_discount_amount``; fixed
    amounts never exceed the subtotal. Other types apply nothing.
    """
    if discount.type == DiscountType.PERCENTAGE:
        amount = round_half_up(Decimal(subtotal) * Decimal(str(discount.value)) / 100)
        if discount.max_discount_amount is not None:
            amount = min(amount, discount.max_discount_amount)
        return amount
    if discount.type == DiscountType.FIXED_AMOUNT:
        return min(int(discount.value), subtotal)
    return 0


def calculate_total_discount(applied: Iterable[AppliedDiscount]) -> int:
    return sum(discount.applied_amount for discount in applied)


def _check_conditions(
    conditions: DiscountConditions,
    cart_items: Sequence[CartItem],
    now: datetime,
) -> Optional[Tuple[str, str]]:
    if conditions.minimum_quantity:
        total_quantity = sum(item.quantity for item in cart_items)
        if total_quantity < conditions.minimum_quantity:
            return "condition_unmet", f"Minimum {conditions.minimum_quantity} items required"

    if conditions.applicable_item_ids:
        allowed = set(conditions.applicable_item_ids)
        if not any(item.product_id in allowed for item in cart_items):
            return "condition_unmet", "No eligible items in cart for this discount"

    if conditions.applicable_category_ids:
        allowed = set(conditions.applicable_category_ids)
        if not any(allowed.intersection(item.category_ids) for item in cart_items):
            return "condition_unmet", "No eligible categories in cart for this discount"

    if conditions.days_of_week and DayOfWeek.of(now) not in conditions.days_of_week:
        return "condition_unmet", "Discount not available on this day"

    if conditions.start_time is not None and conditions.end_time is not None:
        current = now.time().replace(second=0, microsecond=0)
        if current < conditions.start_time or current > conditions.end_time:
            return "condition_unmet", "Discount not available at this time"

    return None


def check_discount(
    discount: Discount,
    cart_items: Sequence[CartItem],
    subtotal: int,
    now: datetime,
) -> Optional[Tuple[str, str]]:
    """
    Run the validity, minimum-order and condition checks in order.

    Returns:
        None when every check passes, else (outcome, message) of the first
        failing one
    """
    if (discount.valid_from is not None and now < discount.valid_from) or (
        discount.valid_until is not None and now > discount.valid_until
    ):
        return "expired", EXPIRED

    if discount.min_order_amount and subtotal < discount.min_order_amount:
        return (
            "below_minimum",
            f"Minimum order amount of {format_price(discount.min_order_amount)} required",
        )

    if discount.conditions is not None:
        return _check_conditions(discount.conditions, cart_items, now)

    return None


class DiscountEngine:
    """
    Validates discount codes against a cart.

    Attributes:
        provider: Coroutine function returning the current discount set
        clock: Returns the current (timezone-aware) time
    """

    def __init__(self, provider: DiscountProvider, clock: Clock = utc_now):
        self.provider = provider
        self.clock = clock

    async def validate(
        self,
        code: str,
        cart_items: Sequence[CartItem],
        subtotal: int,
        now: Optional[datetime] = None,
    ) -> DiscountValidationResult:
        """
        Validate a code.

        Args:
            code: Code entered by the shopper (case-insensitive)
            cart_items: Cart contents
            subtotal: Cart subtotal in minor units
            now: Evaluation time (clock if omitted); naive values are read as UTC

        Returns:
            DiscountValidationResult; never raises
        """
        try:
            moment = as_utc(now or self.clock())
            wanted = code.strip().lower()
            discounts = await self.provider()

            discount = next(
                (d for d in discounts if d.is_active and d.code and d.code.lower() == wanted),
                None,
            )
            if discount is None:
                metrics.track_discount_validation("invalid_code")
                return DiscountValidationResult(is_valid=False, error=INVALID_CODE)

            failure = check_discount(discount, cart_items, subtotal, moment)
            if failure is not None:
                outcome, message = failure
                metrics.track_discount_validation(outcome)
                return DiscountValidationResult(is_valid=False, discount=discount, error=message)

            applied = calculate_applied_amount(discount, subtotal)
            metrics.track_discount_validation("valid")
            return DiscountValidationResult(is_valid=True, discount=discount, applied_amount=applied)
        except Exception as e:
            logger.error(f"Discount validation failed for code '{code}': {e}", exc_info=True)
            metrics.track_discount_validation("error")
            return DiscountValidationResult(is_valid=False, error=VALIDATION_FAILED)

    async def automatic_discounts(
        self,
        cart_items: Sequence[CartItem],
        subtotal: int,
        now: Optional[datetime] = None,
    ) -> List[AppliedDiscount]:
        """
        Discounts that apply without a code.

        Active AUTOMATIC-type or code-less discounts passing every check and
        taking a positive amount off, largest first.
        """
        moment = as_utc(now or self.clock())
        try:
            discounts = await self.provider()
        except Exception as e:
            logger.error(f"Could not load discounts for automatic application: {e}")
            return []

        applied: List[AppliedDiscount] = []
        for discount in discounts:
            if not discount.is_active:
                continue
            if discount.type != DiscountType.AUTOMATIC and discount.code:
                continue
            if check_discount(discount, cart_items, subtotal, moment) is not None:
                continue
            amount = calculate_applied_amount(discount, subtotal)
            if amount > 0:
                applied.append(AppliedDiscount(discount=discount, applied_amount=amount))

        applied.sort(key=lambda entry: entry.applied_amount, reverse=True)
        return applied
