"""
Tests for discount mapping, validation and automatic application.
"""

from datetime import datetime, time, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from catalog_service.discounts import (
    DiscountEngine,
    calculate_applied_amount,
    calculate_total_discount,
    fallback_discounts,
    map_discounts,
)
from catalog_service.discounts.mapper import parse_timestamp
from catalog_service.domain.entities import (
    AppliedDiscount,
    CartItem,
    DayOfWeek,
    Discount,
    DiscountConditions,
    DiscountType,
)

NOW = datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)  # Monday


def percentage(value, **kwargs):
    kwargs.setdefault("id", f"pct{value}")
    kwargs.setdefault("name", f"{value}% off")
    return Discount(type=DiscountType.PERCENTAGE, value=value, **kwargs)


def cart(*items):
    return [CartItem(product_id=pid, quantity=qty, category_ids=cats) for pid, qty, cats in items]


@pytest.fixture
def coffee_cart():
    return cart(("ITEM_COFFEE", 2, ("CAT_DRINKS",)))


def engine_for(discounts):
    return DiscountEngine(AsyncMock(return_value=discounts), clock=lambda: NOW)


class TestAppliedAmount:
    """Test amount arithmetic."""

    def test_percentage(self):
        assert calculate_applied_amount(percentage(10), 5000) == 500

    def test_percentage_capped(self):
        discount = percentage(10, max_discount_amount=1000)

        assert calculate_applied_amount(discount, 20000) == 1000

    def test_percentage_rounds_half_up(self):
        assert calculate_applied_amount(percentage(15), 1010) == 152
        assert calculate_applied_amount(percentage(10), 5) == 1

    def test_fixed_amount_never_exceeds_subtotal(self):
        discount = Discount(id="d", name="d", type=DiscountType.FIXED_AMOUNT, value=500)

        assert calculate_applied_amount(discount, 3000) == 500
        assert calculate_applied_amount(discount, 300) == 300

    def test_automatic_without_value_applies_nothing(self):
        discount = Discount(id="d", name="d", type=DiscountType.AUTOMATIC, value=0)

        assert calculate_applied_amount(discount, 3000) == 0

    def test_total(self):
        applied = [
            AppliedDiscount(discount=percentage(10), applied_amount=300),
            AppliedDiscount(discount=percentage(5), applied_amount=150),
        ]

        assert calculate_total_discount(applied) == 450


class TestValidate:
    """Test code validation."""

    @pytest.mark.asyncio
    async def test_below_minimum(self, coffee_cart):
        """Test SAVE5 with a 20.00 subtotal fails its 25.00 minimum."""
        result = await engine_for(fallback_discounts()).validate("SAVE5", coffee_cart, 2000)

        assert not result.is_valid
        assert result.error == "Minimum order amount of $25.00 required"
        assert result.discount.code == "SAVE5"

    @pytest.mark.asyncio
    async def test_fixed_amount_valid(self, coffee_cart):
        result = await engine_for(fallback_discounts()).validate("SAVE5", coffee_cart, 3000)

        assert result.is_valid
        assert result.applied_amount == 500

    @pytest.mark.asyncio
    async def test_naive_now_is_read_as_utc(self, coffee_cart):
        result = await engine_for(fallback_discounts()).validate(
            "SAVE5", coffee_cart, 3000, now=datetime(2026, 1, 5, 12)
        )

        assert result.is_valid
        assert result.applied_amount == 500

    @pytest.mark.asyncio
    async def test_naive_now_before_valid_from(self, coffee_cart):
        result = await engine_for(fallback_discounts()).validate(
            "SAVE5", coffee_cart, 3000, now=datetime(2023, 12, 31, 23)
        )

        assert not result.is_valid
        assert result.error == "Discount code has expired"

    @pytest.mark.asyncio
    async def test_code_is_case_insensitive(self, coffee_cart):
        result = await engine_for(fallback_discounts()).validate(" welcome10 ", coffee_cart, 5000)

        assert result.is_valid
        assert result.applied_amount == 500

    @pytest.mark.asyncio
    async def test_student_discount_cap(self, coffee_cart):
        result = await engine_for(fallback_discounts()).validate("STUDENT15", coffee_cart, 20000)

        assert result.applied_amount == 1000

    @pytest.mark.asyncio
    async def test_unknown_code(self, coffee_cart):
        result = await engine_for(fallback_discounts()).validate("NOPE", coffee_cart, 5000)

        assert not result.is_valid
        assert result.error == "Invalid discount code"
        assert result.discount is None

    @pytest.mark.asyncio
    async def test_inactive_discount_is_unknown(self, coffee_cart):
        discount = percentage(10, code="OLD", is_active=False)

        result = await engine_for([discount]).validate("OLD", coffee_cart, 5000)

        assert result.error == "Invalid discount code"

    @pytest.mark.asyncio
    async def test_expired(self, coffee_cart):
        discount = percentage(10, code="SUMMER", valid_until=NOW - timedelta(days=1))

        result = await engine_for([discount]).validate("SUMMER", coffee_cart, 5000)

        assert not result.is_valid
        assert result.error == "Discount code has expired"

    @pytest.mark.asyncio
    async def test_not_yet_valid_reports_expired(self, coffee_cart):
        discount = percentage(10, code="SOON", valid_from=NOW + timedelta(hours=1))

        result = await engine_for([discount]).validate("SOON", coffee_cart, 5000)

        assert result.error == "Discount code has expired"

    @pytest.mark.asyncio
    async def test_expiry_checked_before_minimum(self, coffee_cart):
        discount = percentage(
            10, code="BOTH", min_order_amount=10000, valid_until=NOW - timedelta(seconds=1)
        )

        result = await engine_for([discount]).validate("BOTH", coffee_cart, 100)

        assert result.error == "Discount code has expired"

    @pytest.mark.asyncio
    async def test_explicit_now_overrides_clock(self, coffee_cart):
        discount = percentage(10, code="LATER", valid_from=NOW + timedelta(days=1))

        result = await engine_for([discount]).validate(
            "LATER", coffee_cart, 5000, now=NOW + timedelta(days=2)
        )

        assert result.is_valid

    @pytest.mark.asyncio
    async def test_provider_failure_is_reported_not_raised(self, coffee_cart):
        engine = DiscountEngine(AsyncMock(side_effect=RuntimeError("boom")), clock=lambda: NOW)

        result = await engine.validate("SAVE5", coffee_cart, 3000)

        assert not result.is_valid
        assert result.error == "Failed to validate discount code"


class TestConditions:
    """Test structured conditions."""

    @pytest.mark.parametrize(
        "conditions,message",
        [
            (DiscountConditions(minimum_quantity=3), "Minimum 3 items required"),
            (
                DiscountConditions(applicable_item_ids=("ITEM_BAGEL",)),
                "No eligible items in cart for this discount",
            ),
            (
                DiscountConditions(applicable_category_ids=("CAT_FOOD",)),
                "No eligible categories in cart for this discount",
            ),
            (
                DiscountConditions(days_of_week=(DayOfWeek.SATURDAY, DayOfWeek.SUNDAY)),
                "Discount not available on this day",
            ),
            (
                DiscountConditions(start_time=time(15, 0), end_time=time(18, 0)),
                "Discount not available at this time",
            ),
        ],
    )
    @pytest.mark.asyncio
    async def test_unmet_condition(self, coffee_cart, conditions, message):
        discount = percentage(10, code="COND", conditions=conditions)

        result = await engine_for([discount]).validate("COND", coffee_cart, 5000)

        assert not result.is_valid
        assert result.error == message

    @pytest.mark.asyncio
    async def test_all_conditions_met(self, coffee_cart):
        conditions = DiscountConditions(
            minimum_quantity=2,
            applicable_item_ids=("ITEM_COFFEE",),
            applicable_category_ids=("CAT_DRINKS",),
            days_of_week=(DayOfWeek.MONDAY,),
            start_time=time(11, 0),
            end_time=time(12, 0),
        )
        discount = percentage(10, code="HAPPY", conditions=conditions)

        result = await engine_for([discount]).validate("HAPPY", coffee_cart, 5000)

        assert result.is_valid


class TestAutomaticDiscounts:
    @pytest.mark.asyncio
    async def test_code_less_discounts_sorted_by_amount(self, coffee_cart):
        discounts = [
            percentage(5, id="small"),
            percentage(20, id="big"),
            percentage(50, id="coded", code="HALF"),
            percentage(30, id="far", min_order_amount=100000),
            percentage(40, id="gone", is_active=False),
        ]

        applied = await engine_for(discounts).automatic_discounts(coffee_cart, 5000)

        assert [(a.discount.id, a.applied_amount) for a in applied] == [("big", 1000), ("small", 250)]

    @pytest.mark.asyncio
    async def test_provider_failure_yields_nothing(self, coffee_cart):
        engine = DiscountEngine(AsyncMock(side_effect=RuntimeError("boom")), clock=lambda: NOW)

        assert await engine.automatic_discounts(coffee_cart, 5000) == []


class TestMapDiscounts:
    """Test discount catalog mapping."""

    def test_types_and_money(self):
        discounts = map_discounts(
            {
                "objects": [
                    {
                        "type": "DISCOUNT",
                        "id": "D1",
                        "discount_data": {
                            "name": "Tenner",
                            "code": "TEN",
                            "percentage": "10.0",
                            "maximum_amount_money": {"amount": 800, "currency": "USD"},
                            "valid_until": "2030-01-01T00:00:00Z",
                        },
                    },
                    {
                        "type": "DISCOUNT",
                        "id": "D2",
                        "is_deleted": True,
                        "discount_data": {
                            "name": "Fiver",
                            "amount_money": {"amount": 500, "currency": "USD"},
                            "minimum_amount_money": {"amount": 2500},
                        },
                    },
                    {"type": "DISCOUNT", "id": "D3", "discount_data": {"name": "Auto"}},
                    {"type": "DISCOUNT", "id": "BROKEN"},
                    {"type": "ITEM", "id": "I"},
                ]
            }
        )

        tenner, fiver, auto = discounts
        assert tenner.type == DiscountType.PERCENTAGE
        assert tenner.value == 10.0
        assert tenner.max_discount_amount == 800
        assert tenner.valid_until == datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert fiver.type == DiscountType.FIXED_AMOUNT
        assert fiver.value == 500
        assert fiver.min_order_amount == 2500
        assert fiver.is_active is False
        assert fiver.code is None
        assert auto.type == DiscountType.AUTOMATIC

    def test_conditions(self):
        (discount,) = map_discounts(
            {
                "objects": [
                    {
                        "type": "DISCOUNT",
                        "id": "D",
                        "discount_data": {
                            "name": "Weekend",
                            "percentage": "5",
                            "conditions": {
                                "days_of_week": ["SAT", "sunday"],
                                "start_time": "10:00",
                                "end_time": "14:00",
                            },
                        },
                    }
                ]
            }
        )

        assert discount.conditions.days_of_week == (DayOfWeek.SATURDAY, DayOfWeek.SUNDAY)
        assert discount.conditions.start_time == time(10, 0)

    def test_naive_timestamp_is_utc(self):
        assert parse_timestamp("2024-01-01T00:00:00") == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp(None) is None


def test_fallback_discounts():
    codes = {discount.code: discount for discount in fallback_discounts()}

    assert set(codes) == {"WELCOME10", "SAVE5", "STUDENT15"}
    assert codes["WELCOME10"].min_order_amount == 2000
    assert codes["SAVE5"].value == 500
    assert codes["STUDENT15"].max_discount_amount == 1000
