"""
Test configuration and fixtures
"""

from datetime import datetime, time

import pytest

from catalog_service.domain.entities import (
    AvailabilityPeriod,
    Category,
    DayOfWeek,
    Product,
    ProductVariant,
    ProductVariantOption,
    VariantKind,
)


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class MemoryBackend:
    """In-process snapshot backend."""

    def __init__(self):
        self.store = {}
        self.saves = 0

    def load(self, key):
        return self.store.get(key)

    def save(self, key, payload):
        self.saves += 1
        self.store[key] = payload


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_backend():
    return MemoryBackend()


@pytest.fixture
def monday_noon():
    # 2024-01-01 was a Monday
    return datetime(2024, 1, 1, 12, 0, 0)


@pytest.fixture
def lunch_category():
    """Category open Monday 09:00-17:00."""
    return Category(
        id="lunch",
        name="Lunch",
        availability_periods=(
            AvailabilityPeriod(
                start_time=time(9, 0, 0),
                end_time=time(17, 0, 0),
                day_of_week=DayOfWeek.MONDAY,
            ),
        ),
    )


@pytest.fixture
def coffee_product():
    """Coffee with a size choice and a multi-select extras list."""
    return Product(
        id="ITEM_COFFEE",
        name="Coffee",
        price=300,
        category_ids=("CAT_DRINKS",),
        category_names=("Drinks",),
        variants=(
            ProductVariant(
                id="size",
                name="Size",
                kind=VariantKind.SINGLE,
                options=(
                    ProductVariantOption(id="VAR_SMALL", name="Small"),
                    ProductVariantOption(id="VAR_LARGE", name="Large", price_delta=150),
                ),
            ),
            ProductVariant(
                id="ML_EXTRAS",
                name="Extras",
                kind=VariantKind.MULTIPLE,
                options=(
                    ProductVariantOption(id="MOD_SHOT", name="Extra Shot", price_delta=75),
                    ProductVariantOption(id="MOD_OAT", name="Oat Milk", price_delta=50),
                    ProductVariantOption(id="MOD_LID", name="Lid"),
                ),
            ),
        ),
    )


@pytest.fixture
def catalog_payload():
    """Products response as returned by the upstream proxy."""
    return {
        "objects": [
            {
                "type": "ITEM",
                "id": "ITEM_COFFEE",
                "present_at_all_locations": True,
                "item_data": {
                    "name": "Coffee",
                    "description": "Arabica beans, water",
                    "categories": [{"id": "CAT_DRINKS"}],
                    "image_ids": ["IMG_1", "IMG_MISSING"],
                    "modifier_list_info": [{"modifier_list_id": "ML_EXTRAS"}],
                    "variations": [
                        {
                            "id": "VAR_SMALL",
                            "item_variation_data": {
                                "name": "Small",
                                "price_money": {"amount": 300, "currency": "USD"},
                            },
                        },
                        {
                            "id": "VAR_LARGE",
                            "item_variation_data": {
                                "name": "Large",
                                "price_money": {"amount": 450, "currency": "USD"},
                            },
                        },
                    ],
                },
            },
            {
                "type": "ITEM",
                "id": "ITEM_BAGEL",
                "present_at_all_locations": False,
                "present_at_location_ids": ["LOC_MAIN"],
                "item_data": {
                    "name": "Bagel",
                    "category_id": "CAT_FOOD",
                    "variations": [
                        {
                            "id": "VAR_BAGEL",
                            "item_variation_data": {
                                "name": "Regular",
                                "price_money": {"amount": 250, "currency": "USD"},
                            },
                        }
                    ],
                },
            },
            {
                "type": "ITEM",
                "id": "ITEM_OLD",
                "item_data": {"name": "Retired Muffin", "is_archived": True},
            },
        ],
        "related_objects": [
            {"type": "IMAGE", "id": "IMG_1", "image_data": {"url": "https://img/coffee.jpg"}},
        ],
    }


@pytest.fixture
def modifiers_payload():
    return {
        "objects": [
            {
                "type": "MODIFIER_LIST",
                "id": "ML_EXTRAS",
                "modifier_list_data": {
                    "name": "Extras",
                    "selection_type": "MULTIPLE",
                    "modifiers": [
                        {
                            "id": "MOD_SHOT",
                            "modifier_data": {
                                "name": "Extra Shot",
                                "price_money": {"amount": 75, "currency": "USD"},
                            },
                        },
                        {"id": "MOD_LID", "modifier_data": {"name": "Lid"}},
                        {"id": "MOD_BAD", "modifier_data": {"name": "undefined"}},
                    ],
                },
            }
        ]
    }


@pytest.fixture
def categories_payload():
    return {
        "objects": [
            {"type": "CATEGORY", "id": "CAT_MENU", "categoryData": {"name": "Menu", "isTopLevel": True}},
            {
                "type": "CATEGORY",
                "id": "CAT_DRINKS",
                "categoryData": {"name": "Drinks", "parentCategory": "CAT_MENU"},
            },
            {"type": "CATEGORY", "id": "CAT_FOOD", "categoryData": {"name": "Food"}},
        ]
    }
