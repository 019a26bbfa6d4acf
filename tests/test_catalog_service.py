"""
Tests for CatalogService.

The upstream client is an AsyncMock; the cache is a real TTLCache driven by
the fake clock.
"""

from unittest.mock import AsyncMock

import pytest

from catalog_service.cache.ttl_cache import TTLCache
from catalog_service.domain.exceptions import (
    ClientError,
    LocationNotFoundException,
    NetworkError,
    ServerError,
)
from catalog_service.infrastructure.catalog_api_client import CatalogApiClient
from catalog_service.services.catalog_service import CatalogService, ResourceTtls

LOCATIONS = {
    "locations": [
        {"id": "LOC_MAIN", "name": "Main Street", "status": "ACTIVE"},
        {"id": "LOC_OLD", "name": "Closed Branch", "status": "INACTIVE"},
    ]
}


@pytest.fixture
def api_client(catalog_payload, modifiers_payload, categories_payload):
    client = AsyncMock(spec=CatalogApiClient)
    client.fetch_products.return_value = catalog_payload
    client.fetch_modifiers.return_value = modifiers_payload
    client.fetch_categories.return_value = categories_payload
    client.fetch_measurement_units.return_value = {"objects": []}
    client.fetch_locations.return_value = LOCATIONS
    client.fetch_discounts.return_value = {
        "objects": [
            {
                "type": "DISCOUNT",
                "id": "D1",
                "discount_data": {"name": "Ten", "code": "TEN", "percentage": "10"},
            }
        ]
    }
    return client


@pytest.fixture
def cache(clock):
    return TTLCache(name="catalog", max_size=50, timer=clock)


@pytest.fixture
def service(api_client, cache):
    return CatalogService(api_client, cache)


class TestProducts:
    """Test product loading and caching."""

    @pytest.mark.asyncio
    async def test_products_are_mapped_with_category_names(self, service):
        products = await service.get_products()

        assert [p.id for p in products] == ["ITEM_COFFEE", "ITEM_BAGEL"]
        assert products[0].category_names == ("Drinks",)
        assert products[1].category_names == ("Food",)

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, service, api_client):
        await service.get_products()
        await service.get_products()

        assert api_client.fetch_products.await_count == 1

    @pytest.mark.asyncio
    async def test_expired_products_are_refetched(self, service, api_client, clock):
        await service.get_products()
        clock.advance(ResourceTtls().products + 1)

        await service.get_products()

        assert api_client.fetch_products.await_count == 2
        # Categories have a longer TTL and stay cached.
        assert api_client.fetch_categories.await_count == 1

    @pytest.mark.asyncio
    async def test_force_refresh(self, service, api_client):
        await service.get_products()

        await service.get_products(force_refresh=True)
        await service.refresh_products()

        assert api_client.fetch_products.await_count == 3

    @pytest.mark.asyncio
    async def test_location_filter_shares_one_fetch(self, service, api_client):
        everywhere = await service.get_products(location_id="LOC_OTHER")
        main = await service.get_products(location_id="LOC_MAIN")

        assert [p.id for p in everywhere] == ["ITEM_COFFEE"]
        assert [p.id for p in main] == ["ITEM_COFFEE", "ITEM_BAGEL"]
        assert api_client.fetch_products.await_count == 1

    @pytest.mark.asyncio
    async def test_items_key_is_accepted(self, service, api_client, catalog_payload):
        api_client.fetch_products.return_value = {"items": catalog_payload["objects"]}

        products = await service.get_products()

        assert len(products) == 2
        assert products[0].images == ()

    @pytest.mark.asyncio
    async def test_measurement_unit_failure_is_tolerated(self, service, api_client):
        api_client.fetch_measurement_units.side_effect = ClientError("getMeasurementUnits", 404)

        products = await service.get_products()

        assert len(products) == 2

    @pytest.mark.asyncio
    async def test_upstream_failure_propagates_and_is_not_cached(self, service, api_client, catalog_payload):
        api_client.fetch_products.side_effect = ServerError("getProducts", 500)

        with pytest.raises(ServerError):
            await service.get_products()

        api_client.fetch_products.side_effect = None
        api_client.fetch_products.return_value = catalog_payload
        assert len(await service.get_products()) == 2


class TestCategories:
    @pytest.mark.asyncio
    async def test_forest_and_navigation(self, service):
        forest = await service.get_categories()
        split = await service.get_category_hierarchy()

        assert [c.id for c in forest] == ["CAT_MENU", "CAT_FOOD"]
        assert forest[0].subcategories[0].id == "CAT_DRINKS"
        assert [c.id for c in split.parents] == ["CAT_MENU"]

    @pytest.mark.asyncio
    async def test_clear_categories_cache(self, service, api_client):
        await service.get_categories()
        service.clear_categories_cache()
        await service.get_categories()

        assert api_client.fetch_categories.await_count == 2


class TestLocations:
    @pytest.mark.asyncio
    async def test_only_active_locations(self, service):
        locations = await service.get_locations()

        assert [location.id for location in locations] == ["LOC_MAIN"]

    @pytest.mark.asyncio
    async def test_main_location_is_cached(self, service, api_client):
        assert await service.get_main_location_id() == "LOC_MAIN"
        assert await service.get_main_location_id() == "LOC_MAIN"

        assert api_client.fetch_locations.await_count == 1

    @pytest.mark.asyncio
    async def test_resources_use_fixed_keys(self, service):
        await service.get_locations()
        await service.get_main_location_id()
        await service.get_products()

        for key in (
            "locations",
            "main_location_id",
            "products",
            "categories",
            "modifiers",
            "measurement-units",
        ):
            assert service.cache.has(key)

    @pytest.mark.asyncio
    async def test_no_locations(self, service, api_client):
        api_client.fetch_locations.return_value = {"locations": []}

        with pytest.raises(LocationNotFoundException):
            await service.get_main_location_id()


class TestDiscounts:
    @pytest.mark.asyncio
    async def test_discounts_are_cached(self, service, api_client):
        first = await service.get_discounts()
        await service.get_discounts()

        assert [d.code for d in first] == ["TEN"]
        assert api_client.fetch_discounts.await_count == 1

    @pytest.mark.asyncio
    async def test_fallback_is_used_and_not_cached(self, service, api_client):
        api_client.fetch_discounts.side_effect = NetworkError("getDiscounts", "refused")

        discounts = await service.get_discounts()

        assert {d.code for d in discounts} == {"WELCOME10", "SAVE5", "STUDENT15"}
        assert not service.cache.has("discounts")

    @pytest.mark.asyncio
    async def test_recovers_after_fallback_and_honours_ttl(self, api_client, cache, clock):
        service = CatalogService(api_client, cache, ttls=ResourceTtls(discounts=5))
        api_client.fetch_discounts.side_effect = [
            NetworkError("getDiscounts", "refused"),
            api_client.fetch_discounts.return_value,
            api_client.fetch_discounts.return_value,
        ]

        assert "SAVE5" in {d.code for d in await service.get_discounts()}
        assert [d.code for d in await service.get_discounts()] == ["TEN"]
        await service.get_discounts()
        assert api_client.fetch_discounts.await_count == 2

        clock.advance(6)
        await service.get_discounts()
        assert api_client.fetch_discounts.await_count == 3

    @pytest.mark.asyncio
    async def test_engine_reads_through_service(self, service):
        result = await service.discount_engine.validate("ten", [], 4000)

        assert result.is_valid
        assert result.applied_amount == 400


class TestCacheManagement:
    @pytest.mark.asyncio
    async def test_clear_cache_and_stats(self, service):
        await service.get_locations()
        assert service.cache_stats()["valid"] == 1

        service.clear_cache()

        assert service.cache_stats()["total"] == 0

    @pytest.mark.asyncio
    async def test_close_closes_client(self, service, api_client):
        await service.close()

        api_client.close.assert_awaited_once()
