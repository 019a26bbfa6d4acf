"""
Catalog mapper.

Turns the upstream catalog object graph (items, variations, modifier lists,
images, measurement units) into immutable Product records. Mapping is pure:
the same raw input always yields the same products, and one bad record never
aborts the batch.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from catalog_service import metrics
from catalog_service.catalog.units import infer_unit
from catalog_service.domain.entities import (
    UNCATEGORIZED_ID,
    UNCATEGORIZED_NAME,
    MeasurementUnit,
    ModifierList,
    ModifierOption,
    Product,
    ProductVariant,
    ProductVariantOption,
    VariantKind,
)

logger = logging.getLogger(__name__)

SIZE_VARIANT_ID = "size"
SIZE_VARIANT_NAME = "Size"

MAX_INGREDIENTS = 10
MAX_INGREDIENT_LENGTH = 50

_INVALID_OPTION_NAMES = {"", "0", "null", "undefined"}
_INGREDIENT_SPLIT = re.compile(r"[,;\n]")


class MalformedObjectError(ValueError):
    """Raised internally when a raw catalog object cannot be mapped."""


def _money_amount(money: Any) -> Optional[int]:
    if not isinstance(money, dict) or money.get("amount") is None:
        return None
    return int(money["amount"])


def map_image_urls(related_objects: Optional[Iterable[Dict[str, Any]]]) -> Dict[str, str]:
    """Build an image id -> URL map from ``related_objects``."""
    urls: Dict[str, str] = {}
    for obj in related_objects or []:
        if isinstance(obj, dict) and obj.get("type") == "IMAGE":
            url = (obj.get("image_data") or {}).get("url")
            if url:
                urls[obj["id"]] = url
    return urls


def map_modifier_lists(raw: Optional[Dict[str, Any]]) -> List[ModifierList]:
    """
    Normalise a modifier-lists response.

    A modifier without ``price_money`` gets ``price=None`` (included at no
    extra cost); a priced modifier keeps its amount, zero included.
    """
    lists: List[ModifierList] = []

    for obj in (raw or {}).get("objects") or []:
        if not isinstance(obj, dict) or obj.get("type") != "MODIFIER_LIST":
            continue
        data = obj.get("modifier_list_data")
        if not isinstance(data, dict):
            metrics.track_item_skipped("MODIFIER_LIST", "malformed")
            logger.warning(f"Skipping malformed modifier list {obj.get('id')}")
            continue

        modifiers = []
        for mod in data.get("modifiers") or []:
            if not isinstance(mod, dict):
                continue
            mod_data = mod.get("modifier_data") or {}
            modifiers.append(
                ModifierOption(
                    id=mod.get("id", ""),
                    name=mod_data.get("name") or "",
                    price=_money_amount(mod_data.get("price_money")),
                    ordinal=mod_data.get("ordinal") or 0,
                    on_by_default=bool(mod_data.get("on_by_default")),
                )
            )

        lists.append(
            ModifierList(
                id=obj["id"],
                name=data.get("name") or "Unnamed Modifier List",
                selection_type=data.get("selection_type") or "SINGLE",
                min_selected=data.get("min_selected_modifiers") or 0,
                max_selected=data.get("max_selected_modifiers"),
                enabled=data.get("enabled") is not False,
                ordinal=data.get("ordinal") or 0,
                modifiers=tuple(modifiers),
            )
        )

    return lists


def extract_ingredients(item_data: Dict[str, Any]) -> Tuple[str, ...]:
    """
    Ingredients from food-and-beverage details, else from the description.

    The description fallback splits on comma, semicolon or newline and keeps
    up to 10 trimmed tokens shorter than 50 characters.
    """
    details = item_data.get("food_and_beverage_details") or {}
    listed = details.get("ingredients")
    if listed:
        return tuple(
            ingredient["name"]
            for ingredient in listed
            if isinstance(ingredient, dict) and ingredient.get("name")
        )

    description = (item_data.get("description") or "").strip()
    if not description:
        return ()

    tokens = (token.strip() for token in _INGREDIENT_SPLIT.split(description))
    kept = [token for token in tokens if 0 < len(token) < MAX_INGREDIENT_LENGTH]
    return tuple(kept[:MAX_INGREDIENTS])


def _variation_data(variation: Any) -> Dict[str, Any]:
    if not isinstance(variation, dict):
        raise MalformedObjectError("variation is not an object")
    data = variation.get("item_variation_data")
    if not isinstance(data, dict):
        raise MalformedObjectError(f"variation {variation.get('id')} has no variation data")
    return data


def _variation_price(variation: Any) -> int:
    try:
        return _money_amount(_variation_data(variation).get("price_money")) or 0
    except MalformedObjectError:
        return 0


def _variation_unit(
    data: Dict[str, Any],
    measurement_units: Mapping[str, MeasurementUnit],
) -> Tuple[Optional[MeasurementUnit], float]:
    unit_id = data.get("measurement_unit_id")
    if unit_id and unit_id in measurement_units:
        return measurement_units[unit_id], 1
    return infer_unit(data.get("name"))


def map_size_variant(
    variations: Sequence[Any],
    measurement_units: Optional[Mapping[str, MeasurementUnit]] = None,
) -> Optional[ProductVariant]:
    """
    Build the single-select "Size" variant from an item's variations.

    Only created when there is more than one variation. Each option carries
    its price difference to the first variation, None when equal. Malformed
    or unnamed variations are omitted.
    """
    if len(variations) <= 1:
        return None

    units = measurement_units or {}
    base_price = _variation_price(variations[0])
    options = []

    for index, variation in enumerate(variations):
        try:
            data = _variation_data(variation)
        except MalformedObjectError as e:
            metrics.track_item_skipped("ITEM_VARIATION", "malformed")
            logger.warning(f"Skipping variation: {e}")
            continue

        name = data.get("name")
        if not isinstance(name, str) or name.strip() in ("", "0"):
            metrics.track_item_skipped("ITEM_VARIATION", "invalid_name")
            continue

        delta = (_money_amount(data.get("price_money")) or 0) - base_price
        unit, quantity = _variation_unit(data, units)
        options.append(
            ProductVariantOption(
                id=variation.get("id") or f"option-{index}",
                name=name,
                price_delta=delta if delta != 0 else None,
                measurement_unit=unit,
                unit_quantity=quantity,
            )
        )

    if not options:
        return None

    return ProductVariant(
        id=SIZE_VARIANT_ID,
        name=SIZE_VARIANT_NAME,
        kind=VariantKind.SINGLE,
        options=tuple(options),
    )


def map_modifier_variants(
    item_data: Dict[str, Any],
    modifier_lists: Mapping[str, ModifierList],
) -> List[ProductVariant]:
    """Variants for every enabled modifier list attached to the item."""
    variants = []

    for info in item_data.get("modifier_list_info") or []:
        modifier_list = modifier_lists.get((info or {}).get("modifier_list_id"))
        if modifier_list is None or not modifier_list.enabled:
            continue

        options = tuple(
            ProductVariantOption(
                id=modifier.id,
                name=modifier.name.strip(),
                price_delta=modifier.price,
                on_by_default=modifier.on_by_default,
            )
            for modifier in modifier_list.modifiers
            if isinstance(modifier.name, str)
            and modifier.name.strip() not in _INVALID_OPTION_NAMES
        )

        variants.append(
            ProductVariant(
                id=modifier_list.id,
                name=modifier_list.name,
                kind=(
                    VariantKind.MULTIPLE
                    if modifier_list.selection_type == "MULTIPLE"
                    else VariantKind.SINGLE
                ),
                options=options,
                min_selected=modifier_list.min_selected,
                max_selected=modifier_list.max_selected,
            )
        )

    return variants


def _category_ids(item_data: Dict[str, Any]) -> Tuple[str, ...]:
    ids = []
    for entry in item_data.get("categories") or []:
        category_id = entry.get("id") if isinstance(entry, dict) else entry
        if category_id:
            ids.append(str(category_id))

    if not ids and item_data.get("category_id"):
        ids.append(str(item_data["category_id"]))

    return tuple(ids) or (UNCATEGORIZED_ID,)


def map_product(
    item: Dict[str, Any],
    modifier_lists: Mapping[str, ModifierList],
    category_names: Mapping[str, str],
    image_urls: Mapping[str, str],
    measurement_units: Optional[Mapping[str, MeasurementUnit]] = None,
) -> Optional[Product]:
    """
    Map one raw ``ITEM`` object.

    Returns:
        Product, or None when the item is archived or deleted

    Raises:
        MalformedObjectError: If the item cannot be interpreted
    """
    item_data = item.get("item_data")
    if not isinstance(item_data, dict):
        raise MalformedObjectError(f"item {item.get('id')} has no item data")
    if "id" not in item:
        raise MalformedObjectError("item without id")

    if item_data.get("is_archived") is True or item_data.get("is_deleted") is True:
        return None

    variations = item_data.get("variations") or []
    if not isinstance(variations, list):
        raise MalformedObjectError(f"item {item['id']} has non-list variations")

    variants: List[ProductVariant] = []
    size_variant = map_size_variant(variations, measurement_units)
    if size_variant is not None:
        variants.append(size_variant)
    variants.extend(map_modifier_variants(item_data, modifier_lists))

    unit: Optional[MeasurementUnit] = None
    quantity: float = 1
    if variants and variants[0].options:
        first = variants[0].options[0]
        unit, quantity = first.measurement_unit, first.unit_quantity
    if unit is None:
        unit, quantity = infer_unit(item_data.get("name"))

    category_ids = _category_ids(item_data)
    names = {UNCATEGORIZED_ID: UNCATEGORIZED_NAME, **category_names}

    first_variation = variations[0] if variations else None

    return Product(
        id=item["id"],
        name=item_data.get("name") or "Unnamed Product",
        description=item_data.get("description") or "",
        price=_variation_price(first_variation) if first_variation is not None else 0,
        category_ids=category_ids,
        category_names=tuple(names.get(cid, UNCATEGORIZED_NAME) for cid in category_ids),
        variants=tuple(variants),
        images=tuple(image_urls[i] for i in item_data.get("image_ids") or [] if i in image_urls),
        ingredients=extract_ingredients(item_data),
        measurement_unit=unit,
        unit_quantity=quantity,
        is_active=True,
        stockable=item_data.get("stockable") is not False,
        sellable=item_data.get("sellable") is not False,
        variation_id=first_variation.get("id") if isinstance(first_variation, dict) else None,
        present_at_all_locations=item.get("present_at_all_locations"),
        present_at_location_ids=tuple(item.get("present_at_location_ids") or ()),
    )


def map_products(
    raw_items: Iterable[Dict[str, Any]],
    modifier_lists: Iterable[ModifierList],
    category_names: Mapping[str, str],
    image_urls: Mapping[str, str],
    measurement_units: Optional[Mapping[str, MeasurementUnit]] = None,
) -> List[Product]:
    """
    Map every ``ITEM`` object of a catalog response.

    Args:
        raw_items: Upstream ``objects`` (or ``items``) list
        modifier_lists: Normalised modifier lists
        category_names: Category id -> display name
        image_urls: Image id -> URL
        measurement_units: Unit id -> unit, for variations that reference one

    Returns:
        Products in input order, without archived, deleted or malformed items
    """
    lists_by_id = {modifier_list.id: modifier_list for modifier_list in modifier_lists}
    products: List[Product] = []

    for item in raw_items or []:
        if not isinstance(item, dict) or item.get("type") != "ITEM":
            continue
        try:
            product = map_product(item, lists_by_id, category_names, image_urls, measurement_units)
        except (MalformedObjectError, KeyError, TypeError, ValueError, AttributeError) as e:
            metrics.track_item_skipped("ITEM", "malformed")
            logger.warning(
                f"Skipping malformed item {item.get('id')}: {e}",
                extra={"extra_fields": {"item_id": item.get("id")}},
            )
            continue

        if product is None:
            metrics.track_item_skipped("ITEM", "archived")
            continue
        products.append(product)

    logger.debug(f"Mapped {len(products)} products")
    return products


def filter_products_by_location(products: Sequence[Product], location_id: Optional[str]) -> List[Product]:
    """
    Keep the products sold at a location.

    No location means no filtering. Otherwise a product is kept when it is
    present at all locations or lists the location explicitly.
    """
    if not location_id:
        return list(products)

    return [
        product
        for product in products
        if product.present_at_all_locations or location_id in product.present_at_location_ids
    ]
