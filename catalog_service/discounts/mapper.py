"""
Discount catalog mapping.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from catalog_service import metrics
from catalog_service.catalog.categories import parse_time
from catalog_service.domain.entities import (
    DayOfWeek,
    Discount,
    DiscountConditions,
    DiscountType,
)

logger = logging.getLogger(__name__)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp; naive values are taken as UTC.

    Raises:
        ValueError: If the value is present but malformed
    """
    if not value:
        return None
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_conditions(raw: Optional[Dict[str, Any]]) -> Optional[DiscountConditions]:
    if not isinstance(raw, dict) or not raw:
        return None

    start = raw.get("start_time")
    end = raw.get("end_time")
    return DiscountConditions(
        minimum_quantity=raw.get("minimum_quantity"),
        applicable_item_ids=tuple(raw.get("applicable_item_ids") or ()),
        applicable_category_ids=tuple(raw.get("applicable_category_ids") or ()),
        days_of_week=tuple(DayOfWeek.parse(day) for day in raw.get("days_of_week") or ()),
        start_time=parse_time(start, None) if start else None,
        end_time=parse_time(end, None) if end else None,
    )


def map_discount(obj: Dict[str, Any]) -> Discount:
    """
    Map one ``DISCOUNT`` catalog object.

    ``percentage`` makes a PERCENTAGE discount, ``amount_money`` a
    FIXED_AMOUNT one (minor units); anything else is AUTOMATIC.

    Raises:
        KeyError, ValueError: On a malformed object
    """
    data = obj["discount_data"]

    if data.get("percentage"):
        discount_type = DiscountType.PERCENTAGE
        value = float(data["percentage"])
    elif isinstance(data.get("amount_money"), dict):
        discount_type = DiscountType.FIXED_AMOUNT
        value = int(data["amount_money"]["amount"])
    else:
        discount_type = DiscountType.AUTOMATIC
        value = 0

    min_order = data.get("minimum_amount_money") or data.get("min_order_amount_money")
    max_discount = data.get("maximum_amount_money")

    return Discount(
        id=obj["id"],
        code=data.get("code") or None,
        name=data.get("name") or "Unnamed Discount",
        description=data.get("description") or "",
        type=discount_type,
        value=value,
        min_order_amount=int(min_order["amount"]) if isinstance(min_order, dict) else None,
        max_discount_amount=int(max_discount["amount"]) if isinstance(max_discount, dict) else None,
        valid_from=parse_timestamp(data.get("valid_from")),
        valid_until=parse_timestamp(data.get("valid_until")),
        is_active=not obj.get("is_deleted", False),
        scope=data.get("scope") or "ORDER",
        conditions=_parse_conditions(data.get("conditions")),
    )


def map_discounts(raw_response: Optional[Dict[str, Any]]) -> List[Discount]:
    """Map every ``DISCOUNT`` object; malformed ones are skipped and logged."""
    discounts: List[Discount] = []

    for obj in (raw_response or {}).get("objects") or []:
        if not isinstance(obj, dict) or obj.get("type") != "DISCOUNT":
            continue
        try:
            discounts.append(map_discount(obj))
        except (KeyError, TypeError, ValueError) as e:
            metrics.track_item_skipped("DISCOUNT", "malformed")
            logger.warning(f"Skipping malformed discount {obj.get('id')}: {e}")

    return discounts
