"""
Store location mapping.
"""

import logging
from typing import Any, Dict, List, Optional

from catalog_service.domain.entities import OpeningHours, StoreLocation

logger = logging.getLogger(__name__)

WEEKDAYS = {
    "MON": "monday",
    "TUE": "tuesday",
    "WED": "wednesday",
    "THU": "thursday",
    "FRI": "friday",
    "SAT": "saturday",
    "SUN": "sunday",
}


def map_business_hours(business_hours: Optional[Dict[str, Any]]) -> Dict[str, OpeningHours]:
    """
    Weekly opening hours keyed by lowercase weekday name.

    When the upstream sends any periods, every weekday is present and days
    without a period are closed. No periods at all yields an empty map.
    """
    periods = (business_hours or {}).get("periods")
    if not periods:
        return {}

    hours = {day: OpeningHours() for day in WEEKDAYS.values()}
    for period in periods:
        day = WEEKDAYS.get((period or {}).get("day_of_week", ""))
        start = (period or {}).get("start_local_time")
        end = (period or {}).get("end_local_time")
        if day and start and end:
            hours[day] = OpeningHours(open=start[:5], close=end[:5], closed=False)

    return hours


def map_location(raw: Dict[str, Any]) -> StoreLocation:
    address = raw.get("address") or {}
    coordinates = raw.get("coordinates")

    return StoreLocation(
        id=raw["id"],
        name=raw.get("name") or raw.get("business_name") or "Unnamed Location",
        address=address.get("address_line_1") or "",
        city=address.get("locality") or "",
        state=address.get("administrative_district_level_1") or "",
        zip_code=address.get("postal_code") or "",
        phone=raw.get("phone_number") or "",
        email=raw.get("email") or "",
        hours=map_business_hours(raw.get("business_hours")),
        coordinates=(
            (coordinates["latitude"], coordinates["longitude"])
            if isinstance(coordinates, dict) and "latitude" in coordinates and "longitude" in coordinates
            else None
        ),
        features=tuple(raw.get("capabilities") or ()),
        is_active=raw.get("status") == "ACTIVE",
    )


def map_locations(raw_response: Optional[Dict[str, Any]]) -> List[StoreLocation]:
    """Map the ACTIVE locations of a locations response, in upstream order."""
    locations = []
    for raw in (raw_response or {}).get("locations") or []:
        if not isinstance(raw, dict) or raw.get("status") != "ACTIVE":
            continue
        if not raw.get("id"):
            logger.warning("Skipping location without id")
            continue
        locations.append(map_location(raw))
    return locations
