"""
Measurement units: upstream mapping, inference from names, display.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from catalog_service import metrics
from catalog_service.domain.entities import MeasurementUnit, UnitType

logger = logging.getLogger(__name__)

GENERIC_UNIT_ABBREVIATIONS: Dict[str, str] = {
    "OUNCE": "oz",
    "POUND": "lb",
    "FLUID_OUNCE": "fl oz",
    "GALLON": "gal",
    "LITER": "L",
    "MILLILITER": "mL",
    "GRAM": "g",
    "KILOGRAM": "kg",
    "INCH": "in",
    "FOOT": "ft",
    "YARD": "yd",
    "METER": "m",
    "CENTIMETER": "cm",
    "MILLIMETER": "mm",
}

_WEIGHT_UNITS = {"OUNCE", "POUND", "GRAM", "KILOGRAM"}
_VOLUME_UNITS = {"FLUID_OUNCE", "GALLON", "LITER", "MILLILITER"}
_LENGTH_UNITS = {"INCH", "FOOT", "YARD", "METER", "CENTIMETER", "MILLIMETER"}
_AREA_UNITS = {"SQUARE_INCH", "SQUARE_FOOT", "SQUARE_YARD", "SQUARE_METER"}

FLUID_OUNCE = MeasurementUnit(abbreviation="fl oz", name="Fluid Ounce", type=UnitType.VOLUME)
OUNCE = MeasurementUnit(abbreviation="oz", name="Ounce", type=UnitType.WEIGHT)
POUND = MeasurementUnit(abbreviation="lb", name="Pound", type=UnitType.WEIGHT)

# Order matters: "fl oz" contains "oz".
_NAME_PATTERNS: List[Tuple[Tuple[str, ...], "re.Pattern[str]", MeasurementUnit]] = [
    (("fl oz", "fluid ounce"), re.compile(r"(\d+(?:\.\d+)?)\s*(?:fl\s*oz|fluid ounce)"), FLUID_OUNCE),
    (("oz", "ounce"), re.compile(r"(\d+(?:\.\d+)?)\s*(?:oz|ounce)"), OUNCE),
    (("lb", "pound"), re.compile(r"(\d+(?:\.\d+)?)\s*(?:lb|pound)"), POUND),
]

_ABBREVIATED_DISPLAY = {"oz", "lb", "fl oz", "g", "kg", "ml", "l"}


def classify_unit(unit_name: str) -> UnitType:
    """Map an upstream generic unit name (e.g. ``POUND``) to a UnitType."""
    upper = (unit_name or "").upper()
    if upper in _WEIGHT_UNITS:
        return UnitType.WEIGHT
    if upper in _VOLUME_UNITS:
        return UnitType.VOLUME
    if upper in _LENGTH_UNITS:
        return UnitType.LENGTH
    if upper in _AREA_UNITS:
        return UnitType.AREA
    return UnitType.GENERIC


def map_measurement_units(raw: Optional[Dict[str, Any]]) -> List[MeasurementUnit]:
    """
    Normalise a measurement-units response.

    Custom units keep their own name and abbreviation; generic units get a
    standard abbreviation. Unparseable records are skipped.
    """
    units: List[MeasurementUnit] = []

    for obj in (raw or {}).get("objects") or []:
        if not isinstance(obj, dict) or obj.get("type") != "MEASUREMENT_UNIT":
            continue
        data = obj.get("measurement_unit_data")
        if not isinstance(data, dict):
            metrics.track_item_skipped("MEASUREMENT_UNIT", "malformed")
            logger.warning(f"Skipping malformed measurement unit {obj.get('id')}")
            continue

        spec = data.get("measurement_unit") or {}
        custom = spec.get("custom_unit") or {}
        generic = spec.get("generic_unit") or ""

        units.append(
            MeasurementUnit(
                id=obj.get("id"),
                name=custom.get("name") or generic or "Unknown Unit",
                abbreviation=custom.get("abbreviation")
                or GENERIC_UNIT_ABBREVIATIONS.get(generic, generic),
                type=classify_unit(generic or custom.get("name") or ""),
                precision=data.get("precision") or 0,
            )
        )

    return units


def infer_unit(name: Optional[str]) -> Tuple[Optional[MeasurementUnit], float]:
    """
    Infer a unit and quantity from a free-text name.

    Examples:
        >>> infer_unit("Cold Brew 16 fl oz")
        (MeasurementUnit(abbreviation='fl oz', ...), 16.0)
        >>> infer_unit("Ribeye")
        (None, 1)
    """
    lowered = (name or "").lower()
    for keywords, pattern, unit in _NAME_PATTERNS:
        if any(keyword in lowered for keyword in keywords):
            match = pattern.search(lowered)
            return unit, float(match.group(1)) if match else 1
    return None, 1


def format_unit(quantity: float, unit: Optional[MeasurementUnit] = None) -> str:
    """
    Format a quantity with its unit.

    Common units use their abbreviation, others a lowercase (pluralised)
    name. Whole quantities print without decimals.

    Examples:
        >>> format_unit(8, OUNCE)
        '8 oz'
        >>> format_unit(2.5, MeasurementUnit(abbreviation="ea", name="Piece"))
        '2.5 pieces'
    """
    quantity_text = str(int(quantity)) if float(quantity).is_integer() else f"{quantity:.1f}"
    if unit is None:
        return quantity_text

    if unit.abbreviation.lower() in _ABBREVIATED_DISPLAY:
        label = unit.abbreviation
    else:
        label = (unit.name if quantity == 1 else f"{unit.name}s").lower()

    return f"{quantity_text} {label}"
