"""Coordinate coercion and text cleanup for repaired location records."""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

_NUMERIC_PATTERN = re.compile(r"^-?\d+(\.\d+)?$")


def _numeric_text(value: Any) -> bool:
    return isinstance(value, str) and _NUMERIC_PATTERN.match(value) is not None


def _coerce_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def sanitize_location(location: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``location`` with coordinates parsed and the name cleaned.

    Text coordinates are parsed when they look like plain decimals and set to
    None otherwise. Two recoveries are attempted for longitude: a numeric
    latitude string (swapped columns upstream) and then a numeric
    ``postal_code`` string. Latitude itself is never repaired. Records are
    never dropped here.
    """
    sanitized = dict(location)

    if "longitude" in sanitized:
        longitude = sanitized["longitude"]
        if isinstance(longitude, str):
            if _numeric_text(longitude):
                sanitized["longitude"] = float(longitude)
            elif _numeric_text(sanitized.get("latitude")):
                sanitized["longitude"] = float(sanitized["latitude"])
            else:
                sanitized["longitude"] = None
        else:
            sanitized["longitude"] = _coerce_number(longitude)

    if "latitude" in sanitized:
        latitude = sanitized["latitude"]
        if isinstance(latitude, str):
            sanitized["latitude"] = float(latitude) if _numeric_text(latitude) else None
        else:
            sanitized["latitude"] = _coerce_number(latitude)

    if _missing(sanitized.get("longitude")) and _numeric_text(sanitized.get("postal_code")):
        sanitized["longitude"] = float(sanitized["postal_code"])

    name = sanitized.get("restaurant_name")
    if isinstance(name, str):
        sanitized["restaurant_name"] = name.replace('"', "").strip()

    return sanitized


def sanitize_locations(locations: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    sanitized = [sanitize_location(location) for location in locations]
    missing = sum(1 for item in sanitized if item.get("longitude") is None or item.get("latitude") is None)
    if missing:
        logger.info("%d of %d sanitized locations lack usable coordinates", missing, len(sanitized))
    return sanitized
