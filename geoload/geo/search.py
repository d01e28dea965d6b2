"""Read-side helpers for the location geospatial index."""

import logging
from typing import Dict, List, Optional

import redis

from geoload.geo.importer import attribute_key

logger = logging.getLogger(__name__)

EARTH_CIRCUMFERENCE_KM = 40075
DEFAULT_LIMIT = 5


def find_nearby_locations(
    client: redis.Redis,
    index_key: str,
    longitude: float,
    latitude: float,
    radius_km: float = EARTH_CIRCUMFERENCE_KM,
    limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, str]]:
    """Return up to ``limit`` locations within ``radius_km``, nearest first.

    Each result is the stored attribute hash plus ``distance_km`` formatted
    with two decimals. A non-positive ``limit`` yields no results. Members
    without an attribute hash are left out. Store errors are logged and
    produce an empty list.
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        return []

    try:
        matches = client.geosearch(
            index_key,
            longitude=longitude,
            latitude=latitude,
            radius=radius_km,
            unit="km",
            sort="ASC",
            count=limit,
            withdist=True,
        )
        if not matches:
            return []

        locations: List[Dict[str, str]] = []
        for member_id, distance in matches:
            attributes = client.hgetall(attribute_key(index_key, member_id))
            if not attributes:
                logger.debug("Index member %s has no attribute record", member_id)
                continue
            attributes["distance_km"] = f"{float(distance):.2f}"
            locations.append(attributes)
        return locations
    except redis.RedisError as exc:
        logger.error("Error finding nearby locations: %s", exc)
        return []


def count_members(client: redis.Redis, index_key: str) -> int:
    return client.zcard(index_key)


def sample_members(client: redis.Redis, index_key: str, size: int = 5) -> List[str]:
    if size <= 0:
        return []
    return client.zrange(index_key, 0, size - 1)


def get_location(client: redis.Redis, index_key: str, member_id: str) -> Optional[Dict[str, str]]:
    attributes = client.hgetall(attribute_key(index_key, member_id))
    return attributes or None
