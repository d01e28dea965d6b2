"""Load sanitized locations into a Redis geospatial index.

Every import is a full reindex: the index key and its attribute hashes are
removed before anything is written. Locations are then written in batches of
``BATCH_SIZE``; each batch ends with a single GEOADD for all of its members.
Bad records are skipped with a warning and a failing batch is logged and
skipped, so the returned total may be smaller than the number of inputs.
"""

import json
import logging
import math
from itertools import count
from typing import Any, Dict, Iterable, Iterator, List, Optional

import redis

from geoload.models import GeoIndexEntry

logger = logging.getLogger(__name__)

BATCH_SIZE = 100
MEMBER_PREFIX = "loc:"
UNKNOWN_DISPLAY_NAME = "Unknown"

# GEOADD rejects anything outside these bounds.
MAX_LONGITUDE = 180.0
MAX_LATITUDE = 85.05112878

_DELETE_CHUNK = 500
_GLOB_SPECIAL = "\\*?[]"


def attribute_key(index_key: str, member_id: str) -> str:
    return f"{index_key}:{member_id}"


def _escape_glob(value: str) -> str:
    return "".join(f"\\{char}" if char in _GLOB_SPECIAL else char for char in value)


def clear_index(client: redis.Redis, index_key: str) -> int:
    """Delete the index and every attribute hash that belongs to it."""
    deleted = client.delete(index_key)
    pattern = f"{_escape_glob(index_key)}:{MEMBER_PREFIX}*"
    chunk: List[str] = []
    for key in client.scan_iter(match=pattern, count=_DELETE_CHUNK):
        chunk.append(key)
        if len(chunk) >= _DELETE_CHUNK:
            deleted += client.delete(*chunk)
            chunk = []
    if chunk:
        deleted += client.delete(*chunk)
    return deleted


def resolve_coordinate(value: Any) -> Optional[float]:
    """Return a usable coordinate or None.

    Zero is rejected along with missing and non-numeric values.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or not value:
        return None
    return float(value)


def resolve_display_name(location: Dict[str, Any]) -> str:
    name = location.get("restaurant_name")
    if isinstance(name, str) and name.strip():
        return name.strip()

    address = location.get("address")
    if address in (None, ""):
        return UNKNOWN_DISPLAY_NAME
    display_name = str(address).replace('"', "").strip()
    city = location.get("city")
    if isinstance(city, str) and city.strip() and '"' not in city:
        display_name = f"{display_name}, {city.strip()}"
    return display_name or UNKNOWN_DISPLAY_NAME


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_attributes(location: Dict[str, Any], member_id: str, display_name: str) -> Dict[str, str]:
    """Flatten a location into the string mapping stored in its hash."""
    attributes = {
        str(field): _stringify(value)
        for field, value in location.items()
        if value is not None and value != ""
    }
    attributes["id"] = member_id
    attributes["display_name"] = display_name
    return attributes


def _batches(records: List[Dict[str, Any]], size: int) -> Iterator[List[Dict[str, Any]]]:
    for start in range(0, len(records), size):
        yield records[start:start + size]


def _prepare_entry(location: Dict[str, Any], ids: Iterator[int]) -> Optional[GeoIndexEntry]:
    longitude = resolve_coordinate(location.get("longitude"))
    latitude = resolve_coordinate(location.get("latitude"))
    if longitude is None or latitude is None:
        logger.warning("Skipping invalid location: %s", json.dumps(location, default=str))
        return None
    if abs(longitude) > MAX_LONGITUDE or abs(latitude) > MAX_LATITUDE:
        logger.warning(
            "Skipping out-of-range location (lon=%s, lat=%s): %s",
            longitude,
            latitude,
            json.dumps(location, default=str),
        )
        return None
    return GeoIndexEntry(member_id=f"{MEMBER_PREFIX}{next(ids)}", longitude=longitude, latitude=latitude)


def _log_failed_batch(values: List[Any]) -> None:
    for offset in range(0, len(values) - 2, 3):
        logger.error(
            "Problem entry: lon=%s, lat=%s, name=%s",
            values[offset],
            values[offset + 1],
            values[offset + 2],
        )


def _flatten(entries: List[GeoIndexEntry]) -> List[Any]:
    values: List[Any] = []
    for entry in entries:
        values.extend(entry.as_geoadd_args())
    return values


def _write_batch(
    client: redis.Redis,
    index_key: str,
    batch: List[Dict[str, Any]],
    ids: Iterator[int],
    transactional: bool,
) -> int:
    """Write one batch's hashes and its GEOADD, returning the members added.

    In transactional mode everything is queued on a MULTI/EXEC pipeline;
    otherwise hashes go straight to the client and survive a failed GEOADD.
    """
    target = client.pipeline(transaction=True) if transactional else client
    entries: List[GeoIndexEntry] = []
    for location in batch:
        entry = _prepare_entry(location, ids)
        if entry is None:
            continue
        attributes = build_attributes(location, entry.member_id, resolve_display_name(location))
        target.hset(attribute_key(index_key, entry.member_id), mapping=attributes)
        entries.append(entry)

    if not entries:
        if transactional:
            target.reset()
        return 0

    values = _flatten(entries)
    # Guards GEOADD against a GeoIndexEntry that stops yielding triples.
    if len(values) % 3 != 0:
        logger.error("Invalid batch: GEOADD argument count (%d) is not a multiple of 3", len(values))
        logger.error("First few args: %s", values[:9])
        if transactional:
            target.reset()
        return 0

    try:
        if transactional:
            target.geoadd(index_key, values)
            added = target.execute()[-1]
        else:
            added = target.geoadd(index_key, values)
    except redis.RedisError as exc:
        logger.error("Error adding batch: %s", exc)
        _log_failed_batch(values)
        return 0
    return int(added)


def import_locations(
    client: redis.Redis,
    index_key: str,
    locations: Iterable[Dict[str, Any]],
    *,
    batch_size: int = BATCH_SIZE,
    transactional: bool = True,
) -> int:
    """Replace the contents of ``index_key`` with ``locations``.

    Args:
        client: Redis client; GEOSEARCH support (Redis 6.2+) is assumed by readers.
        index_key: Geospatial index key. Attribute hashes live at ``{index_key}:loc:<n>``.
        locations: Sanitized location records.
        batch_size: Locations per GEOADD command.
        transactional: Write each batch's hashes and GEOADD in one MULTI/EXEC so a
            failed batch leaves nothing behind. When False, hashes are written
            one by one before the GEOADD and survive a failed index write.

    Returns:
        Number of index members added across all batches.
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")

    locations = list(locations)
    logger.info("Importing %d locations into %s", len(locations), index_key)

    logger.info('Clearing existing data for key "%s"', index_key)
    clear_index(client, index_key)

    ids = count(1)
    total_added = 0
    for batch in _batches(locations, batch_size):
        added = _write_batch(client, index_key, batch, ids, transactional)
        if added:
            logger.info("Batch processed: %d locations added", added)
        total_added += added

    logger.info("Import completed. Total locations added: %d", total_added)
    return total_added
