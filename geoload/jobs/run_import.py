"""CLI job that loads a location file into the Redis geospatial index."""

import argparse
import logging
from typing import Optional

from geoload.core.config import ConfigError, get_settings
from geoload.core.store import close_client, get_client
from geoload.etl.repair import repair_locations
from geoload.etl.sanitize import sanitize_locations
from geoload.etl.source import load_locations
from geoload.geo import search
from geoload.geo.importer import import_locations

logger = logging.getLogger(__name__)


def import_file(client, index_key: str, locations_file: str, *, transactional: bool = True) -> int:
    """Read, repair, sanitize and import ``locations_file`` into ``index_key``."""
    raw_locations = load_locations(locations_file)
    repaired = repair_locations(raw_locations)
    sanitized = sanitize_locations(repaired)

    logger.info("After repair: %d valid locations", len(repaired))
    logger.info("After sanitization: %d locations ready for import", len(sanitized))

    return import_locations(client, index_key, sanitized, transactional=transactional)


def verify_import(client, index_key: str, sample_size: int = 5) -> None:
    """Log member count, a sample of ids and the neighbours of the first sample."""
    logger.info("Verifying imported data for %s", index_key)
    logger.info("Total members in %s: %d", index_key, search.count_members(client, index_key))

    members = search.sample_members(client, index_key, sample_size)
    logger.info("Sample of imported location IDs: %s", members)
    if not members:
        return

    sample = search.get_location(client, index_key, members[0])
    logger.info("Sample location full details: %s", sample)
    if not sample or not sample.get("longitude") or not sample.get("latitude"):
        return

    longitude = float(sample["longitude"])
    latitude = float(sample["latitude"])
    logger.info("Searching for %d closest locations to: %s, %s", search.DEFAULT_LIMIT, latitude, longitude)
    nearby = search.find_nearby_locations(client, index_key, longitude, latitude)
    logger.info("Found %d nearby locations", len(nearby))
    for location in nearby:
        logger.info(
            "- %s (%s km)",
            location.get("display_name") or location.get("restaurant_name"),
            location.get("distance_km"),
        )


def run_import_job(
    *,
    index_key: str,
    locations_file: str,
    verify: bool = True,
    sample_size: int = 5,
    transactional: bool = True,
) -> int:
    if not index_key or not index_key.strip():
        raise ValueError("index key must not be empty")

    client = get_client()
    try:
        total = import_file(client, index_key, locations_file, transactional=transactional)
        if verify:
            verify_import(client, index_key, sample_size)
        return total
    finally:
        close_client()


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Import locations into a Redis geospatial index")
    parser.add_argument("--key", dest="index_key", default=settings.geospatial_key, help="Geospatial index key")
    parser.add_argument(
        "--file",
        dest="locations_file",
        default=settings.locations_file,
        help="JSON file holding an array of location records",
    )
    parser.add_argument("--no-verify", dest="verify", action="store_false", help="Skip post-import checks")
    parser.add_argument(
        "--sample-size",
        dest="sample_size",
        type=int,
        default=5,
        help="Number of member ids to sample while verifying",
    )
    parser.add_argument(
        "--non-transactional",
        dest="transactional",
        action="store_false",
        help="Write attribute hashes outside the per-batch transaction",
    )
    return parser


def main(argv: Optional[list] = None) -> None:
    try:
        settings = get_settings()
        parser = build_parser()
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
    args = parser.parse_args(argv)

    try:
        run_import_job(
            index_key=args.index_key,
            locations_file=args.locations_file,
            verify=args.verify,
            sample_size=args.sample_size,
            transactional=args.transactional,
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("Import failed: %s", exc, exc_info=True)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
