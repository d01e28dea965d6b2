"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_GEOSPATIAL_KEY = "all_locations"
DEFAULT_LOCATIONS_FILE = "location-db.json"


class ConfigError(RuntimeError):
    """Raised when an environment value cannot be interpreted."""


@dataclass(frozen=True)
class Settings:
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_username: Optional[str] = None
    redis_password: Optional[str] = None
    redis_tls: bool = False
    geospatial_key: str = DEFAULT_GEOSPATIAL_KEY
    locations_file: str = DEFAULT_LOCATIONS_FILE
    log_level: str = "INFO"


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    redis_host = os.getenv("REDIS_HOST") or "localhost"
    redis_port = _get_int_env("REDIS_PORT", 6379)
    redis_db = _get_int_env("REDIS_DB", 0)
    redis_username = os.getenv("REDIS_USERNAME") or None
    redis_password = os.getenv("REDIS_PASSWORD") or None
    redis_tls = os.getenv("REDIS_TLS", "false").lower() in {"1", "true", "yes"}
    geospatial_key = os.getenv("GEOSPATIAL_KEY") or DEFAULT_GEOSPATIAL_KEY
    locations_file = os.getenv("LOCATIONS_FILE") or DEFAULT_LOCATIONS_FILE
    log_level = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()

    if redis_tls and not redis_password:
        logger.warning("REDIS_TLS is enabled but REDIS_PASSWORD is not set; authentication may fail.")

    return Settings(
        redis_host=redis_host,
        redis_port=redis_port,
        redis_db=redis_db,
        redis_username=redis_username,
        redis_password=redis_password,
        redis_tls=redis_tls,
        geospatial_key=geospatial_key,
        locations_file=locations_file,
        log_level=log_level,
    )
