"""Redis connection helpers shared by the importer and search."""

import logging
from typing import Optional

import redis

from geoload.core.config import get_settings

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


def init_client(socket_connect_timeout: Optional[float] = 5) -> redis.Redis:
    """Initialise, verify and return the shared Redis client."""
    global _client
    if _client is None:
        settings = get_settings()
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            username=settings.redis_username,
            password=settings.redis_password,
            ssl=settings.redis_tls,
            decode_responses=True,
            socket_connect_timeout=socket_connect_timeout,
        )
        try:
            client.ping()
        except redis.ConnectionError:
            logger.error("Redis connection failed: %s:%s", settings.redis_host, settings.redis_port)
            raise
        _client = client
        logger.info("Connected to Redis at %s:%s", settings.redis_host, settings.redis_port)
    return _client


def get_client() -> redis.Redis:
    """Return the shared client, connecting on first use."""
    return init_client()


def close_client() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("Disconnected from Redis")
