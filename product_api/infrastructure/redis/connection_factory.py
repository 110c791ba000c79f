"""
Redis Connection Factory

Builds the asyncio Redis client used as the side cache. Construction never
touches the network; connectivity is discovered by CacheConnectionMonitor.
"""

from urllib.parse import urlparse

import structlog
from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from ...core.config import Settings
from .exceptions import RedisConfigurationException

logger = structlog.get_logger()


def create_redis_client(settings: Settings) -> Redis:
    """Create a pooled Redis client from settings."""
    parsed_url = urlparse(settings.REDIS_URL)

    try:
        pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_CONNECTION_TIMEOUT,
            socket_timeout=settings.REDIS_OPERATION_TIMEOUT,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
        )
    except (ValueError, RedisError) as e:
        raise RedisConfigurationException(
            message=f"Invalid Redis configuration: {e}",
            config_key="REDIS_URL",
            original_error=e,
        ) from e

    logger.info(
        "Redis client created",
        host=parsed_url.hostname or "localhost",
        port=parsed_url.port or 6379,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
    )
    return Redis(connection_pool=pool)


async def close_redis_client(client: Redis) -> None:
    """Close the client and disconnect its pool."""
    await client.aclose()
    logger.info("Redis client closed")
