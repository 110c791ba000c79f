"""
Cache-Aside Engine

Wraps the Redis client with the three operations used by the read and
write paths: fetch, store and invalidate.

Every operation is gated on CacheLiveness. When the flag is down the
operation raises CacheUnavailable without touching Redis. When the flag is
up but the call still fails, the operation raises the same CacheUnavailable,
so callers have a single failure branch. No retries.
"""

import asyncio
from typing import Optional, Tuple, Union

import structlog
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from redis.asyncio import Redis
from redis.exceptions import (
    ConnectionError as RedisConnectionError,
    RedisError,
    TimeoutError as RedisTimeoutError,
)

from ...core.exceptions import CacheUnavailable
from ...infrastructure.redis.liveness import CacheLiveness

logger = structlog.get_logger()
tracer = trace.get_tracer(__name__)

# Failures that mean the connection itself is gone, not just one command.
CONNECTION_ERRORS = (
    RedisConnectionError,
    RedisTimeoutError,
    ConnectionError,
    asyncio.TimeoutError,
    OSError,
)
CACHE_ERRORS = (RedisError,) + CONNECTION_ERRORS


class CacheAsideEngine:
    """Liveness-gated get / set-with-TTL / delete over a Redis client."""

    def __init__(self, client: Redis, liveness: CacheLiveness):
        self.client = client
        self.liveness = liveness

    @staticmethod
    def key_for(entity_type: str, entity_id: Union[int, str]) -> str:
        """Deterministic cache key, e.g. ``product:7``."""
        return f"{entity_type}:{entity_id}"

    def require_live(self, operation: str = "require_live") -> None:
        """Raise CacheUnavailable if the cache is not currently usable."""
        if not self.liveness.is_live:
            logger.warning(
                "Cache operation rejected, cache not live",
                operation=operation,
                state=self.liveness.state.value,
            )
            raise CacheUnavailable(operation=operation)

    def _failed(
        self, operation: str, key: str, error: Exception, span
    ) -> CacheUnavailable:
        if isinstance(error, CONNECTION_ERRORS):
            self.liveness.on_error(error)

        span.set_status(Status(StatusCode.ERROR, str(error)))
        logger.warning(
            "Cache operation failed",
            operation=operation,
            key=key,
            error=str(error),
            error_type=type(error).__name__,
        )
        return CacheUnavailable(operation=operation, key=key, original_error=error)

    async def fetch(self, key: str) -> Tuple[Optional[str], bool]:
        """Return (value, found). A missing or expired key is (None, False)."""
        self.require_live("fetch")

        with tracer.start_as_current_span("cache.fetch") as span:
            span.set_attribute("cache.key", key)
            try:
                value = await self.client.get(key)
            except CACHE_ERRORS as e:
                raise self._failed("fetch", key, e, span) from e

            found = value is not None
            span.set_attribute("cache.hit", found)
            return value, found

    async def store(self, key: str, value: str, ttl_seconds: int) -> None:
        """Set ``key`` to ``value`` expiring after ``ttl_seconds``.

        The TTL is mandatory; there is no default.
        """
        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int):
            raise ValueError("ttl_seconds must be an int")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self.require_live("store")

        with tracer.start_as_current_span("cache.store") as span:
            span.set_attribute("cache.key", key)
            span.set_attribute("cache.ttl_seconds", ttl_seconds)
            try:
                await self.client.set(key, value, ex=ttl_seconds)
            except CACHE_ERRORS as e:
                raise self._failed("store", key, e, span) from e

    async def invalidate(self, key: str) -> None:
        """Delete ``key``. Deleting an absent key is not an error."""
        self.require_live("invalidate")

        with tracer.start_as_current_span("cache.invalidate") as span:
            span.set_attribute("cache.key", key)
            try:
                await self.client.delete(key)
            except CACHE_ERRORS as e:
                raise self._failed("invalidate", key, e, span) from e

        logger.debug("Cache key invalidated", key=key)
