"""
Redis Infrastructure Module

This module provides:
- create_redis_client: pooled asyncio client built from settings
- CacheLiveness: process-wide connectivity state with explicit lifecycle
- CacheConnectionMonitor: background PING probe driving CacheLiveness
"""

from .connection_factory import create_redis_client, close_redis_client
from .exceptions import RedisConfigurationException
from .liveness import CacheConnectionMonitor, CacheLiveness, LivenessState

__all__ = [
    "create_redis_client",
    "close_redis_client",
    "RedisConfigurationException",
    "CacheConnectionMonitor",
    "CacheLiveness",
    "LivenessState",
]
