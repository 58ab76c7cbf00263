# autospa/config/redis.py
"""
Redis access for /health/detailed. Connections are named "autospa-health"
so they can be told apart from Celery worker connections in CLIENT LIST.
"""
import redis.asyncio as redis
from typing import Optional

from autospa.config.settings import get_settings

HEALTH_CLIENT_NAME = "autospa-health"

# Health checks must answer fast even when the broker hangs
HEALTH_SOCKET_TIMEOUT_SECONDS = 2

_health_pool: Optional[redis.ConnectionPool] = None


def get_health_pool() -> redis.ConnectionPool:
    """Small shared pool, created on first use"""
    global _health_pool
    if _health_pool is None:
        settings = get_settings()
        _health_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            client_name=HEALTH_CLIENT_NAME,
            socket_connect_timeout=HEALTH_SOCKET_TIMEOUT_SECONDS,
            socket_timeout=HEALTH_SOCKET_TIMEOUT_SECONDS,
        )
    return _health_pool


async def get_redis() -> redis.Redis:
    """Client on the health pool; aclose() returns its connection to the pool"""
    return redis.Redis(connection_pool=get_health_pool())
