"""
Redis client with connection pooling for the sync log store.

Uses redis-py with a single process-wide connection pool shared by the
Celery worker and the admin API.
"""

from typing import Optional

import structlog
from redis import ConnectionPool, Redis

from sync_retry.config import Settings

logger = structlog.get_logger(__name__)


class RedisClient:
    """
    Redis client wrapper with connection pooling.

    The pool is created lazily on first use and reused for every client
    handed out afterwards.
    """

    _sync_pool: Optional[ConnectionPool] = None

    @classmethod
    def get_sync_client(cls, settings: Settings) -> Redis:
        """
        Get synchronous Redis client with connection pooling.

        Args:
            settings: Application settings

        Returns:
            Redis client instance
        """
        if cls._sync_pool is None:
            cls._sync_pool = ConnectionPool.from_url(
                settings.REDIS_URL,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                decode_responses=True,  # Auto-decode bytes to str
                socket_timeout=5,
                socket_connect_timeout=5,
                retry_on_timeout=True,
            )
            logger.info(
                "Initialized Redis connection pool",
                max_connections=settings.REDIS_MAX_CONNECTIONS,
            )

        return Redis(connection_pool=cls._sync_pool)

    @classmethod
    def close_sync_pool(cls) -> None:
        """Close connection pool (cleanup on shutdown)."""
        if cls._sync_pool is not None:
            cls._sync_pool.disconnect()
            cls._sync_pool = None
            logger.info("Closed Redis connection pool")


def get_redis_client(settings: Settings) -> Redis:
    """
    Dependency injection helper for the Redis client.

    Args:
        settings: Application settings

    Returns:
        Redis client instance
    """
    return RedisClient.get_sync_client(settings)
