"""
Sync log persistence layer.

- redis_client.py: Redis connection pooling
- sync_log_store.py: SyncLogStore protocol and the Redis implementation
- memory_store.py: In-memory store for local development and tests

Storage Strategy (Redis):
- Entries stored as JSON, one key per entry
- Sorted set per status for due-retry and queue queries
- Sorted set of dead letters ordered by last update
- Circuit snapshot published with TTL for dashboards
"""

from sync_retry.config import Settings
from sync_retry.persistence.memory_store import InMemorySyncLogStore
from sync_retry.persistence.redis_client import RedisClient, get_redis_client
from sync_retry.persistence.sync_log_store import RedisSyncLogStore, SyncLogStore


def build_store(settings: Settings) -> SyncLogStore:
    """Create the store selected by STORE_BACKEND."""
    if settings.STORE_BACKEND == "memory":
        return InMemorySyncLogStore()
    return RedisSyncLogStore.from_settings(get_redis_client(settings), settings)


__all__ = [
    "RedisClient",
    "get_redis_client",
    "SyncLogStore",
    "RedisSyncLogStore",
    "InMemorySyncLogStore",
    "build_store",
]
