"""
Unit tests for Redis client and connection pooling.
"""

import pytest
from unittest.mock import MagicMock, patch

from sync_retry.config import Settings
from sync_retry.persistence import build_store
from sync_retry.persistence.memory_store import InMemorySyncLogStore
from sync_retry.persistence.redis_client import RedisClient
from sync_retry.persistence.sync_log_store import RedisSyncLogStore


@pytest.fixture
def mock_settings():
    """Mock settings for testing."""
    settings = MagicMock(spec=Settings)
    settings.REDIS_URL = "redis://localhost:6379/0"
    settings.REDIS_MAX_CONNECTIONS = 50
    settings.REDIS_KEY_PREFIX = "sync"
    settings.CIRCUIT_SNAPSHOT_TTL_SECONDS = 3600
    return settings


@pytest.fixture(autouse=True)
def reset_pools():
    """Reset connection pool before each test."""
    RedisClient._sync_pool = None
    yield
    RedisClient._sync_pool = None


def test_get_sync_client_creates_pool_once(mock_settings):
    """Test that sync client creates connection pool on first call only."""
    with patch("sync_retry.persistence.redis_client.ConnectionPool") as mock_pool:
        mock_pool.from_url.return_value = MagicMock()

        RedisClient.get_sync_client(mock_settings)
        RedisClient.get_sync_client(mock_settings)

        mock_pool.from_url.assert_called_once_with(
            mock_settings.REDIS_URL,
            max_connections=mock_settings.REDIS_MAX_CONNECTIONS,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=5,
            retry_on_timeout=True,
        )


def test_close_sync_pool():
    """Test closing sync connection pool."""
    mock_pool = MagicMock()
    RedisClient._sync_pool = mock_pool

    RedisClient.close_sync_pool()

    mock_pool.disconnect.assert_called_once()
    assert RedisClient._sync_pool is None


def test_build_store_memory_backend(mock_settings):
    mock_settings.STORE_BACKEND = "memory"

    assert isinstance(build_store(mock_settings), InMemorySyncLogStore)


def test_build_store_redis_backend(mock_settings):
    mock_settings.STORE_BACKEND = "redis"

    with patch("sync_retry.persistence.redis_client.ConnectionPool"):
        store = build_store(mock_settings)

    assert isinstance(store, RedisSyncLogStore)
    assert store.key_prefix == "sync"
