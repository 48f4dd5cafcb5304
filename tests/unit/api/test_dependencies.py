"""
Unit tests for API dependency injection.
"""

from unittest.mock import patch

import pytest

from sync_retry.api.dependencies import (
    get_circuits,
    get_retry_queue_service,
    get_settings,
    get_store,
)
from sync_retry.circuit.registry import CircuitBreakerRegistry
from sync_retry.config import Settings
from sync_retry.persistence.memory_store import InMemorySyncLogStore
from sync_retry.retry.service import RetryQueueService


@pytest.fixture(autouse=True)
def clear_caches():
    get_store.cache_clear()
    get_circuits.cache_clear()
    yield
    get_store.cache_clear()
    get_circuits.cache_clear()


def test_get_settings():
    """Test settings singleton."""
    settings1 = get_settings()
    settings2 = get_settings()

    # Should be same instance (cached)
    assert settings1 is settings2
    assert isinstance(settings1, Settings)


def test_get_store(test_settings):
    """Test store singleton follows STORE_BACKEND."""
    with patch("sync_retry.api.dependencies.get_settings", return_value=test_settings):
        store1 = get_store()
        store2 = get_store()

    assert store1 is store2
    assert isinstance(store1, InMemorySyncLogStore)


def test_get_circuits(test_settings):
    """Test circuit registry singleton."""
    test_settings.CIRCUIT_FAILURE_THRESHOLD = 2
    with patch("sync_retry.api.dependencies.get_settings", return_value=test_settings):
        circuits1 = get_circuits()
        circuits2 = get_circuits()

    assert circuits1 is circuits2
    assert isinstance(circuits1, CircuitBreakerRegistry)
    assert circuits1.failure_threshold == 2


def test_get_retry_queue_service_not_cached(test_settings, store, circuits):
    """Test service is created fresh per request."""
    service1 = get_retry_queue_service(store=store, circuits=circuits, settings=test_settings)
    service2 = get_retry_queue_service(store=store, circuits=circuits, settings=test_settings)

    assert service1 is not service2
    assert isinstance(service1, RetryQueueService)
    assert service1.store is store
    assert service1.circuits is circuits
