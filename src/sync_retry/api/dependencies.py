"""
FastAPI dependency injection for the retry queue admin API.

Provides singleton instances of the store and circuit registry, and a
factory for the admin service built on top of them.
"""

from functools import lru_cache

from fastapi import Depends

from sync_retry.circuit.registry import CircuitBreakerRegistry
from sync_retry.config import Settings, settings
from sync_retry.persistence import build_store
from sync_retry.persistence.sync_log_store import SyncLogStore
from sync_retry.retry.service import RetryQueueService


@lru_cache()
def get_settings() -> Settings:
    """
    Get settings singleton.

    Returns:
        Settings instance
    """
    return settings


@lru_cache()
def get_store() -> SyncLogStore:
    """
    Get singleton sync log store.

    The Redis store shares the process-wide connection pool.

    Returns:
        SyncLogStore selected by STORE_BACKEND
    """
    return build_store(get_settings())


@lru_cache()
def get_circuits() -> CircuitBreakerRegistry:
    """
    Get the API process's circuit breaker registry.

    Breakers tripped by Celery workers are visible through the snapshot
    they publish, not through this registry.
    """
    return CircuitBreakerRegistry.from_settings(get_settings())


def get_retry_queue_service(
    store: SyncLogStore = Depends(get_store),
    circuits: CircuitBreakerRegistry = Depends(get_circuits),
    settings: Settings = Depends(get_settings),
) -> RetryQueueService:
    """
    Create the admin service with injected dependencies.

    Note: RetryQueueService is NOT cached because it's lightweight and stateless.

    Args:
        store: Sync log store singleton (injected)
        circuits: Circuit registry singleton (injected)
        settings: Application settings (injected)

    Returns:
        RetryQueueService instance
    """
    return RetryQueueService.from_settings(settings, store=store, circuits=circuits)
