"""
Celery task that runs the retry queue processor.

Tasks accept and return JSON-serializable dicts for compatibility with
Celery's JSON serialization.
"""

import asyncio
import threading

import structlog
from celery import Task
from redis.exceptions import LockError

from sync_retry.adapters.registry import AdapterRegistry
from sync_retry.circuit.registry import CircuitBreakerRegistry
from sync_retry.config import settings
from sync_retry.persistence import build_store
from sync_retry.persistence.redis_client import RedisClient
from sync_retry.retry.processor import RetryQueueProcessor
from sync_retry.tasks.celery_app import celery_app

logger = structlog.get_logger(__name__)

PROCESSOR_LOCK_NAME = "processor_lock"


class RetryQueueTask(Task):
    """
    Base task class with resource initialization.

    Initializes resources once per worker process and reuses them across
    task invocations, so circuit breaker state survives between runs.
    """

    _store = None
    _circuits = None
    _adapter = None
    _processor = None
    _local_lock = threading.Lock()

    @property
    def store(self):
        """Get or initialize the sync log store (singleton per worker)."""
        if self._store is None:
            self._store = build_store(settings)
        return self._store

    @property
    def circuits(self):
        """Get or initialize the circuit breaker registry (singleton per worker)."""
        if self._circuits is None:
            self._circuits = CircuitBreakerRegistry.from_settings(settings)
        return self._circuits

    @property
    def adapter(self):
        """Get or initialize the adapter registry (singleton per worker)."""
        if self._adapter is None:
            self._adapter = AdapterRegistry.from_settings(settings)
        return self._adapter

    @property
    def processor(self):
        """Get or initialize the retry queue processor (singleton per worker)."""
        if self._processor is None:
            self._processor = RetryQueueProcessor.from_settings(
                settings,
                store=self.store,
                circuits=self.circuits,
                adapter=self.adapter,
            )
        return self._processor

    def processor_lock(self):
        """
        Lock that keeps batch runs from overlapping.

        Redis-backed stores share a Redis lock across workers; the in-memory
        store is process-local, so a process-local lock is enough.
        """
        if settings.STORE_BACKEND == "memory":
            return self._local_lock
        redis_client = RedisClient.get_sync_client(settings)
        return redis_client.lock(
            f"{settings.REDIS_KEY_PREFIX}:{PROCESSOR_LOCK_NAME}",
            timeout=settings.PROCESSOR_LOCK_TIMEOUT,
        )


async def _run_batch(processor: RetryQueueProcessor):
    try:
        return await processor.process_retry_queue()
    finally:
        # HTTP clients are bound to this event loop
        await processor.close()


@celery_app.task(bind=True, base=RetryQueueTask, name="process_retry_queue")
def process_retry_queue(self: RetryQueueTask) -> dict:
    """
    Run one pass over the due retries.

    Returns:
        BatchResult as dict, or {"skipped": True} if another run holds the lock

    Raises:
        SyncLogStoreError: Store unavailable (logged here, surfaced to Celery)
    """
    lock = self.processor_lock()
    if not lock.acquire(blocking=False):
        logger.info("Retry queue run already in progress, skipping", task_id=self.request.id)
        return {"skipped": True, "reason": "locked"}

    try:
        logger.info("Retry queue task started", task_id=self.request.id)
        result = asyncio.run(_run_batch(self.processor))
        logger.info("Retry queue task completed", task_id=self.request.id, **result.model_dump())
        return result.model_dump(mode="json")
    except Exception as exc:
        logger.error(
            "Retry queue task failed",
            task_id=self.request.id,
            error_type=type(exc).__name__,
            exc_info=True,
        )
        raise
    finally:
        try:
            lock.release()
        except LockError:
            logger.warning("Processor lock expired before release", task_id=self.request.id)
