"""
Batch processor for the sync retry queue.

One run selects the due RETRYING entries and, for each in turn:
    1. Skips it if the target system's circuit is open
    2. Claims it (RETRYING -> IN_PROGRESS) with a version-checked write
    3. Calls the adapter
    4. Routes the outcome: SUCCESS, or back through the scheduler

Usage:
    processor = RetryQueueProcessor.from_settings(settings, store, circuits, adapter)
    result = await processor.process_retry_queue()
"""

import time
from collections import Counter

import structlog

from sync_retry.adapters.base import AdapterResult, SyncAdapter
from sync_retry.circuit.registry import CircuitBreakerRegistry
from sync_retry.clock import Clock, utc_now
from sync_retry.config import Settings
from sync_retry.exceptions import AdapterError, ConcurrentUpdateError, SyncLogStoreError
from sync_retry.models.enums import SyncStatus
from sync_retry.models.results import BatchResult
from sync_retry.models.sync_log import SyncLogEntry
from sync_retry.monitoring.metrics import (
    batch_duration_seconds,
    circuit_skips_total,
    retry_attempts_total,
)
from sync_retry.persistence.sync_log_store import SyncLogStore
from sync_retry.retry.scheduler import RetryScheduler

logger = structlog.get_logger(__name__)


class RetryQueueProcessor:
    """
    Processes one batch of due retries.

    Entries are handled sequentially. A failure on one entry never aborts
    the batch; only the selection query and store outages propagate.

    Attributes:
        store: Sync log store
        circuits: Per-system circuit breakers (shared for the process lifetime)
        adapter: Adapter used for every attempt (usually an AdapterRegistry)
        scheduler: Decides retry vs dead letter after a failed attempt
        batch_size: Maximum entries selected per run
    """

    def __init__(
        self,
        store: SyncLogStore,
        circuits: CircuitBreakerRegistry,
        adapter: SyncAdapter,
        scheduler: RetryScheduler,
        batch_size: int = 50,
        error_max_length: int = 2_000,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.circuits = circuits
        self.adapter = adapter
        self.scheduler = scheduler
        self.batch_size = batch_size
        self.error_max_length = error_max_length
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: SyncLogStore,
        circuits: CircuitBreakerRegistry,
        adapter: SyncAdapter,
        clock: Clock = utc_now,
    ) -> "RetryQueueProcessor":
        return cls(
            store=store,
            circuits=circuits,
            adapter=adapter,
            scheduler=RetryScheduler.from_settings(store, settings, clock=clock),
            batch_size=settings.RETRY_BATCH_SIZE,
            error_max_length=settings.ERROR_MESSAGE_MAX_LENGTH,
            clock=clock,
        )

    async def process_retry_queue(self) -> BatchResult:
        """
        Run one pass over the due retries.

        Returns:
            BatchResult with per-outcome counters

        Raises:
            SyncLogStoreError: If the due-entry query fails or the store goes away
        """
        start_time = time.monotonic()
        due = self.store.find_due(self._clock(), self.batch_size)

        logger.info("Processing retry queue", due=len(due), batch_size=self.batch_size)

        counts: Counter[str] = Counter()
        for entry in due:
            await self._process_entry(entry, counts)

        self._publish_circuits()

        duration = time.monotonic() - start_time
        batch_duration_seconds.observe(duration)
        result = BatchResult(
            processed=len(due),
            succeeded=counts["succeeded"],
            failed=counts["failed"],
            skipped_circuit_open=counts["skipped_circuit_open"],
            skipped_already_claimed=counts["skipped_already_claimed"],
            dead_lettered=counts["dead_lettered"],
            duration_ms=int(duration * 1000),
        )

        logger.info("Retry queue processed", **result.model_dump())
        return result

    async def _process_entry(self, entry: SyncLogEntry, counts: Counter) -> None:
        log = logger.bind(entry_id=entry.id, system=entry.system_name, operation=entry.operation)

        if self.circuits.is_open(entry.system_name):
            counts["skipped_circuit_open"] += 1
            circuit_skips_total.labels(system=entry.system_name).inc()
            log.info("Circuit open, skipping retry")
            return

        claimed = self.store.claim(entry.id, entry.version, self._clock())
        if claimed is None:
            # No attempt, so a probe granted by is_open() goes back unused
            self.circuits.release_probe(entry.system_name)
            counts["skipped_already_claimed"] += 1
            return

        result = await self._attempt(claimed, log)

        try:
            if result.success:
                self._route_success(claimed, result)
                counts["succeeded"] += 1
                log.info("Retry succeeded", retry_count=claimed.retry_count)
            else:
                scheduled = self._route_failure(claimed, result.error_message or "Unknown error")
                counts["failed"] += 1
                if not scheduled:
                    counts["dead_lettered"] += 1
                log.warning(
                    "Retry failed",
                    retry_count=claimed.retry_count,
                    rescheduled=scheduled,
                    error=result.error_message,
                )
        except ConcurrentUpdateError as e:
            counts["failed"] += 1
            log.error("Concurrent update while recording retry outcome", **e.details)

    async def _attempt(self, entry: SyncLogEntry, log) -> AdapterResult:
        try:
            return await self.adapter.attempt(entry.system_name, entry.operation, entry.payload)
        except AdapterError as e:
            return AdapterResult.fail(e.message)
        except Exception as e:
            # Any adapter crash is an attempt failure, never a batch failure
            log.error("Adapter raised unexpectedly", error=str(e), exc_info=True)
            return AdapterResult.fail(f"{type(e).__name__}: {e}")

    def _route_success(self, entry: SyncLogEntry, result: AdapterResult) -> None:
        self.circuits.record_success(entry.system_name)
        retry_attempts_total.labels(system=entry.system_name, outcome="success").inc()

        now = self._clock()
        done = entry.transition_to(
            SyncStatus.SUCCESS,
            now,
            completed_at=now,
            response=result.response,
            next_retry_at=None,
        )
        self.store.update(done, expected_version=entry.version)

    def _route_failure(self, entry: SyncLogEntry, error_message: str) -> bool:
        self.circuits.record_failure(entry.system_name)
        retry_attempts_total.labels(system=entry.system_name, outcome="failure").inc()

        failed = entry.with_error(error_message, self.error_max_length, now=self._clock())
        self.store.update(failed, expected_version=entry.version)
        return self.scheduler.schedule_retry(entry.id)

    def _publish_circuits(self) -> None:
        try:
            self.store.save_circuit_snapshot(self.circuits.get_all_statuses())
        except SyncLogStoreError as e:
            logger.warning("Failed to publish circuit snapshot", error=e.message)

    async def close(self) -> None:
        await self.adapter.close()
