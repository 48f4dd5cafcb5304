"""
Administrative operations on the retry queue.

Backs the admin API and dashboards: queue listings, dead letter triage,
manual dismiss/reset/retry-now, and a combined stats view. Actions never
raise for a missing entry or a disallowed status; they return an
AdminActionResult with a reason instead.
"""

from datetime import datetime
from typing import Callable

import structlog

from sync_retry.circuit.registry import CircuitBreakerRegistry
from sync_retry.clock import Clock, utc_now
from sync_retry.config import Settings
from sync_retry.exceptions import ConcurrentUpdateError, InvalidTransitionError
from sync_retry.models.enums import SyncStatus
from sync_retry.models.results import AdminActionResult, DeadLetterView, RetryQueueStats
from sync_retry.models.sync_log import DISMISSED_NOTE, MANUAL_RESET_NOTE, SyncLogEntry
from sync_retry.monitoring.error_classifier import classify_error
from sync_retry.monitoring.metrics import admin_actions_total
from sync_retry.persistence.sync_log_store import SyncLogStore
from sync_retry.retry.scheduler import RetryScheduler

logger = structlog.get_logger(__name__)

QUEUE_STATUSES = (SyncStatus.RETRYING, SyncStatus.IN_PROGRESS)


class RetryQueueService:
    """
    Admin and observability facade over the sync log store.

    Attributes:
        store: Sync log store
        circuits: Local circuit breaker registry
        scheduler: Used to enqueue entries whose first attempt failed
    """

    def __init__(
        self,
        store: SyncLogStore,
        circuits: CircuitBreakerRegistry,
        scheduler: RetryScheduler,
        error_max_length: int = 2_000,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.circuits = circuits
        self.scheduler = scheduler
        self.error_max_length = error_max_length
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        store: SyncLogStore,
        circuits: CircuitBreakerRegistry,
        clock: Clock = utc_now,
    ) -> "RetryQueueService":
        return cls(
            store=store,
            circuits=circuits,
            scheduler=RetryScheduler.from_settings(store, settings, clock=clock),
            error_max_length=settings.ERROR_MESSAGE_MAX_LENGTH,
            clock=clock,
        )

    # === Queries ===

    def get_retry_queue_entries(self, limit: int = 100) -> list[SyncLogEntry]:
        """Entries currently RETRYING or IN_PROGRESS, soonest retry first."""
        return self.store.list_by_status(QUEUE_STATUSES, limit)

    def get_dead_letter_entries(self, limit: int = 50) -> list[DeadLetterView]:
        """Dead letters, most recently updated first, with failure classification."""
        return [
            DeadLetterView(entry=entry, classification=classify_error(entry.error_message))
            for entry in self.store.list_dead_letters(limit)
        ]

    def get_retry_queue_stats(self) -> RetryQueueStats:
        """
        Queue counts plus circuit snapshots.

        Circuits merge the snapshot published by the processor with the
        local registry; local entries win.
        """
        circuits = dict(self.store.load_circuit_snapshot())
        circuits.update(self.circuits.get_all_statuses())
        return RetryQueueStats(
            pending_retries=self.store.count_by_status(SyncStatus.RETRYING),
            dead_letters=self.store.count_dead_letters(),
            circuits=circuits,
        )

    # === Actions ===

    def dismiss_retry_entry(self, entry_id: str) -> AdminActionResult:
        """Stop retrying an entry (RETRYING or FAILED -> DISMISSED)."""
        return self._apply(
            "dismiss",
            entry_id,
            allowed_from=(SyncStatus.RETRYING, SyncStatus.FAILED),
            change=lambda entry, now: entry.transition_to(
                SyncStatus.DISMISSED, now, next_retry_at=None
            ).with_error(DISMISSED_NOTE, self.error_max_length),
        )

    def reset_dead_letter(self, entry_id: str) -> AdminActionResult:
        """Give a FAILED entry a fresh retry budget, due immediately."""
        return self._apply(
            "reset_dead_letter",
            entry_id,
            allowed_from=(SyncStatus.FAILED,),
            change=lambda entry, now: entry.transition_to(
                SyncStatus.RETRYING, now, retry_count=0, next_retry_at=now
            ).with_error(MANUAL_RESET_NOTE, self.error_max_length),
        )

    def retry_entry_now(self, entry_id: str) -> AdminActionResult:
        """Make a RETRYING entry due immediately for the next batch."""
        return self._apply(
            "retry_now",
            entry_id,
            allowed_from=(SyncStatus.RETRYING,),
            change=lambda entry, now: entry.model_copy(
                update={"next_retry_at": now, "updated_at": now}
            ),
        )

    def enqueue_failed_sync(self, entry_id: str, error_message: str) -> AdminActionResult:
        """
        Put an entry whose first attempt failed into the retry queue.

        Only PENDING entries qualify: an IN_PROGRESS entry is owned by the
        worker attempting it. Records the failure on the entry, then lets the
        scheduler decide between RETRYING and dead letter.
        """
        action = "enqueue"
        entry = self.store.get(entry_id)
        if entry is None:
            return self._result(action, entry_id, success=False, reason="not_found")
        if entry.status != SyncStatus.PENDING:
            return self._result(action, entry_id, success=False, reason="not_applicable", status=entry.status)

        failed = entry.with_error(error_message, self.error_max_length, now=self._clock())
        try:
            self.store.update(failed, expected_version=entry.version)
            self.scheduler.schedule_retry(entry_id)
        except ConcurrentUpdateError as e:
            logger.warning("Entry changed while enqueueing", **e.details)
            current = self.store.get(entry_id)
            return self._result(
                action, entry_id, success=False, reason="not_applicable",
                status=current.status if current else None,
            )

        stored = self.store.get(entry_id)
        return self._result(action, entry_id, success=True, status=stored.status if stored else None)

    def _apply(
        self,
        action: str,
        entry_id: str,
        allowed_from: tuple[SyncStatus, ...],
        change: Callable[[SyncLogEntry, datetime], SyncLogEntry],
    ) -> AdminActionResult:
        """
        Read, decide and conditionally write one entry.

        A version conflict means a worker touched the entry after the read;
        the decision is re-made from a fresh read, up to the scheduler's
        conflict budget, then reported as not applicable.
        """
        entry = None
        for _ in range(self.scheduler.conflict_retries + 1):
            entry = self.store.get(entry_id)
            if entry is None:
                return self._result(action, entry_id, success=False, reason="not_found")
            if entry.status not in allowed_from:
                return self._result(action, entry_id, success=False, reason="not_applicable", status=entry.status)

            try:
                updated = change(entry, self._clock())
            except InvalidTransitionError:
                return self._result(action, entry_id, success=False, reason="not_applicable", status=entry.status)

            try:
                stored = self.store.update(updated, expected_version=entry.version)
            except ConcurrentUpdateError as e:
                logger.info("Entry changed during admin action, re-reading", action=action, **e.details)
                continue
            return self._result(action, entry_id, success=True, status=stored.status)

        return self._result(action, entry_id, success=False, reason="not_applicable", status=entry.status)

    def _result(
        self,
        action: str,
        entry_id: str,
        success: bool,
        reason: str | None = None,
        status: SyncStatus | None = None,
    ) -> AdminActionResult:
        admin_actions_total.labels(action=action, success=str(success).lower()).inc()
        log = logger.info if success else logger.warning
        log(
            "Admin action on retry queue entry",
            action=action,
            entry_id=entry_id,
            success=success,
            reason=reason,
            status=status.value if status else None,
        )
        return AdminActionResult(success=success, entry_id=entry_id, status=status, reason=reason)
