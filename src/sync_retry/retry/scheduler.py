"""
Retry scheduling for failed sync log entries.

Decides whether a failed entry gets another attempt (RETRYING with a
backoff delay) or exhausts its budget and becomes a dead letter (FAILED).
"""

import structlog

from sync_retry.clock import Clock, utc_now
from sync_retry.config import Settings
from sync_retry.exceptions import ConcurrentUpdateError
from sync_retry.models.enums import SyncStatus
from sync_retry.models.sync_log import DEAD_LETTER_NOTE
from sync_retry.monitoring.metrics import dead_letters_total
from sync_retry.persistence.sync_log_store import SyncLogStore
from sync_retry.retry.backoff import BackoffPolicy

logger = structlog.get_logger(__name__)


class RetryScheduler:
    """
    Schedules the next retry of an entry, or dead-letters it.

    The read-then-write is guarded by the entry version. On a conflict the
    decision is re-made from a fresh read, up to `conflict_retries` times.
    """

    def __init__(
        self,
        store: SyncLogStore,
        backoff: BackoffPolicy,
        conflict_retries: int = 3,
        error_max_length: int = 2_000,
        clock: Clock = utc_now,
    ):
        self.store = store
        self.backoff = backoff
        self.conflict_retries = conflict_retries
        self.error_max_length = error_max_length
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        store: SyncLogStore,
        settings: Settings,
        backoff: BackoffPolicy | None = None,
        clock: Clock = utc_now,
    ) -> "RetryScheduler":
        return cls(
            store=store,
            backoff=backoff or BackoffPolicy.from_settings(settings, clock=clock),
            conflict_retries=settings.SCHEDULER_CONFLICT_RETRIES,
            error_max_length=settings.ERROR_MESSAGE_MAX_LENGTH,
            clock=clock,
        )

    def schedule_retry(self, entry_id: str) -> bool:
        """
        Schedule the next retry for an entry.

        Args:
            entry_id: Sync log entry ID

        Returns:
            True if a retry was scheduled, False if the entry is missing,
            terminal, or was dead-lettered by this call

        Raises:
            ConcurrentUpdateError: If the entry kept changing underneath us
            SyncLogStoreError: If the store is unavailable
        """
        attempt = 0
        while True:
            try:
                return self._schedule_once(entry_id)
            except ConcurrentUpdateError:
                attempt += 1
                if attempt > self.conflict_retries:
                    logger.error(
                        "Giving up scheduling retry after repeated conflicts",
                        entry_id=entry_id,
                        attempts=attempt,
                    )
                    raise
                logger.warning(
                    "Concurrent update while scheduling retry, re-reading",
                    entry_id=entry_id,
                    attempt=attempt,
                )

    def _schedule_once(self, entry_id: str) -> bool:
        entry = self.store.get(entry_id)
        if entry is None:
            logger.warning("Cannot schedule retry: entry not found", entry_id=entry_id)
            return False

        now = self._clock()

        if entry.retry_count >= entry.max_retries:
            if not entry.can_transition_to(SyncStatus.FAILED):
                logger.warning(
                    "Cannot dead-letter entry from its current status",
                    entry_id=entry_id,
                    status=entry.status.value,
                )
                return False
            dead = entry.transition_to(SyncStatus.FAILED, now, next_retry_at=None).with_error(
                DEAD_LETTER_NOTE, self.error_max_length
            )
            self.store.update(dead, expected_version=entry.version)
            dead_letters_total.labels(system=entry.system_name).inc()
            logger.warning(
                "Max retries exceeded, moved to dead letter",
                entry_id=entry_id,
                system=entry.system_name,
                retry_count=entry.retry_count,
                max_retries=entry.max_retries,
            )
            return False

        if not entry.can_transition_to(SyncStatus.RETRYING):
            logger.warning(
                "Cannot schedule retry from current status",
                entry_id=entry_id,
                status=entry.status.value,
            )
            return False

        next_retry_at = self.backoff.calculate_next_retry_at(entry.retry_count, now=now)
        scheduled = entry.transition_to(
            SyncStatus.RETRYING,
            now,
            next_retry_at=next_retry_at,
            retry_count=entry.retry_count + 1,
        )
        self.store.update(scheduled, expected_version=entry.version)
        logger.info(
            "Scheduled retry",
            entry_id=entry_id,
            system=entry.system_name,
            retry_count=scheduled.retry_count,
            max_retries=entry.max_retries,
            next_retry_at=next_retry_at.isoformat(),
        )
        return True
