"""
Unit tests for RetryScheduler.
"""

import random
from datetime import timedelta

import pytest

from sync_retry.exceptions import ConcurrentUpdateError
from sync_retry.models.enums import SyncStatus
from sync_retry.models.sync_log import DEAD_LETTER_NOTE
from sync_retry.persistence.memory_store import InMemorySyncLogStore
from sync_retry.retry.backoff import BackoffPolicy
from sync_retry.retry.scheduler import RetryScheduler


class ConflictingStore(InMemorySyncLogStore):
    """Store whose first `conflicts` updates fail with a version conflict."""

    def __init__(self, conflicts: int):
        super().__init__()
        self.conflicts = conflicts
        self.update_calls = 0

    def update(self, entry, expected_version):
        self.update_calls += 1
        if self.update_calls <= self.conflicts:
            raise ConcurrentUpdateError(entry.id, expected_version, expected_version + 1)
        return super().update(entry, expected_version)


class TestScheduleRetry:
    def test_schedules_with_backoff(self, store, scheduler, make_entry, clock):
        entry = store.add(make_entry(status=SyncStatus.IN_PROGRESS, retry_count=1))

        assert scheduler.schedule_retry(entry.id) is True

        stored = store.get(entry.id)
        assert stored.status == SyncStatus.RETRYING
        assert stored.retry_count == 2
        # Delay is computed from the pre-increment count: 10s base + up to 25% jitter
        delay = stored.next_retry_at - clock.now
        assert timedelta(seconds=10) <= delay <= timedelta(seconds=12.5)
        assert stored.updated_at == clock.now
        assert stored.version == entry.version + 1

    def test_first_failure_from_pending(self, store, scheduler, make_entry, clock):
        entry = store.add(make_entry(status=SyncStatus.PENDING, retry_count=0, next_retry_at=None))

        assert scheduler.schedule_retry(entry.id) is True

        stored = store.get(entry.id)
        assert stored.retry_count == 1
        assert timedelta(seconds=5) <= stored.next_retry_at - clock.now <= timedelta(seconds=6.25)

    def test_missing_entry_returns_false(self, scheduler):
        assert scheduler.schedule_retry("does-not-exist") is False

    def test_terminal_entry_is_left_alone(self, store, scheduler, make_entry):
        entry = store.add(make_entry(status=SyncStatus.SUCCESS, retry_count=0))

        assert scheduler.schedule_retry(entry.id) is False
        assert store.get(entry.id) == entry


class TestDeadLetter:
    def test_exhausted_budget_dead_letters(self, store, scheduler, make_entry, clock):
        entry = store.add(
            make_entry(status=SyncStatus.IN_PROGRESS, retry_count=3, max_retries=3, error_message="timeout")
        )

        assert scheduler.schedule_retry(entry.id) is False

        stored = store.get(entry.id)
        assert stored.status == SyncStatus.FAILED
        assert stored.retry_count == 3
        assert stored.next_retry_at is None
        assert stored.error_message == f"timeout | {DEAD_LETTER_NOTE}"
        assert stored.is_dead_letter

    def test_dead_letter_after_exactly_max_retries(self, store, scheduler, make_entry):
        """An entry failing every attempt is scheduled max_retries times, then dead-lettered."""
        entry = store.add(make_entry(status=SyncStatus.PENDING, retry_count=0, max_retries=3))

        outcomes = []
        for _ in range(4):
            outcomes.append(scheduler.schedule_retry(entry.id))
            current = store.get(entry.id)
            if current.status == SyncStatus.RETRYING:
                store.update(
                    current.transition_to(SyncStatus.IN_PROGRESS, current.updated_at),
                    expected_version=current.version,
                )

        assert outcomes == [True, True, True, False]
        assert store.get(entry.id).status == SyncStatus.FAILED
        assert store.get(entry.id).retry_count == 3

    def test_zero_budget_dead_letters_immediately(self, store, scheduler, make_entry):
        entry = store.add(make_entry(status=SyncStatus.PENDING, retry_count=0, max_retries=0))

        assert scheduler.schedule_retry(entry.id) is False
        assert store.get(entry.id).status == SyncStatus.FAILED


class TestConflicts:
    def test_retries_after_conflict(self, make_entry, clock):
        store = ConflictingStore(conflicts=2)
        scheduler = RetryScheduler(store, BackoffPolicy(rng=random.Random(1), clock=clock), clock=clock)
        entry = store.add(make_entry(status=SyncStatus.IN_PROGRESS, retry_count=0))

        assert scheduler.schedule_retry(entry.id) is True
        assert store.update_calls == 3
        assert store.get(entry.id).status == SyncStatus.RETRYING

    def test_gives_up_after_conflict_budget(self, make_entry, clock):
        store = ConflictingStore(conflicts=10)
        scheduler = RetryScheduler(
            store,
            BackoffPolicy(rng=random.Random(1), clock=clock),
            conflict_retries=3,
            clock=clock,
        )
        entry = store.add(make_entry(status=SyncStatus.IN_PROGRESS, retry_count=0))

        with pytest.raises(ConcurrentUpdateError):
            scheduler.schedule_retry(entry.id)
        assert store.update_calls == 4


def test_from_settings(store, test_settings):
    test_settings.SCHEDULER_CONFLICT_RETRIES = 5
    test_settings.ERROR_MESSAGE_MAX_LENGTH = 100

    scheduler = RetryScheduler.from_settings(store, test_settings)

    assert scheduler.conflict_retries == 5
    assert scheduler.error_max_length == 100
    assert scheduler.backoff.base_delay == timedelta(seconds=5)
