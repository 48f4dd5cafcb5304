"""In-memory SyncLogStore for local development and unit tests."""

import threading
from datetime import datetime
from typing import Iterable, Optional

import structlog

from sync_retry.exceptions import ConcurrentUpdateError, SyncLogStoreError
from sync_retry.models.enums import SyncStatus
from sync_retry.models.results import CircuitState
from sync_retry.models.sync_log import SyncLogEntry
from sync_retry.persistence.sync_log_store import dead_letter_score, index_score

logger = structlog.get_logger(__name__)


class InMemorySyncLogStore:
    """
    Process-local store with the same version semantics as the Redis store.

    A single lock makes every read-check-write atomic.
    """

    def __init__(self, entries: Optional[Iterable[SyncLogEntry]] = None):
        self._lock = threading.Lock()
        self._entries: dict[str, SyncLogEntry] = {}
        self._circuits: dict[str, CircuitState] = {}
        for entry in entries or ():
            self._entries[entry.id] = entry

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: SyncLogEntry) -> SyncLogEntry:
        with self._lock:
            if entry.id in self._entries:
                raise SyncLogStoreError(
                    f"Sync log entry {entry.id} already exists",
                    details={"entry_id": entry.id},
                )
            self._entries[entry.id] = entry
            return entry

    def get(self, entry_id: str) -> Optional[SyncLogEntry]:
        with self._lock:
            return self._entries.get(entry_id)

    def update(self, entry: SyncLogEntry, expected_version: int) -> SyncLogEntry:
        with self._lock:
            current = self._entries.get(entry.id)
            actual_version = current.version if current is not None else None
            if actual_version != expected_version:
                raise ConcurrentUpdateError(entry.id, expected_version, actual_version)
            stored = entry.model_copy(update={"version": expected_version + 1})
            self._entries[entry.id] = stored
            return stored

    def claim(self, entry_id: str, expected_version: int, started_at: datetime) -> Optional[SyncLogEntry]:
        with self._lock:
            current = self._entries.get(entry_id)
            if (
                current is None
                or current.version != expected_version
                or current.status != SyncStatus.RETRYING
            ):
                logger.info("Sync log entry already claimed", entry_id=entry_id)
                return None
            claimed = current.transition_to(
                SyncStatus.IN_PROGRESS, started_at, started_at=started_at
            ).model_copy(update={"version": expected_version + 1})
            self._entries[entry_id] = claimed
            return claimed

    def find_due(self, now: datetime, limit: int) -> list[SyncLogEntry]:
        with self._lock:
            due = [entry for entry in self._entries.values() if entry.is_due(now)]
        due.sort(key=index_score)
        return due[:limit]

    def list_by_status(self, statuses: Iterable[SyncStatus], limit: int) -> list[SyncLogEntry]:
        wanted = set(statuses)
        with self._lock:
            matching = [entry for entry in self._entries.values() if entry.status in wanted]
        matching.sort(key=index_score)
        return matching[:limit]

    def list_dead_letters(self, limit: int) -> list[SyncLogEntry]:
        with self._lock:
            dead = [entry for entry in self._entries.values() if entry.is_dead_letter]
        dead.sort(key=dead_letter_score, reverse=True)
        return dead[:limit]

    def count_by_status(self, status: SyncStatus) -> int:
        with self._lock:
            return sum(1 for entry in self._entries.values() if entry.status == status)

    def count_dead_letters(self) -> int:
        with self._lock:
            return sum(1 for entry in self._entries.values() if entry.is_dead_letter)

    def save_circuit_snapshot(self, statuses: dict[str, CircuitState]) -> None:
        with self._lock:
            self._circuits = dict(statuses)

    def load_circuit_snapshot(self) -> dict[str, CircuitState]:
        with self._lock:
            return dict(self._circuits)
