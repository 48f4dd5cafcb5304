"""
Sync log persistence.

Defines the SyncLogStore protocol used by the scheduler, processor and admin
service, and its Redis implementation.

Storage Strategy (Redis):
- Entry: JSON string, key = "{prefix}:entry:{id}"
- Status index: Sorted set per status, key = "{prefix}:status:{status}",
  score = next_retry_at (or updated_at when no retry is scheduled)
- Dead letters: Sorted set "{prefix}:dead_letters", score = updated_at
- Circuit snapshot: JSON string "{prefix}:circuits" with TTL

Every write is conditional on the entry's `version`. Writes run inside a
WATCH/MULTI transaction, so a concurrent writer surfaces as
ConcurrentUpdateError instead of a lost update.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional, Protocol

import structlog
from pydantic import TypeAdapter, ValidationError
from redis import Redis
from redis.client import Pipeline
from redis.exceptions import RedisError, WatchError

from sync_retry.config import Settings
from sync_retry.exceptions import ConcurrentUpdateError, SyncLogStoreError
from sync_retry.models.enums import SyncStatus
from sync_retry.models.results import CircuitState
from sync_retry.models.sync_log import SyncLogEntry

logger = structlog.get_logger(__name__)

_snapshot_adapter = TypeAdapter(dict[str, CircuitState])


class SyncLogStore(Protocol):
    """
    Persistence contract for sync log entries.

    Implementations must make `update` and `claim` atomic with respect to
    the entry's version, and must bump `version` on every successful write.
    Any backend failure is raised as SyncLogStoreError.
    """

    def get(self, entry_id: str) -> Optional[SyncLogEntry]:
        ...

    def add(self, entry: SyncLogEntry) -> SyncLogEntry:
        ...

    def update(self, entry: SyncLogEntry, expected_version: int) -> SyncLogEntry:
        """
        Persist `entry` if the stored version still equals `expected_version`.

        Returns:
            The stored entry with its bumped version

        Raises:
            ConcurrentUpdateError: If the stored version moved (or the entry vanished)
        """
        ...

    def claim(self, entry_id: str, expected_version: int, started_at: datetime) -> Optional[SyncLogEntry]:
        """
        Atomically move a RETRYING entry to IN_PROGRESS.

        Returns:
            The claimed entry, or None if another worker got there first
        """
        ...

    def find_due(self, now: datetime, limit: int) -> list[SyncLogEntry]:
        """RETRYING entries with next_retry_at <= now, oldest due first."""
        ...

    def list_by_status(self, statuses: Iterable[SyncStatus], limit: int) -> list[SyncLogEntry]:
        """Entries in any of `statuses`, ordered by next_retry_at ascending."""
        ...

    def list_dead_letters(self, limit: int) -> list[SyncLogEntry]:
        """Dead-lettered entries, most recently updated first."""
        ...

    def count_by_status(self, status: SyncStatus) -> int:
        ...

    def count_dead_letters(self) -> int:
        ...

    def save_circuit_snapshot(self, statuses: dict[str, CircuitState]) -> None:
        ...

    def load_circuit_snapshot(self) -> dict[str, CircuitState]:
        ...


def index_score(entry: SyncLogEntry) -> float:
    """Sort key used by the status index."""
    moment = entry.next_retry_at or entry.updated_at or entry.created_at
    return moment.timestamp() if moment else 0.0


def dead_letter_score(entry: SyncLogEntry) -> float:
    moment = entry.updated_at or entry.created_at
    return moment.timestamp() if moment else 0.0


class RedisSyncLogStore:
    """
    Redis-backed SyncLogStore.

    Uses a sync Redis client from the shared connection pool. Redis errors
    are wrapped in SyncLogStoreError and propagate to the caller.
    """

    def __init__(self, redis_client: Redis, key_prefix: str = "sync", snapshot_ttl_seconds: int = 3600):
        """
        Initialize store.

        Args:
            redis_client: Redis client instance (decode_responses=True)
            key_prefix: Namespace for every key written by this store
            snapshot_ttl_seconds: Expiry of the published circuit snapshot
        """
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.snapshot_ttl_seconds = snapshot_ttl_seconds

    @classmethod
    def from_settings(cls, redis_client: Redis, settings: Settings) -> "RedisSyncLogStore":
        return cls(
            redis_client,
            key_prefix=settings.REDIS_KEY_PREFIX,
            snapshot_ttl_seconds=settings.CIRCUIT_SNAPSHOT_TTL_SECONDS,
        )

    # === Keys ===

    def _entry_key(self, entry_id: str) -> str:
        return f"{self.key_prefix}:entry:{entry_id}"

    def _status_key(self, status: SyncStatus) -> str:
        return f"{self.key_prefix}:status:{status.value}"

    @property
    def _dead_letters_key(self) -> str:
        return f"{self.key_prefix}:dead_letters"

    @property
    def _circuits_key(self) -> str:
        return f"{self.key_prefix}:circuits"

    # === Serialization ===

    def _decode(self, entry_id: str, raw: Optional[str]) -> Optional[SyncLogEntry]:
        if raw is None:
            return None
        try:
            return SyncLogEntry.model_validate_json(raw)
        except ValidationError as e:
            raise SyncLogStoreError(
                f"Corrupt sync log entry {entry_id}",
                details={"entry_id": entry_id, "error": str(e)},
            ) from e

    def _fetch_many(self, entry_ids: list[str]) -> list[SyncLogEntry]:
        if not entry_ids:
            return []
        raws = self.redis.mget([self._entry_key(entry_id) for entry_id in entry_ids])
        entries = []
        for entry_id, raw in zip(entry_ids, raws):
            entry = self._decode(entry_id, raw)
            if entry is not None:
                entries.append(entry)
        return entries

    def _index(self, pipe: Pipeline, previous: Optional[SyncLogEntry], entry: SyncLogEntry) -> None:
        """Queue index maintenance for a write of `entry` (inside MULTI)."""
        if previous is not None and previous.status != entry.status:
            pipe.zrem(self._status_key(previous.status), entry.id)
        pipe.zadd(self._status_key(entry.status), {entry.id: index_score(entry)})
        if entry.is_dead_letter:
            pipe.zadd(self._dead_letters_key, {entry.id: dead_letter_score(entry)})
        else:
            pipe.zrem(self._dead_letters_key, entry.id)

    def _conditional_write(
        self,
        entry_id: str,
        expected_version: Optional[int],
        build: Callable[[Optional[SyncLogEntry]], SyncLogEntry],
    ) -> SyncLogEntry:
        """
        Read-check-write one entry inside a WATCH/MULTI transaction.

        Args:
            entry_id: Entry to write
            expected_version: Required stored version (None = entry must not exist)
            build: Produces the entry to persist from the current stored entry

        Raises:
            ConcurrentUpdateError: If the version check fails or the key changed mid-transaction
            SyncLogStoreError: If Redis fails
        """
        key = self._entry_key(entry_id)
        try:
            with self.redis.pipeline() as pipe:
                pipe.watch(key)
                current = self._decode(entry_id, pipe.get(key))
                actual_version = current.version if current is not None else None

                if expected_version is None and current is not None:
                    raise SyncLogStoreError(
                        f"Sync log entry {entry_id} already exists",
                        details={"entry_id": entry_id},
                    )
                if expected_version is not None and actual_version != expected_version:
                    raise ConcurrentUpdateError(entry_id, expected_version, actual_version)

                stored = build(current)
                pipe.multi()
                pipe.set(key, stored.model_dump_json())
                self._index(pipe, current, stored)
                pipe.execute()
                return stored
        except WatchError as e:
            raise ConcurrentUpdateError(entry_id, expected_version or 0) from e
        except RedisError as e:
            raise SyncLogStoreError(
                f"Redis write failed for sync log entry {entry_id}",
                details={"entry_id": entry_id, "error": str(e)},
            ) from e

    # === Writes ===

    def add(self, entry: SyncLogEntry) -> SyncLogEntry:
        stored = self._conditional_write(entry.id, None, lambda _current: entry)
        logger.info(
            "Added sync log entry",
            entry_id=entry.id,
            system=entry.system_name,
            status=entry.status.value,
        )
        return stored

    def update(self, entry: SyncLogEntry, expected_version: int) -> SyncLogEntry:
        stored = self._conditional_write(
            entry.id,
            expected_version,
            lambda _current: entry.model_copy(update={"version": expected_version + 1}),
        )
        logger.debug(
            "Updated sync log entry",
            entry_id=entry.id,
            status=stored.status.value,
            version=stored.version,
        )
        return stored

    def claim(self, entry_id: str, expected_version: int, started_at: datetime) -> Optional[SyncLogEntry]:
        def build(current: Optional[SyncLogEntry]) -> SyncLogEntry:
            if current is None or current.status != SyncStatus.RETRYING:
                raise ConcurrentUpdateError(entry_id, expected_version, None)
            claimed = current.transition_to(
                SyncStatus.IN_PROGRESS, started_at, started_at=started_at
            )
            return claimed.model_copy(update={"version": expected_version + 1})

        try:
            return self._conditional_write(entry_id, expected_version, build)
        except ConcurrentUpdateError:
            logger.info("Sync log entry already claimed", entry_id=entry_id)
            return None

    # === Reads ===

    def get(self, entry_id: str) -> Optional[SyncLogEntry]:
        try:
            raw = self.redis.get(self._entry_key(entry_id))
        except RedisError as e:
            raise SyncLogStoreError(
                f"Redis read failed for sync log entry {entry_id}",
                details={"entry_id": entry_id, "error": str(e)},
            ) from e
        return self._decode(entry_id, raw)

    def find_due(self, now: datetime, limit: int) -> list[SyncLogEntry]:
        try:
            entry_ids = self.redis.zrangebyscore(
                self._status_key(SyncStatus.RETRYING),
                "-inf",
                now.timestamp(),
                start=0,
                num=limit,
            )
            entries = self._fetch_many(entry_ids)
        except RedisError as e:
            raise SyncLogStoreError(
                "Redis query for due retries failed",
                details={"error": str(e)},
            ) from e
        # The index can briefly lag a concurrent write
        return [entry for entry in entries if entry.is_due(now)]

    def list_by_status(self, statuses: Iterable[SyncStatus], limit: int) -> list[SyncLogEntry]:
        statuses = list(statuses)
        try:
            scored: list[tuple[float, str]] = []
            for status in statuses:
                for entry_id, score in self.redis.zrange(
                    self._status_key(status), 0, limit - 1, withscores=True
                ):
                    scored.append((score, entry_id))
            scored.sort()
            return self._fetch_many([entry_id for _score, entry_id in scored[:limit]])
        except RedisError as e:
            raise SyncLogStoreError(
                "Redis query by status failed",
                details={"statuses": [s.value for s in statuses], "error": str(e)},
            ) from e

    def list_dead_letters(self, limit: int) -> list[SyncLogEntry]:
        try:
            entry_ids = self.redis.zrevrange(self._dead_letters_key, 0, limit - 1)
            return self._fetch_many(entry_ids)
        except RedisError as e:
            raise SyncLogStoreError(
                "Redis query for dead letters failed",
                details={"error": str(e)},
            ) from e

    def count_by_status(self, status: SyncStatus) -> int:
        try:
            return int(self.redis.zcard(self._status_key(status)))
        except RedisError as e:
            raise SyncLogStoreError(
                "Redis count by status failed",
                details={"status": status.value, "error": str(e)},
            ) from e

    def count_dead_letters(self) -> int:
        try:
            return int(self.redis.zcard(self._dead_letters_key))
        except RedisError as e:
            raise SyncLogStoreError(
                "Redis count of dead letters failed",
                details={"error": str(e)},
            ) from e

    # === Circuit snapshot ===

    def save_circuit_snapshot(self, statuses: dict[str, CircuitState]) -> None:
        try:
            self.redis.setex(
                name=self._circuits_key,
                time=self.snapshot_ttl_seconds,
                value=_snapshot_adapter.dump_json(statuses).decode(),
            )
        except RedisError as e:
            raise SyncLogStoreError(
                "Failed to publish circuit snapshot",
                details={"error": str(e)},
            ) from e

    def load_circuit_snapshot(self) -> dict[str, CircuitState]:
        try:
            raw = self.redis.get(self._circuits_key)
        except RedisError as e:
            raise SyncLogStoreError(
                "Failed to read circuit snapshot",
                details={"error": str(e)},
            ) from e
        if raw is None:
            return {}
        try:
            return _snapshot_adapter.validate_json(raw)
        except ValidationError:
            logger.warning("Discarding corrupt circuit snapshot", key=self._circuits_key)
            return {}
