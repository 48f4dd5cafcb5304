"""
Sync log entry model and lifecycle state machine.

A SyncLogEntry is one integration operation against an external system.
Entries are immutable: every change produces a new instance via
model_copy(), and the store bumps `version` on each persisted write so
concurrent writers can be detected.

State machine:
    pending     -> in_progress | retrying | failed
    retrying    -> in_progress | retrying | failed | dismissed
    in_progress -> success | retrying | failed
    failed      -> retrying (manual reset) | dismissed
"""

from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from sync_retry.models.enums import SyncStatus
from sync_retry.exceptions import InvalidTransitionError

ALLOWED_TRANSITIONS: dict[SyncStatus, frozenset[SyncStatus]] = {
    SyncStatus.PENDING: frozenset(
        {SyncStatus.IN_PROGRESS, SyncStatus.RETRYING, SyncStatus.FAILED}
    ),
    SyncStatus.RETRYING: frozenset(
        {SyncStatus.IN_PROGRESS, SyncStatus.RETRYING, SyncStatus.FAILED, SyncStatus.DISMISSED}
    ),
    SyncStatus.IN_PROGRESS: frozenset(
        {SyncStatus.SUCCESS, SyncStatus.RETRYING, SyncStatus.FAILED}
    ),
    SyncStatus.FAILED: frozenset({SyncStatus.RETRYING, SyncStatus.DISMISSED}),
    SyncStatus.SUCCESS: frozenset(),
    SyncStatus.DISMISSED: frozenset(),
}

ERROR_SEPARATOR = " | "
TRUNCATION_MARKER = "[truncated] "

DEAD_LETTER_NOTE = "[Max retries exceeded - dead letter]"
DISMISSED_NOTE = "[Dismissed by admin]"
MANUAL_RESET_NOTE = "[Manual reset]"


def append_error_text(existing: Optional[str], message: str, max_length: int) -> str:
    """
    Append a message to an error history, keeping only the newest text.

    The oldest characters are dropped once the history exceeds max_length,
    and a truncation marker is prepended so readers know history was cut.
    """
    combined = f"{existing}{ERROR_SEPARATOR}{message}" if existing else message
    if len(combined) <= max_length:
        return combined
    keep = max(max_length - len(TRUNCATION_MARKER), 0)
    return TRUNCATION_MARKER + (combined[-keep:] if keep else "")


class SyncLogEntry(BaseModel):
    """
    One integration sync operation and its retry lifecycle.

    Invariant: retry_count <= max_retries, except on the write that moves
    the entry to FAILED (dead letter).
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()), description="Unique entry identifier")
    system_name: str = Field(..., min_length=1, description="Target external system (circuit key)")
    operation: str = Field(..., min_length=1, description="Logical operation, e.g. 'post_invoice'")
    payload: Any = Field(default=None, description="Opaque adapter input")
    status: SyncStatus = Field(default=SyncStatus.PENDING)
    retry_count: int = Field(default=0, ge=0, description="Retries already scheduled")
    max_retries: int = Field(default=3, ge=0, description="Retry budget for this entry")
    next_retry_at: Optional[datetime] = Field(default=None)
    error_message: Optional[str] = Field(default=None, description="Accumulated failure history")
    response: Any = Field(default=None, description="Opaque adapter result on success")
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = Field(default=0, ge=0, description="Row revision for optimistic concurrency")

    # Descriptive fields, never interpreted by the retry logic
    direction: Optional[str] = Field(default=None, description="'push' or 'pull'")
    entity_type: Optional[str] = None
    entity_ref: Optional[str] = None
    external_id: Optional[str] = None

    @property
    def is_dead_letter(self) -> bool:
        return self.status == SyncStatus.FAILED and self.retry_count >= self.max_retries

    def is_due(self, now: datetime) -> bool:
        """Retrying entry whose scheduled retry time has passed."""
        return (
            self.status == SyncStatus.RETRYING
            and self.next_retry_at is not None
            and self.next_retry_at <= now
        )

    def can_transition_to(self, status: SyncStatus) -> bool:
        return status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, status: SyncStatus, now: datetime, **updates: Any) -> "SyncLogEntry":
        """
        Return a copy moved to `status` with extra field updates applied.

        Raises:
            InvalidTransitionError: If the state machine forbids the move
        """
        if not self.can_transition_to(status):
            raise InvalidTransitionError(self.id, self.status.value, status.value)
        return self.model_copy(update={**updates, "status": status, "updated_at": now})

    def with_error(self, message: str, max_length: int, now: Optional[datetime] = None) -> "SyncLogEntry":
        """Return a copy with `message` appended to the capped error history."""
        update: dict[str, Any] = {
            "error_message": append_error_text(self.error_message, message, max_length)
        }
        if now is not None:
            update["updated_at"] = now
        return self.model_copy(update=update)
