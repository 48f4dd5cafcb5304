"""
Result and snapshot models returned by the retry subsystem.

These are the values that leave the subsystem: batch summaries for the
trigger, circuit snapshots and queue stats for dashboards, and admin action
outcomes for the HTTP API.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from sync_retry.models.enums import BreakerState, SyncStatus
from sync_retry.models.sync_log import SyncLogEntry


class CircuitState(BaseModel):
    """Read-only snapshot of one system's circuit breaker."""
    model_config = ConfigDict(frozen=True)

    system_name: str
    state: BreakerState = BreakerState.CLOSED
    failure_count: int = Field(default=0, ge=0, description="Consecutive failures since last success")
    last_failure_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    cooldown_remaining_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Seconds until an OPEN breaker allows a probe (0 if not OPEN)",
    )


class BatchResult(BaseModel):
    """
    Summary of one retry queue run.

    `failed` counts failed attempts (rescheduled or dead-lettered);
    `dead_lettered` is the subset that exhausted its retry budget.
    """

    processed: int = Field(default=0, ge=0, description="Entries selected for this run")
    succeeded: int = Field(default=0, ge=0)
    failed: int = Field(default=0, ge=0)
    skipped_circuit_open: int = Field(default=0, ge=0)
    skipped_already_claimed: int = Field(default=0, ge=0)
    dead_lettered: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)


class RetryQueueStats(BaseModel):
    """Single-call dashboard view of the retry queue."""

    pending_retries: int = Field(..., ge=0, description="Entries in RETRYING")
    dead_letters: int = Field(..., ge=0, description="FAILED entries with exhausted budget")
    circuits: dict[str, CircuitState] = Field(default_factory=dict)


class AdminActionResult(BaseModel):
    """Outcome of a dismiss/reset/retry-now request."""

    success: bool
    entry_id: str
    status: Optional[SyncStatus] = Field(default=None, description="Entry status after the action")
    reason: Optional[str] = Field(
        default=None,
        description="Why the action was not applied",
        examples=["not_found", "not_applicable"],
    )


class ErrorClassification(BaseModel):
    """Pattern-based classification of a sync failure message."""
    model_config = ConfigDict(frozen=True)

    category: str = Field(..., examples=["auth", "network", "validation", "rate_limit", "data", "unknown"])
    severity: str = Field(..., examples=["critical", "warning", "info"])
    retriable: bool
    suggested_action: str


class DeadLetterView(BaseModel):
    """Dead letter entry annotated with its failure classification."""

    entry: SyncLogEntry
    classification: ErrorClassification
