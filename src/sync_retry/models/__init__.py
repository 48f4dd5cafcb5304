"""
Pydantic data models for the sync retry service.

Includes:
- Enums (SyncStatus, BreakerState)
- SyncLogEntry (immutable entry + state machine)
- Result models (BatchResult, CircuitState, RetryQueueStats, AdminActionResult)
"""

from sync_retry.models.enums import BreakerState, SyncStatus
from sync_retry.models.results import (
    AdminActionResult,
    BatchResult,
    CircuitState,
    DeadLetterView,
    ErrorClassification,
    RetryQueueStats,
)
from sync_retry.models.sync_log import ALLOWED_TRANSITIONS, SyncLogEntry

__all__ = [
    # Enums
    "SyncStatus",
    "BreakerState",
    # Entry
    "SyncLogEntry",
    "ALLOWED_TRANSITIONS",
    # Results
    "AdminActionResult",
    "BatchResult",
    "CircuitState",
    "DeadLetterView",
    "ErrorClassification",
    "RetryQueueStats",
]
