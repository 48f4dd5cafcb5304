"""
Exceptions for the retry subsystem.

Per-entry failures (adapter errors, disallowed transitions) are recovered
locally by the processor and admin service. Store errors are structural and
propagate to the caller (Celery task, API error handler).
"""


class SyncRetryError(Exception):
    """
    Base exception for all retry subsystem errors.

    Attributes:
        message: Human-readable message
        details: Structured context for logging
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class SyncLogStoreError(SyncRetryError):
    """
    Raised when the sync log store is unreachable or holds corrupt data.

    Never swallowed by the batch processor: the trigger is responsible for
    logging and alerting.
    """
    pass


class ConcurrentUpdateError(SyncLogStoreError):
    """
    Raised when a conditional update finds a different row version.

    Signals that another worker modified the entry between read and write.
    """

    def __init__(self, entry_id: str, expected_version: int, actual_version: int | None = None):
        super().__init__(
            f"Sync log entry {entry_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})",
            details={
                "entry_id": entry_id,
                "expected_version": expected_version,
                "actual_version": actual_version,
            },
        )
        self.entry_id = entry_id
        self.expected_version = expected_version
        self.actual_version = actual_version


class InvalidTransitionError(SyncRetryError):
    """Raised when a status change is not allowed by the sync log state machine."""

    def __init__(self, entry_id: str, from_status: str, to_status: str):
        super().__init__(
            f"Sync log entry {entry_id} cannot move from {from_status} to {to_status}",
            details={"entry_id": entry_id, "from": from_status, "to": to_status},
        )
        self.entry_id = entry_id
        self.from_status = from_status
        self.to_status = to_status


class AdapterError(SyncRetryError):
    """
    Raised by an adapter when the external call fails.

    The processor treats it exactly like a failed AdapterResult.
    """
    pass


class AdapterNotFoundError(AdapterError):
    """Raised when no adapter is registered for a system."""
    pass
