"""
Enumerations for sync retry data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class SyncStatus(str, Enum):
    """
    Lifecycle status of a sync log entry.

    Normal terminal states are SUCCESS and DISMISSED. FAILED is terminal
    unless an admin resets the dead letter.
    """

    PENDING = "pending"
    RETRYING = "retrying"
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"
    DISMISSED = "dismissed"


class BreakerState(str, Enum):
    """Circuit breaker state for one external system."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    @classmethod
    def get_ordinal(cls, state: "BreakerState") -> int:
        """Get gauge value for state (0=closed, 1=half_open, 2=open)."""
        order = [cls.CLOSED, cls.HALF_OPEN, cls.OPEN]
        return order.index(state)
