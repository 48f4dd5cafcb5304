"""Monitoring and metrics instrumentation for the sync retry service.

Exports custom Prometheus metrics and the failure classifier used by
dead letter dashboards.
"""

from sync_retry.monitoring.error_classifier import classify_error
from sync_retry.monitoring.metrics import (
    admin_actions_total,
    batch_duration_seconds,
    circuit_skips_total,
    circuit_state,
    dead_letters_total,
    retry_attempts_total,
)

__all__ = [
    "classify_error",
    "retry_attempts_total",
    "dead_letters_total",
    "circuit_skips_total",
    "circuit_state",
    "batch_duration_seconds",
    "admin_actions_total",
]
