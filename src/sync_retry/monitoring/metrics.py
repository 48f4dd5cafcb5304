"""Custom Prometheus metrics for the integration sync retry service.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- sync_retry_dead_letters_total (any increase requires manual review)
- sync_retry_circuit_state (a breaker stuck OPEN means an external system is down)
- sync_retry_attempts_total (high failure ratio per system)
"""

from prometheus_client import Counter, Gauge, Histogram

# === Retry Attempt Metrics ===

retry_attempts_total = Counter(
    "sync_retry_attempts_total",
    "Total retry attempts by external system and outcome",
    ["system", "outcome"],
)
"""
Retry attempts counter.

Labels:
- system: External system name (sap, salesforce, ...)
- outcome: success, failure

Alert thresholds:
- WARN: failure ratio > 20% over 15m for a system
- CRITICAL: failure ratio > 50% over 15m for a system
"""

# === Dead Letter Metrics ===

dead_letters_total = Counter(
    "sync_retry_dead_letters_total",
    "Total entries moved to dead letter by external system",
    ["system"],
)
"""
Dead letter counter.

Alert thresholds:
- WARN: any increase (requires manual review)
"""

# === Circuit Breaker Metrics ===

circuit_skips_total = Counter(
    "sync_retry_circuit_skips_total",
    "Due entries skipped because the system's circuit was open",
    ["system"],
)

circuit_state = Gauge(
    "sync_retry_circuit_state",
    "Circuit breaker state per system (0=closed, 1=half_open, 2=open)",
    ["system"],
)
"""
Circuit state gauge.

Alert thresholds:
- WARN: state == 2 for > 5m
- CRITICAL: state == 2 for > 30m
"""

# === Batch Metrics ===

batch_duration_seconds = Histogram(
    "sync_retry_batch_duration_seconds",
    "Duration of one retry queue run in seconds",
    buckets=[0.1, 0.5, 1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
)

# === Admin Metrics ===

admin_actions_total = Counter(
    "sync_retry_admin_actions_total",
    "Administrative actions on retry queue entries",
    ["action", "success"],
)
"""
Admin actions counter.

Labels:
- action: dismiss, reset_dead_letter, retry_now, enqueue
- success: true, false
"""
