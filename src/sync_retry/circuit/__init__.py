"""Per-system circuit breakers for external integrations."""

from sync_retry.circuit.registry import CircuitBreakerRegistry

__all__ = ["CircuitBreakerRegistry"]
