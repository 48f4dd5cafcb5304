"""
Per-system circuit breaker registry.

Tracks consecutive failures for each external system and gates whether a
sync attempt may proceed. State is process-local and volatile: it is created
lazily on first reference to a system and resets to CLOSED on restart.

State machine (per system):
    CLOSED    --[failures >= threshold]--> OPEN
    OPEN      --[reset timeout exceeded]--> HALF_OPEN (probe granted)
    HALF_OPEN --[success]----------------> CLOSED
    HALF_OPEN --[failure]----------------> OPEN

Every read-modify-write on a system happens under that system's lock, so
the OPEN -> HALF_OPEN transition and probe grants are atomic. By default
exactly one probe is granted per half-open window. A window whose probes
were all granted but never reported back is renewed once the reset
timeout is exceeded again, and a caller that was granted a probe but made
no attempt hands it back with release_probe().
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import structlog

from sync_retry.clock import Clock, utc_now
from sync_retry.config import Settings
from sync_retry.models.enums import BreakerState
from sync_retry.models.results import CircuitState
from sync_retry.monitoring.metrics import circuit_state as circuit_state_gauge

logger = structlog.get_logger(__name__)


@dataclass
class _Circuit:
    """Mutable breaker record. Only touched while holding `lock`."""

    state: BreakerState = BreakerState.CLOSED
    failure_count: int = 0
    last_failure_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    half_opened_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    probes_granted: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class CircuitBreakerRegistry:
    """
    Injectable registry of circuit breakers keyed by system name.

    All operations are total: they never raise, and unknown systems are
    created in the CLOSED state on first access.

    Attributes:
        failure_threshold: Consecutive failures that open a breaker
        reset_timeout: Time an OPEN breaker waits before allowing a probe
        half_open_max_probes: Trial attempts granted per half-open window
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        reset_timeout: timedelta = timedelta(milliseconds=60_000),
        half_open_max_probes: int = 1,
        clock: Clock = utc_now,
    ):
        if failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if half_open_max_probes < 1:
            raise ValueError("half_open_max_probes must be >= 1")

        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.half_open_max_probes = half_open_max_probes
        self._clock = clock
        self._circuits: dict[str, _Circuit] = {}
        self._registry_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utc_now) -> "CircuitBreakerRegistry":
        return cls(
            failure_threshold=settings.CIRCUIT_FAILURE_THRESHOLD,
            reset_timeout=timedelta(milliseconds=settings.CIRCUIT_RESET_TIMEOUT_MS),
            half_open_max_probes=settings.CIRCUIT_HALF_OPEN_MAX_PROBES,
            clock=clock,
        )

    def _get(self, system_name: str) -> _Circuit:
        circuit = self._circuits.get(system_name)
        if circuit is None:
            with self._registry_lock:
                circuit = self._circuits.setdefault(system_name, _Circuit())
        return circuit

    def _transition(self, system_name: str, circuit: _Circuit, new_state: BreakerState) -> None:
        previous = circuit.state
        circuit.state = new_state
        circuit_state_gauge.labels(system=system_name).set(BreakerState.get_ordinal(new_state))
        if previous != new_state:
            logger.warning(
                "Circuit breaker state transition",
                system=system_name,
                from_state=previous.value,
                to_state=new_state.value,
                failure_count=circuit.failure_count,
            )

    def is_open(self, system_name: str) -> bool:
        """
        Check whether attempts against `system_name` must be skipped.

        An OPEN breaker whose reset timeout has been exceeded moves to
        HALF_OPEN and grants the caller a probe (returns False).

        Returns:
            True if the attempt must be skipped, False if it may proceed
        """
        circuit = self._get(system_name)
        with circuit.lock:
            if circuit.state == BreakerState.CLOSED:
                return False

            if circuit.state == BreakerState.OPEN:
                now = self._clock()
                opened_at = circuit.opened_at or now
                if now - opened_at <= self.reset_timeout:
                    return True
                self._transition(system_name, circuit, BreakerState.HALF_OPEN)
                circuit.half_opened_at = now
                circuit.probes_granted = 0
            elif circuit.probes_granted >= self.half_open_max_probes:
                now = self._clock()
                half_opened_at = circuit.half_opened_at or now
                if now - half_opened_at > self.reset_timeout:
                    logger.warning(
                        "Circuit breaker probe window renewed",
                        system=system_name,
                        unreported_probes=circuit.probes_granted,
                    )
                    circuit.half_opened_at = now
                    circuit.probes_granted = 0

            # HALF_OPEN: grant up to half_open_max_probes trial attempts
            if circuit.probes_granted < self.half_open_max_probes:
                circuit.probes_granted += 1
                logger.info(
                    "Circuit breaker probe granted",
                    system=system_name,
                    probe=circuit.probes_granted,
                    max_probes=self.half_open_max_probes,
                )
                return False
            return True

    def release_probe(self, system_name: str) -> None:
        """
        Hand back a probe granted by is_open() when no attempt was made.

        No-op unless the breaker is HALF_OPEN with a probe outstanding.
        """
        circuit = self._get(system_name)
        with circuit.lock:
            if circuit.state == BreakerState.HALF_OPEN and circuit.probes_granted > 0:
                circuit.probes_granted -= 1
                logger.info(
                    "Circuit breaker probe released",
                    system=system_name,
                    outstanding=circuit.probes_granted,
                )

    def record_success(self, system_name: str) -> None:
        """Close the breaker and clear the failure count."""
        circuit = self._get(system_name)
        with circuit.lock:
            if circuit.state != BreakerState.CLOSED:
                logger.info(
                    "Circuit breaker recovered",
                    system=system_name,
                    previous_state=circuit.state.value,
                    failure_count=circuit.failure_count,
                )
            circuit.failure_count = 0
            circuit.probes_granted = 0
            circuit.half_opened_at = None
            circuit.last_success_at = self._clock()
            self._transition(system_name, circuit, BreakerState.CLOSED)

    def record_failure(self, system_name: str) -> None:
        """Count a failure and open the breaker once the threshold is reached."""
        circuit = self._get(system_name)
        with circuit.lock:
            now = self._clock()
            circuit.failure_count += 1
            circuit.last_failure_at = now

            logger.debug(
                "Circuit breaker recorded failure",
                system=system_name,
                state=circuit.state.value,
                failure_count=circuit.failure_count,
                threshold=self.failure_threshold,
            )

            if circuit.failure_count >= self.failure_threshold:
                circuit.opened_at = now
                circuit.probes_granted = 0
                circuit.half_opened_at = None
                self._transition(system_name, circuit, BreakerState.OPEN)

    def reset(self, system_name: str) -> None:
        """Manual override: force the breaker CLOSED with zero failures."""
        circuit = self._get(system_name)
        with circuit.lock:
            logger.info(
                "Circuit breaker manually reset",
                system=system_name,
                previous_state=circuit.state.value,
            )
            circuit.failure_count = 0
            circuit.probes_granted = 0
            circuit.half_opened_at = None
            circuit.opened_at = None
            self._transition(system_name, circuit, BreakerState.CLOSED)

    def _snapshot(self, system_name: str, circuit: _Circuit) -> CircuitState:
        cooldown_remaining = 0.0
        if circuit.state == BreakerState.OPEN and circuit.opened_at is not None:
            remaining = self.reset_timeout - (self._clock() - circuit.opened_at)
            cooldown_remaining = max(remaining.total_seconds(), 0.0)
        return CircuitState(
            system_name=system_name,
            state=circuit.state,
            failure_count=circuit.failure_count,
            last_failure_at=circuit.last_failure_at,
            opened_at=circuit.opened_at,
            last_success_at=circuit.last_success_at,
            cooldown_remaining_seconds=cooldown_remaining,
        )

    def get_status(self, system_name: str) -> CircuitState:
        """Read-only snapshot of one system's breaker (no state transition)."""
        circuit = self._get(system_name)
        with circuit.lock:
            return self._snapshot(system_name, circuit)

    def get_all_statuses(self) -> dict[str, CircuitState]:
        """Snapshots of every breaker referenced so far."""
        with self._registry_lock:
            names = list(self._circuits)
        return {name: self.get_status(name) for name in names}
