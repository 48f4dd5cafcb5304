"""Unit test fixtures (fakes and stubs).

Provides in-memory collaborators for testing without external services.
"""

import random
from datetime import datetime, timedelta
from typing import Any

import pytest

from sync_retry.adapters.base import AdapterResult, SyncAdapter
from sync_retry.circuit.registry import CircuitBreakerRegistry
from sync_retry.persistence.memory_store import InMemorySyncLogStore
from sync_retry.retry.backoff import BackoffPolicy
from sync_retry.retry.processor import RetryQueueProcessor
from sync_retry.retry.scheduler import RetryScheduler
from sync_retry.retry.service import RetryQueueService


class FakeClock:
    """Mutable clock: call it for the current time, advance() to move it."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class ScriptedAdapter(SyncAdapter):
    """Adapter whose outcome is scripted per system.

    `outcomes[system]` is either an AdapterResult, an exception instance to
    raise, or a list consumed one item per call. Systems without a script
    succeed.
    """

    def __init__(self, outcomes: dict[str, Any] | None = None):
        self.outcomes = outcomes or {}
        self.calls: list[tuple[str, str, Any]] = []
        self.closed = False

    async def attempt(self, system_name: str, operation: str, payload: Any) -> AdapterResult:
        self.calls.append((system_name, operation, payload))
        outcome = self.outcomes.get(system_name, AdapterResult.ok({"ok": True}))
        if isinstance(outcome, list):
            outcome = outcome.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock(base_time) -> FakeClock:
    return FakeClock(base_time)


@pytest.fixture
def store() -> InMemorySyncLogStore:
    return InMemorySyncLogStore()


@pytest.fixture
def circuits(clock) -> CircuitBreakerRegistry:
    return CircuitBreakerRegistry(
        failure_threshold=5,
        reset_timeout=timedelta(seconds=60),
        clock=clock,
    )


@pytest.fixture
def backoff(clock) -> BackoffPolicy:
    """Backoff with a seeded random source."""
    return BackoffPolicy(rng=random.Random(42), clock=clock)


@pytest.fixture
def scheduler(store, backoff, clock) -> RetryScheduler:
    return RetryScheduler(store, backoff, clock=clock)


@pytest.fixture
def adapter() -> ScriptedAdapter:
    return ScriptedAdapter()


@pytest.fixture
def processor(store, circuits, adapter, scheduler, clock) -> RetryQueueProcessor:
    return RetryQueueProcessor(
        store=store,
        circuits=circuits,
        adapter=adapter,
        scheduler=scheduler,
        batch_size=50,
        clock=clock,
    )


@pytest.fixture
def service(store, circuits, scheduler, clock) -> RetryQueueService:
    return RetryQueueService(store, circuits, scheduler, clock=clock)
