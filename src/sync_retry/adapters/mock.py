"""Mock adapter for systems without a live integration."""

from typing import Any, Optional

import structlog

from sync_retry.adapters.base import AdapterResult, SyncAdapter
from sync_retry.clock import Clock, utc_now

logger = structlog.get_logger(__name__)


class MockSyncAdapter(SyncAdapter):
    """
    Adapter that succeeds without calling anything.

    Set `fail_with` to make every attempt fail with that message instead.
    """

    def __init__(self, fail_with: Optional[str] = None, clock: Clock = utc_now):
        self.fail_with = fail_with
        self.calls: list[tuple[str, str, Any]] = []
        self._clock = clock

    async def attempt(self, system_name: str, operation: str, payload: Any) -> AdapterResult:
        self.calls.append((system_name, operation, payload))
        if self.fail_with is not None:
            logger.info("Mock sync attempt failing", system=system_name, operation=operation)
            return AdapterResult.fail(self.fail_with)

        logger.info("Mock sync attempt succeeded", system=system_name, operation=operation)
        return AdapterResult.ok(
            {"retried": True, "retry_success_at": self._clock().isoformat()}
        )
