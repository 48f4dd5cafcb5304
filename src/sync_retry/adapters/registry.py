"""
Adapter lookup by external system name.
"""

from typing import Any, Optional

import structlog

from sync_retry.adapters.base import AdapterResult, SyncAdapter
from sync_retry.adapters.http import HttpSyncAdapter
from sync_retry.adapters.mock import MockSyncAdapter
from sync_retry.config import Settings
from sync_retry.exceptions import AdapterNotFoundError

logger = structlog.get_logger(__name__)


class AdapterRegistry(SyncAdapter):
    """
    Routes each attempt to the adapter registered for its system.

    The registry is itself a SyncAdapter, so the processor holds a single
    adapter regardless of how many systems are configured. Systems without
    a registered adapter use `fallback`; without one, the attempt raises
    AdapterNotFoundError (an ordinary attempt failure for the processor).
    """

    def __init__(
        self,
        adapters: Optional[dict[str, SyncAdapter]] = None,
        fallback: Optional[SyncAdapter] = None,
    ):
        self._adapters: dict[str, SyncAdapter] = dict(adapters or {})
        self.fallback = fallback

    @classmethod
    def from_settings(cls, settings: Settings) -> "AdapterRegistry":
        """Register HTTP adapters for SYSTEM_ENDPOINTS and mocks for MOCK_SYSTEMS."""
        registry = cls()
        for system_name, base_url in settings.SYSTEM_ENDPOINTS.items():
            registry.register(
                system_name,
                HttpSyncAdapter(base_url, timeout=settings.ADAPTER_TIMEOUT_SECONDS),
            )
        for system_name in settings.MOCK_SYSTEMS:
            registry.register(system_name, MockSyncAdapter())
        logger.info("Adapter registry configured", systems=registry.systems)
        return registry

    @property
    def systems(self) -> list[str]:
        return sorted(self._adapters)

    def register(self, system_name: str, adapter: SyncAdapter) -> None:
        self._adapters[system_name] = adapter

    def get(self, system_name: str) -> SyncAdapter:
        adapter = self._adapters.get(system_name, self.fallback)
        if adapter is None:
            raise AdapterNotFoundError(
                f"No adapter registered for system '{system_name}'",
                details={"system": system_name, "registered": self.systems},
            )
        return adapter

    async def attempt(self, system_name: str, operation: str, payload: Any) -> AdapterResult:
        return await self.get(system_name).attempt(system_name, operation, payload)

    async def close(self) -> None:
        adapters = list(self._adapters.values())
        if self.fallback is not None:
            adapters.append(self.fallback)
        for adapter in adapters:
            await adapter.close()
