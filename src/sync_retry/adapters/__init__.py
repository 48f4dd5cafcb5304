"""
External system adapters.

Provides the SyncAdapter interface and implementations:
- HttpSyncAdapter: JSON-over-HTTP gateways (httpx)
- MockSyncAdapter: systems without a live integration
- AdapterRegistry: per-system routing
"""

from sync_retry.adapters.base import AdapterResult, SyncAdapter
from sync_retry.adapters.http import HttpSyncAdapter
from sync_retry.adapters.mock import MockSyncAdapter
from sync_retry.adapters.registry import AdapterRegistry

__all__ = [
    "AdapterResult",
    "SyncAdapter",
    "HttpSyncAdapter",
    "MockSyncAdapter",
    "AdapterRegistry",
]
