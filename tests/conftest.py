"""Shared test fixtures and configuration for all tests.

This conftest.py provides common fixtures used across unit and integration tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from sync_retry.config import Settings
from sync_retry.models.enums import SyncStatus
from sync_retry.models.sync_log import SyncLogEntry

BASE_TIME = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Override specific settings in individual tests as needed:
        def test_something(test_settings):
            test_settings.CIRCUIT_FAILURE_THRESHOLD = 2
    """
    return Settings(
        # === Application ===
        APP_NAME="Integration Sync Retry (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Circuit Breaker ===
        CIRCUIT_FAILURE_THRESHOLD=5,
        CIRCUIT_RESET_TIMEOUT_MS=60_000,
        CIRCUIT_HALF_OPEN_MAX_PROBES=1,

        # === Retry ===
        RETRY_BASE_DELAY_MS=5_000,
        RETRY_MAX_DELAY_MS=300_000,
        RETRY_JITTER_FRACTION=0.25,
        RETRY_BATCH_SIZE=50,

        # === Store ===
        STORE_BACKEND="memory",
        REDIS_URL="redis://localhost:6379/15",
        REDIS_MAX_CONNECTIONS=10,
        REDIS_KEY_PREFIX="sync-test",

        # === Adapters ===
        SYSTEM_ENDPOINTS={},
        MOCK_SYSTEMS=[],

        PROMETHEUS_ENABLED=False,  # Disable metrics in tests unless explicitly needed
    )


@pytest.fixture
def base_time() -> datetime:
    """Fixed reference instant (UTC) used by entry factories and fake clocks."""
    return BASE_TIME


@pytest.fixture
def make_entry():
    """Factory for SyncLogEntry test data.

    Defaults to a RETRYING entry for "sap" that became due one minute
    before BASE_TIME.

    Usage:
        entry = make_entry(status=SyncStatus.FAILED, retry_count=3)
    """

    def _make(**overrides: Any) -> SyncLogEntry:
        fields: dict[str, Any] = {
            "system_name": "sap",
            "operation": "post_invoice",
            "payload": {"invoice_id": "INV-1001", "amount": 1250.0},
            "status": SyncStatus.RETRYING,
            "retry_count": 1,
            "max_retries": 3,
            "next_retry_at": BASE_TIME - timedelta(minutes=1),
            "error_message": "SAP gateway timeout",
            "created_at": BASE_TIME - timedelta(hours=1),
            "updated_at": BASE_TIME - timedelta(minutes=5),
            "direction": "push",
            "entity_type": "invoice",
            "entity_ref": "INV-1001",
        }
        fields.update(overrides)
        return SyncLogEntry(**fields)

    return _make
