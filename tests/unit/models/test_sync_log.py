"""
Unit tests for SyncLogEntry and the status state machine.
"""

import pytest
from pydantic import ValidationError

from sync_retry.exceptions import InvalidTransitionError
from sync_retry.models.enums import BreakerState, SyncStatus
from sync_retry.models.sync_log import (
    ALLOWED_TRANSITIONS,
    TRUNCATION_MARKER,
    SyncLogEntry,
    append_error_text,
)


class TestStateMachine:
    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (SyncStatus.PENDING, SyncStatus.IN_PROGRESS),
            (SyncStatus.RETRYING, SyncStatus.IN_PROGRESS),
            (SyncStatus.IN_PROGRESS, SyncStatus.SUCCESS),
            (SyncStatus.IN_PROGRESS, SyncStatus.RETRYING),
            (SyncStatus.IN_PROGRESS, SyncStatus.FAILED),
            (SyncStatus.RETRYING, SyncStatus.FAILED),
            (SyncStatus.RETRYING, SyncStatus.DISMISSED),
            (SyncStatus.FAILED, SyncStatus.RETRYING),
            (SyncStatus.FAILED, SyncStatus.DISMISSED),
        ],
    )
    def test_allowed_transitions(self, make_entry, base_time, from_status, to_status):
        entry = make_entry(status=from_status)

        moved = entry.transition_to(to_status, base_time)

        assert moved.status == to_status
        assert moved.updated_at == base_time
        assert entry.status == from_status  # original untouched

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (SyncStatus.SUCCESS, SyncStatus.RETRYING),
            (SyncStatus.DISMISSED, SyncStatus.RETRYING),
            (SyncStatus.FAILED, SyncStatus.IN_PROGRESS),
            (SyncStatus.PENDING, SyncStatus.SUCCESS),
            (SyncStatus.IN_PROGRESS, SyncStatus.DISMISSED),
        ],
    )
    def test_forbidden_transitions(self, make_entry, base_time, from_status, to_status):
        entry = make_entry(status=from_status)

        with pytest.raises(InvalidTransitionError) as exc_info:
            entry.transition_to(to_status, base_time)

        assert exc_info.value.from_status == from_status.value
        assert exc_info.value.to_status == to_status.value

    def test_terminal_statuses_have_no_exits(self):
        assert ALLOWED_TRANSITIONS[SyncStatus.SUCCESS] == frozenset()
        assert ALLOWED_TRANSITIONS[SyncStatus.DISMISSED] == frozenset()

    def test_transition_applies_updates(self, make_entry, base_time):
        entry = make_entry(status=SyncStatus.RETRYING)

        moved = entry.transition_to(SyncStatus.IN_PROGRESS, base_time, started_at=base_time)

        assert moved.started_at == base_time


class TestEntry:
    def test_is_frozen(self, make_entry):
        entry = make_entry()

        with pytest.raises(ValidationError):
            entry.status = SyncStatus.SUCCESS

    def test_requires_system_name(self):
        with pytest.raises(ValidationError):
            SyncLogEntry(system_name="", operation="post_invoice")

    def test_defaults(self):
        entry = SyncLogEntry(system_name="sap", operation="post_invoice")

        assert entry.status == SyncStatus.PENDING
        assert entry.retry_count == 0
        assert entry.max_retries == 3
        assert entry.version == 0
        assert entry.id

    def test_is_due(self, make_entry, base_time):
        entry = make_entry()

        assert entry.is_due(base_time) is True
        assert entry.is_due(entry.next_retry_at) is True
        assert make_entry(status=SyncStatus.FAILED).is_due(base_time) is False
        assert make_entry(next_retry_at=None).is_due(base_time) is False

    def test_is_dead_letter(self, make_entry):
        assert make_entry(status=SyncStatus.FAILED, retry_count=3, max_retries=3).is_dead_letter
        assert not make_entry(status=SyncStatus.FAILED, retry_count=2, max_retries=3).is_dead_letter
        assert not make_entry(status=SyncStatus.RETRYING, retry_count=3, max_retries=3).is_dead_letter

    def test_json_round_trip_keeps_timezone(self, make_entry):
        entry = make_entry()

        restored = SyncLogEntry.model_validate_json(entry.model_dump_json())

        assert restored == entry
        assert restored.next_retry_at.tzinfo is not None


class TestErrorHistory:
    def test_first_message(self):
        assert append_error_text(None, "timeout", 100) == "timeout"

    def test_appends_with_separator(self):
        assert append_error_text("timeout", "HTTP 502", 100) == "timeout | HTTP 502"

    def test_truncates_oldest_text(self):
        history = append_error_text("a" * 50, "newest failure", 40)

        assert len(history) == 40
        assert history.startswith(TRUNCATION_MARKER)
        assert history.endswith("newest failure")

    def test_with_error_caps_history(self, make_entry):
        entry = make_entry(error_message=None)
        for i in range(200):
            entry = entry.with_error(f"failure {i}", 500)

        assert len(entry.error_message) <= 500
        assert entry.error_message.endswith("failure 199")


def test_breaker_state_ordinals():
    assert BreakerState.get_ordinal(BreakerState.CLOSED) == 0
    assert BreakerState.get_ordinal(BreakerState.HALF_OPEN) == 1
    assert BreakerState.get_ordinal(BreakerState.OPEN) == 2
