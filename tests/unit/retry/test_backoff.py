"""
Unit tests for BackoffPolicy.
"""

import random
from datetime import timedelta

import pytest

from sync_retry.retry.backoff import BackoffPolicy


class FixedRandom(random.Random):
    """Random source that always returns the same sample."""

    def __init__(self, value: float):
        super().__init__()
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.mark.parametrize(
    "retry_count,expected_seconds",
    [(0, 5), (1, 10), (2, 20), (3, 40), (4, 80), (5, 160), (6, 300), (10, 300)],
)
def test_base_delay_doubles_until_cap(retry_count, expected_seconds):
    policy = BackoffPolicy(rng=FixedRandom(0.0))

    base, jitter = policy.calculate_delay(retry_count)

    assert base == timedelta(seconds=expected_seconds)
    assert jitter == timedelta(0)


def test_base_delay_is_monotonic():
    policy = BackoffPolicy()
    delays = [policy.base_delay_for(n) for n in range(20)]

    assert delays == sorted(delays)
    assert max(delays) == timedelta(seconds=300)


def test_large_retry_count_does_not_overflow():
    policy = BackoffPolicy()

    assert policy.base_delay_for(5_000) == timedelta(seconds=300)


def test_jitter_bounded_by_fraction():
    policy = BackoffPolicy(rng=random.Random(7))

    for retry_count in range(10):
        for _ in range(50):
            base, jitter = policy.calculate_delay(retry_count)
            assert timedelta(0) <= jitter <= base * 0.25


def test_max_jitter_sample():
    policy = BackoffPolicy(rng=FixedRandom(1.0))

    base, jitter = policy.calculate_delay(0)

    assert jitter == timedelta(seconds=1.25)


def test_next_retry_at_uses_clock(clock):
    policy = BackoffPolicy(rng=FixedRandom(0.5), clock=clock)

    next_retry_at = policy.calculate_next_retry_at(1)

    # 10s base + 0.5 * 0.25 * 10s jitter
    assert next_retry_at == clock.now + timedelta(seconds=11.25)


def test_next_retry_at_explicit_now(base_time):
    policy = BackoffPolicy(rng=FixedRandom(0.0))

    assert policy.calculate_next_retry_at(2, now=base_time) == base_time + timedelta(seconds=20)


def test_from_settings(test_settings):
    test_settings.RETRY_BASE_DELAY_MS = 1_000
    test_settings.RETRY_MAX_DELAY_MS = 4_000
    test_settings.RETRY_JITTER_FRACTION = 0.0

    policy = BackoffPolicy.from_settings(test_settings)

    assert [policy.calculate_delay(n)[0].total_seconds() for n in range(4)] == [1, 2, 4, 4]


def test_rejects_negative_retry_count():
    with pytest.raises(ValueError):
        BackoffPolicy().calculate_delay(-1)


def test_rejects_cap_below_base():
    with pytest.raises(ValueError):
        BackoffPolicy(base_delay=timedelta(seconds=10), max_delay=timedelta(seconds=5))
