"""
Exponential backoff with proportional jitter.

    base_delay = min(base * 2**retry_count, max_delay)
    jitter     = uniform(0, jitter_fraction * base_delay)
    next_retry = now + base_delay + jitter

With the defaults (5s base, 300s cap, 25% jitter) the base delays are
5s, 10s, 20s, 40s, ... capped at 300s.
"""

import random
from datetime import datetime, timedelta
from typing import Optional

from sync_retry.clock import Clock, utc_now
from sync_retry.config import Settings


class BackoffPolicy:
    """
    Computes when a failed entry becomes eligible for its next retry.

    The random source and clock are injectable so delays are reproducible
    in tests.
    """

    def __init__(
        self,
        base_delay: timedelta = timedelta(milliseconds=5_000),
        max_delay: timedelta = timedelta(milliseconds=300_000),
        jitter_fraction: float = 0.25,
        rng: Optional[random.Random] = None,
        clock: Clock = utc_now,
    ):
        if base_delay <= timedelta(0):
            raise ValueError("base_delay must be positive")
        if max_delay < base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if not 0.0 <= jitter_fraction <= 1.0:
            raise ValueError("jitter_fraction must be within [0, 1]")

        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter_fraction = jitter_fraction
        self._rng = rng or random.Random()
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        rng: Optional[random.Random] = None,
        clock: Clock = utc_now,
    ) -> "BackoffPolicy":
        return cls(
            base_delay=timedelta(milliseconds=settings.RETRY_BASE_DELAY_MS),
            max_delay=timedelta(milliseconds=settings.RETRY_MAX_DELAY_MS),
            jitter_fraction=settings.RETRY_JITTER_FRACTION,
            rng=rng,
            clock=clock,
        )

    def base_delay_for(self, retry_count: int) -> timedelta:
        """Capped exponential delay before jitter."""
        if retry_count < 0:
            raise ValueError("retry_count must be >= 0")
        # Compare in float seconds so large retry counts never overflow timedelta
        seconds = self.base_delay.total_seconds() * 2.0 ** min(retry_count, 1000)
        if seconds >= self.max_delay.total_seconds():
            return self.max_delay
        return self.base_delay * (2 ** retry_count)

    def calculate_delay(self, retry_count: int) -> tuple[timedelta, timedelta]:
        """
        Compute the delay for an entry that has been retried `retry_count` times.

        Args:
            retry_count: Retries already scheduled (0 for the first retry)

        Returns:
            Tuple of (base delay, jitter), jitter within [0, fraction * base]
        """
        base = self.base_delay_for(retry_count)
        jitter = base * (self._rng.random() * self.jitter_fraction)
        return base, jitter

    def calculate_next_retry_at(self, retry_count: int, now: Optional[datetime] = None) -> datetime:
        base, jitter = self.calculate_delay(retry_count)
        return (now or self._clock()) + base + jitter
