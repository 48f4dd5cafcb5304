"""
Retry scheduling, batch processing and admin operations.

This package provides:
- BackoffPolicy: capped exponential backoff with jitter
- RetryScheduler: retry vs dead letter decision for a failed entry
- RetryQueueProcessor: one batch run over the due retries
- RetryQueueService: admin and dashboard operations
"""

from sync_retry.retry.backoff import BackoffPolicy
from sync_retry.retry.processor import RetryQueueProcessor
from sync_retry.retry.scheduler import RetryScheduler
from sync_retry.retry.service import RetryQueueService

__all__ = [
    "BackoffPolicy",
    "RetryScheduler",
    "RetryQueueProcessor",
    "RetryQueueService",
]
