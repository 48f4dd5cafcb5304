"""
Celery tasks for periodic retry queue processing.

- celery_app.py: Celery application configuration (broker, backend, beat schedule)
- retry_tasks.py: Task definitions (process_retry_queue)
"""

from sync_retry.tasks.celery_app import celery_app
from sync_retry.tasks.retry_tasks import process_retry_queue

__all__ = [
    "celery_app",
    "process_retry_queue",
]
