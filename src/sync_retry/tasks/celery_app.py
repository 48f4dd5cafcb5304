"""
Celery application configuration for the retry queue.

This module initializes the Celery app with Redis broker and result backend
and registers the periodic retry queue run. Tasks are defined in
retry_tasks.py.
"""

from celery import Celery

from sync_retry.config import settings

# Initialize Celery app
celery_app = Celery(
    "sync_retry",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# Configure Celery
celery_app.conf.update(
    # Task execution
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,  # Hard limit (kills task)
    task_soft_time_limit=max(settings.CELERY_TASK_TIME_LIMIT - 30, 1),  # Soft limit (raises exception)

    # Worker settings
    worker_prefetch_multiplier=1,  # Fetch one task at a time (batch runs are long)

    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Result backend
    result_expires=3600,  # Results expire after 1 hour

    # Task tracking
    task_track_started=True,  # Update state to STARTED when task begins

    # Periodic trigger
    beat_schedule={
        "process-retry-queue": {
            "task": "process_retry_queue",
            "schedule": float(settings.RETRY_QUEUE_INTERVAL_SECONDS),
        },
    },
)

# Auto-discover tasks from tasks module
celery_app.autodiscover_tasks(["sync_retry.tasks"])
