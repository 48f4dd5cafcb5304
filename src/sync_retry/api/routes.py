"""
Admin API routes for the sync retry queue.

Handlers are plain `def` functions: the store is synchronous, so FastAPI
runs them in its threadpool.
"""

import structlog
from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from sync_retry.api.dependencies import get_retry_queue_service
from sync_retry.api.models import ProcessTriggeredResponse, fail, ok
from sync_retry.models.results import AdminActionResult
from sync_retry.retry.service import RetryQueueService
from sync_retry.tasks.retry_tasks import process_retry_queue

logger = structlog.get_logger(__name__)

router = APIRouter()


def _action_response(result: AdminActionResult) -> JSONResponse | dict:
    """Envelope an admin action; not_found -> 404, not_applicable -> 409."""
    if result.success:
        return ok(result)
    if result.reason == "not_found":
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=fail("not_found", f"Sync log entry {result.entry_id} not found"),
        )
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=fail(
            "not_applicable",
            f"Action not applicable to entry {result.entry_id}",
            details={"status": result.status.value if result.status else None},
        ),
    )


@router.get("/entries", summary="List entries in the retry queue")
def list_entries(
    limit: int = Query(default=100, ge=1, le=1000),
    service: RetryQueueService = Depends(get_retry_queue_service),
) -> dict:
    """Entries currently RETRYING or IN_PROGRESS, soonest retry first."""
    return ok(service.get_retry_queue_entries(limit=limit))


@router.get("/dead-letters", summary="List dead letter entries")
def list_dead_letters(
    limit: int = Query(default=50, ge=1, le=1000),
    service: RetryQueueService = Depends(get_retry_queue_service),
) -> dict:
    """Dead letters, most recently updated first, with failure classification."""
    return ok(service.get_dead_letter_entries(limit=limit))


@router.get("/stats", summary="Retry queue and circuit breaker stats")
def get_stats(service: RetryQueueService = Depends(get_retry_queue_service)) -> dict:
    return ok(service.get_retry_queue_stats())


@router.post("/entries/{entry_id}/dismiss", summary="Dismiss a retrying or failed entry")
def dismiss_entry(entry_id: str, service: RetryQueueService = Depends(get_retry_queue_service)):
    return _action_response(service.dismiss_retry_entry(entry_id))


@router.post("/entries/{entry_id}/retry-now", summary="Make a retrying entry due immediately")
def retry_entry_now(entry_id: str, service: RetryQueueService = Depends(get_retry_queue_service)):
    return _action_response(service.retry_entry_now(entry_id))


@router.post("/dead-letters/{entry_id}/reset", summary="Reset a dead letter for another round of retries")
def reset_dead_letter(entry_id: str, service: RetryQueueService = Depends(get_retry_queue_service)):
    return _action_response(service.reset_dead_letter(entry_id))


@router.post(
    "/process",
    status_code=status.HTTP_202_ACCEPTED,
    summary="Trigger a retry queue run",
    description="""
    Enqueue one retry queue run on the Celery workers.

    The run is skipped by the worker if a scheduled run is already in progress.
    """,
)
def trigger_processing() -> dict:
    result = process_retry_queue.delay()  # type: ignore[attr-defined]
    logger.info("Retry queue run enqueued", task_id=result.id)
    return ok(ProcessTriggeredResponse(task_id=result.id))
