"""Health check route."""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from sync_retry.api.dependencies import get_settings, get_store
from sync_retry.api.models import HealthResponse
from sync_retry.config import Settings
from sync_retry.exceptions import SyncLogStoreError
from sync_retry.models.enums import SyncStatus
from sync_retry.persistence.sync_log_store import SyncLogStore

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={
        200: {"description": "Store reachable"},
        503: {"description": "Store unreachable"},
    },
)
def health_check(
    settings: Settings = Depends(get_settings),
    store: SyncLogStore = Depends(get_store),
):
    """
    Check health of the sync log store.

    Args:
        settings: Application settings (injected)
        store: Sync log store (injected)

    Returns:
        HealthResponse with service statuses
    """
    services = {}
    try:
        store.count_by_status(SyncStatus.RETRYING)
        services["store"] = "ok"
    except SyncLogStoreError as e:
        services["store"] = f"unreachable ({e.details.get('error', type(e).__name__)})"

    healthy = services["store"] == "ok"
    health = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=settings.APP_VERSION,
        services=services,
    )

    logger.info("Health check", status=health.status, services=services)

    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=health.model_dump(mode="json"),
    )
