"""
FastAPI exception handlers for enveloped error responses.

Maps domain exceptions to HTTP status codes. Responses never carry a raw
traceback.
"""

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from sync_retry.api.models import fail
from sync_retry.exceptions import SyncLogStoreError

logger = structlog.get_logger(__name__)


async def store_error_handler(request: Request, exc: SyncLogStoreError) -> JSONResponse:
    """
    Handle sync log store failures.

    Maps to 503 Service Unavailable (store unreachable or corrupt).
    """
    logger.error(
        "Sync log store error",
        error_type=type(exc).__name__,
        error=exc.message,
        details=exc.details,
    )

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=fail("store_unavailable", "Sync log store is unavailable"),
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError | PydanticValidationError
) -> JSONResponse:
    """
    Handle invalid request parameters.

    Maps to 400 Bad Request (client error).
    """
    logger.warning("Invalid request format", errors=exc.errors())

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=fail("invalid_request", "Request validation failed", details=exc.errors()),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected errors.

    Maps to 500 Internal Server Error.
    """
    logger.exception("Unexpected error", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=fail("internal_error", "An unexpected error occurred"),
    )


# Exception handler mapping for FastAPI app.add_exception_handler()
EXCEPTION_HANDLERS = {
    SyncLogStoreError: store_error_handler,
    RequestValidationError: request_validation_error_handler,
    PydanticValidationError: request_validation_error_handler,
    Exception: generic_error_handler,
}
