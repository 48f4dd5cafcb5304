"""
API response envelope and endpoint-specific payloads.

Every admin endpoint answers with `{"success": true, "data": ...}` or
`{"success": false, "error": {...}}`.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ErrorDetail(BaseModel):
    """Error body carried in a failed envelope."""

    code: str = Field(
        description="Error code or type",
        examples=["not_found", "not_applicable", "store_unavailable", "internal_error"],
    )
    message: str = Field(description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Additional error context")


class ProcessTriggeredResponse(BaseModel):
    """Response for the manual retry queue trigger."""

    task_id: str = Field(description="Celery task ID of the enqueued run")
    submitted_at: datetime = Field(default_factory=_utc_now, description="Submission timestamp (UTC)")


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: str = Field(description="Overall health status", examples=["healthy", "unhealthy"])
    version: str = Field(description="Service version", examples=["0.1.0"])
    services: dict[str, str] = Field(
        description="Service-specific health status",
        examples=[{"store": "ok"}],
    )
    timestamp: datetime = Field(default_factory=_utc_now, description="Health check timestamp (UTC)")


def ok(data: Any) -> dict:
    """Successful envelope as a JSON-ready dict."""
    return {"success": True, "data": jsonable_encoder(data)}


def fail(code: str, message: str, details: Any = None) -> dict:
    """Failed envelope as a JSON-ready dict."""
    error = ErrorDetail(code=code, message=message, details=jsonable_encoder(details))
    return {"success": False, "error": error.model_dump(mode="json", exclude_none=True)}
