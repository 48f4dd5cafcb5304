"""
Abstract base adapter for external system sync attempts.

Defines the interface every adapter (HTTP, mock, ...) must implement. The
retry processor only sees this interface, so backends can be swapped
without touching scheduling or circuit logic.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AdapterResult(BaseModel):
    """Outcome of one sync attempt against an external system."""
    model_config = ConfigDict(frozen=True)

    success: bool
    response: Any = Field(default=None, description="External system response on success")
    error_message: Optional[str] = Field(default=None, description="Failure description")

    @classmethod
    def ok(cls, response: Any = None) -> "AdapterResult":
        return cls(success=True, response=response)

    @classmethod
    def fail(cls, error_message: str) -> "AdapterResult":
        return cls(success=False, error_message=error_message)


class SyncAdapter(ABC):
    """
    Abstract base class for external system adapters.

    Responsibilities:
    - Perform one sync operation against the external system
    - Translate transport and protocol errors into a failed AdapterResult

    Does NOT handle:
    - Retry scheduling (that's RetryScheduler's job)
    - Circuit breaking (that's CircuitBreakerRegistry's job)

    Adapters MAY raise AdapterError instead of returning a failure; the
    processor treats both the same way.
    """

    @abstractmethod
    async def attempt(self, system_name: str, operation: str, payload: Any) -> AdapterResult:
        """
        Perform one sync attempt.

        Args:
            system_name: Target external system
            operation: Logical operation name (e.g. "post_invoice")
            payload: Opaque operation input

        Returns:
            AdapterResult with success flag and response or error message
        """
        pass

    async def close(self) -> None:
        """Release connections held by the adapter."""
        return None
