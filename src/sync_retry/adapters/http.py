"""
HTTP adapter for external systems exposed through a JSON gateway.

Each operation is a POST to `{base_url}/{operation}` with the entry payload
as the JSON body. A 2xx response is a successful sync.
"""

import time
from typing import Any, Optional

import httpx
import structlog

from sync_retry.adapters.base import AdapterResult, SyncAdapter

logger = structlog.get_logger(__name__)


class HttpSyncAdapter(SyncAdapter):
    """
    httpx-based adapter with a persistent AsyncClient for connection pooling.

    Transport errors and non-2xx statuses become failed results; nothing is
    raised to the caller.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        connection_limits: Optional[httpx.Limits] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize HTTP adapter.

        Args:
            base_url: Gateway URL of the external system
            timeout: Request timeout in seconds
            connection_limits: httpx connection pool limits (default: 10 max connections)
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._connection_limits = connection_limits or httpx.Limits(
            max_keepalive_connections=5,
            max_connections=10,
            keepalive_expiry=30.0,
        )
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        logger.info("HTTP sync adapter initialized", base_url=self.base_url, timeout=timeout)

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                transport=self._transport,
                follow_redirects=True,
            )
            logger.debug("Created new httpx AsyncClient", base_url=self.base_url)
        return self._client

    async def attempt(self, system_name: str, operation: str, payload: Any) -> AdapterResult:
        start_time = time.time()
        client = await self._get_client()

        try:
            response = await client.post(f"/{operation.lstrip('/')}", json=payload)
        except httpx.TimeoutException as e:
            logger.warning("Sync attempt timed out", system=system_name, operation=operation)
            return AdapterResult.fail(f"{system_name} request timeout after {self.timeout}s: {e}")
        except httpx.HTTPError as e:
            logger.warning(
                "Sync attempt connection error",
                system=system_name,
                operation=operation,
                error=str(e),
            )
            return AdapterResult.fail(f"{system_name} connection error: {e}")

        latency_ms = int((time.time() - start_time) * 1000)

        if not response.is_success:
            logger.warning(
                "Sync attempt rejected",
                system=system_name,
                operation=operation,
                status_code=response.status_code,
                latency_ms=latency_ms,
            )
            return AdapterResult.fail(
                f"{system_name} HTTP {response.status_code}: {response.text[:500]}"
            )

        try:
            body = response.json() if response.content else None
        except ValueError:
            body = {"raw": response.text}

        logger.info(
            "Sync attempt succeeded",
            system=system_name,
            operation=operation,
            status_code=response.status_code,
            latency_ms=latency_ms,
        )
        return AdapterResult.ok(body)

    async def close(self) -> None:
        """Close HTTP client and release connections."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed httpx AsyncClient", base_url=self.base_url)
