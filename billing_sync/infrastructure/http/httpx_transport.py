"""
httpx implementation of the billing API transport.

One AsyncClient is shared by every call. Reads are retried on
connection errors and timeouts; mutating methods are sent exactly once.
"""

from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from billing_sync.config import get_logger, get_settings
from billing_sync.core.exceptions import NetworkError
from billing_sync.core.interfaces import ITransport, TransportResponse

logger = get_logger(__name__)

RETRYABLE_METHODS = frozenset({"GET", "HEAD"})
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.TimeoutException, httpx.RemoteProtocolError)


class HttpxTransport(ITransport):
    """
    Transport backed by ``httpx.AsyncClient``.

    Usage:
        async with HttpxTransport() as transport:
            response = await transport.call("/invoices", "GET", headers)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api.base_url).rstrip("/")
        self.timeout = timeout or settings.api.timeout
        self.max_retries = settings.api.max_retries
        self.retry_delay = settings.api.retry_delay
        self.retry_multiplier = settings.api.retry_multiplier
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    async def __aenter__(self) -> "HttpxTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=wait_exponential(
                multiplier=self.retry_delay,
                min=self.retry_delay,
                max=self.retry_delay * (self.retry_multiplier**3),
            ),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=self._log_retry,
            reraise=True,
        )

    @staticmethod
    def _log_retry(retry_state: RetryCallState) -> None:
        logger.warning(
            "transport_retry",
            attempt=retry_state.attempt_number,
            error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        )

    async def _request(
        self, endpoint: str, method: str, headers: dict[str, str], body: bytes | None
    ) -> httpx.Response:
        return await self._client.request(method, endpoint, headers=headers, content=body)

    async def call(
        self,
        endpoint: str,
        method: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        method = method.upper()
        try:
            if method in RETRYABLE_METHODS:
                response = await self._retrying()(self._request, endpoint, method, headers, body)
            else:
                response = await self._request(endpoint, method, headers, body)
        except httpx.HTTPError as e:
            logger.error("transport_failed", endpoint=endpoint, method=method, error=str(e))
            raise NetworkError(endpoint, str(e) or type(e).__name__) from e

        logger.debug(
            "transport_response", endpoint=endpoint, method=method, status=response.status_code
        )
        return TransportResponse(
            status=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )
