"""HTTP transport with deadline, cancellation and 5xx retry/backoff.

Why: Providers shed load with transient 5xx responses; the caller must still
be able to abort at any point, including during a backoff wait.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from autoreply.domain.errors import NetworkError, RequestTimeoutError
from autoreply.infrastructure.http.cancellation import TIMED_OUT, CancellationToken

logger = structlog.get_logger(__name__)

REQUEST_TIMEOUT_S = 60.0
MAX_RETRIES = 3
RETRY_DELAY_S = 1.0


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff for server errors: delay = base_delay_s * 2**attempt."""

    max_retries: int = MAX_RETRIES
    base_delay_s: float = RETRY_DELAY_S

    def delay(self, attempt: int) -> float:
        return self.base_delay_s * (2**attempt)


class RetryingTransport:
    """POSTs JSON over an httpx.AsyncClient and returns streaming responses.

    - The deadline (request_timeout_s) and the caller's token form one scope
      that spans every attempt and the body read; retries get no fresh window.
    - Status >= 500 is retried up to max_retries times; the last error
      response is returned when retries run out.
    - Any other status is returned at once.
    - Connection failures are not retried.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        request_timeout_s: float = REQUEST_TIMEOUT_S,
        retry: RetryPolicy | None = None,
        sleep: Callable[[CancellationToken, float], Awaitable[None]] | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(request_timeout_s))
        self._owns_client = client is None
        self.request_timeout_s = request_timeout_s
        self.retry = retry or RetryPolicy()
        self._sleep = sleep or _token_sleep

    def scope(self, cancellation: CancellationToken | None = None) -> CancellationToken:
        return CancellationToken.linked(cancellation, timeout=self.request_timeout_s)

    async def send(
        self,
        url: str,
        body: Mapping[str, Any],
        headers: Mapping[str, str],
        token: CancellationToken,
    ) -> httpx.Response:
        attempt = 0
        while True:
            response = await self._attempt(url, body, headers, token)
            if response.status_code < 500:
                return response
            if attempt >= self.retry.max_retries:
                logger.warning(
                    "retries_exhausted", url=url, status=response.status_code, attempts=attempt + 1
                )
                return response

            await response.aclose()
            delay = self.retry.delay(attempt)
            logger.info(
                "retrying_request",
                url=url,
                status=response.status_code,
                attempt=attempt + 1,
                delay_s=delay,
            )
            await self._sleep(token, delay)
            attempt += 1

    async def _attempt(
        self,
        url: str,
        body: Mapping[str, Any],
        headers: Mapping[str, str],
        token: CancellationToken,
    ) -> httpx.Response:
        request = self._client.build_request("POST", url, json=dict(body), headers=dict(headers))
        try:
            return await token.run(self._client.send(request, stream=True))
        except httpx.TimeoutException as ex:
            token.cancel(TIMED_OUT)
            raise RequestTimeoutError("request timed out") from ex
        except httpx.TransportError as ex:
            # Translate external errors to domain-specific errors
            raise NetworkError(f"request to {request.url.host} failed: {type(ex).__name__}") from ex

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def _token_sleep(token: CancellationToken, delay: float) -> None:
    await token.sleep(delay)
