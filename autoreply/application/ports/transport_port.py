from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:  # pragma: no cover
    import httpx

    from autoreply.infrastructure.http.cancellation import CancellationToken


class TransportPort(Protocol):
    async def send(
        self,
        url: str,
        body: Mapping[str, Any],
        headers: Mapping[str, str],
        token: CancellationToken,
    ) -> httpx.Response:
        """POST a JSON body and return the streaming response (body unread).

        Raises:
            NetworkError: connection-level failure
            CancellationError: token fired (RequestTimeoutError for the deadline)
        """
        ...

    def scope(self, cancellation: CancellationToken | None = None) -> CancellationToken:
        """Token combining the caller's cancellation with the request deadline."""
        ...

    async def aclose(self) -> None: ...
