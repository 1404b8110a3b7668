"""Streaming completion client: one chunk stream for every provider.

Why: Callers (live preview, CLI) consume output incrementally and may stop at
any point; the HTTP response must be released either way.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, AsyncIterator, Mapping, Sequence
from types import TracebackType

import httpx
import structlog

from autoreply.application.ports.provider_adapter_port import ProviderAdapter
from autoreply.application.ports.transport_port import TransportPort
from autoreply.domain.errors import (
    ConfigurationError,
    NetworkError,
    ProtocolDecodeError,
    ProviderResponseError,
    UnsupportedProviderError,
)
from autoreply.domain.models import (
    Message,
    Provider,
    ProviderConfig,
    StreamChunk,
    validate_conversation,
)
from autoreply.infrastructure.http.cancellation import TIMED_OUT, CancellationToken
from autoreply.infrastructure.llm.anthropic_adapter import AnthropicAdapter
from autoreply.infrastructure.llm.openai_adapter import OpenAIAdapter

logger = structlog.get_logger(__name__)

ERROR_DETAIL_LIMIT = 500


def default_adapters() -> dict[Provider, ProviderAdapter]:
    return {Provider.OPENAI: OpenAIAdapter(), Provider.ANTHROPIC: AnthropicAdapter()}


class CompletionStream:
    """Async iterator of StreamChunk that owns the underlying HTTP response.

    Use as `async with client.stream(...) as stream: async for chunk in stream`
    so an early stop closes the connection. aclose() is idempotent.
    """

    def __init__(self, chunks: AsyncIterator[StreamChunk]) -> None:
        self._chunks = chunks
        self._closed = False

    def __aiter__(self) -> CompletionStream:
        return self

    async def __anext__(self) -> StreamChunk:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._chunks.__anext__()
        except BaseException:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._chunks, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> CompletionStream:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class StreamingCompletionClient:
    """Orchestrates transport + provider adapter behind one streaming API.

    The client holds adapters only through the ProviderAdapter port; the
    provider in ProviderConfig selects one of them.
    """

    def __init__(
        self,
        transport: TransportPort,
        adapters: Mapping[Provider, ProviderAdapter] | None = None,
    ) -> None:
        self.transport = transport
        self.adapters = dict(adapters) if adapters is not None else default_adapters()

    def adapter_for(self, provider: Provider | str) -> ProviderAdapter:
        try:
            key = Provider(provider)
        except ValueError as ex:
            raise UnsupportedProviderError(provider) from ex
        adapter = self.adapters.get(key)
        if adapter is None:
            raise UnsupportedProviderError(key.value)
        return adapter

    def stream(
        self,
        config: ProviderConfig,
        messages: Sequence[Message],
        cancellation: CancellationToken | None = None,
    ) -> CompletionStream:
        """Start a streaming completion.

        Raises (immediately, before any network activity):
            ConfigurationError: empty API key
            UnsupportedProviderError: no adapter for config.provider
            ValidationError: malformed conversation

        The returned stream raises NetworkError / ProviderResponseError /
        ProtocolDecodeError / CancellationError while being consumed.
        """
        if not config.api_key:
            raise ConfigurationError(
                "API key is not configured. Please set it in the extension settings."
            )
        adapter = self.adapter_for(config.provider)
        validate_conversation(messages)
        return CompletionStream(self._run(adapter, config, list(messages), cancellation))

    async def _run(
        self,
        adapter: ProviderAdapter,
        config: ProviderConfig,
        messages: list[Message],
        cancellation: CancellationToken | None,
    ) -> AsyncIterator[StreamChunk]:
        request = adapter.build_request(config, messages)
        scope = self.transport.scope(cancellation)
        log = logger.bind(provider=adapter.name, model=config.model)
        log.info("completion_started", messages=len(messages))
        response: httpx.Response | None = None
        body: AsyncGenerator[bytes, None] | None = None
        emitted = 0
        finished = False
        try:
            response = await self.transport.send(request.url, request.body, request.headers, scope)
            if not response.is_success:
                raise await _response_error(adapter.name, response, scope, config.api_key)

            body = _guarded_bytes(response, scope)
            chunks = adapter.parse_stream(body)
            try:
                async for chunk in chunks:
                    # Never hand out a chunk once the scope has fired.
                    scope.raise_if_cancelled()
                    if chunk.done:
                        finished = True
                        log.info("completion_finished", chunks=emitted)
                        yield chunk
                        return
                    yield chunk
                    emitted += 1
            finally:
                aclose = getattr(chunks, "aclose", None)
                if aclose is not None:
                    await aclose()
        except BaseException as ex:
            if not finished:
                log.info("completion_aborted", chunks=emitted, error=type(ex).__name__)
            raise
        finally:
            scope.dispose()
            if body is not None:
                await body.aclose()
            if response is not None:
                await response.aclose()

    async def complete(
        self,
        config: ProviderConfig,
        messages: Sequence[Message],
        cancellation: CancellationToken | None = None,
    ) -> str:
        """Non-streaming variant: concatenated content of the same stream."""
        parts: list[str] = []
        async with self.stream(config, messages, cancellation) as chunks:
            async for chunk in chunks:
                if chunk.done:
                    break
                parts.append(chunk.content)
        return "".join(parts)

    async def aclose(self) -> None:
        await self.transport.aclose()


async def _guarded_bytes(
    response: httpx.Response, scope: CancellationToken
) -> AsyncGenerator[bytes, None]:
    """Response body pieces, each read raced against the request scope."""
    pieces = response.aiter_bytes()
    try:
        while True:
            try:
                piece = await scope.run(_read_next(pieces))
            except httpx.DecodingError as ex:
                raise ProtocolDecodeError(f"response body could not be decoded: {ex}") from ex
            except httpx.TimeoutException as ex:
                scope.cancel(TIMED_OUT)
                raise scope.error() from ex
            except httpx.TransportError as ex:
                raise NetworkError(f"stream interrupted: {type(ex).__name__}") from ex
            if piece is None:
                return
            yield piece
    finally:
        await pieces.aclose()


async def _read_next(pieces: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await pieces.__anext__()
    except StopAsyncIteration:
        return None


async def _response_error(
    provider: str, response: httpx.Response, scope: CancellationToken, api_key: str
) -> ProviderResponseError:
    try:
        raw = await scope.run(response.aread())
        detail = raw.decode("utf-8", errors="replace")
    except (httpx.HTTPError, UnicodeDecodeError):
        detail = ""
    if api_key:
        # The key never reaches an error message, even when the body echoes it.
        detail = detail.replace(api_key, "***")
    logger.warning("provider_error_response", provider=provider, status=response.status_code)
    return ProviderResponseError(
        provider=provider, status_code=response.status_code, detail=detail[:ERROR_DETAIL_LIMIT]
    )
