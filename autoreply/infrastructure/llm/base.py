from __future__ import annotations

import json
from abc import abstractmethod
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any

import structlog

from autoreply.application.ports.provider_adapter_port import ProviderAdapter
from autoreply.domain.models import StreamChunk
from autoreply.infrastructure.llm.sse import data_payload, iter_lines

logger = structlog.get_logger(__name__)

DONE = StreamChunk(content="", done=True)


class SSEProviderAdapter(ProviderAdapter):
    """Shared `data: ` line loop; subclasses decode one payload at a time.

    decode_payload returns a chunk to emit, DONE to end the stream, or None
    to ignore the event. ValueError (including json.JSONDecodeError) marks a
    malformed line, which is skipped.
    """

    @abstractmethod
    def decode_payload(self, payload: str) -> StreamChunk | None: ...

    async def parse_stream(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[StreamChunk]:
        skipped = 0
        async with aclosing(iter_lines(byte_stream)) as lines:
            async for line in lines:
                payload = data_payload(line)
                if payload is None:
                    continue
                try:
                    chunk = self.decode_payload(payload)
                except ValueError:
                    skipped += 1
                    logger.debug("skipping_malformed_event", provider=self.name)
                    continue
                if chunk is None:
                    continue
                yield chunk
                if chunk.done:
                    return
        # Body ended without an explicit terminator.
        logger.debug("implicit_stream_end", provider=self.name, skipped=skipped)
        yield DONE


def load_event(payload: str) -> dict[str, Any]:
    """JSON object of one event; anything else is malformed."""
    event = json.loads(payload)
    if not isinstance(event, dict):
        raise ValueError("event payload is not a JSON object")
    return event
