"""Incremental line framing for SSE-style response bodies.

Bytes arrive in arbitrary pieces: a UTF-8 sequence or an event line may be
split across two reads. SSELineDecoder keeps that carry-over explicitly, one
instance per response.
"""

from __future__ import annotations

import codecs
from collections.abc import AsyncIterator

from autoreply.domain.errors import ProtocolDecodeError

DATA_PREFIX = "data: "


class SSELineDecoder:
    """Turns byte pieces into complete text lines."""

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="strict")
        self.carryover = ""

    def feed(self, data: bytes) -> list[str]:
        """Decode one network read; return the lines it completed."""
        try:
            text = self._decoder.decode(data)
        except UnicodeDecodeError as ex:
            raise ProtocolDecodeError(f"response body is not valid UTF-8: {ex.reason}") from ex
        lines = (self.carryover + text).split("\n")
        self.carryover = lines.pop()
        return lines

    def flush(self) -> list[str]:
        """End of body: return the unterminated last line, if any."""
        try:
            tail = self.carryover + self._decoder.decode(b"", final=True)
        except UnicodeDecodeError as ex:
            raise ProtocolDecodeError("response body ends inside a UTF-8 sequence") from ex
        self.carryover = ""
        return [tail] if tail else []


def data_payload(line: str) -> str | None:
    """Payload of a `data: ` line, or None for any other line."""
    stripped = line.strip()
    if not stripped.startswith(DATA_PREFIX):
        return None
    return stripped[len(DATA_PREFIX) :]


async def iter_lines(byte_stream: AsyncIterator[bytes]) -> AsyncIterator[str]:
    decoder = SSELineDecoder()
    async for piece in byte_stream:
        for line in decoder.feed(piece):
            yield line
    for line in decoder.flush():
        yield line
