"""Provider adapter port: one interface per LLM wire protocol.

Why (SAM): The completion client only knows this port. Each vendor adapter
translates the provider-agnostic conversation into its request body and
decodes its incremental event framing into StreamChunk values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence

from autoreply.domain.models import HttpRequestSpec, Message, ProviderConfig, StreamChunk


class ProviderAdapter(ABC):
    """Port for a streaming chat-completion wire protocol."""

    name: str = "provider"

    @abstractmethod
    def build_request(self, config: ProviderConfig, messages: Sequence[Message]) -> HttpRequestSpec:
        """Build the vendor HTTP request.

        Args:
            config: Provider configuration (model, key, sampling options)
            messages: Ordered conversation; system message first if present

        Returns:
            HttpRequestSpec with URL, JSON body and headers (headers carry the key)
        """
        ...

    @abstractmethod
    def parse_stream(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[StreamChunk]:
        """Decode raw response bytes into chunks.

        Args:
            byte_stream: Response body as it arrives from the network

        Returns:
            Async iterator of StreamChunk, ending with exactly one done=True chunk

        Raises:
            ProtocolDecodeError: If the body is not decodable text at all

        Note:
            Malformed event lines are skipped, not raised.
        """
        ...
