from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from autoreply.config.catalog import AI_ENDPOINTS
from autoreply.domain.models import HttpRequestSpec, Message, Provider, ProviderConfig, StreamChunk
from autoreply.infrastructure.llm.base import DONE, SSEProviderAdapter, load_event

ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096
CHAT_ROLES = ("user", "assistant")


class AnthropicAdapter(SSEProviderAdapter):
    """Anthropic-style messages API (typed event envelopes).

    - the system message travels as the top-level `system` field
    - max_tokens is mandatory for this vendor and defaults to 4096
    """

    name = Provider.ANTHROPIC.value

    def __init__(self, endpoint: str = AI_ENDPOINTS[Provider.ANTHROPIC]) -> None:
        self.endpoint = endpoint

    def build_request(self, config: ProviderConfig, messages: Sequence[Message]) -> HttpRequestSpec:
        system = next((m.content for m in messages if m.role == "system"), None)
        body: dict[str, Any] = {
            "model": config.model,
            "max_tokens": config.max_tokens if config.max_tokens is not None else DEFAULT_MAX_TOKENS,
            "messages": [m.as_dict() for m in messages if m.role in CHAT_ROLES],
            "stream": True,
        }
        if system:
            body["system"] = system
        if config.temperature is not None:
            body["temperature"] = config.temperature
        headers = {
            "Content-Type": "application/json",
            "x-api-key": config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        return HttpRequestSpec(url=self.endpoint, body=body, headers=headers)

    def decode_payload(self, payload: str) -> StreamChunk | None:
        event = load_event(payload)
        kind = event.get("type")
        if kind == "message_stop":
            return DONE
        if kind != "content_block_delta":
            return None
        delta = event.get("delta") or {}
        text = delta.get("text") if isinstance(delta, dict) else None
        if not isinstance(text, str) or not text:
            return None
        return StreamChunk(content=text)
