from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from autoreply.config.catalog import AI_ENDPOINTS
from autoreply.domain.models import HttpRequestSpec, Message, Provider, ProviderConfig, StreamChunk
from autoreply.infrastructure.llm.base import DONE, SSEProviderAdapter, load_event

DONE_SENTINEL = "[DONE]"


class OpenAIAdapter(SSEProviderAdapter):
    """OpenAI-style chat completions (`choices[0].delta.content` deltas)."""

    name = Provider.OPENAI.value

    def __init__(self, endpoint: str = AI_ENDPOINTS[Provider.OPENAI]) -> None:
        self.endpoint = endpoint

    def build_request(self, config: ProviderConfig, messages: Sequence[Message]) -> HttpRequestSpec:
        body: dict[str, Any] = {
            "model": config.model,
            "messages": [m.as_dict() for m in messages],
            "stream": True,
        }
        if config.temperature is not None:
            body["temperature"] = config.temperature
        if config.max_tokens is not None:
            body["max_tokens"] = config.max_tokens
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        }
        return HttpRequestSpec(url=self.endpoint, body=body, headers=headers)

    def decode_payload(self, payload: str) -> StreamChunk | None:
        if payload == DONE_SENTINEL:
            return DONE
        event = load_event(payload)
        choices = event.get("choices") or []
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta") or {}
        content = delta.get("content") if isinstance(delta, dict) else None
        if not isinstance(content, str) or not content:
            return None
        return StreamChunk(content=content)
