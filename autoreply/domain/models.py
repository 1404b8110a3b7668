# autoreply/domain/models.py
# Domain models must be pure (no I/O, no external libs)
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from autoreply.domain.errors import ConfigurationError, ValidationError

ROLES = ("system", "user", "assistant")


class Provider(str, Enum):
    """LLM vendors with a streaming chat adapter."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


@dataclass(frozen=True)
class Message:
    role: str  # "system" | "user" | "assistant"
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ProviderConfig:
    """
    Immutable provider settings for one request.

    - provider:    vendor identifier (Provider or its string value)
    - api_key:     secret; excluded from repr and never logged
    - model:       vendor model identifier
    - temperature: optional sampling temperature in [0, 2]
    - max_tokens:  optional positive completion budget

    An empty api_key is allowed here (it is the unconfigured default) and is
    rejected by the client when a request starts.
    """

    provider: Provider | str
    api_key: str = field(repr=False)
    model: str
    temperature: float | None = None
    max_tokens: int | None = None

    def __post_init__(self) -> None:
        if self.temperature is not None and not (0.0 <= self.temperature <= 2.0):
            raise ConfigurationError("temperature must be between 0 and 2")
        if self.max_tokens is not None and self.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be > 0")


@dataclass(frozen=True)
class StreamChunk:
    """Incremental output; exactly one chunk per stream has done=True."""

    content: str
    done: bool = False


@dataclass(frozen=True)
class Passage:
    """A contiguous slice of a knowledge-base document."""

    text: str
    ordinal: int


@dataclass(frozen=True)
class ScoredPassage:
    passage: Passage
    score: float


@dataclass(frozen=True)
class ResolvedContext:
    """Knowledge-base text chosen for a prompt.

    filtered is True when the document was chunked and ranked, False when it
    was injected whole.
    """

    text: str
    filtered: bool


@dataclass(frozen=True)
class HttpRequestSpec:
    """Vendor request produced by a provider adapter."""

    url: str
    body: Mapping[str, Any]
    headers: Mapping[str, str] = field(repr=False)


def validate_conversation(messages: Sequence[Message]) -> None:
    """Reject empty conversations, unknown roles and misplaced system messages.

    Role alternation is a convention only and is not checked.
    """
    if not messages:
        raise ValidationError("conversation must contain at least one message")
    for i, m in enumerate(messages):
        if m.role not in ROLES:
            raise ValidationError(f"unknown role {m.role!r} at position {i}")
        if m.role == "system" and i != 0:
            raise ValidationError("system message must be first and singular")
