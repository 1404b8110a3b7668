"""Application settings with environment-driven configuration.

Why: Single place that reads the environment; every other layer receives
values via dependency injection.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TypeVar

from autoreply.config.catalog import default_model
from autoreply.domain.errors import ConfigurationError, UnsupportedProviderError
from autoreply.domain.models import Provider, ProviderConfig


_N = TypeVar("_N", int, float)


def _number(name: str, raw: str, convert: Callable[[str], _N]) -> _N:
    try:
        return convert(raw)
    except ValueError as ex:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from ex


def _float(name: str, default: str) -> float:
    return _number(name, os.getenv(name, default).strip() or default, float)


def _int(name: str, default: str) -> int:
    return _number(name, os.getenv(name, default).strip() or default, int)


def _optional_float(name: str) -> float | None:
    raw = os.getenv(name, "").strip()
    return _number(name, raw, float) if raw else None


def _optional_int(name: str) -> int | None:
    raw = os.getenv(name, "").strip()
    return _number(name, raw, int) if raw else None


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from environment variables.

    This is the ONLY place where environment variables are read.

    Retrieval:
    - rag_threshold: inject the whole knowledge base up to this many characters
    - rag_top_k: passages kept when the knowledge base is larger
    - chunk_size: target passage size in characters
    """

    # ===== Provider Configuration =====
    provider: str = field(
        default_factory=lambda: os.getenv("AUTOREPLY_PROVIDER", "openai").lower()
    )
    # Supported: "openai" | "anthropic"

    model: str = field(default_factory=lambda: os.getenv("AUTOREPLY_MODEL", ""))
    # Empty = catalog default for the provider

    api_key: str = field(default_factory=lambda: os.getenv("AUTOREPLY_API_KEY", ""), repr=False)
    openai_api_key: str = field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY", ""), repr=False
    )
    anthropic_api_key: str = field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", ""), repr=False
    )

    temperature: float | None = field(
        default_factory=lambda: _optional_float("AUTOREPLY_TEMPERATURE")
    )
    max_tokens: int | None = field(default_factory=lambda: _optional_int("AUTOREPLY_MAX_TOKENS"))

    # ===== Transport Configuration =====
    request_timeout_s: float = field(
        default_factory=lambda: _float("AUTOREPLY_REQUEST_TIMEOUT_S", "60")
    )
    max_retries: int = field(default_factory=lambda: _int("AUTOREPLY_MAX_RETRIES", "3"))
    retry_delay_s: float = field(
        default_factory=lambda: _float("AUTOREPLY_RETRY_DELAY_S", "1.0")
    )

    # ===== Retrieval Configuration =====
    rag_threshold: int = field(
        default_factory=lambda: _int("AUTOREPLY_RAG_THRESHOLD", "3000")
    )
    rag_top_k: int = field(default_factory=lambda: _int("AUTOREPLY_RAG_TOP_K", "4"))
    chunk_size: int = field(default_factory=lambda: _int("AUTOREPLY_CHUNK_SIZE", "600"))
    rag_document_order: bool = field(
        default_factory=lambda: os.getenv("AUTOREPLY_RAG_DOCUMENT_ORDER", "false").lower()
        == "true"
    )

    # ===== Conversation Configuration =====
    context_messages: int = field(
        default_factory=lambda: _int("AUTOREPLY_CONTEXT_MESSAGES", "10")
    )
    # Previous user+assistant messages kept when refining (clamped to 2..25)

    # ===== Logging Configuration =====
    log_level: str = field(default_factory=lambda: os.getenv("AUTOREPLY_LOG_LEVEL", "INFO"))
    log_format: str = field(
        default_factory=lambda: os.getenv("AUTOREPLY_LOG_FORMAT", "console").lower()
    )
    # Supported: "console" | "json"

    def resolved_api_key(self) -> str:
        """AUTOREPLY_API_KEY, else the vendor-specific variable."""
        if self.api_key:
            return self.api_key
        if self.provider == Provider.ANTHROPIC.value:
            return self.anthropic_api_key
        return self.openai_api_key

    def provider_config(self) -> ProviderConfig:
        try:
            provider = Provider(self.provider)
        except ValueError as ex:
            raise UnsupportedProviderError(self.provider) from ex
        return ProviderConfig(
            provider=provider,
            api_key=self.resolved_api_key(),
            model=self.model or default_model(provider),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
