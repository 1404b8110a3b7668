"""Domain errors (typed) for the completion and retrieval core.

Why: Unified error family for callers, without httpx leaks. Cancellation is a
separate branch so a soft stop is never confused with a provider failure.
"""


class DomainError(Exception):
    """Base class for domain-specific errors."""


class ValidationError(DomainError):
    """Invalid input/domain state (e.g. a malformed conversation)."""


class ConfigurationError(DomainError):
    """Missing API key or invalid provider configuration. Never retried."""


class UnsupportedProviderError(ConfigurationError):
    """The configured provider has no adapter."""

    def __init__(self, provider: object) -> None:
        super().__init__(f"Unsupported provider: {provider}")
        self.provider = provider


class NetworkError(DomainError):
    """HTTP transport failed (connection reset, DNS, protocol violation)."""


class ProviderResponseError(NetworkError):
    """The provider answered with a non-2xx status."""

    def __init__(self, provider: str, status_code: int, detail: str = "") -> None:
        self.provider = provider
        self.status_code = status_code
        self.detail = detail
        super().__init__(provider, status_code, detail)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.provider} API error {self.status_code}: {self.detail}"
        return f"{self.provider} API error {self.status_code}"


class ProtocolDecodeError(DomainError):
    """Response body could not be decoded into text at all."""


class CancellationError(DomainError):
    """The caller cancelled the request. Partial output stays valid."""


class RequestTimeoutError(CancellationError):
    """The request deadline expired before the stream finished."""
