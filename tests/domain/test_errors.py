"""Tests for the domain error family."""

from contextlib import asynccontextmanager

import pytest

from autoreply.domain.errors import (
    CancellationError,
    ConfigurationError,
    DomainError,
    NetworkError,
    ProtocolDecodeError,
    ProviderResponseError,
    RequestTimeoutError,
    UnsupportedProviderError,
    ValidationError,
)


def test_all_errors_are_domain_errors():
    for cls in (
        ValidationError,
        ConfigurationError,
        NetworkError,
        ProtocolDecodeError,
        CancellationError,
    ):
        assert issubclass(cls, DomainError)


def test_timeout_is_a_cancellation():
    """A deadline expiry is handled like a user cancel by callers."""
    assert issubclass(RequestTimeoutError, CancellationError)
    assert not issubclass(CancellationError, NetworkError)


def test_unsupported_provider_is_configuration_error():
    err = UnsupportedProviderError("cohere")
    assert isinstance(err, ConfigurationError)
    assert err.provider == "cohere"
    assert str(err) == "Unsupported provider: cohere"


def test_provider_response_error_message():
    err = ProviderResponseError(provider="openai", status_code=401, detail="bad key")
    assert isinstance(err, NetworkError)
    assert str(err) == "openai API error 401: bad key"
    assert str(ProviderResponseError("anthropic", 503)) == "anthropic API error 503"


@pytest.mark.asyncio
async def test_provider_response_error_passes_through_async_context_manager():
    """Context managers rewrite __traceback__/__context__; the error must survive that."""

    @asynccontextmanager
    async def session():
        yield

    with pytest.raises(ProviderResponseError) as exc_info:
        async with session():
            raise ProviderResponseError("openai", 401, "unauthorized")
    assert exc_info.value.status_code == 401
    assert exc_info.value.provider == "openai"
