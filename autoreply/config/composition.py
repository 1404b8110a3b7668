from autoreply.application.ports.provider_adapter_port import ProviderAdapter
from autoreply.application.use_cases.draft_reply import DraftReply
from autoreply.config.settings import AppSettings
from autoreply.domain.models import Provider
from autoreply.infrastructure.http.transport import RetryingTransport, RetryPolicy
from autoreply.infrastructure.llm.completion_client import (
    StreamingCompletionClient,
    default_adapters,
)
from autoreply.infrastructure.observability.logging import setup_logging


def build_transport(settings: AppSettings) -> RetryingTransport:
    return RetryingTransport(
        request_timeout_s=settings.request_timeout_s,
        retry=RetryPolicy(max_retries=settings.max_retries, base_delay_s=settings.retry_delay_s),
    )


def build_adapters() -> dict[Provider, ProviderAdapter]:
    return default_adapters()


def build_completion_client(settings: AppSettings) -> StreamingCompletionClient:
    return StreamingCompletionClient(transport=build_transport(settings), adapters=build_adapters())


def build_draft_use_case(settings: AppSettings | None = None) -> DraftReply:
    """Build DraftReply use case.

    Args:
        settings: Application settings (default: load from environment)

    Note:
        The client owns an httpx.AsyncClient; close it via use_case.client.aclose().
    """
    settings = settings or AppSettings()
    return DraftReply(
        client=build_completion_client(settings),
        threshold=settings.rag_threshold,
        top_k=settings.rag_top_k,
        chunk_size=settings.chunk_size,
        context_messages=settings.context_messages,
        document_order=settings.rag_document_order,
    )


def configure_logging(settings: AppSettings) -> None:
    setup_logging(log_level=settings.log_level, log_format=settings.log_format)
