# autoreply/application/use_cases/draft_reply.py
from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import structlog

from autoreply.application.dto.draft_dto import DraftRequest, DraftResult
from autoreply.domain.errors import ValidationError
from autoreply.domain.models import Message, ProviderConfig, ResolvedContext
from autoreply.domain.services.chunking import DEFAULT_TARGET_CHARS
from autoreply.domain.services.context import DEFAULT_THRESHOLD, DEFAULT_TOP_K, resolve_context
from autoreply.domain.services.prompting import (
    DEFAULT_CONTEXT_MESSAGES,
    build_draft_messages,
    build_refinement_messages,
    build_system_prompt,
)

if TYPE_CHECKING:
    from autoreply.infrastructure.http.cancellation import CancellationToken
    from autoreply.infrastructure.llm.completion_client import (
        CompletionStream,
        StreamingCompletionClient,
    )

logger = structlog.get_logger(__name__)


class DraftReply:
    """
    Application use case: knowledge base + ticket query -> drafted reply.

    Steps: resolve context (full or BM25-retrieved) -> compose system prompt
    and messages -> stream through the completion client.
    """

    def __init__(
        self,
        client: StreamingCompletionClient,
        threshold: int = DEFAULT_THRESHOLD,
        top_k: int = DEFAULT_TOP_K,
        chunk_size: int = DEFAULT_TARGET_CHARS,
        context_messages: int = DEFAULT_CONTEXT_MESSAGES,
        document_order: bool = False,
    ) -> None:
        self.client = client
        self.threshold = threshold
        self.top_k = top_k
        self.chunk_size = chunk_size
        self.context_messages = context_messages
        self.document_order = document_order

    def resolve(self, req: DraftRequest) -> ResolvedContext | None:
        context = resolve_context(
            req.memory,
            req.query,
            threshold=self.threshold,
            top_k=self.top_k,
            chunk_size=self.chunk_size,
            document_order=self.document_order,
        )
        logger.info(
            "context_resolved",
            memory_chars=len(req.memory),
            context_chars=len(context.text) if context else 0,
            filtered=bool(context and context.filtered),
        )
        return context

    def compose(self, req: DraftRequest) -> tuple[list[Message], ResolvedContext | None]:
        if not req.query or not req.query.strip():
            raise ValidationError("query must not be empty")
        context = self.resolve(req)
        system = build_system_prompt(req.instructions, context)
        return build_draft_messages(system, req.query), context

    def stream(
        self, req: DraftRequest, cancellation: CancellationToken | None = None
    ) -> CompletionStream:
        messages, _ = self.compose(req)
        return self.client.stream(req.config, messages, cancellation)

    async def execute(
        self, req: DraftRequest, cancellation: CancellationToken | None = None
    ) -> DraftResult:
        messages, context = self.compose(req)
        text = await self.client.complete(req.config, messages, cancellation)
        return DraftResult(
            text=text,
            conversation=[*messages, Message(role="assistant", content=text)],
            context_filtered=bool(context and context.filtered),
        )

    async def refine(
        self,
        history: Sequence[Message],
        instruction: str,
        config: ProviderConfig,
        cancellation: CancellationToken | None = None,
    ) -> DraftResult:
        """Ask for a revised draft, keeping a bounded window of prior turns."""
        if not instruction or not instruction.strip():
            raise ValidationError("refinement instruction must not be empty")
        if not history:
            raise ValidationError("nothing to refine: conversation is empty")
        messages = build_refinement_messages(history, instruction.strip(), self.context_messages)
        text = await self.client.complete(config, messages, cancellation)
        return DraftResult(
            text=text, conversation=[*messages, Message(role="assistant", content=text)]
        )
