# autoreply/application/dto/draft_dto.py
from __future__ import annotations

from dataclasses import dataclass

from autoreply.domain.models import Message, ProviderConfig


@dataclass(frozen=True)
class DraftRequest:
    """
    DTO for drafting a reply to a support ticket.

    - query: customer query text read from the ticket (non-empty)
    - config: provider configuration for this request
    - memory: raw knowledge-base text of the page rule ("" = none)
    - instructions: rule prompt; None uses the default support-agent prompt
    """

    query: str
    config: ProviderConfig
    memory: str = ""
    instructions: str | None = None


@dataclass(frozen=True)
class DraftResult:
    """Final reply plus the conversation needed for later refinement."""

    text: str
    conversation: list[Message]
    context_filtered: bool = False
