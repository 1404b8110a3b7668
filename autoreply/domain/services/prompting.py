from __future__ import annotations

from collections.abc import Sequence

from autoreply.domain.models import Message, ResolvedContext

DEFAULT_INSTRUCTIONS = (
    "You are a professional customer support agent. "
    "Draft a helpful, clear response to the customer query below."
)
REPLY_ONLY = (
    'IMPORTANT: Respond with ONLY the reply text. No greetings like "Here is a response". '
    "Just the actual response the support agent should send to the customer."
)
RETRIEVED_LABEL = "Relevant Knowledge Base (retrieved)"
FULL_LABEL = "Knowledge Base"

MIN_CONTEXT_MESSAGES = 2
MAX_CONTEXT_MESSAGES = 25
DEFAULT_CONTEXT_MESSAGES = 10


def build_system_prompt(instructions: str | None, context: ResolvedContext | None) -> str:
    """Rule instructions + labelled knowledge base + reply-only guardrail."""
    system = instructions or DEFAULT_INSTRUCTIONS
    if context is not None and context.text:
        label = RETRIEVED_LABEL if context.filtered else FULL_LABEL
        system += f"\n\n{label}:\n{context.text}"
    return f"{system}\n\n{REPLY_ONLY}"


def build_draft_messages(system_prompt: str, query: str) -> list[Message]:
    return [
        Message(role="system", content=system_prompt),
        Message(role="user", content=f"Customer query:\n{query}"),
    ]


def clamp_context_messages(n: int) -> int:
    return max(MIN_CONTEXT_MESSAGES, min(MAX_CONTEXT_MESSAGES, n))


def build_refinement_messages(
    history: Sequence[Message],
    instruction: str,
    context_messages: int = DEFAULT_CONTEXT_MESSAGES,
) -> list[Message]:
    """
    Follow-up turn on an existing draft.

    Keeps the leading system message (if any) plus the most recent
    user/assistant turns, bounded to 2..25 messages, then appends the
    refinement instruction as a user message.
    """
    system = [m for m in history[:1] if m.role == "system"]
    turns = [m for m in history if m.role != "system"]
    window = turns[-clamp_context_messages(context_messages) :]
    return [*system, *window, Message(role="user", content=instruction)]
