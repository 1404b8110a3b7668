"""Tests for DraftReply use case."""

from collections.abc import Sequence

import pytest

from autoreply.application.dto.draft_dto import DraftRequest
from autoreply.application.use_cases.draft_reply import DraftReply
from autoreply.domain.errors import ValidationError
from autoreply.domain.models import Message, Provider, ProviderConfig, StreamChunk

CFG = ProviderConfig(Provider.OPENAI, api_key="sk-test", model="gpt-4o-mini")


class FakeStream:
    """Async iterator standing in for CompletionStream."""

    def __init__(self, parts: Sequence[str]) -> None:
        self._chunks = iter([*(StreamChunk(p) for p in parts), StreamChunk("", done=True)])

    def __aiter__(self):
        return self

    async def __anext__(self) -> StreamChunk:
        try:
            return next(self._chunks)
        except StopIteration:
            raise StopAsyncIteration from None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        return None


class FakeClient:
    """Fake completion client that records the messages it was sent."""

    def __init__(self, reply: str = "Your refund is on its way.") -> None:
        self.reply = reply
        self.calls: list[list[Message]] = []

    def stream(self, config, messages, cancellation=None) -> FakeStream:
        self.calls.append(list(messages))
        return FakeStream([self.reply])

    async def complete(self, config, messages, cancellation=None) -> str:
        self.calls.append(list(messages))
        return self.reply


def _big_memory() -> str:
    topics = [
        "Refunds are processed within five business days after approval.",
        "Shipping to remote islands takes up to three weeks by sea freight.",
        "Passwords can be reset from the login page using the email link.",
        "Gift cards never expire and can be combined with other discounts.",
    ]
    return "\n\n".join(" ".join([t] * 8) for t in topics)


@pytest.mark.asyncio
async def test_execute_injects_small_memory_whole():
    client = FakeClient()
    use_case = DraftReply(client=client)
    req = DraftRequest(query="Where is my refund?", config=CFG, memory="Refunds take 5 days.")

    result = await use_case.execute(req)

    system, user = client.calls[0]
    assert system.role == "system"
    assert "Knowledge Base:\nRefunds take 5 days." in system.content
    assert "(retrieved)" not in system.content
    assert user.content == "Customer query:\nWhere is my refund?"
    assert result.text == "Your refund is on its way."
    assert result.conversation[-1] == Message("assistant", result.text)
    assert result.context_filtered is False


@pytest.mark.asyncio
async def test_execute_retrieves_from_large_memory():
    client = FakeClient()
    use_case = DraftReply(client=client, threshold=1000, top_k=1)
    req = DraftRequest(query="How do I reset my password?", config=CFG, memory=_big_memory())

    result = await use_case.execute(req)

    system = client.calls[0][0].content
    assert "Relevant Knowledge Base (retrieved):\n" in system
    assert "Passwords can be reset" in system
    assert "Gift cards" not in system
    assert result.context_filtered is True


@pytest.mark.asyncio
async def test_execute_without_memory_has_no_knowledge_base():
    client = FakeClient()
    req = DraftRequest(query="Hi", config=CFG, instructions="Answer in German.")
    await DraftReply(client=client).execute(req)
    system = client.calls[0][0].content
    assert system.startswith("Answer in German.")
    assert "Knowledge Base" not in system


def test_empty_query_is_rejected():
    use_case = DraftReply(client=FakeClient())
    with pytest.raises(ValidationError):
        use_case.compose(DraftRequest(query="   ", config=CFG))


@pytest.mark.asyncio
async def test_stream_yields_client_chunks():
    use_case = DraftReply(client=FakeClient("Hello"))
    req = DraftRequest(query="q", config=CFG)
    async with use_case.stream(req) as chunks:
        received = [c async for c in chunks]
    assert received == [StreamChunk("Hello"), StreamChunk("", done=True)]


@pytest.mark.asyncio
async def test_refine_keeps_bounded_history():
    client = FakeClient("Shorter reply.")
    use_case = DraftReply(client=client, context_messages=2)
    history = [
        Message("system", "SYS"),
        Message("user", "first query"),
        Message("assistant", "first draft"),
        Message("user", "more formal"),
        Message("assistant", "formal draft"),
    ]

    result = await use_case.refine(history, "  make it shorter  ", CFG)

    sent = client.calls[0]
    assert [m.content for m in sent] == ["SYS", "more formal", "formal draft", "make it shorter"]
    assert result.text == "Shorter reply."
    assert result.conversation[-1].role == "assistant"


@pytest.mark.asyncio
async def test_refine_rejects_empty_instruction_and_history():
    use_case = DraftReply(client=FakeClient())
    with pytest.raises(ValidationError):
        await use_case.refine([Message("user", "q")], " ", CFG)
    with pytest.raises(ValidationError):
        await use_case.refine([], "shorter", CFG)
