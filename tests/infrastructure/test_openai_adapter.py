"""Tests for the OpenAI-style request builder and stream decoder."""

import pytest

from autoreply.domain.models import Message, Provider, ProviderConfig, StreamChunk
from autoreply.infrastructure.llm.openai_adapter import OpenAIAdapter


async def _pieces(*chunks: bytes):
    for chunk in chunks:
        yield chunk


async def _collect(*chunks: bytes) -> list[StreamChunk]:
    return [c async for c in OpenAIAdapter().parse_stream(_pieces(*chunks))]


def _delta(text: str) -> bytes:
    return b'data: {"choices":[{"delta":{"content":"' + text.encode() + b'"}}]}\n\n'


class TestBuildRequest:
    def test_minimal_body_and_headers(self) -> None:
        cfg = ProviderConfig(Provider.OPENAI, api_key="sk-test", model="gpt-4o-mini")
        msgs = [Message("system", "rules"), Message("user", "hi")]
        request = OpenAIAdapter().build_request(cfg, msgs)

        assert request.url == "https://api.openai.com/v1/chat/completions"
        assert request.body == {
            "model": "gpt-4o-mini",
            "messages": [
                {"role": "system", "content": "rules"},
                {"role": "user", "content": "hi"},
            ],
            "stream": True,
        }
        assert request.headers["Authorization"] == "Bearer sk-test"
        assert request.headers["Content-Type"] == "application/json"

    def test_optional_sampling_fields(self) -> None:
        cfg = ProviderConfig(
            Provider.OPENAI, api_key="k", model="gpt-4o", temperature=0.2, max_tokens=256
        )
        request = OpenAIAdapter().build_request(cfg, [Message("user", "hi")])
        assert request.body["temperature"] == 0.2
        assert request.body["max_tokens"] == 256

    def test_custom_endpoint(self) -> None:
        adapter = OpenAIAdapter(endpoint="http://localhost:8000/v1/chat/completions")
        cfg = ProviderConfig(Provider.OPENAI, api_key="k", model="local")
        assert adapter.build_request(cfg, [Message("user", "x")]).url.startswith("http://localhost")


@pytest.mark.asyncio
async def test_single_delta_then_done():
    chunks = await _collect(_delta("Hi"), b"data: [DONE]\n\n")
    assert chunks == [StreamChunk("Hi"), StreamChunk("", done=True)]


@pytest.mark.asyncio
async def test_event_split_across_reads():
    raw = _delta("Hello") + b"data: [DONE]\n\n"
    chunks = await _collect(raw[:7], raw[7:30], raw[30:])
    assert chunks == [StreamChunk("Hello"), StreamChunk("", done=True)]


@pytest.mark.asyncio
async def test_missing_terminator_still_ends_with_done():
    chunks = await _collect(_delta("a"), _delta("b"))
    assert [c.content for c in chunks] == ["a", "b", ""]
    assert [c.done for c in chunks] == [False, False, True]


@pytest.mark.asyncio
async def test_malformed_and_empty_events_are_skipped():
    chunks = await _collect(
        b'data: {"choices":[{"delta":{"role":"assistant"}}]}\n\n',
        b"data: {not json\n\n",
        b'data: {"choices":[{"delta":{"content":""}}]}\n\n',
        b"data: [1, 2]\n\n",
        b": keep-alive\n\n",
        _delta("ok"),
        b"data: [DONE]\n\n",
    )
    assert chunks == [StreamChunk("ok"), StreamChunk("", done=True)]


@pytest.mark.asyncio
async def test_nothing_after_done():
    chunks = await _collect(b"data: [DONE]\n\n", _delta("late"))
    assert chunks == [StreamChunk("", done=True)]


@pytest.mark.asyncio
async def test_trailing_line_without_newline_is_processed():
    chunks = await _collect(b'data: {"choices":[{"delta":{"content":"end"}}]}')
    assert chunks == [StreamChunk("end"), StreamChunk("", done=True)]
