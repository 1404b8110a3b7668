"""Tests for the retrying HTTP transport (httpx.MockTransport, no network)."""

import asyncio
import json

import httpx
import pytest

from autoreply.domain.errors import CancellationError, NetworkError, RequestTimeoutError
from autoreply.infrastructure.http.cancellation import CancellationToken
from autoreply.infrastructure.http.transport import RetryingTransport, RetryPolicy

URL = "https://llm.example.test/v1/chat"


def make_transport(statuses, delays, **kwargs):
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(statuses[min(len(calls), len(statuses)) - 1], text="body")

    async def record_sleep(token, delay):
        delays.append(delay)
        token.raise_if_cancelled()

    kwargs.setdefault("sleep", record_sleep)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RetryingTransport(client=client, **kwargs), calls


def test_retry_policy_delays():
    policy = RetryPolicy()
    assert [policy.delay(i) for i in range(3)] == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_success_is_returned_without_retry():
    delays: list[float] = []
    transport, calls = make_transport([200], delays)
    response = await transport.send(URL, {"a": 1}, {"X-Test": "1"}, CancellationToken())
    assert response.status_code == 200
    assert delays == []
    assert json.loads(calls[0].content) == {"a": 1}
    assert calls[0].headers["X-Test"] == "1"
    assert calls[0].method == "POST"


@pytest.mark.asyncio
async def test_server_errors_are_retried_with_exponential_backoff():
    delays: list[float] = []
    transport, calls = make_transport([503, 503, 503, 200], delays)
    response = await transport.send(URL, {}, {}, CancellationToken())
    assert response.status_code == 200
    assert delays == [1.0, 2.0, 4.0]
    assert len(calls) == 4


@pytest.mark.asyncio
async def test_exhausted_retries_return_last_error_response():
    delays: list[float] = []
    transport, calls = make_transport([500, 502, 503, 504, 200], delays)
    response = await transport.send(URL, {}, {}, CancellationToken())
    assert response.status_code == 504
    assert len(calls) == 4
    assert delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_client_errors_are_not_retried():
    delays: list[float] = []
    transport, calls = make_transport([429, 200], delays)
    response = await transport.send(URL, {}, {}, CancellationToken())
    assert response.status_code == 429
    assert len(calls) == 1
    assert delays == []


@pytest.mark.asyncio
async def test_already_cancelled_token_sends_nothing():
    transport, calls = make_transport([200], [])
    token = CancellationToken()
    token.cancel()
    with pytest.raises(CancellationError):
        await transport.send(URL, {}, {}, token)
    assert calls == []


@pytest.mark.asyncio
async def test_cancel_during_backoff_stops_retrying():
    transport, calls = make_transport(
        [503, 200], [], retry=RetryPolicy(base_delay_s=30.0), sleep=None
    )
    token = CancellationToken()
    asyncio.get_running_loop().call_later(0.02, token.cancel)
    with pytest.raises(CancellationError) as exc_info:
        await transport.send(URL, {}, {}, token)
    assert not isinstance(exc_info.value, RequestTimeoutError)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_deadline_spans_retries():
    transport, calls = make_transport(
        [503, 200],
        [],
        request_timeout_s=0.05,
        retry=RetryPolicy(base_delay_s=30.0),
        sleep=None,
    )
    scope = transport.scope(None)
    with pytest.raises(RequestTimeoutError):
        await transport.send(URL, {}, {}, scope)
    assert scope.timed_out
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_connection_failure_maps_to_network_error():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = RetryingTransport(client=client)
    with pytest.raises(NetworkError) as exc_info:
        await transport.send(URL, {}, {"Authorization": "Bearer sk-secret"}, CancellationToken())
    assert "sk-secret" not in str(exc_info.value)
    assert "llm.example.test" in str(exc_info.value)
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_transport_timeout_maps_to_request_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    transport = RetryingTransport(client=client)
    token = CancellationToken()
    with pytest.raises(RequestTimeoutError):
        await transport.send(URL, {}, {}, token)
    assert token.timed_out


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    await RetryingTransport(client=client).aclose()
    assert not client.is_closed
    await client.aclose()
