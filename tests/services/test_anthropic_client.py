"""Resilient Anthropic Client — retry, backoff, and error mapping.

Invariants:
    - Rate limits and transient errors are retried up to max_retries
    - Client errors fail immediately
    - Every failure surfaces as UpstreamServiceError
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from anthropic import APIConnectionError, BadRequestError, RateLimitError

from survey_engine.core.errors import UpstreamServiceError
from survey_engine.infrastructure.anthropic_client import ResilientAnthropicClient

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


class _Block:
    def __init__(self, text):
        self.type = "text"
        self.text = text


class _Usage:
    input_tokens = 10
    output_tokens = 5


class _Message:
    def __init__(self, text):
        self.content = [_Block(text)]
        self.usage = _Usage()


def _rate_limit(retry_after: str | None = None) -> RateLimitError:
    headers = {"retry-after": retry_after} if retry_after else {}
    response = httpx.Response(429, headers=headers, request=_REQUEST)
    return RateLimitError("rate limited", response=response, body=None)


def _bad_request() -> BadRequestError:
    response = httpx.Response(400, request=_REQUEST)
    return BadRequestError("bad", response=response, body=None)


@pytest.fixture
def client():
    c = ResilientAnthropicClient(api_key="sk-ant-test", max_retries=2, base_delay_ms=1)
    c.client = AsyncMock()
    return c


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("survey_engine.infrastructure.anthropic_client.asyncio.sleep", new=AsyncMock()) as s:
        yield s


async def _complete(client):
    return await client.complete(
        model="claude-test", max_tokens=64, system="sys", prompt="hello",
    )


async def test_complete_returns_text(client):
    client.client.messages.create = AsyncMock(return_value=_Message(" summary "))
    assert await _complete(client) == "summary"
    kwargs = client.client.messages.create.await_args.kwargs
    assert kwargs["messages"] == [{"role": "user", "content": "hello"}]


async def test_rate_limit_retried_with_retry_after(client, no_sleep):
    client.client.messages.create = AsyncMock(
        side_effect=[_rate_limit("2"), _Message("ok")],
    )
    assert await _complete(client) == "ok"
    no_sleep.assert_awaited_once_with(2.0)


async def test_connection_errors_exhaust_retries(client):
    client.client.messages.create = AsyncMock(
        side_effect=APIConnectionError(request=_REQUEST),
    )
    with pytest.raises(UpstreamServiceError) as exc:
        await _complete(client)
    assert exc.value.api_error_type == "connection_error"
    assert client.client.messages.create.await_count == 3


async def test_client_error_not_retried(client):
    client.client.messages.create = AsyncMock(side_effect=_bad_request())
    with pytest.raises(UpstreamServiceError) as exc:
        await _complete(client)
    assert exc.value.api_error_type == "client_error"
    assert client.client.messages.create.await_count == 1


async def test_rate_limit_exhausted_carries_retry_after(client):
    client.client.messages.create = AsyncMock(side_effect=_rate_limit("3"))
    with pytest.raises(UpstreamServiceError) as exc:
        await _complete(client)
    assert exc.value.context.retry_after_ms == 3000
