"""Tests for the Anthropic generation client (API calls mocked)."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest
from tenacity import wait_none

from agents.content_agent import CONTENT_PROFILE
from backend.config import settings
from backend.errors import ServiceError
from backend.llm_client import LLMClient


def _message(text: str | None, input_tokens: int = 12, output_tokens: int = 30) -> SimpleNamespace:
    content = [] if text is None else [SimpleNamespace(type="text", text=text)]
    return SimpleNamespace(
        content=content,
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


@pytest.fixture
def sdk(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    """Replace the Anthropic SDK client with a mock."""
    client = MagicMock()
    client.api_key = "test-key"
    client.messages.create = AsyncMock()
    monkeypatch.setattr(anthropic, "AsyncAnthropic", MagicMock(return_value=client))
    return client


@pytest.mark.asyncio
async def test_generate_passes_sampling_profile(sdk: MagicMock) -> None:
    sdk.messages.create.return_value = _message("A lesson")
    llm = LLMClient(model="test-model")

    assert await llm.generate("Teach fractions", CONTENT_PROFILE) == "A lesson"

    kwargs = sdk.messages.create.call_args.kwargs
    assert kwargs["model"] == "test-model"
    assert kwargs["max_tokens"] == CONTENT_PROFILE.max_output_tokens
    assert kwargs["temperature"] == CONTENT_PROFILE.temperature
    assert kwargs["top_k"] == CONTENT_PROFILE.top_k
    assert kwargs["top_p"] == CONTENT_PROFILE.top_p
    assert kwargs["messages"] == [{"role": "user", "content": "Teach fractions"}]


@pytest.mark.asyncio
async def test_token_accounting(sdk: MagicMock) -> None:
    sdk.messages.create.side_effect = [_message("one", 100, 200), _message("two", 50, 100)]
    llm = LLMClient()
    await llm.generate("a", CONTENT_PROFILE)
    await llm.generate("b", CONTENT_PROFILE)

    cost = llm.get_cost_estimate()
    assert cost["input_tokens"] == 150
    assert cost["output_tokens"] == 300
    assert cost["estimated_cost_usd"] > 0


@pytest.mark.asyncio
async def test_missing_api_key(sdk: MagicMock) -> None:
    sdk.api_key = None
    with pytest.raises(ServiceError):
        await LLMClient().generate("hi", CONTENT_PROFILE)
    sdk.messages.create.assert_not_called()


@pytest.mark.asyncio
async def test_api_error_becomes_service_error(sdk: MagicMock) -> None:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    sdk.messages.create.side_effect = anthropic.AuthenticationError(
        "invalid x-api-key",
        response=httpx.Response(401, request=request),
        body=None,
    )
    with pytest.raises(ServiceError) as excinfo:
        await LLMClient().generate("hi", CONTENT_PROFILE)
    assert isinstance(excinfo.value.__cause__, anthropic.AuthenticationError)
    # Auth failures are not retried
    assert sdk.messages.create.call_count == 1


@pytest.mark.asyncio
async def test_empty_reply(sdk: MagicMock) -> None:
    sdk.messages.create.return_value = _message(None)
    with pytest.raises(ServiceError):
        await LLMClient().generate("hi", CONTENT_PROFILE)


@pytest.mark.asyncio
async def test_transient_error_is_retried(sdk: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(LLMClient._create.retry, "wait", wait_none())
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    sdk.messages.create.side_effect = [anthropic.APIConnectionError(request=request), _message("Recovered")]

    assert await LLMClient().generate("hi", CONTENT_PROFILE) == "Recovered"
    assert sdk.messages.create.call_count == 2


@pytest.mark.asyncio
async def test_retries_exhausted(sdk: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(LLMClient._create.retry, "wait", wait_none())
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    sdk.messages.create.side_effect = anthropic.APIConnectionError(request=request)

    with pytest.raises(ServiceError):
        await LLMClient().generate("hi", CONTENT_PROFILE)
    assert sdk.messages.create.call_count == settings.anthropic_max_retries


@pytest.mark.asyncio
async def test_rate_limit_waits_for_window(sdk: MagicMock, monkeypatch: pytest.MonkeyPatch) -> None:
    sleep = AsyncMock()
    monkeypatch.setattr(asyncio, "sleep", sleep)
    sdk.messages.create.return_value = _message("ok")
    llm = LLMClient()
    llm.max_rpm = 1

    await llm.generate("first", CONTENT_PROFILE)
    sleep.assert_not_awaited()
    await llm.generate("second", CONTENT_PROFILE)

    sleep.assert_awaited_once()
    assert 0 < sleep.await_args.args[0] <= 60
