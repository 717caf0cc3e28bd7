"""
Unit tests for the OpenAI-backed reasoning client.
"""
import httpx
import openai
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from agentflow.core.config import Settings
from agentflow.services.reasoning import (
    OpenAIReasoningClient, ReasoningError, ReasoningTimeoutError, ReasoningResponseError,
    create_reasoning_client
)

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content):
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    return response


def _client(**create_kwargs):
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(**create_kwargs)
    return openai_client


def _rate_limit():
    return openai.RateLimitError(
        "Rate limit reached",
        response=httpx.Response(429, request=REQUEST),
        body=None
    )


class TestOpenAIReasoningClient:
    """Tests for generate()."""

    async def test_returns_message_content(self):
        openai_client = _client(return_value=_completion("Paris"))
        client = OpenAIReasoningClient(model="gpt-4o-mini", client=openai_client)

        assert await client.generate("Capital of France?") == "Paris"

        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [{"role": "user", "content": "Capital of France?"}]

    async def test_empty_content_raises(self):
        client = OpenAIReasoningClient(client=_client(return_value=_completion("  ")))
        with pytest.raises(ReasoningResponseError):
            await client.generate("hi")

    async def test_no_choices_raises(self):
        response = MagicMock()
        response.choices = []
        client = OpenAIReasoningClient(client=_client(return_value=response))
        with pytest.raises(ReasoningResponseError):
            await client.generate("hi")

    async def test_timeout_maps_to_timeout_error(self):
        client = OpenAIReasoningClient(client=_client(side_effect=openai.APITimeoutError(request=REQUEST)))
        with pytest.raises(ReasoningTimeoutError):
            await client.generate("hi")

    async def test_rate_limit_retried(self):
        openai_client = _client(side_effect=[_rate_limit(), _completion("ok")])
        client = OpenAIReasoningClient(max_retries=2, client=openai_client)

        with patch("agentflow.services.reasoning.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await client.generate("hi") == "ok"

        assert openai_client.chat.completions.create.await_count == 2
        sleep.assert_awaited_once_with(1)

    async def test_retries_exhausted(self):
        openai_client = _client(side_effect=openai.APIConnectionError(request=REQUEST))
        client = OpenAIReasoningClient(max_retries=1, client=openai_client)

        with patch("agentflow.services.reasoning.asyncio.sleep", new=AsyncMock()):
            with pytest.raises(ReasoningError) as exc_info:
                await client.generate("hi")

        assert "after 2 attempts" in str(exc_info.value)
        assert openai_client.chat.completions.create.await_count == 2

    async def test_other_api_errors_not_retried(self):
        error = openai.BadRequestError(
            "bad request",
            response=httpx.Response(400, request=REQUEST),
            body=None
        )
        openai_client = _client(side_effect=error)
        client = OpenAIReasoningClient(max_retries=3, client=openai_client)

        with pytest.raises(ReasoningError):
            await client.generate("hi")
        assert openai_client.chat.completions.create.await_count == 1


def test_factory_uses_settings():
    settings = Settings(
        OPENAI_API_KEY="sk-test",
        OPENAI_MODEL="gpt-4o",
        REASONING_MAX_RETRIES=5,
        _env_file=None
    )
    client = create_reasoning_client(settings)
    assert client.model == "gpt-4o"
    assert client.max_retries == 5
