"""
Reasoning Client - seam to the language-model completion service

Nodes that must "think" (callLLM, LLM-driven conditions) go through
`ReasoningClient.generate`. Failures are raised as ReasoningError so the
interpreter can decide on a fallback path; nothing here returns an empty
string in place of an answer.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import openai
from openai import AsyncOpenAI

from ..core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ReasoningError(Exception):
    """The model service could not produce an answer"""


class ReasoningTimeoutError(ReasoningError):
    """The model service did not answer in time"""


class ReasoningResponseError(ReasoningError):
    """The model service answered with something unusable"""


class ReasoningClient(ABC):
    """Prompt in, text out"""

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """Return the model's text for a prompt or raise ReasoningError"""


class OpenAIReasoningClient(ReasoningClient):
    """
    Reasoning client backed by OpenAI chat completions.

    Rate-limit and connection errors are retried with a short backoff;
    anything else fails immediately.

    Attributes:
        client: AsyncOpenAI client
        model: Model to use (default: gpt-4o-mini)
        max_retries: Extra attempts after the first call
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 512,
        timeout: float = 30.0,
        max_retries: int = 2,
        client: Optional[AsyncOpenAI] = None
    ):
        if client is not None:
            self.client = client
        else:
            self.client = AsyncOpenAI(api_key=api_key) if api_key else AsyncOpenAI()
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries

        logger.info(f"OpenAIReasoningClient initialized with model: {model}")

    async def generate(self, prompt: str) -> str:
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "user", "content": prompt}],
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                    timeout=self.timeout
                )

            except openai.APITimeoutError as e:
                raise ReasoningTimeoutError(f"Model call timed out after {self.timeout}s") from e

            except openai.RateLimitError as e:
                logger.warning(f"Rate limit hit on attempt {attempt}: {e}")
                last_error = e
                if attempt < self.max_retries:
                    await asyncio.sleep(1 * (attempt + 1))
                continue

            except openai.APIConnectionError as e:
                logger.warning(f"Connection error on attempt {attempt}: {e}")
                last_error = e
                if attempt < self.max_retries:
                    await asyncio.sleep(0.5)
                continue

            except openai.OpenAIError as e:
                raise ReasoningError(f"Model call failed: {e}") from e

            if not response.choices:
                raise ReasoningResponseError("Model returned no choices")

            text = response.choices[0].message.content
            if not text or not text.strip():
                raise ReasoningResponseError("Model returned an empty response")

            return text

        raise ReasoningError(
            f"Model call failed after {self.max_retries + 1} attempts: {last_error}"
        )


def create_reasoning_client(settings: Optional[Settings] = None) -> OpenAIReasoningClient:
    """Factory function building the default client from settings"""
    cfg = settings or get_settings()
    return OpenAIReasoningClient(
        api_key=cfg.OPENAI_API_KEY,
        model=cfg.OPENAI_MODEL,
        temperature=cfg.REASONING_TEMPERATURE,
        max_tokens=cfg.REASONING_MAX_TOKENS,
        timeout=cfg.REASONING_TIMEOUT_SECONDS,
        max_retries=cfg.REASONING_MAX_RETRIES
    )
