"""Anthropic generation client with rate limiting, retry logic, and cost tracking."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Protocol

import anthropic
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from backend.config import settings
from backend.errors import ServiceError

logger = logging.getLogger(__name__)

# Transport failures worth another attempt; auth and bad-request errors are not.
TRANSIENT_ERRORS = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


@dataclass(frozen=True)
class SamplingConfig:
    """Generation controls for a single call."""

    temperature: float
    top_k: int
    top_p: float
    max_output_tokens: int


class GenerationService(Protocol):
    """Prompt in, text out. Raises ServiceError when no reply can be produced."""

    async def generate(self, prompt: str, config: SamplingConfig) -> str: ...


class LLMClient:
    """Wrapper around the Anthropic API with rate limiting, retry logic, and cost tracking.

    One instance is shared by every agent so the rate limit and token
    accounting cover the whole process.
    """

    def __init__(self, api_key: str | None = None, model: str | None = None) -> None:
        """Initialize the client with API credentials and rate limiting."""
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key or settings.anthropic_api_key or None,
            timeout=settings.anthropic_timeout_seconds,
            max_retries=0,  # retried by _create
        )
        self.model = model or settings.anthropic_model
        self.max_rpm = settings.anthropic_rate_limit_rpm
        self._request_timestamps: deque[float] = deque()
        self._rate_lock = asyncio.Lock()
        self.total_input_tokens = 0
        self.total_output_tokens = 0

    async def _enforce_rate_limit(self) -> None:
        async with self._rate_lock:
            now = time.monotonic()
            # Remove timestamps older than 60 seconds
            while self._request_timestamps and now - self._request_timestamps[0] > 60:
                self._request_timestamps.popleft()
            if len(self._request_timestamps) >= self.max_rpm:
                sleep_time = 60 - (now - self._request_timestamps[0])
                if sleep_time > 0:
                    logger.info("Rate limit reached, sleeping %.1fs", sleep_time)
                    await asyncio.sleep(sleep_time)
            self._request_timestamps.append(time.monotonic())

    @retry(
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        stop=stop_after_attempt(settings.anthropic_max_retries),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        reraise=True,
    )
    async def _create(self, prompt: str, config: SamplingConfig) -> anthropic.types.Message:
        await self._enforce_rate_limit()
        return await self.client.messages.create(
            model=self.model,
            max_tokens=config.max_output_tokens,
            temperature=config.temperature,
            top_k=config.top_k,
            top_p=config.top_p,
            messages=[{"role": "user", "content": prompt}],
        )

    async def generate(self, prompt: str, config: SamplingConfig) -> str:
        """Send a prompt to the model and return the reply text."""
        if not self.client.api_key:
            raise ServiceError("No Anthropic API key configured (set STUDY_AGENTS_ANTHROPIC_API_KEY)")
        try:
            response = await self._create(prompt, config)
        except anthropic.APIError as exc:
            logger.error("Generation failed: %s", exc)
            raise ServiceError(f"Generation service unavailable: {exc}") from exc

        self.total_input_tokens += response.usage.input_tokens
        self.total_output_tokens += response.usage.output_tokens
        logger.debug(
            "Tokens used: %d in, %d out",
            response.usage.input_tokens,
            response.usage.output_tokens,
        )
        if not response.content:
            raise ServiceError("Generation service returned an empty reply")
        return response.content[0].text

    def get_cost_estimate(self) -> dict[str, float]:
        """Return token counts and estimated cost in USD."""
        input_cost = self.total_input_tokens * settings.llm_input_price_per_million / 1_000_000
        output_cost = self.total_output_tokens * settings.llm_output_price_per_million / 1_000_000
        return {
            "input_tokens": self.total_input_tokens,
            "output_tokens": self.total_output_tokens,
            "estimated_cost_usd": round(input_cost + output_cost, 4),
        }


# Lazy singleton, avoids import-time client creation when no API key is set.
_llm_client: LLMClient | None = None


def get_llm_client() -> LLMClient:
    """Return the shared LLMClient, creating it on first call."""
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient()
    return _llm_client
