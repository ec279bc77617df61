"""
LLM client abstraction.

Provides async interface for LLM calls with:
- Structured logging of requests/responses
- Timeout handling with one retry on timeout or rate limit
- Usage tracking (tokens)

Only feedback synthesis talks to an LLM; the provider and model are
configuration (settings.llm_feedback_*), not part of any contract.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import structlog

from roleplay.core.config import settings
from roleplay.core.exceptions import ConfigurationError, LLMRateLimitError, LLMTimeoutError

log = structlog.get_logger(__name__)


# Feedback analysis is a long structured JSON response; keep sampling low.
FEEDBACK_DEFAULTS = dict(
    temperature=0.3,
)


# =============================================================================
# Response and Base Classes
# =============================================================================


@dataclass
class LLMResponse:
    """Standardized LLM response."""

    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    latency_ms: float = 0.0
    raw_response: Optional[Dict[str, Any]] = None


class LLMClient(ABC):
    """Abstract base for LLM providers."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            prompt: User message/prompt
            system: Optional system prompt
            temperature: Sampling temperature (0.0-1.0)
            max_tokens: Maximum tokens in response
            timeout: Optional timeout override in seconds

        Returns:
            LLMResponse with content and metadata
        """
        pass


# =============================================================================
# Anthropic Client
# =============================================================================


class AnthropicClient(LLMClient):
    """Anthropic Claude API client.

    Uses httpx for async HTTP calls to the Messages API.
    """

    base_url = "https://api.anthropic.com/v1"
    max_retries = 1  # 2 total attempts
    base_delay = 1.0  # seconds

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Anthropic client.

        Args:
            model: Model ID (e.g., claude-sonnet-4-6)
            temperature: Sampling temperature
            max_tokens: Maximum tokens in response
            timeout: Request timeout in seconds
            api_key: API key (defaults to settings.anthropic_api_key)
            transport: Optional httpx transport (tests inject a MockTransport)

        Raises:
            ConfigurationError: If API key is not configured
        """
        self.api_key = api_key or settings.anthropic_api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.transport = transport

        if not self.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not configured. Set it in .env.")

        log.info("anthropic_client_initialized", model=self.model, timeout=self.timeout)

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Call Anthropic Messages API with automatic retry on timeout/rate-limit.

        Raises:
            LLMTimeoutError: After all retries exhausted on timeout
            LLMRateLimitError: After all retries exhausted on rate limit (429)
            httpx.HTTPStatusError: On other API errors (no retry)
        """
        if max_tokens is None:
            max_tokens = self.max_tokens
        if temperature is None:
            temperature = self.temperature
        if timeout is None:
            timeout = self.timeout

        headers = {
            "x-api-key": self.api_key,
            "content-type": "application/json",
            "anthropic-version": "2023-06-01",
        }

        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
        }
        if system:
            payload["system"] = system

        for attempt in range(self.max_retries + 1):
            start = time.perf_counter()

            log.debug(
                "llm_call_start",
                provider="anthropic",
                model=self.model,
                prompt_length=len(prompt),
                system_length=len(system) if system else 0,
                max_tokens=max_tokens,
                attempt=attempt + 1,
            )

            try:
                async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                    response = await client.post(
                        f"{self.base_url}/messages",
                        headers=headers,
                        json=payload,
                    )
                    response.raise_for_status()
                    data = response.json()

                latency_ms = (time.perf_counter() - start) * 1000

                content = ""
                if data.get("content"):
                    content = data["content"][0].get("text", "")

                usage = {
                    "input_tokens": data.get("usage", {}).get("input_tokens", 0),
                    "output_tokens": data.get("usage", {}).get("output_tokens", 0),
                }

                log.info(
                    "llm_call_complete",
                    provider="anthropic",
                    model=self.model,
                    latency_ms=round(latency_ms, 2),
                    input_tokens=usage["input_tokens"],
                    output_tokens=usage["output_tokens"],
                    attempt=attempt + 1,
                )

                return LLMResponse(
                    content=content,
                    model=data.get("model", self.model),
                    usage=usage,
                    latency_ms=latency_ms,
                    raw_response=data,
                )

            except httpx.TimeoutException as e:
                log.warning(
                    "llm_timeout",
                    provider="anthropic",
                    attempt=attempt + 1,
                    timeout_seconds=timeout,
                )
                if attempt < self.max_retries:
                    await self._backoff(attempt)
                else:
                    raise LLMTimeoutError(
                        f"LLM call timed out after {self.max_retries + 1} attempts "
                        f"(timeout={timeout}s)"
                    ) from e

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code == 429:
                    log.warning("llm_rate_limit", provider="anthropic", attempt=attempt + 1)
                    if attempt < self.max_retries:
                        await self._backoff(attempt)
                    else:
                        raise LLMRateLimitError(
                            f"Rate limit exceeded after {self.max_retries + 1} attempts"
                        ) from e
                else:
                    log.error("llm_http_error", provider="anthropic", status_code=status_code)
                    raise

        # Unreachable: loop either returns LLMResponse or raises an exception
        assert False, "unreachable"

    async def _backoff(self, attempt: int) -> None:
        delay = self.base_delay * (2**attempt)
        log.info("llm_retry", delay_seconds=delay, next_attempt=attempt + 2)
        await asyncio.sleep(delay)


def get_feedback_llm_client() -> LLMClient:
    """
    Factory for the feedback synthesis LLM client.

    Returns:
        LLMClient configured from settings.llm_feedback_*

    Raises:
        ConfigurationError: If the API key is missing
    """
    return AnthropicClient(
        model=settings.llm_feedback_model,
        temperature=FEEDBACK_DEFAULTS["temperature"],
        max_tokens=settings.llm_feedback_max_tokens,
        timeout=settings.llm_feedback_timeout,
    )
