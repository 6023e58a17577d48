"""Resilient Anthropic Client — AsyncAnthropic with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, 529 overloaded, connection): retried up to max_retries
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to UpstreamServiceError (core/errors.py)

Design Decisions:
    - Wrapper over raw client: retry policy stays out of the survey assistant
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
"""

import asyncio
import logging
import random

import anthropic
from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    InternalServerError,
    RateLimitError,
)

from survey_engine.core.errors import ErrorContext, UpstreamServiceError

logger = logging.getLogger(__name__)

_OVERLOADED_STATUS = 529


def _is_overloaded(e: APIError) -> bool:
    """Check if error is Anthropic 529 Overloaded."""
    return isinstance(e, APIStatusError) and e.status_code == _OVERLOADED_STATUS


def response_text(message) -> str:
    """Concatenate the text blocks of a Messages API response."""
    return "".join(
        getattr(block, "text", "")
        for block in message.content
        if getattr(block, "type", None) == "text"
    ).strip()


class ResilientAnthropicClient:
    """Wraps the Anthropic client with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        api_key: str,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 30_000,
        timeout_seconds: int = 120,
    ):
        # SDK-level retries disabled: this wrapper owns the retry policy
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key, timeout=timeout_seconds, max_retries=0,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def complete(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        prompt: str,
        context: ErrorContext | None = None,
    ) -> str:
        """Single-turn completion returning the response text."""
        message = await self.create_message(
            model=model,
            max_tokens=max_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
            context=context,
        )
        return response_text(message)

    async def create_message(
        self,
        *,
        model: str,
        max_tokens: int,
        system: str,
        messages: list,
        context: ErrorContext | None = None,
    ):
        """Create message with automatic retry on transient failures."""
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    system=system,
                    messages=messages,
                )
                self._log_success(response, attempt)
                return response

            except RateLimitError as e:
                await self._handle_rate_limit(e, attempt, context)

            except APITimeoutError:
                raise UpstreamServiceError(
                    "API timeout", "timeout", context=context,
                )

            except (APIConnectionError, InternalServerError) as e:
                await self._handle_transient_error(e, attempt, context)

            except APIError as e:
                if _is_overloaded(e):
                    await self._handle_transient_error(e, attempt, context)
                    continue
                raise UpstreamServiceError(
                    str(e), "client_error", context=context,
                )

    def _log_success(self, response, attempt: int) -> None:
        usage = response.usage
        logger.info(
            "Anthropic API success",
            extra={
                "attempt": attempt + 1,
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
            },
        )

    async def _handle_rate_limit(
        self, e: RateLimitError, attempt: int, context: ErrorContext | None,
    ) -> None:
        """Sleep before the next attempt, or raise once retries are spent."""
        retry_after_ms = self._extract_retry_after(e)
        if attempt >= self.max_retries:
            raise UpstreamServiceError(
                "Rate limit exceeded after retries",
                "rate_limit",
                retry_after_ms=retry_after_ms,
                context=context,
            )
        delay = retry_after_ms or self._backoff(attempt)
        logger.warning(
            f"Rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self, e: Exception, attempt: int, context: ErrorContext | None,
    ) -> None:
        if attempt >= self.max_retries:
            raise UpstreamServiceError(
                f"Transient failure after {self.max_retries} retries: {e}",
                "connection_error",
                context=context,
            )
        delay = self._backoff(attempt)
        logger.warning(f"Transient error, retry after {delay}ms: {e}")
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, error: RateLimitError) -> int | None:
        """Retry-After header in milliseconds, when present and numeric."""
        response = getattr(error, "response", None)
        if response is None:
            return None
        value = response.headers.get("retry-after")
        if value and value.isdigit():
            return int(value) * 1000
        return None
