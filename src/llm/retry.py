# src/llm/retry.py
"""Retry policy with exponential backoff for generation calls.

Failures fall into three classes:
  - rate_limit: retried with exponential backoff, then RateLimitExhausted
  - transient:  network / 5xx, retried a bounded number of times
  - fatal:      invalid request, bad credentials, anything unrecognised;
                raised at once as FatalGenerationError
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from docforge.llm.base_client import GenerationError

if TYPE_CHECKING:
    from docforge.config.settings import Settings

logger = logging.getLogger(__name__)

_KIND_TO_CLASS = {
    "rate_limited": "rate_limit",
    "transient_error": "transient",
    "invalid_request": "fatal",
    "authentication": "fatal",
}


class LLMRetryExhausted(Exception):
    """All retries exhausted for a generation call."""

    def __init__(self, agent: str, error_type: str, attempts: int, last_error: Exception):
        self.agent = agent
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Agent '{agent}' failed after {attempts} attempts ({error_type}): {last_error}"
        )


class RateLimitExhausted(LLMRetryExhausted):
    """The provider kept rate-limiting us past the retry budget."""


class FatalGenerationError(Exception):
    """Non-retryable failure (invalid request, authentication, ...)."""

    def __init__(self, agent: str, error_type: str, last_error: Exception):
        self.agent = agent
        self.error_type = error_type
        self.last_error = last_error
        super().__init__(f"Agent '{agent}' hit a non-retryable error: {last_error}")


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for one class of failure."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True
    max_delay_s: float = 300.0


DEFAULT_RETRY_CONFIGS: dict[str, RetryConfig] = {
    "rate_limit": RetryConfig(max_retries=5, base_delay_s=10.0),
    "transient": RetryConfig(max_retries=3, base_delay_s=2.0),
}


def retry_configs_from_settings(settings: Settings) -> dict[str, RetryConfig]:
    return {
        "rate_limit": RetryConfig(
            max_retries=settings.rate_limit_max_retries,
            base_delay_s=settings.rate_limit_base_delay_s,
        ),
        "transient": RetryConfig(
            max_retries=settings.transient_max_retries,
            base_delay_s=settings.transient_base_delay_s,
        ),
    }


def classify_error(error: Exception) -> str:
    """Classify an exception as "rate_limit", "transient" or "fatal"."""
    if isinstance(error, GenerationError):
        return _KIND_TO_CLASS.get(error.kind, "fatal")
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return "transient"

    msg = str(error).lower()
    if "429" in msg or "rate limit" in msg or "rate_limit" in msg:
        return "rate_limit"
    if "timeout" in type(error).__name__.lower() or "timed out" in msg:
        return "transient"
    if any(code in msg for code in ("500", "502", "503", "504", "529", "overloaded")):
        return "transient"
    return "fatal"


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Delay before retry number ``attempt`` (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return min(delay, config.max_delay_s)


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    agent: str = "unknown",
    retry_configs: dict[str, RetryConfig] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Execute an async function with retry logic.

    Raises:
        RateLimitExhausted: Rate-limit retries are used up.
        LLMRetryExhausted: Transient-failure retries are used up.
        FatalGenerationError: The failure is not retryable.
    """
    configs = retry_configs or DEFAULT_RETRY_CONFIGS
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error_type = classify_error(e)
            attempts += 1
            config = configs.get(error_type)

            if error_type == "fatal" or config is None:
                raise FatalGenerationError(agent, error_type, e) from e
            if attempts > config.max_retries:
                if error_type == "rate_limit":
                    raise RateLimitExhausted(agent, error_type, attempts, e) from e
                raise LLMRetryExhausted(agent, error_type, attempts, e) from e

            delay = compute_delay(config, attempts - 1)
            logger.warning(
                "Agent '%s': %s (attempt %d/%d), retrying in %.1fs",
                agent, error_type, attempts, config.max_retries, delay,
            )
            await sleep(delay)
