# src/llm/adapters/anthropic_adapter.py
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK. SDK exceptions are translated into
GenerationError so the retry policy stays provider-agnostic.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from docforge.llm.base_client import BaseLLMClient, GenerationError
from docforge.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)

# Non-5xx statuses treated as transient.
_TRANSIENT_STATUS = frozenset({408, 409})


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-3-haiku-20240307",
        api_key: str | None = None,
        max_retries: int = 0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        # SDK-level retries stay off: pacing and backoff belong to llm.retry
        self._max_retries = max_retries
        self.__client = None

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            import anthropic

            self.__client = anthropic.AsyncAnthropic(
                api_key=self._api_key or "", max_retries=self._max_retries,
            )
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Text completion via Anthropic Messages API."""
        import anthropic

        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        if system:
            kwargs["system"] = system

        start = time.monotonic()
        try:
            response = await self._client.messages.create(**kwargs)
        except anthropic.RateLimitError as e:
            raise GenerationError("rate_limited", str(e), 429) from e
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise GenerationError("authentication", str(e), e.status_code) from e
        except (anthropic.APITimeoutError, anthropic.APIConnectionError) as e:
            raise GenerationError("transient_error", str(e)) from e
        except anthropic.APIStatusError as e:
            kind = (
                "transient_error"
                if e.status_code >= 500 or e.status_code in _TRANSIENT_STATUS
                else "invalid_request"
            )
            raise GenerationError(kind, str(e), e.status_code) from e
        latency_ms = int((time.monotonic() - start) * 1000)

        return LLMResponse(
            content=self._extract_text(response),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model(self) -> str:
        return self._model

    @staticmethod
    def _extract_text(response: Any) -> str:
        """Concatenate text blocks from the response."""
        return "".join(
            block.text
            for block in response.content
            if getattr(block, "type", None) == "text"
        )
