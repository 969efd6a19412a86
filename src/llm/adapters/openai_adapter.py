# src/llm/adapters/openai_adapter.py
"""OpenAI GPT adapter implementing BaseLLMClient."""

from __future__ import annotations

import time
from typing import Any

from docforge.llm.base_client import BaseLLMClient, GenerationError
from docforge.llm.models import LLMResponse, Message

# Non-5xx statuses treated as transient.
_TRANSIENT_STATUS = frozenset({408, 409})


class OpenAIAdapter(BaseLLMClient):
    """OpenAI chat-completions adapter."""

    def __init__(self, model: str = "gpt-4o-mini", api_key: str = "", **kwargs: Any):
        self._model = model
        self._api_key = api_key
        self._client = None

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        import openai

        if self._client is None:
            self._client = openai.AsyncOpenAI(api_key=self._api_key, max_retries=0)

        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        oai_messages.extend({"role": m.role, "content": m.content} for m in messages)

        t0 = time.monotonic()
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=oai_messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.RateLimitError as e:
            raise GenerationError("rate_limited", str(e), 429) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise GenerationError("authentication", str(e), e.status_code) from e
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            raise GenerationError("transient_error", str(e)) from e
        except openai.APIStatusError as e:
            kind = (
                "transient_error"
                if e.status_code >= 500 or e.status_code in _TRANSIENT_STATUS
                else "invalid_request"
            )
            raise GenerationError(kind, str(e), e.status_code) from e
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model(self) -> str:
        return self._model
