# src/llm/base_client.py
"""Abstract LLM client interface and the typed failures adapters raise."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from docforge.llm.models import LLMResponse, Message

FailureKind = Literal[
    "rate_limited", "invalid_request", "authentication", "transient_error"
]


class GenerationError(Exception):
    """Typed failure reported by the external generation capability.

    Adapters translate provider SDK exceptions into one of these so the
    retry policy never has to know about a specific SDK.
    """

    def __init__(self, kind: FailureKind, message: str, status_code: int | None = None):
        self.kind = kind
        self.status_code = status_code
        super().__init__(message)


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Model identifier requests are sent to."""
