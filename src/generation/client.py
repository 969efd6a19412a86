# src/generation/client.py
"""Rate-limited section generation client.

Wraps a BaseLLMClient with the interval gate and the retry policy: every
attempt, including retries, passes through the gate, so the provider
never sees two calls closer than ``min_interval_s``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from pydantic import BaseModel, Field

from docforge.checkpoint.models import SectionOutput
from docforge.generation.prompts import WRITER_SYSTEM_PROMPT, WRITER_USER_TEMPLATE
from docforge.llm.base_client import GenerationError
from docforge.llm.client_factory import create_from_settings
from docforge.llm.models import LLMResponse, Message
from docforge.llm.rate_limiter import IntervalGate
from docforge.llm.retry import RetryConfig, retry_configs_from_settings, with_retry
from docforge.planning.models import SectionDescriptor

if TYPE_CHECKING:
    from docforge.config.settings import Settings
    from docforge.llm.base_client import BaseLLMClient
    from docforge.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)


class PreviousSection(BaseModel):
    """Excerpt of an already committed section, given as context."""

    title: str
    excerpt: str


class SectionContext(BaseModel):
    """What the writer knows beyond the section itself."""

    document_title: str = ""
    idea: str = ""
    outline: list[str] = Field(default_factory=list)
    previous: list[PreviousSection] = Field(default_factory=list)


def count_words(text: str) -> int:
    return len(text.split())


class GenerationClient:
    """Produces one SectionOutput per call, gated and retried.

    Args:
        llm: Provider adapter.
        gate: Interval gate shared by every call of this client.
        retry_configs: Per-failure-class retry settings.
        call_logger: Optional recorder for successful calls.
        max_tokens: Output token ceiling per call.
        temperature: Sampling temperature.
        sleep: Async sleep used for retry backoff (injectable for tests).
        agent: Agent name reported in retry errors and call records.
    """

    def __init__(
        self,
        llm: BaseLLMClient,
        gate: IntervalGate | None = None,
        retry_configs: dict[str, RetryConfig] | None = None,
        call_logger: CallLogger | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        agent: str = "writer",
    ) -> None:
        self._llm = llm
        self._gate = gate or IntervalGate()
        self._retry_configs = retry_configs
        self._call_logger = call_logger
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._sleep = sleep
        self._agent = agent

    @classmethod
    def from_settings(
        cls,
        llm: BaseLLMClient,
        settings: Settings,
        call_logger: CallLogger | None = None,
    ) -> GenerationClient:
        return cls(
            llm,
            gate=IntervalGate(min_interval_s=settings.min_call_interval_s),
            retry_configs=retry_configs_from_settings(settings),
            call_logger=call_logger,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )

    @property
    def gate(self) -> IntervalGate:
        return self._gate

    @property
    def model(self) -> str:
        return self._llm.model

    async def generate_section(
        self, section: SectionDescriptor, context: SectionContext | None = None,
    ) -> SectionOutput:
        """Generate the content of one section.

        Raises:
            RateLimitExhausted: The provider kept rate-limiting.
            LLMRetryExhausted: Transient failures outlasted the retry budget.
            FatalGenerationError: Non-retryable failure.
        """
        context = context or SectionContext()
        messages = [Message(role="user", content=format_prompt(section, context))]

        start = time.monotonic()
        response: LLMResponse = await with_retry(
            self._attempt,
            messages,
            agent=self._agent,
            retry_configs=self._retry_configs,
            sleep=self._sleep,
        )
        elapsed_ms = int((time.monotonic() - start) * 1000)

        if self._call_logger is not None:
            self._call_logger.record(self._agent, f"section_{section.index:04d}", response)

        content = response.content.strip()
        output = SectionOutput(
            index=section.index,
            title=section.title,
            parent_topic=section.parent_topic,
            content=content,
            word_count=count_words(content),
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            model=response.model or self._llm.model,
            latency_ms=response.latency_ms or elapsed_ms,
        )
        logger.info(
            "Section %d generated: %d words, %d tokens",
            section.index, output.word_count, response.input_tokens + response.output_tokens,
        )
        return output

    async def _attempt(self, messages: list[Message]) -> LLMResponse:
        response = await self._gate.call(
            self._llm.complete,
            messages,
            system=WRITER_SYSTEM_PROMPT,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        if not response.content.strip():
            raise GenerationError("transient_error", "Provider returned empty content")
        return response


def format_prompt(section: SectionDescriptor, context: SectionContext) -> str:
    """Fill the writer template for ``section``."""
    if context.previous:
        previous = "\n\n".join(f"## {p.title}\n{p.excerpt}" for p in context.previous)
    else:
        previous = "(none, this is the first section)"
    return WRITER_USER_TEMPLATE.format(
        section_title=section.title,
        parent_topic=section.parent_topic,
        document_title=context.document_title or "(untitled)",
        idea=context.idea or "(not specified)",
        brief=section.brief or "(none)",
        outline="\n".join(f"- {t}" for t in context.outline) or "(not provided)",
        previous_sections=previous,
        target_words=section.target_length_hint,
    )


ClientFactory = Callable[[str, "CallLogger | None"], GenerationClient]


def client_factory_from_settings(settings: Settings) -> ClientFactory:
    """Factory building a provider-backed client for a given model.

    One gate is shared by every client the factory builds, so the
    interval holds across projects run by the same process.
    """
    gate = IntervalGate(min_interval_s=settings.min_call_interval_s)

    def factory(model: str, call_logger: CallLogger | None = None) -> GenerationClient:
        llm = create_from_settings(settings, model=model)
        return GenerationClient(
            llm,
            gate=gate,
            retry_configs=retry_configs_from_settings(settings),
            call_logger=call_logger,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        )

    return factory
