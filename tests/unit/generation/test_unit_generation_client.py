# tests/unit/generation/test_unit_generation_client.py
"""Tests for generation/client.py."""

from __future__ import annotations

import pytest
from conftest import ScriptedLLMClient, rate_limited

from docforge.generation.client import (
    GenerationClient,
    PreviousSection,
    SectionContext,
    client_factory_from_settings,
    format_prompt,
)
from docforge.llm.adapters.anthropic_adapter import AnthropicAdapter
from docforge.llm.base_client import GenerationError
from docforge.llm.retry import FatalGenerationError, RateLimitExhausted
from docforge.tracking.call_logger import CallLogger


class TestGenerateSection:
    @pytest.mark.asyncio
    async def test_returns_section_output(self, make_client, small_plan):
        llm = ScriptedLLMClient(["## Market size\n\nThe market is large and growing."])
        client = make_client(llm)
        output = await client.generate_section(small_plan[0])
        assert output.index == 0
        assert output.title == small_plan[0].title
        assert output.parent_topic == "Market Analysis"
        assert output.word_count == 9
        assert output.input_tokens == 100
        assert output.model == "claude-3-haiku-20240307"

    @pytest.mark.asyncio
    async def test_retries_through_gate(self, make_client, small_plan, sleeps):
        llm = ScriptedLLMClient([rate_limited(), "content here"])
        client = make_client(llm)
        output = await client.generate_section(small_plan[1])
        assert output.content == "content here"
        assert len(llm.calls) == 2
        assert client.gate.calls == 2
        assert sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion(self, make_client, small_plan):
        llm = ScriptedLLMClient([rate_limited()] * 3)
        client = make_client(llm)
        with pytest.raises(RateLimitExhausted):
            await client.generate_section(small_plan[0])
        assert len(llm.calls) == 3

    @pytest.mark.asyncio
    async def test_fatal_error_not_retried(self, make_client, small_plan):
        llm = ScriptedLLMClient([GenerationError("authentication", "bad key", 401)])
        client = make_client(llm)
        with pytest.raises(FatalGenerationError):
            await client.generate_section(small_plan[0])
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_empty_content_is_retried(self, make_client, small_plan):
        llm = ScriptedLLMClient(["   ", "real content"])
        client = make_client(llm)
        output = await client.generate_section(small_plan[0])
        assert output.content == "real content"

    @pytest.mark.asyncio
    async def test_records_successful_calls(self, make_client, small_plan):
        call_logger = CallLogger()
        llm = ScriptedLLMClient([rate_limited(), "one two three"])
        client = make_client(llm, call_logger=call_logger)
        await client.generate_section(small_plan[2])
        [record] = call_logger.records
        assert record.agent == "writer"
        assert record.step == "section_0002"
        assert record.total_tokens == 103

    @pytest.mark.asyncio
    async def test_prompt_carries_context(self, make_client, small_plan):
        llm = ScriptedLLMClient(["ok"])
        client = make_client(llm)
        context = SectionContext(
            document_title="Smart Farming Platform",
            idea="Sensors for small farms",
            outline=[s.title for s in small_plan.sections],
            previous=[PreviousSection(title="1-1. Market size", excerpt="Earlier text")],
        )
        await client.generate_section(small_plan[1], context)
        prompt = llm.prompts()[0]
        assert "Smart Farming Platform" in prompt
        assert "Sensors for small farms" in prompt
        assert "Earlier text" in prompt
        assert "- 2-3. Technical Approach (part 3)" in prompt
        assert llm.calls[0]["system"]


class TestFormatPrompt:
    def test_defaults_without_context(self, small_plan):
        prompt = format_prompt(small_plan[0], SectionContext())
        assert small_plan[0].title in prompt
        assert "first section" in prompt
        assert str(small_plan[0].target_length_hint) in prompt


class TestClientFactoryFromSettings:
    def test_builds_provider_client(self, test_settings):
        factory = client_factory_from_settings(test_settings)
        client = factory("claude-sonnet-4-20250514", None)
        assert isinstance(client, GenerationClient)
        assert client.model == "claude-sonnet-4-20250514"
        assert client.gate.min_interval_s == 0.0

    def test_gate_is_shared(self, test_settings):
        factory = client_factory_from_settings(test_settings)
        assert factory("a", None).gate is factory("b", None).gate

    def test_uses_anthropic_adapter(self, test_settings):
        client = client_factory_from_settings(test_settings)("m", None)
        assert isinstance(client._llm, AnthropicAdapter)
