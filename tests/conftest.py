# tests/conftest.py
"""Shared test fixtures for all unit and integration tests.

Provides a scripted LLM client, a small outline and plan, settings bound
to temp directories, stores and a tracker. No network: the LLM is always
the scripted fake.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from docforge.checkpoint.json_store import JsonCheckpointStore
from docforge.config.settings import Settings, load_settings
from docforge.generation.client import GenerationClient
from docforge.llm.base_client import BaseLLMClient, GenerationError
from docforge.llm.models import LLMResponse, Message
from docforge.llm.rate_limiter import IntervalGate
from docforge.llm.retry import RetryConfig
from docforge.planning.models import Outline, OutlineTopic, SectionPlan
from docforge.planning.planner import plan_sections
from docforge.tracking.progress import ProgressTracker

TEST_MODEL = "claude-3-haiku-20240307"


# === FIXTURES: Fake LLM ===


class ScriptedLLMClient(BaseLLMClient):
    """BaseLLMClient returning scripted outcomes, one per call.

    Each scripted item is either a string (response content) or an
    exception instance (raised). Once the script is exhausted every call
    returns ``default_words`` words of filler.
    """

    def __init__(self, script: list[str | Exception] | None = None, default_words: int = 120):
        self.script: list[str | Exception] = list(script or [])
        self.default_words = default_words
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> LLMResponse:
        self.calls.append({
            "messages": messages, "system": system,
            "max_tokens": max_tokens, "temperature": temperature,
        })
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            content = item
        else:
            content = " ".join(["word"] * self.default_words)
        return LLMResponse(
            content=content,
            input_tokens=100,
            output_tokens=len(content.split()),
            model=TEST_MODEL,
            provider="scripted",
            latency_ms=5,
        )

    @property
    def provider_name(self) -> str:
        return "scripted"

    @property
    def model(self) -> str:
        return TEST_MODEL

    def prompts(self) -> list[str]:
        return [c["messages"][0].content for c in self.calls]


def rate_limited(message: str = "429 Too Many Requests") -> GenerationError:
    return GenerationError("rate_limited", message, 429)


@pytest.fixture
def scripted_llm() -> ScriptedLLMClient:
    return ScriptedLLMClient()


@pytest.fixture
def sleeps() -> list[float]:
    """Delays requested from the injected sleep function."""
    return []


@pytest.fixture
def fake_sleep(sleeps: list[float]) -> Callable[[float], Any]:
    async def _sleep(delay: float) -> None:
        sleeps.append(delay)

    return _sleep


@pytest.fixture
def fast_retry_configs() -> dict[str, RetryConfig]:
    return {
        "rate_limit": RetryConfig(max_retries=2, base_delay_s=1.0, jitter=False),
        "transient": RetryConfig(max_retries=1, base_delay_s=0.5, jitter=False),
    }


@pytest.fixture
def make_client(fake_sleep, fast_retry_configs) -> Callable[..., GenerationClient]:
    """Build a GenerationClient around a fake LLM with no real waiting."""

    def _make(llm: BaseLLMClient, call_logger=None) -> GenerationClient:
        return GenerationClient(
            llm,
            gate=IntervalGate(min_interval_s=0.0, sleep=fake_sleep),
            retry_configs=fast_retry_configs,
            call_logger=call_logger,
            sleep=fake_sleep,
        )

    return _make


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_outline() -> Outline:
    """Two topics; with 3 sections per topic this plans 6 sections."""
    return Outline(
        title="Smart Farming Platform",
        topics=[
            OutlineTopic(
                title="Market Analysis",
                subtopics=["Market size", "Competitors"],
                target_words=1500,
                brief="Use recent figures.",
            ),
            OutlineTopic(title="Technical Approach"),
        ],
    )


@pytest.fixture
def small_plan(sample_outline: Outline) -> SectionPlan:
    """Six-section plan built from ``sample_outline``."""
    return plan_sections(sample_outline, sections_per_topic=3, min_sections=6)


# === FIXTURES: Settings, stores, tracker ===


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings bound to temp dirs, sized for the six-section outline."""
    return load_settings(
        _env_file=None,
        anthropic_api_key="test-key",
        llm_model=TEST_MODEL,
        progress_dir=tmp_path / "progress",
        output_dir=tmp_path / "output",
        min_call_interval_s=0.0,
        sections_per_topic=3,
        min_sections=6,
        default_target_words=200,
        rate_limit_max_retries=2,
        rate_limit_base_delay_s=0.0,
        transient_max_retries=1,
        transient_base_delay_s=0.0,
    )


@pytest.fixture
def json_store(tmp_path: Path) -> JsonCheckpointStore:
    return JsonCheckpointStore(tmp_path / "progress")


@pytest.fixture
def tracker() -> ProgressTracker:
    return ProgressTracker()
