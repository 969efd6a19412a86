# tests/unit/llm/test_unit_retry.py
"""Tests for llm/retry.py."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from docforge.llm.base_client import GenerationError
from docforge.llm.retry import (
    FatalGenerationError,
    LLMRetryExhausted,
    RateLimitExhausted,
    RetryConfig,
    classify_error,
    compute_delay,
    retry_configs_from_settings,
    with_retry,
)


class TestClassifyError:
    @pytest.mark.parametrize("kind, expected", [
        ("rate_limited", "rate_limit"),
        ("transient_error", "transient"),
        ("invalid_request", "fatal"),
        ("authentication", "fatal"),
    ])
    def test_generation_error_kinds(self, kind, expected):
        assert classify_error(GenerationError(kind, "x")) == expected

    def test_network_errors_are_transient(self):
        assert classify_error(ConnectionError("reset")) == "transient"
        assert classify_error(asyncio.TimeoutError()) == "transient"

    def test_message_heuristics(self):
        assert classify_error(RuntimeError("HTTP 429 Too Many Requests")) == "rate_limit"
        assert classify_error(RuntimeError("503 Service Unavailable")) == "transient"
        assert classify_error(RuntimeError("overloaded_error")) == "transient"

    def test_unknown_is_fatal(self):
        assert classify_error(ValueError("bad prompt")) == "fatal"


class TestComputeDelay:
    def test_exponential_without_jitter(self):
        config = RetryConfig(max_retries=5, base_delay_s=10.0, jitter=False)
        assert [compute_delay(config, a) for a in range(3)] == [10.0, 20.0, 40.0]

    def test_capped(self):
        config = RetryConfig(max_retries=9, base_delay_s=10.0, jitter=False, max_delay_s=30.0)
        assert compute_delay(config, 5) == 30.0

    def test_jitter_bounds(self):
        config = RetryConfig(max_retries=1, base_delay_s=10.0)
        for _ in range(20):
            assert 5.0 <= compute_delay(config, 0) <= 15.0


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self, fake_sleep, sleeps):
        fn = AsyncMock(return_value="ok")
        assert await with_retry(fn, 1, key="v", sleep=fake_sleep) == "ok"
        fn.assert_awaited_once_with(1, key="v")
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_rate_limit_then_success(self, fake_sleep, sleeps, fast_retry_configs):
        fn = AsyncMock(side_effect=[GenerationError("rate_limited", "429"), "ok"])
        result = await with_retry(fn, retry_configs=fast_retry_configs, sleep=fake_sleep)
        assert result == "ok"
        assert fn.await_count == 2
        assert sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self, fake_sleep, sleeps, fast_retry_configs):
        err = GenerationError("rate_limited", "429")
        fn = AsyncMock(side_effect=err)
        with pytest.raises(RateLimitExhausted) as exc_info:
            await with_retry(
                fn, agent="writer", retry_configs=fast_retry_configs, sleep=fake_sleep,
            )
        # max_retries=2 -> 3 calls, backoff 1s then 2s
        assert fn.await_count == 3
        assert sleeps == [1.0, 2.0]
        assert exc_info.value.agent == "writer"
        assert exc_info.value.attempts == 3
        assert exc_info.value.last_error is err
        assert isinstance(exc_info.value, LLMRetryExhausted)

    @pytest.mark.asyncio
    async def test_transient_exhausted(self, fake_sleep, fast_retry_configs):
        fn = AsyncMock(side_effect=GenerationError("transient_error", "502"))
        with pytest.raises(LLMRetryExhausted) as exc_info:
            await with_retry(fn, retry_configs=fast_retry_configs, sleep=fake_sleep)
        assert not isinstance(exc_info.value, RateLimitExhausted)
        assert exc_info.value.error_type == "transient"
        assert fn.await_count == 2

    @pytest.mark.asyncio
    async def test_fatal_is_not_retried(self, fake_sleep, sleeps):
        fn = AsyncMock(side_effect=GenerationError("invalid_request", "bad"))
        with pytest.raises(FatalGenerationError):
            await with_retry(fn, sleep=fake_sleep)
        assert fn.await_count == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, fake_sleep):
        fn = AsyncMock(side_effect=asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await with_retry(fn, sleep=fake_sleep)
        assert fn.await_count == 1


class TestRetryConfigsFromSettings:
    def test_uses_settings(self, test_settings):
        configs = retry_configs_from_settings(test_settings)
        assert configs["rate_limit"].max_retries == 2
        assert configs["transient"].max_retries == 1
