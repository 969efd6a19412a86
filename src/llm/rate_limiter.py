# src/llm/rate_limiter.py
"""Fixed-interval gate for outbound generation calls.

Only one call may be in flight through a gate, and a call may not start
until ``min_interval_s`` has elapsed since the previous one finished,
whether it succeeded or failed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable

logger = logging.getLogger(__name__)


class IntervalGate:
    """Serializes calls and enforces a minimum spacing between them.

    Args:
        min_interval_s: Minimum seconds between the end of one call and
            the start of the next.
        clock: Monotonic clock (injectable for tests).
        sleep: Async sleep function (injectable for tests).
    """

    def __init__(
        self,
        min_interval_s: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._min_interval_s = min_interval_s
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_finished: float | None = None
        self._calls = 0

    @property
    def min_interval_s(self) -> float:
        return self._min_interval_s

    @property
    def calls(self) -> int:
        """Number of calls that passed through the gate."""
        return self._calls

    def time_until_ready(self) -> float:
        """Seconds to wait before the next call may start."""
        if self._last_finished is None:
            return 0.0
        return max(0.0, self._last_finished + self._min_interval_s - self._clock())

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold the gate for the duration of one outbound call."""
        async with self._lock:
            wait = self.time_until_ready()
            if wait > 0:
                logger.debug("Rate gate: waiting %.2fs before next call", wait)
                await self._sleep(wait)
            try:
                self._calls += 1
                yield
            finally:
                self._last_finished = self._clock()

    async def call(self, fn: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Run ``fn`` inside a gate slot."""
        async with self.slot():
            return await fn(*args, **kwargs)
