# src/tracking/call_logger.py
"""LLM call logging: one record per successful generation call."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from docforge.llm.models import LLMResponse
from docforge.tracking.cost_calculator import compute_call_cost
from docforge.tracking.models import LLMCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates LLM call records during a project run."""

    def __init__(self) -> None:
        self._records: list[LLMCallRecord] = []

    def record(self, agent: str, step: str, response: LLMResponse) -> LLMCallRecord:
        """Record an LLM call.

        Args:
            agent: Agent name (e.g. "writer").
            step: Step identifier (e.g. "section_0003").
            response: LLM response with token usage.
        """
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            agent=agent,
            step=step,
            provider=response.provider,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.input_tokens + response.output_tokens,
            latency_ms=response.latency_ms,
        )
        record.estimated_cost_usd = compute_call_cost(record)
        self._records.append(record)
        return record

    @property
    def records(self) -> list[LLMCallRecord]:
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        return sum(r.total_tokens for r in self._records)

    @property
    def total_cost(self) -> float:
        return sum(r.estimated_cost_usd for r in self._records)

    def flush(self, path: Path) -> int:
        """Append pending records to a JSON Lines file and forget them.

        Returns:
            Number of records written.
        """
        if not self._records:
            return 0
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8") as f:
            for record in self._records:
                f.write(record.model_dump_json() + "\n")
        written = len(self._records)
        self._records.clear()
        return written


def load_call_records(path: Path) -> list[LLMCallRecord]:
    """Read a calls_log.jsonl file; missing file means no calls yet."""
    if not path.exists():
        return []
    records: list[LLMCallRecord] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        if line.strip():
            records.append(LLMCallRecord.model_validate(json.loads(line)))
    return records
