# src/tracking/models.py
"""Tracking domain models: call records, pricing, progress state, project stats."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

AgentStatus = Literal["pending", "running", "done", "error"]
Phase = Literal[
    "initializing", "planning", "writing", "curating", "reviewing", "completed", "failed",
]

AGENT_IDS: tuple[str, ...] = ("architect", "writer", "image_curator", "reviewer")
PHASES: tuple[str, ...] = (
    "initializing", "planning", "writing", "curating", "reviewing", "completed", "failed",
)


class LLMCallRecord(BaseModel):
    """Individual LLM API call log entry."""

    call_id: str
    timestamp: datetime
    agent: str
    step: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    latency_ms: int
    status: Literal["success", "failed"] = "success"
    estimated_cost_usd: float = 0.0


class ModelPricing(BaseModel):
    """USD price per million tokens for one model."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float


class AgentProgress(BaseModel):
    """Status of one logical agent; extra keys (e.g. current_section) allowed."""

    model_config = ConfigDict(extra="allow")

    status: AgentStatus = "pending"
    progress: int = Field(default=0, ge=0, le=100)
    detail: str = "Waiting"
    updated_at: int | None = None


class LogEntry(BaseModel):
    """Timestamped progress log line; extra keys (agent, level) allowed."""

    model_config = ConfigDict(extra="allow")

    timestamp: int
    time: str
    message: str = ""


class ProgressState(BaseModel):
    """Per-project advisory status for polling UIs."""

    phase: Phase = "initializing"
    agents: dict[str, AgentProgress]
    logs: list[LogEntry] = Field(default_factory=list)
    started_at: int
    updated_at: int


class ProjectStats(BaseModel):
    """Snapshot of a project's generation progress and spend."""

    project_id: str
    total_sections: int
    completed_sections: int
    total_words: int = 0
    estimated_pages: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    elapsed_seconds: float = 0.0
    eta_seconds: float | None = None

    @property
    def percent(self) -> float:
        if self.total_sections == 0:
            return 0.0
        return self.completed_sections / self.total_sections * 100.0
