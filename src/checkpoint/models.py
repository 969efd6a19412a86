# src/checkpoint/models.py
"""Checkpoint domain models: CheckpointRecord, SectionOutput, index entries."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field, model_validator

CheckpointStatus = Literal["running", "completed", "failed", "paused"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CheckpointError(ValueError):
    """An update would break the checkpoint's invariants."""


class CheckpointRecord(BaseModel):
    """Durable record of which sections of a project are done.

    ``completed_sections`` is append-only, duplicate-free and never holds
    an index outside ``[0, total_sections)``.
    """

    project_id: str
    model: str
    total_sections: int = Field(ge=0)
    plan_fingerprint: str = ""
    completed_sections: list[int] = Field(default_factory=list)
    status: CheckpointStatus = "running"
    last_error: str | None = None
    created_at: datetime = Field(default_factory=_now)
    last_updated_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def validate_completed(self) -> CheckpointRecord:
        seen: set[int] = set()
        for idx in self.completed_sections:
            if idx < 0 or idx >= self.total_sections:
                raise ValueError(
                    f"completed section {idx} outside plan range [0, {self.total_sections})"
                )
            if idx in seen:
                raise ValueError(f"completed section {idx} listed twice")
            seen.add(idx)
        return self

    @property
    def completed_count(self) -> int:
        return len(self.completed_sections)

    @property
    def is_complete(self) -> bool:
        return self.completed_count >= self.total_sections

    def next_index(self) -> int | None:
        """Lowest index not yet completed, or None when all are done."""
        done = set(self.completed_sections)
        for idx in range(self.total_sections):
            if idx not in done:
                return idx
        return None

    def mark_completed(self, index: int) -> None:
        """Append ``index`` to the completed list and touch the timestamp.

        Raises:
            CheckpointError: Index out of range or already completed.
        """
        if index < 0 or index >= self.total_sections:
            raise CheckpointError(
                f"section {index} outside plan range [0, {self.total_sections})"
            )
        if index in self.completed_sections:
            raise CheckpointError(f"section {index} already completed")
        self.completed_sections.append(index)
        self.touch()

    def touch(self) -> None:
        self.last_updated_at = _now()


class SectionOutput(BaseModel):
    """Generated content for one committed section."""

    index: int = Field(ge=0)
    title: str
    parent_topic: str = ""
    content: str
    word_count: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    latency_ms: int = 0
    generated_at: datetime = Field(default_factory=_now)


class CheckpointIndexEntry(BaseModel):
    """Row of the checkpoint index (project_id -> freshness and progress)."""

    project_id: str
    last_updated_at: datetime
    completed: int
    total: int
    status: CheckpointStatus

    @property
    def is_incomplete(self) -> bool:
        return self.completed < self.total

    @classmethod
    def from_record(cls, record: CheckpointRecord) -> CheckpointIndexEntry:
        return cls(
            project_id=record.project_id,
            last_updated_at=record.last_updated_at,
            completed=record.completed_count,
            total=record.total_sections,
            status=record.status,
        )
