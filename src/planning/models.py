# src/planning/models.py
"""Outline and section-plan models."""

from __future__ import annotations

import hashlib
import json

from pydantic import BaseModel, ConfigDict, Field


class OutlineTopic(BaseModel):
    """One coarse topic (chapter) of the document outline."""

    title: str
    subtopics: list[str] = Field(default_factory=list)
    target_words: int | None = None
    brief: str = ""


class Outline(BaseModel):
    """Coarse document outline: ordered top-level topics."""

    title: str = ""
    topics: list[OutlineTopic] = Field(default_factory=list)


class SectionDescriptor(BaseModel):
    """One fine-grained generation unit."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    title: str
    parent_topic: str
    target_length_hint: int = Field(gt=0)
    brief: str = ""


class SectionPlan(BaseModel):
    """Immutable ordered list of sections; indices are dense 0..N-1."""

    model_config = ConfigDict(frozen=True)

    sections: tuple[SectionDescriptor, ...]

    def __len__(self) -> int:
        return len(self.sections)

    def __getitem__(self, index: int) -> SectionDescriptor:
        return self.sections[index]

    @property
    def total_target_words(self) -> int:
        return sum(s.target_length_hint for s in self.sections)

    def fingerprint(self) -> str:
        """SHA-256 of the canonical plan JSON.

        Two plans share a fingerprint only when every section matches,
        which is how a resume verifies it rebuilt the original plan.
        """
        payload = json.dumps(
            [s.model_dump() for s in self.sections],
            sort_keys=True,
            ensure_ascii=False,
            separators=(",", ":"),
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
