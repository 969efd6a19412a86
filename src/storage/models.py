# src/storage/models.py
"""Storage domain models: ProjectManifest, AssembledDocument."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from docforge.checkpoint.models import SectionOutput
from docforge.planning.models import Outline


class ProjectManifest(BaseModel):
    """Everything needed to rebuild a project's plan, written once at start."""

    project_id: str
    title: str
    idea: str = ""
    model: str
    created_at: datetime
    outline: Outline
    sections_per_topic: int
    min_sections: int
    default_target_words: int
    plan_fingerprint: str
    total_sections: int
    pipeline_version: str


class AssembledDocument(BaseModel):
    """Ordered generated sections, ready for the rendering layer."""

    project_id: str
    title: str
    idea: str = ""
    sections: list[SectionOutput] = Field(default_factory=list)
    total_words: int = 0
    estimated_pages: int = 0
    assembled_at: datetime
