# src/storage/project_manager.py
"""Project lifecycle: ids, outline loading, manifests, plan reconstruction.

project_id format: {slug}_{yyyymmdd_hhmmss}_{uuid4_short}
"""

from __future__ import annotations

import json
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from docforge.planning.models import Outline, SectionPlan
from docforge.planning.planner import PlanningError, plan_sections
from docforge.storage.models import ProjectManifest
from docforge.version import __version__

_SLUG_MAX = 40


def slugify(text: str) -> str:
    slug = re.sub(r"[^\w]+", "-", text.lower(), flags=re.ASCII).strip("-_")
    return slug[:_SLUG_MAX].rstrip("-_") or "project"


def generate_project_id(title: str = "", timestamp: datetime | None = None) -> str:
    """Generate a project_id: {slug}_{yyyymmdd_hhmmss}_{uuid4_short}."""
    ts = timestamp or datetime.now(timezone.utc)
    short_uuid = uuid.uuid4().hex[:8]
    return f"{slugify(title)}_{ts.strftime('%Y%m%d_%H%M%S')}_{short_uuid}"


def load_outline(path: Path) -> Outline:
    """Read an outline JSON file.

    Accepts either ``{"title": ..., "topics": [...]}`` or a bare list of
    topics. A topic may be a plain string (title only).

    Raises:
        PlanningError: Unreadable file or invalid outline structure.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise PlanningError(f"Cannot read outline {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise PlanningError(f"Outline {path} is not valid JSON: {e}") from e

    if isinstance(data, list):
        data = {"topics": data}
    if isinstance(data, dict):
        data = dict(data)
        data["topics"] = [
            {"title": t} if isinstance(t, str) else t for t in data.get("topics", [])
        ]
    try:
        return Outline.model_validate(data)
    except ValidationError as e:
        raise PlanningError(f"Invalid outline {path}: {e}") from e


def create_manifest(
    project_id: str,
    title: str,
    model: str,
    outline: Outline,
    plan: SectionPlan,
    sections_per_topic: int,
    min_sections: int,
    default_target_words: int,
    idea: str = "",
) -> ProjectManifest:
    """Build the manifest recording how ``plan`` was produced."""
    return ProjectManifest(
        project_id=project_id,
        title=title,
        idea=idea,
        model=model,
        created_at=datetime.now(timezone.utc),
        outline=outline,
        sections_per_topic=sections_per_topic,
        min_sections=min_sections,
        default_target_words=default_target_words,
        plan_fingerprint=plan.fingerprint(),
        total_sections=len(plan),
        pipeline_version=__version__,
    )


def rebuild_plan(manifest: ProjectManifest) -> SectionPlan:
    """Re-plan from the stored outline and planner parameters.

    Raises:
        PlanningError: The stored outline no longer plans.
    """
    return plan_sections(
        manifest.outline,
        sections_per_topic=manifest.sections_per_topic,
        min_sections=manifest.min_sections,
        default_target_words=manifest.default_target_words,
    )


def plan_matches(manifest: ProjectManifest, plan: SectionPlan) -> bool:
    return (
        plan.fingerprint() == manifest.plan_fingerprint
        and len(plan) == manifest.total_sections
    )
