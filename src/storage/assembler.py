# src/storage/assembler.py
"""Assemble committed sections into one ordered Markdown document."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from pathlib import Path

from docforge.checkpoint.json_store import atomic_write_text
from docforge.checkpoint.models import SectionOutput
from docforge.planning.models import SectionPlan
from docforge.storage import layout
from docforge.storage.models import AssembledDocument, ProjectManifest

logger = logging.getLogger(__name__)

WORDS_PER_PAGE = 500


class AssemblyError(Exception):
    """Committed sections do not cover the plan."""


def estimate_pages(words: int) -> int:
    return math.ceil(words / WORDS_PER_PAGE) if words > 0 else 0


def assemble_document(
    manifest: ProjectManifest,
    plan: SectionPlan,
    outputs: list[SectionOutput],
) -> AssembledDocument:
    """Order ``outputs`` by plan index.

    Raises:
        AssemblyError: A plan index has no output, or an output lies
            outside the plan.
    """
    by_index = {o.index: o for o in outputs}
    extra = sorted(i for i in by_index if i >= len(plan))
    if extra:
        raise AssemblyError(f"Outputs outside the plan range: {extra}")
    missing = [i for i in range(len(plan)) if i not in by_index]
    if missing:
        preview = ", ".join(str(i) for i in missing[:10])
        raise AssemblyError(
            f"{len(missing)} section(s) missing for {manifest.project_id}: {preview}"
        )

    sections = [by_index[i] for i in range(len(plan))]
    total_words = sum(s.word_count for s in sections)
    return AssembledDocument(
        project_id=manifest.project_id,
        title=manifest.title,
        idea=manifest.idea,
        sections=sections,
        total_words=total_words,
        estimated_pages=estimate_pages(total_words),
        assembled_at=datetime.now(timezone.utc),
    )


def render_markdown(document: AssembledDocument) -> str:
    lines = [f"# {document.title or document.project_id}", ""]
    if document.idea:
        lines += [f"> {document.idea}", ""]
    current_topic: str | None = None
    for section in document.sections:
        if section.parent_topic and section.parent_topic != current_topic:
            current_topic = section.parent_topic
            lines += [f"# {current_topic}", ""]
        content = section.content.strip()
        if not content.lstrip().startswith("#"):
            lines += [f"## {section.title}", ""]
        lines += [content, ""]
    return "\n".join(lines).rstrip() + "\n"


def write_markdown(document: AssembledDocument, output_dir: Path) -> Path:
    """Write ``document`` to ``output_dir/<project_id>.md``.

    Raises:
        CheckpointIOError: The file could not be written.
    """
    path = layout.document_path(Path(output_dir), document.project_id)
    atomic_write_text(path, render_markdown(document))
    logger.info(
        "Document written: %s (%d sections, %d words, ~%d pages)",
        path, len(document.sections), document.total_words, document.estimated_pages,
    )
    return path
