# src/storage/layout.py
"""Progress and output directory structure.

    {progress_dir}/
        index.json                  project_id -> last update / progress
        .locks/{project_id}.lock    single-writer marker (PID)
        {project_id}/
            project.json            ProjectManifest
            checkpoint.json         CheckpointRecord
            calls_log.jsonl         LLM call records
            sections/
                0000.json           SectionOutput per committed index
    {output_dir}/
        {project_id}.md             assembled document
"""

from __future__ import annotations

import re
from pathlib import Path

INDEX_FILE = "index.json"
MANIFEST_FILE = "project.json"
CHECKPOINT_FILE = "checkpoint.json"
CALLS_LOG_FILE = "calls_log.jsonl"
LOCKS_DIR = ".locks"
SECTIONS_DIR = "sections"
SQLITE_FILE = "checkpoints.db"

_PROJECT_ID_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9._-]*")
_PROJECT_ID_MAX = 128


class InvalidProjectIdError(ValueError):
    """Project id unusable as a single directory name."""


def validate_project_id(project_id: str) -> str:
    """Return ``project_id`` if it names exactly one entry under the progress root.

    Raises:
        InvalidProjectIdError: Empty, too long, ``.`` or ``..``, or holding
            a separator or any character outside ``[A-Za-z0-9._-]``.
    """
    if (
        not isinstance(project_id, str)
        or len(project_id) > _PROJECT_ID_MAX
        or project_id in (".", "..")
        or not _PROJECT_ID_RE.fullmatch(project_id)
    ):
        raise InvalidProjectIdError(f"Invalid project id: {project_id!r}")
    return project_id


def index_path(progress_dir: Path) -> Path:
    return progress_dir / INDEX_FILE


def sqlite_path(progress_dir: Path) -> Path:
    return progress_dir / SQLITE_FILE


def project_dir(progress_dir: Path, project_id: str) -> Path:
    """Return the per-project state directory."""
    return progress_dir / validate_project_id(project_id)


def manifest_path(progress_dir: Path, project_id: str) -> Path:
    return project_dir(progress_dir, project_id) / MANIFEST_FILE


def checkpoint_path(progress_dir: Path, project_id: str) -> Path:
    return project_dir(progress_dir, project_id) / CHECKPOINT_FILE


def calls_log_path(progress_dir: Path, project_id: str) -> Path:
    return project_dir(progress_dir, project_id) / CALLS_LOG_FILE


def lock_path(progress_dir: Path, project_id: str) -> Path:
    """Lock file path, outside the project directory."""
    return progress_dir / LOCKS_DIR / f"{validate_project_id(project_id)}.lock"


def sections_dir(progress_dir: Path, project_id: str) -> Path:
    return project_dir(progress_dir, project_id) / SECTIONS_DIR


def section_path(progress_dir: Path, project_id: str, index: int) -> Path:
    return sections_dir(progress_dir, project_id) / f"{index:04d}.json"


def document_path(output_dir: Path, project_id: str) -> Path:
    return output_dir / f"{project_id}.md"
