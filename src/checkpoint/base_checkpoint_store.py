# src/checkpoint/base_checkpoint_store.py
"""Abstract checkpoint store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from docforge.checkpoint.models import CheckpointIndexEntry, CheckpointRecord, SectionOutput

if TYPE_CHECKING:
    from docforge.storage.models import ProjectManifest


class CheckpointIOError(Exception):
    """The durable store could not be read or written."""


class BaseCheckpointStore(ABC):
    """Unified interface for checkpoint storage backends.

    ``save`` replaces the stored record atomically: readers see either the
    previous record or the new one, never a partial write. One writer per
    project is assumed (see checkpoint.lock).
    """

    @abstractmethod
    async def load(self, project_id: str) -> CheckpointRecord | None:
        """Return the project's checkpoint, or None if there is none."""

    @abstractmethod
    async def save(self, record: CheckpointRecord) -> None:
        """Durably replace the project's checkpoint and its index row."""

    @abstractmethod
    async def delete(self, project_id: str) -> None:
        """Remove every trace of the project (checkpoint, sections, manifest)."""

    @abstractmethod
    async def list_index(self) -> list[CheckpointIndexEntry]:
        """Return the checkpoint index, most recently updated first."""

    @abstractmethod
    async def save_section(self, project_id: str, output: SectionOutput) -> None:
        """Persist generated content for one section."""

    @abstractmethod
    async def load_sections(self, project_id: str) -> list[SectionOutput]:
        """Return stored section outputs ordered by index."""

    @abstractmethod
    async def save_manifest(self, manifest: ProjectManifest) -> None:
        """Persist the project manifest."""

    @abstractmethod
    async def load_manifest(self, project_id: str) -> ProjectManifest | None:
        """Return the project manifest, or None."""

    async def latest_incomplete(self) -> CheckpointIndexEntry | None:
        """Most recently updated project whose plan is not finished."""
        for entry in await self.list_index():
            if entry.is_incomplete:
                return entry
        return None
