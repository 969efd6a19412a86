# src/checkpoint/json_store.py
"""JSON file-based checkpoint store (default CHECKPOINT_BACKEND=json).

Every write goes to a temporary file in the target directory, is fsynced,
then renamed over the destination with os.replace, so a crash leaves
either the old file or the new one. ``index.json`` maps project_id to its
last update and progress so resuming never depends on directory listing
order.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path

from pydantic import ValidationError

from docforge.checkpoint.base_checkpoint_store import BaseCheckpointStore, CheckpointIOError
from docforge.checkpoint.models import CheckpointIndexEntry, CheckpointRecord, SectionOutput
from docforge.storage import layout
from docforge.storage.models import ProjectManifest

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` atomically.

    Raises:
        CheckpointIOError: On any filesystem failure.
    """
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", encoding="utf-8", dir=path.parent,
            prefix=f".{path.name}.", suffix=".tmp", delete=False,
        ) as tmp:
            tmp_name = tmp.name
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise CheckpointIOError(f"Failed to write {path}: {e}") from e


class JsonCheckpointStore(BaseCheckpointStore):
    """File-based checkpoint store using one directory per project."""

    def __init__(self, progress_dir: Path | str) -> None:
        self._root = Path(progress_dir).expanduser()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CheckpointIOError(f"Cannot create progress dir {self._root}: {e}") from e

    @property
    def root(self) -> Path:
        return self._root

    async def load(self, project_id: str) -> CheckpointRecord | None:
        path = layout.checkpoint_path(self._root, project_id)
        data = self._read_json(path)
        if data is None:
            return None
        try:
            return CheckpointRecord.model_validate(data)
        except ValidationError as e:
            raise CheckpointIOError(f"Corrupt checkpoint {path}: {e}") from e

    async def save(self, record: CheckpointRecord) -> None:
        atomic_write_text(
            layout.checkpoint_path(self._root, record.project_id),
            record.model_dump_json(indent=2),
        )
        index = self._read_index()
        index[record.project_id] = CheckpointIndexEntry.from_record(record)
        self._write_index(index)
        logger.debug(
            "Checkpoint saved: %s (%d/%d)",
            record.project_id, record.completed_count, record.total_sections,
        )

    async def delete(self, project_id: str) -> None:
        project_dir = layout.project_dir(self._root, project_id)
        try:
            if project_dir.exists():
                shutil.rmtree(project_dir)
        except OSError as e:
            raise CheckpointIOError(f"Failed to delete {project_dir}: {e}") from e
        index = self._read_index()
        if index.pop(project_id, None) is not None:
            self._write_index(index)
        logger.info("Checkpoint state removed for %s", project_id)

    async def list_index(self) -> list[CheckpointIndexEntry]:
        entries = list(self._read_index().values())
        entries.sort(key=lambda e: e.last_updated_at, reverse=True)
        return entries

    async def save_section(self, project_id: str, output: SectionOutput) -> None:
        atomic_write_text(
            layout.section_path(self._root, project_id, output.index),
            output.model_dump_json(indent=2),
        )

    async def load_sections(self, project_id: str) -> list[SectionOutput]:
        sections_dir = layout.sections_dir(self._root, project_id)
        if not sections_dir.is_dir():
            return []
        outputs: list[SectionOutput] = []
        for path in sections_dir.glob("*.json"):
            data = self._read_json(path)
            if data is None:
                continue
            try:
                outputs.append(SectionOutput.model_validate(data))
            except ValidationError as e:
                raise CheckpointIOError(f"Corrupt section file {path}: {e}") from e
        outputs.sort(key=lambda o: o.index)
        return outputs

    async def save_manifest(self, manifest: ProjectManifest) -> None:
        atomic_write_text(
            layout.manifest_path(self._root, manifest.project_id),
            manifest.model_dump_json(indent=2),
        )

    async def load_manifest(self, project_id: str) -> ProjectManifest | None:
        path = layout.manifest_path(self._root, project_id)
        data = self._read_json(path)
        if data is None:
            return None
        try:
            return ProjectManifest.model_validate(data)
        except ValidationError as e:
            raise CheckpointIOError(f"Corrupt manifest {path}: {e}") from e

    async def rebuild_index(self) -> list[CheckpointIndexEntry]:
        """Recreate index.json from the checkpoint files on disk."""
        index: dict[str, CheckpointIndexEntry] = {}
        for path in self._root.glob(f"*/{layout.CHECKPOINT_FILE}"):
            record = await self.load(path.parent.name)
            if record is not None:
                index[record.project_id] = CheckpointIndexEntry.from_record(record)
        self._write_index(index)
        logger.info("Rebuilt checkpoint index: %d projects", len(index))
        return await self.list_index()

    # --- Internal helpers ---

    @staticmethod
    def _read_json(path: Path) -> dict | None:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CheckpointIOError(f"Failed to read {path}: {e}") from e
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise CheckpointIOError(f"Corrupt JSON in {path}: {e}") from e

    def _read_index(self) -> dict[str, CheckpointIndexEntry]:
        data = self._read_json(layout.index_path(self._root)) or {}
        try:
            return {
                pid: CheckpointIndexEntry.model_validate(row)
                for pid, row in data.items()
            }
        except ValidationError as e:
            raise CheckpointIOError(f"Corrupt checkpoint index: {e}") from e

    def _write_index(self, index: dict[str, CheckpointIndexEntry]) -> None:
        payload = {pid: entry.model_dump(mode="json") for pid, entry in sorted(index.items())}
        atomic_write_text(
            layout.index_path(self._root),
            json.dumps(payload, indent=2, ensure_ascii=False),
        )
