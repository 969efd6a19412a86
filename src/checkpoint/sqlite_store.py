# src/checkpoint/sqlite_store.py
"""SQLite-based checkpoint store (CHECKPOINT_BACKEND=sqlite).

Uses stdlib sqlite3. Each save is a single transaction covering the
record and its index columns, so the ``checkpoints`` table doubles as
the project index.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from pydantic import ValidationError

from docforge.checkpoint.base_checkpoint_store import BaseCheckpointStore, CheckpointIOError
from docforge.checkpoint.models import CheckpointIndexEntry, CheckpointRecord, SectionOutput
from docforge.storage.models import ProjectManifest

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS projects (
    project_id TEXT PRIMARY KEY,
    manifest TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS checkpoints (
    project_id TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    last_updated_at TEXT NOT NULL,
    completed INTEGER NOT NULL,
    total INTEGER NOT NULL,
    status TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_checkpoints_updated ON checkpoints(last_updated_at);
CREATE TABLE IF NOT EXISTS sections (
    project_id TEXT NOT NULL,
    idx INTEGER NOT NULL,
    data TEXT NOT NULL,
    PRIMARY KEY (project_id, idx)
);
"""


class SqliteCheckpointStore(BaseCheckpointStore):
    """SQLite-backed checkpoint store."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path))
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=FULL")
            self._conn.executescript(_SCHEMA)
        except (OSError, sqlite3.Error) as e:
            raise CheckpointIOError(f"Cannot open checkpoint DB {self._db_path}: {e}") from e

    async def load(self, project_id: str) -> CheckpointRecord | None:
        row = self._fetchone(
            "SELECT data FROM checkpoints WHERE project_id = ?", (project_id,)
        )
        if row is None:
            return None
        try:
            return CheckpointRecord.model_validate_json(row[0])
        except ValidationError as e:
            raise CheckpointIOError(f"Corrupt checkpoint for {project_id}: {e}") from e

    async def save(self, record: CheckpointRecord) -> None:
        self._execute(
            """INSERT OR REPLACE INTO checkpoints
               (project_id, data, last_updated_at, completed, total, status)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                record.project_id,
                record.model_dump_json(),
                record.last_updated_at.isoformat(),
                record.completed_count,
                record.total_sections,
                record.status,
            ),
        )

    async def delete(self, project_id: str) -> None:
        try:
            with self._conn:
                for table in ("checkpoints", "sections", "projects"):
                    self._conn.execute(
                        f"DELETE FROM {table} WHERE project_id = ?",  # noqa: S608
                        (project_id,),
                    )
        except sqlite3.Error as e:
            raise CheckpointIOError(f"Failed to delete {project_id}: {e}") from e

    async def list_index(self) -> list[CheckpointIndexEntry]:
        try:
            rows = self._conn.execute(
                """SELECT project_id, last_updated_at, completed, total, status
                   FROM checkpoints ORDER BY last_updated_at DESC"""
            ).fetchall()
        except sqlite3.Error as e:
            raise CheckpointIOError(f"Failed to read checkpoint index: {e}") from e
        return [
            CheckpointIndexEntry(
                project_id=r[0], last_updated_at=r[1], completed=r[2], total=r[3], status=r[4],
            )
            for r in rows
        ]

    async def save_section(self, project_id: str, output: SectionOutput) -> None:
        self._execute(
            "INSERT OR REPLACE INTO sections (project_id, idx, data) VALUES (?, ?, ?)",
            (project_id, output.index, output.model_dump_json()),
        )

    async def load_sections(self, project_id: str) -> list[SectionOutput]:
        try:
            rows = self._conn.execute(
                "SELECT data FROM sections WHERE project_id = ? ORDER BY idx",
                (project_id,),
            ).fetchall()
            return [SectionOutput.model_validate_json(r[0]) for r in rows]
        except (sqlite3.Error, ValidationError) as e:
            raise CheckpointIOError(f"Failed to load sections for {project_id}: {e}") from e

    async def save_manifest(self, manifest: ProjectManifest) -> None:
        self._execute(
            "INSERT OR REPLACE INTO projects (project_id, manifest) VALUES (?, ?)",
            (manifest.project_id, manifest.model_dump_json()),
        )

    async def load_manifest(self, project_id: str) -> ProjectManifest | None:
        row = self._fetchone(
            "SELECT manifest FROM projects WHERE project_id = ?", (project_id,)
        )
        if row is None:
            return None
        try:
            return ProjectManifest.model_validate_json(row[0])
        except ValidationError as e:
            raise CheckpointIOError(f"Corrupt manifest for {project_id}: {e}") from e

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # --- Internal helpers ---

    def _execute(self, sql: str, params: tuple) -> None:
        try:
            with self._conn:
                self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise CheckpointIOError(f"Checkpoint DB write failed: {e}") from e

    def _fetchone(self, sql: str, params: tuple) -> tuple | None:
        try:
            return self._conn.execute(sql, params).fetchone()
        except sqlite3.Error as e:
            raise CheckpointIOError(f"Checkpoint DB read failed: {e}") from e
