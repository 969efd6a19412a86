# src/checkpoint/store_factory.py
"""Factory for checkpoint store instantiation."""

from __future__ import annotations

from docforge.checkpoint.base_checkpoint_store import BaseCheckpointStore
from docforge.config.settings import Settings
from docforge.storage import layout


def create_checkpoint_store(settings: Settings | None = None) -> BaseCheckpointStore:
    """Instantiate the configured checkpoint backend.

    Args:
        settings: Application settings. Defaults to JSON under ./progress.
    """
    settings = settings or Settings(_env_file=None)  # type: ignore[call-arg]
    backend = settings.checkpoint_backend

    if backend == "json":
        from docforge.checkpoint.json_store import JsonCheckpointStore
        return JsonCheckpointStore(progress_dir=settings.progress_dir)

    if backend == "sqlite":
        from docforge.checkpoint.sqlite_store import SqliteCheckpointStore
        return SqliteCheckpointStore(db_path=layout.sqlite_path(settings.progress_dir))

    raise ValueError(f"Unsupported checkpoint backend: {backend!r}")
