# src/pipeline/resume.py
"""Resume controller: find the interrupted project and continue it.

Candidates come from the store's explicit index, most recently updated
first. A candidate is resumable only when its plan can be rebuilt from
the stored manifest with the same fingerprint, so committed indices keep
referring to the same sections.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from docforge.checkpoint.lock import ProjectLock
from docforge.logging.context import set_project_context
from docforge.pipeline.orchestrator import DocumentOrchestrator, RunResult
from docforge.planning.planner import PlanningError
from docforge.storage import layout
from docforge.storage.project_manager import plan_matches, rebuild_plan

if TYPE_CHECKING:
    from docforge.checkpoint.base_checkpoint_store import BaseCheckpointStore
    from docforge.checkpoint.models import CheckpointRecord
    from docforge.config.settings import Settings
    from docforge.generation.client import ClientFactory
    from docforge.planning.models import SectionPlan
    from docforge.storage.models import ProjectManifest
    from docforge.tracking.progress import ProgressTracker

logger = logging.getLogger(__name__)


class NoResumableProject(Exception):
    """No incomplete project with a rebuildable plan exists."""


class PlanMismatchError(Exception):
    """A project's plan cannot be rebuilt identically."""

    def __init__(self, project_id: str, reason: str):
        self.project_id = project_id
        self.reason = reason
        super().__init__(f"Cannot resume {project_id!r}: {reason}")


@dataclass
class ResumeTarget:
    """An incomplete project ready to continue."""

    manifest: ProjectManifest
    plan: SectionPlan
    record: CheckpointRecord

    @property
    def project_id(self) -> str:
        return self.record.project_id

    @property
    def next_index(self) -> int | None:
        return self.record.next_index()


class ResumeController:
    """Locates and resumes interrupted projects.

    Args:
        store: Checkpoint store.
        client_factory: Builds a GenerationClient for a model name.
        tracker: Progress registry shared with status displays.
        settings: Application settings.
    """

    def __init__(
        self,
        store: BaseCheckpointStore,
        client_factory: ClientFactory | None,
        tracker: ProgressTracker,
        settings: Settings,
    ) -> None:
        self._store = store
        self._client_factory = client_factory
        self._tracker = tracker
        self._settings = settings

    async def find_resumable(self, project_id: str | None = None) -> ResumeTarget:
        """Select the project to resume.

        With ``project_id``, that project is checked; otherwise the most
        recently updated incomplete project whose plan rebuilds is chosen.

        Raises:
            NoResumableProject: Nothing to resume.
            InvalidProjectIdError: ``project_id`` is not a safe directory name.
            PlanMismatchError: The named project's plan cannot be rebuilt.
        """
        if project_id is not None:
            layout.validate_project_id(project_id)
            record = await self._store.load(project_id)
            if record is None:
                raise NoResumableProject(f"No checkpoint for project {project_id!r}")
            if record.is_complete:
                raise NoResumableProject(f"Project {project_id!r} is already complete")
            return await self._target(record)

        for entry in await self._store.list_index():
            if not entry.is_incomplete:
                continue
            record = await self._store.load(entry.project_id)
            if record is None or record.is_complete:
                logger.debug("Index entry %s has no incomplete checkpoint", entry.project_id)
                continue
            try:
                return await self._target(record)
            except PlanMismatchError as e:
                logger.warning("Skipping %s: %s", entry.project_id, e.reason)
        raise NoResumableProject("No incomplete project to resume")

    async def resume(self, project_id: str | None = None) -> RunResult:
        """Continue the selected project from its next missing section.

        Raises:
            NoResumableProject: Nothing to resume.
            PlanMismatchError: The named project's plan cannot be rebuilt.
            ProjectLockedError: Another live process owns the project.
            CheckpointIOError: Progress could not be persisted.
        """
        target = await self.find_resumable(project_id)
        pid = target.project_id
        set_project_context(pid)
        logger.info(
            "Resuming %s at section %s (%d/%d done)",
            pid, target.next_index, target.record.completed_count, len(target.plan),
        )

        with ProjectLock(layout.lock_path(self._settings.progress_dir, pid), pid):
            # Reload under the lock; the indexed copy may be stale.
            record = await self._store.load(pid) or target.record
            self._tracker.init(pid)
            self._tracker.update_agent(pid, "architect", {
                "status": "done", "progress": 100,
                "detail": f"Plan restored ({len(target.plan)} sections)",
                "total_sections": len(target.plan),
            })
            self._tracker.add_log(pid, {
                "level": "info",
                "message": f"Resuming at section {record.next_index()} "
                           f"({record.completed_count}/{record.total_sections} done)",
            })
            orchestrator = DocumentOrchestrator(
                self._settings, self._store, self._tracker, self._client_factory,
            )
            return await orchestrator.continue_project(target.manifest, target.plan, record)

    async def _target(self, record: CheckpointRecord) -> ResumeTarget:
        pid = record.project_id
        manifest = await self._store.load_manifest(pid)
        if manifest is None:
            raise PlanMismatchError(pid, "project manifest is missing")
        try:
            plan = rebuild_plan(manifest)
        except PlanningError as e:
            raise PlanMismatchError(pid, f"stored outline no longer plans: {e}") from e
        if not plan_matches(manifest, plan):
            raise PlanMismatchError(pid, "rebuilt plan differs from the original")
        if record.plan_fingerprint and record.plan_fingerprint != manifest.plan_fingerprint:
            raise PlanMismatchError(pid, "checkpoint belongs to a different plan")
        if record.total_sections != len(plan):
            raise PlanMismatchError(
                pid, f"checkpoint expects {record.total_sections} sections, plan has {len(plan)}",
            )
        return ResumeTarget(manifest=manifest, plan=plan, record=record)
