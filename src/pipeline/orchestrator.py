# src/pipeline/orchestrator.py
"""Project orchestrator: planning, writing, curation, review, assembly.

Phases reported to the progress tracker, in order: initializing,
planning, writing, curating, reviewing, completed (or failed).

A project started again with the same id and an unchanged plan continues
from its checkpoint. When the plan changed, the previous checkpoint and
sections are discarded before generation starts.

The image curator and reviewer are tracked for progress only. No images
are selected or inserted: the curator is reported done with curation
disabled. The reviewer flags sections below half their length hint and
never rewrites or regenerates content.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from docforge.checkpoint.base_checkpoint_store import CheckpointIOError
from docforge.checkpoint.lock import ProjectLock
from docforge.checkpoint.models import CheckpointRecord, SectionOutput
from docforge.generation.client import client_factory_from_settings
from docforge.generation.worker import GenerationWorker, WorkerResult
from docforge.logging.context import set_agent_context, set_project_context
from docforge.pipeline.review import ReviewReport, review_sections
from docforge.planning.planner import PlanningError, plan_sections
from docforge.storage import layout
from docforge.storage.assembler import assemble_document, write_markdown
from docforge.storage.project_manager import create_manifest, generate_project_id
from docforge.tracking.call_logger import CallLogger
from docforge.tracking.progress import ProgressTracker

if TYPE_CHECKING:
    from docforge.checkpoint.base_checkpoint_store import BaseCheckpointStore
    from docforge.config.settings import Settings
    from docforge.generation.client import ClientFactory
    from docforge.planning.models import Outline, SectionPlan
    from docforge.storage.models import ProjectManifest

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of one orchestrated run."""

    project_id: str
    phase: str
    worker: WorkerResult | None = None
    review: ReviewReport | None = None
    document_path: Path | None = None
    error: str | None = None
    duration_ms: int = 0

    @property
    def success(self) -> bool:
        return self.phase == "completed"


class DocumentOrchestrator:
    """Runs projects end to end against one store and one tracker.

    Args:
        settings: Application settings.
        store: Checkpoint store.
        tracker: Progress registry (a private one is created if omitted).
        client_factory: Builds a GenerationClient for a model name.
    """

    def __init__(
        self,
        settings: Settings,
        store: BaseCheckpointStore,
        tracker: ProgressTracker | None = None,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._tracker = tracker or ProgressTracker()
        self._client_factory = client_factory or client_factory_from_settings(settings)
        self._worker: GenerationWorker | None = None

    @property
    def tracker(self) -> ProgressTracker:
        return self._tracker

    def request_stop(self) -> None:
        """Pause the running worker after its current section."""
        if self._worker is not None:
            self._worker.request_stop()

    async def start(
        self,
        outline: Outline,
        title: str = "",
        idea: str = "",
        project_id: str | None = None,
        model: str | None = None,
    ) -> RunResult:
        """Plan ``outline`` and generate the whole document.

        Raises:
            PlanningError: The outline cannot be planned.
            InvalidProjectIdError: ``project_id`` is not a safe directory name.
            ProjectLockedError: Another live process owns the project.
            CheckpointIOError: Progress could not be persisted.
        """
        title = title or outline.title or "Untitled"
        project_id = layout.validate_project_id(project_id or generate_project_id(title))
        model = model or self._settings.llm_model
        set_project_context(project_id)
        set_agent_context("architect")

        self._tracker.init(project_id)
        self._tracker.update_phase(project_id, "planning")
        self._tracker.update_agent(project_id, "architect", {
            "status": "running", "progress": 10, "detail": "Planning sections",
        })

        try:
            plan = plan_sections(
                outline,
                sections_per_topic=self._settings.sections_per_topic,
                min_sections=self._settings.min_sections,
                default_target_words=self._settings.default_target_words,
            )
        except PlanningError as e:
            self._tracker.update_agent(project_id, "architect", {
                "status": "error", "detail": str(e),
            })
            self._tracker.add_log(project_id, {
                "agent": "architect", "level": "error", "message": f"Planning failed: {e}",
            })
            self._tracker.update_phase(project_id, "failed")
            raise

        with ProjectLock(layout.lock_path(self._settings.progress_dir, project_id), project_id):
            manifest, record = await self._prepare(project_id, title, idea, model, outline, plan)
            self._tracker.update_agent(project_id, "architect", {
                "status": "done", "progress": 100,
                "detail": f"Planned {len(plan)} sections",
                "total_sections": len(plan),
            })
            self._tracker.add_log(project_id, {
                "agent": "architect", "level": "info",
                "message": f"Plan ready: {len(plan)} sections, ~{plan.total_target_words} words",
            })
            return await self.continue_project(manifest, plan, record)

    async def continue_project(
        self,
        manifest: ProjectManifest,
        plan: SectionPlan,
        record: CheckpointRecord,
    ) -> RunResult:
        """Generate the missing sections, then curate, review and assemble.

        The caller holds the project lock.

        Raises:
            CheckpointIOError: Progress could not be persisted.
        """
        project_id = manifest.project_id
        set_project_context(project_id)
        if self._tracker.get(project_id) is None:
            self._tracker.init(project_id)
        start_ns = time.monotonic_ns()

        self._tracker.update_phase(project_id, "writing")
        call_logger = CallLogger()
        client = self._client_factory(manifest.model, call_logger)
        self._worker = GenerationWorker(
            project_id, plan, self._store, client, self._tracker,
            context_sections=self._settings.context_sections,
            context_chars=self._settings.context_chars,
            document_title=manifest.title,
            idea=manifest.idea,
        )
        try:
            worker_result = await self._worker.run(record)
        except CheckpointIOError as e:
            self._tracker.update_agent(project_id, "writer", {
                "status": "error", "detail": f"Checkpoint write failed: {e}",
            })
            self._tracker.update_phase(project_id, "failed")
            raise
        finally:
            self._worker = None
            self._flush_calls(project_id, call_logger)

        result = RunResult(project_id=project_id, phase="writing", worker=worker_result)
        if worker_result.state == "failed":
            self._tracker.update_phase(project_id, "failed")
            result.phase = "failed"
            result.error = worker_result.error
        elif worker_result.state == "paused":
            result.phase = "paused"
        else:
            outputs = await self._store.load_sections(project_id)
            result.review = self._curate_and_review(project_id, plan, outputs)
            document = assemble_document(manifest, plan, outputs)
            result.document_path = write_markdown(document, self._settings.output_dir)
            self._tracker.update_phase(project_id, "completed")
            self._tracker.add_log(project_id, {
                "level": "info",
                "message": f"Document ready: {document.total_words} words, "
                           f"~{document.estimated_pages} pages",
            })
            result.phase = "completed"

        result.duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000
        logger.info(
            "Run finished for %s: %s (%d/%d sections, %dms)",
            project_id, result.phase, worker_result.completed, worker_result.total,
            result.duration_ms,
        )
        return result

    # --- Internal helpers ---

    async def _prepare(
        self,
        project_id: str,
        title: str,
        idea: str,
        model: str,
        outline: Outline,
        plan: SectionPlan,
    ) -> tuple[ProjectManifest, CheckpointRecord]:
        fingerprint = plan.fingerprint()
        existing = await self._store.load_manifest(project_id)
        record = await self._store.load(project_id)

        if existing is not None and record is not None:
            if (existing.plan_fingerprint == fingerprint
                    and record.plan_fingerprint == fingerprint):
                logger.info(
                    "Continuing %s from its checkpoint (%d/%d sections)",
                    project_id, record.completed_count, record.total_sections,
                )
                return existing, record
        if existing is not None or record is not None:
            discarded = record.completed_count if record is not None else 0
            logger.warning(
                "Plan for %s changed, discarding %d committed sections", project_id, discarded,
            )
            self._tracker.add_log(project_id, {
                "agent": "architect", "level": "warning",
                "message": f"Plan changed: {discarded} previous sections discarded",
            })
            await self._store.delete(project_id)
            layout.calls_log_path(self._settings.progress_dir, project_id).unlink(missing_ok=True)

        manifest = create_manifest(
            project_id=project_id,
            title=title,
            idea=idea,
            model=model,
            outline=outline,
            plan=plan,
            sections_per_topic=self._settings.sections_per_topic,
            min_sections=self._settings.min_sections,
            default_target_words=self._settings.default_target_words,
        )
        await self._store.save_manifest(manifest)
        record = CheckpointRecord(
            project_id=project_id,
            model=model,
            total_sections=len(plan),
            plan_fingerprint=fingerprint,
        )
        await self._store.save(record)
        logger.info("Project %s created: %d sections", project_id, len(plan))
        return manifest, record

    def _curate_and_review(
        self, project_id: str, plan: SectionPlan, outputs: list[SectionOutput],
    ) -> ReviewReport:
        self._tracker.update_phase(project_id, "curating")
        set_agent_context("image_curator")
        self._tracker.update_agent(project_id, "image_curator", {
            "status": "done", "progress": 100, "detail": "Image curation disabled",
        })

        self._tracker.update_phase(project_id, "reviewing")
        set_agent_context("reviewer")
        self._tracker.update_agent(project_id, "reviewer", {
            "status": "running", "progress": 0, "detail": "Reviewing section lengths",
        })
        report = review_sections(plan, outputs)
        detail = (
            "All sections within length targets" if report.passed
            else f"{len(report.flagged)} section(s) below length target"
        )
        self._tracker.update_agent(project_id, "reviewer", {
            "status": "done", "progress": 100, "detail": detail,
        })
        self._tracker.add_log(project_id, {
            "agent": "reviewer", "level": "info" if report.passed else "warning",
            "message": detail,
        })
        return report

    def _flush_calls(self, project_id: str, call_logger: CallLogger) -> None:
        path = layout.calls_log_path(self._settings.progress_dir, project_id)
        try:
            written = call_logger.flush(path)
        except OSError as e:
            logger.warning("Failed to write call log %s: %s", path, e)
            return
        if written:
            logger.debug("Appended %d call records to %s", written, path)
