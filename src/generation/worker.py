# src/generation/worker.py
"""Sequential section generation worker for one project.

The worker walks the plan from the checkpoint's next missing index to the
end. For each section it generates the content, persists the content,
appends the index to the checkpoint and persists the checkpoint, in that
order, before moving on. An index is therefore only ever committed once
its content is on disk.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from docforge.checkpoint.base_checkpoint_store import CheckpointIOError
from docforge.generation.client import PreviousSection, SectionContext
from docforge.llm.retry import FatalGenerationError, LLMRetryExhausted
from docforge.logging.context import set_agent_context

if TYPE_CHECKING:
    from docforge.checkpoint.base_checkpoint_store import BaseCheckpointStore
    from docforge.checkpoint.models import CheckpointRecord, SectionOutput
    from docforge.generation.client import GenerationClient
    from docforge.planning.models import SectionPlan
    from docforge.tracking.progress import ProgressTracker

logger = logging.getLogger(__name__)

WorkerState = Literal["idle", "running", "completed", "failed", "paused"]

WRITER_AGENT = "writer"


@dataclass
class WorkerResult:
    """Outcome of one ``GenerationWorker.run`` call."""

    project_id: str
    state: WorkerState
    completed: int
    total: int
    generated: list[int] = field(default_factory=list)
    error: str | None = None
    error_type: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == "completed"


class GenerationWorker:
    """Generates the remaining sections of one project, in index order.

    Args:
        project_id: Project being generated.
        plan: The project's section plan.
        store: Checkpoint store.
        client: Rate-limited generation client.
        tracker: Optional progress registry.
        context_sections: How many previous sections feed the prompt.
        context_chars: Characters kept from the end of each previous section.
        document_title: Title passed to the writer.
        idea: Core idea passed to the writer.
    """

    def __init__(
        self,
        project_id: str,
        plan: SectionPlan,
        store: BaseCheckpointStore,
        client: GenerationClient,
        tracker: ProgressTracker | None = None,
        *,
        context_sections: int = 2,
        context_chars: int = 2000,
        document_title: str = "",
        idea: str = "",
    ) -> None:
        self._project_id = project_id
        self._plan = plan
        self._store = store
        self._client = client
        self._tracker = tracker
        self._context_sections = context_sections
        self._context_chars = context_chars
        self._document_title = document_title
        self._idea = idea
        self._outline = [s.title for s in plan.sections]
        self._state: WorkerState = "idle"
        self._stop_requested = False

    @property
    def state(self) -> WorkerState:
        return self._state

    def request_stop(self) -> None:
        """Ask the worker to pause after the section in flight is committed."""
        self._stop_requested = True

    async def run(self, record: CheckpointRecord) -> WorkerResult:
        """Generate every section missing from ``record``.

        Generation failures end the run with state ``failed``; the record
        is persisted with whatever was committed so far and the result is
        returned. Cancellation persists the record as ``paused`` and
        re-raises.

        Raises:
            CheckpointIOError: The store could not persist progress.
            ValueError: ``record`` belongs to another project or plan.
        """
        if record.project_id != self._project_id:
            raise ValueError(
                f"Checkpoint for {record.project_id!r} given to worker of {self._project_id!r}"
            )
        if record.total_sections != len(self._plan):
            raise ValueError(
                f"Checkpoint expects {record.total_sections} sections, plan has {len(self._plan)}"
            )

        self._state = "running"
        self._stop_requested = False
        record.status = "running"
        record.last_error = None
        generated: list[int] = []

        try:
            previous = await self._load_previous(record)
            self._report_progress(
                record, detail="Resuming" if record.completed_sections else "Starting",
            )

            while True:
                index = record.next_index()
                if index is None:
                    break
                if self._stop_requested:
                    return await self._pause(record, generated)

                section = self._plan[index]
                set_agent_context(WRITER_AGENT, step=f"section_{index:04d}")
                self._report_progress(
                    record,
                    detail=f"Writing section {index + 1}/{len(self._plan)}: {section.title}",
                    current_section=index,
                )

                try:
                    output = await self._client.generate_section(section, self._context(previous))
                except (LLMRetryExhausted, FatalGenerationError) as e:
                    return await self._fail(record, generated, e)

                await self._commit(record, output)
                generated.append(index)
                previous.append(self._excerpt(output))
                self._log(f"Section {index + 1}/{len(self._plan)} done: {section.title}")
                self._report_progress(
                    record, detail=f"Completed {record.completed_count}/{len(self._plan)}",
                )

            record.status = "completed"
            record.touch()
            await self._store.save(record)

        except asyncio.CancelledError:
            self._state = "paused"
            record.status = "paused"
            await self._store.save(record)
            logger.info(
                "Worker cancelled for %s at %d/%d sections",
                self._project_id, record.completed_count, record.total_sections,
            )
            raise
        except CheckpointIOError:
            self._state = "failed"
            logger.error("Checkpoint write failed for %s", self._project_id)
            raise

        self._state = "completed"
        if self._tracker is not None:
            self._tracker.update_agent(self._project_id, WRITER_AGENT, {
                "status": "done", "progress": 100,
                "detail": f"All {len(self._plan)} sections written",
            })
        logger.info("All %d sections generated for %s", len(self._plan), self._project_id)
        return self._result(record, generated)

    # --- Internal helpers ---

    async def _commit(self, record: CheckpointRecord, output: SectionOutput) -> None:
        await self._store.save_section(self._project_id, output)
        record.mark_completed(output.index)
        await self._store.save(record)

    async def _fail(
        self, record: CheckpointRecord, generated: list[int], error: Exception,
    ) -> WorkerResult:
        self._state = "failed"
        record.status = "failed"
        record.last_error = str(error)
        record.touch()
        await self._store.save(record)

        error_type = getattr(error, "error_type", type(error).__name__)
        logger.error(
            "Generation stopped for %s at section %s: %s",
            self._project_id, record.next_index(), error,
        )
        if self._tracker is not None:
            self._tracker.update_agent(self._project_id, WRITER_AGENT, {
                "status": "error", "detail": str(error),
            })
            self._tracker.add_log(self._project_id, {
                "agent": WRITER_AGENT, "level": "error",
                "message": f"Generation failed ({error_type}): {error}",
            })
        result = self._result(record, generated)
        result.error = str(error)
        result.error_type = error_type
        return result

    async def _pause(self, record: CheckpointRecord, generated: list[int]) -> WorkerResult:
        self._state = "paused"
        record.status = "paused"
        record.touch()
        await self._store.save(record)
        logger.info(
            "Worker paused for %s at %d/%d sections",
            self._project_id, record.completed_count, record.total_sections,
        )
        self._log(f"Paused at {record.completed_count}/{record.total_sections}")
        return self._result(record, generated)

    async def _load_previous(self, record: CheckpointRecord) -> deque[PreviousSection]:
        previous: deque[PreviousSection] = deque(maxlen=max(self._context_sections, 0))
        if self._context_sections <= 0 or not record.completed_sections:
            return previous

        outputs = {o.index: o for o in await self._store.load_sections(self._project_id)}
        for index in record.completed_sections[-self._context_sections:]:
            output = outputs.get(index)
            if output is not None:
                previous.append(self._excerpt(output))
        return previous

    def _excerpt(self, output: SectionOutput) -> PreviousSection:
        content = output.content
        if len(content) > self._context_chars:
            content = content[-self._context_chars:]
        return PreviousSection(title=output.title, excerpt=content)

    def _context(self, previous: deque[PreviousSection]) -> SectionContext:
        return SectionContext(
            document_title=self._document_title,
            idea=self._idea,
            outline=self._outline,
            previous=list(previous),
        )

    def _report_progress(self, record: CheckpointRecord, detail: str, **extra: object) -> None:
        if self._tracker is None:
            return
        total = record.total_sections
        percent = math.floor(record.completed_count / total * 100) if total else 100
        self._tracker.update_agent(self._project_id, WRITER_AGENT, {
            "status": "running",
            "progress": percent,
            "detail": detail,
            "completed_sections": record.completed_count,
            "total_sections": total,
            **extra,
        })

    def _log(self, message: str) -> None:
        if self._tracker is not None:
            self._tracker.add_log(self._project_id, {
                "agent": WRITER_AGENT, "level": "info", "message": message,
            })

    def _result(self, record: CheckpointRecord, generated: list[int]) -> WorkerResult:
        return WorkerResult(
            project_id=self._project_id,
            state=self._state,
            completed=record.completed_count,
            total=record.total_sections,
            generated=list(generated),
        )
