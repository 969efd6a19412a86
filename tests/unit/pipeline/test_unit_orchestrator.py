# tests/unit/pipeline/test_unit_orchestrator.py
"""Tests for pipeline/orchestrator.py."""

from __future__ import annotations

import pytest
from conftest import ScriptedLLMClient, rate_limited

from docforge.checkpoint.lock import ProjectLock, ProjectLockedError
from docforge.checkpoint.models import CheckpointRecord
from docforge.pipeline.orchestrator import DocumentOrchestrator
from docforge.planning.models import Outline
from docforge.planning.planner import PlanningError
from docforge.storage import layout
from docforge.tracking.call_logger import load_call_records


@pytest.fixture
def llm() -> ScriptedLLMClient:
    return ScriptedLLMClient()


@pytest.fixture
def orchestrator(test_settings, json_store, tracker, make_client, llm):
    return DocumentOrchestrator(
        test_settings, json_store, tracker,
        client_factory=lambda model, call_logger: make_client(llm, call_logger),
    )


class TestStart:
    @pytest.mark.asyncio
    async def test_full_run(self, orchestrator, sample_outline, json_store, tracker, test_settings):
        result = await orchestrator.start(sample_outline, idea="Sensors", project_id="proj_x")

        assert result.success
        assert result.worker.generated == list(range(6))
        assert result.document_path == test_settings.output_dir / "proj_x.md"
        assert result.document_path.exists()

        state = tracker.get("proj_x")
        assert state.phase == "completed"
        assert {a.status for a in state.agents.values()} == {"done"}
        assert tracker.calculate_overall_progress("proj_x") == 100
        assert state.agents["image_curator"].detail == "Image curation disabled"

        manifest = await json_store.load_manifest("proj_x")
        assert manifest.title == "Smart Farming Platform"
        assert manifest.idea == "Sensors"
        assert manifest.total_sections == 6
        record = await json_store.load("proj_x")
        assert record.status == "completed"
        assert record.plan_fingerprint == manifest.plan_fingerprint

        calls = load_call_records(layout.calls_log_path(test_settings.progress_dir, "proj_x"))
        assert len(calls) == 6
        assert not layout.lock_path(test_settings.progress_dir, "proj_x").exists()

    @pytest.mark.asyncio
    async def test_generated_project_id(self, orchestrator, sample_outline):
        result = await orchestrator.start(sample_outline)
        assert result.project_id.startswith("smart-farming-platform_")

    @pytest.mark.asyncio
    async def test_planning_failure(self, orchestrator, tracker):
        with pytest.raises(PlanningError):
            await orchestrator.start(Outline(), project_id="empty")
        state = tracker.get("empty")
        assert state.phase == "failed"
        assert state.agents["architect"].status == "error"

    @pytest.mark.asyncio
    async def test_generation_failure(self, orchestrator, sample_outline, llm, tracker):
        llm.script = ["a", "b"] + [rate_limited()] * 3
        result = await orchestrator.start(sample_outline, project_id="proj_fail")
        assert result.phase == "failed"
        assert not result.success
        assert result.error
        assert result.document_path is None
        assert tracker.get("proj_fail").phase == "failed"

    @pytest.mark.asyncio
    async def test_restart_with_same_plan_continues(
        self, orchestrator, sample_outline, llm, json_store,
    ):
        llm.script = ["a", "b"] + [rate_limited()] * 3
        await orchestrator.start(sample_outline, project_id="proj_again")
        calls_before = len(llm.calls)

        result = await orchestrator.start(sample_outline, project_id="proj_again")
        assert result.success
        assert result.worker.generated == [2, 3, 4, 5]
        assert len(llm.calls) - calls_before == 4

    @pytest.mark.asyncio
    async def test_replanning_discards_old_checkpoint(
        self, orchestrator, sample_outline, llm, json_store,
    ):
        llm.script = ["a", "b"] + [rate_limited()] * 3
        await orchestrator.start(sample_outline, project_id="proj_replan")

        changed = sample_outline.model_copy(deep=True)
        changed.topics[1].subtopics = ["Architecture", "Sensors", "Data", "Roadmap"]
        result = await orchestrator.start(changed, project_id="proj_replan")

        assert result.success
        assert result.worker.generated == list(range(7))
        manifest = await json_store.load_manifest("proj_replan")
        assert manifest.total_sections == 7

    @pytest.mark.asyncio
    async def test_locked_project_is_refused(self, orchestrator, sample_outline, test_settings):
        path = layout.lock_path(test_settings.progress_dir, "proj_locked")
        with ProjectLock(path, "proj_locked"):
            with pytest.raises(ProjectLockedError):
                await orchestrator.start(sample_outline, project_id="proj_locked")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("project_id", [".", "..", "nested/id"])
    async def test_unsafe_project_id_is_refused(
        self, orchestrator, sample_outline, json_store, tracker, llm, project_id,
    ):
        await json_store.save(CheckpointRecord(
            project_id="other", model="m", total_sections=6, completed_sections=[0, 1],
        ))
        with pytest.raises(layout.InvalidProjectIdError):
            await orchestrator.start(sample_outline, project_id=project_id)
        assert llm.calls == []
        assert tracker.get(project_id) is None
        assert (await json_store.load("other")).completed_sections == [0, 1]

    @pytest.mark.asyncio
    async def test_short_sections_flagged_not_regenerated(
        self, orchestrator, sample_outline, llm, tracker,
    ):
        llm.default_words = 10
        result = await orchestrator.start(sample_outline, project_id="proj_short")
        assert result.success
        assert len(result.review.flagged) == 6
        assert len(llm.calls) == 6
        reviewer = tracker.get("proj_short").agents["reviewer"]
        assert reviewer.status == "done"
        assert reviewer.detail == "6 section(s) below length target"
