# tests/unit/storage/test_unit_project_manager.py
"""Tests for storage/project_manager.py and storage/layout.py."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path

import pytest

from docforge.planning.planner import PlanningError
from docforge.storage import layout
from docforge.storage.project_manager import (
    create_manifest,
    generate_project_id,
    load_outline,
    plan_matches,
    rebuild_plan,
    slugify,
)


class TestProjectId:
    def test_format(self):
        ts = datetime(2026, 2, 7, 14, 0, 5, tzinfo=timezone.utc)
        pid = generate_project_id("Smart Farming: Platform!", ts)
        assert re.fullmatch(r"smart-farming-platform_20260207_140005_[0-9a-f]{8}", pid)

    def test_unique(self):
        assert generate_project_id("x") != generate_project_id("x")

    def test_slug_fallback(self):
        assert slugify("???") == "project"
        assert len(slugify("a" * 100)) == 40
        assert slugify("_Draft_ plan") == "draft-plan"


class TestLoadOutline:
    def test_object_form(self, tmp_path):
        path = tmp_path / "outline.json"
        path.write_text(json.dumps({
            "title": "Plan",
            "topics": [{"title": "Intro", "subtopics": ["Why"]}, "Budget"],
        }))
        outline = load_outline(path)
        assert outline.title == "Plan"
        assert [t.title for t in outline.topics] == ["Intro", "Budget"]
        assert outline.topics[0].subtopics == ["Why"]

    def test_list_form(self, tmp_path):
        path = tmp_path / "outline.json"
        path.write_text(json.dumps(["A", "B"]))
        assert len(load_outline(path).topics) == 2

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "outline.json"
        path.write_text("{oops")
        with pytest.raises(PlanningError, match="not valid JSON"):
            load_outline(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(PlanningError):
            load_outline(tmp_path / "missing.json")


class TestManifest:
    def test_rebuild_matches(self, sample_outline, small_plan):
        manifest = create_manifest(
            "p", "Title", "m", sample_outline, small_plan,
            sections_per_topic=3, min_sections=6, default_target_words=1000,
        )
        assert manifest.total_sections == 6
        assert manifest.plan_fingerprint == small_plan.fingerprint()
        rebuilt = rebuild_plan(manifest)
        assert rebuilt == small_plan
        assert plan_matches(manifest, rebuilt)

    def test_changed_parameters_do_not_match(self, sample_outline, small_plan):
        manifest = create_manifest(
            "p", "Title", "m", sample_outline, small_plan,
            sections_per_topic=3, min_sections=6, default_target_words=500,
        )
        assert not plan_matches(manifest, rebuild_plan(manifest))


class TestLayout:
    def test_paths(self):
        root = Path("/progress")
        assert layout.checkpoint_path(root, "p") == Path("/progress/p/checkpoint.json")
        assert layout.section_path(root, "p", 7) == Path("/progress/p/sections/0007.json")
        assert layout.lock_path(root, "p") == Path("/progress/.locks/p.lock")
        assert layout.document_path(Path("/out"), "p") == Path("/out/p.md")

    @pytest.mark.parametrize("project_id", [
        "p", "proj_a", "smart-farming-platform_20260207_140005_0a1b2c3d", "v1.2",
    ])
    def test_valid_project_ids(self, project_id):
        assert layout.validate_project_id(project_id) == project_id

    @pytest.mark.parametrize("project_id", [
        "", ".", "..", "../x", "a/b", "a\\b", "/abs", ".hidden", "-flag", "a b", "x" * 129,
    ])
    def test_invalid_project_ids(self, project_id):
        with pytest.raises(layout.InvalidProjectIdError):
            layout.validate_project_id(project_id)

    def test_paths_reject_unsafe_ids(self):
        with pytest.raises(layout.InvalidProjectIdError):
            layout.project_dir(Path("/progress"), ".")
        with pytest.raises(layout.InvalidProjectIdError):
            layout.lock_path(Path("/progress"), "../p")

    def test_generated_ids_are_valid(self):
        for title in ("_Leading underscore_", "???", "Smart Farming: Platform!"):
            layout.validate_project_id(generate_project_id(title))
