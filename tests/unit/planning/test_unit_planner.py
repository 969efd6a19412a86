# tests/unit/planning/test_unit_planner.py
"""Tests for planning/planner.py and planning/models.py."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from docforge.planning.models import Outline, OutlineTopic, SectionDescriptor
from docforge.planning.planner import PlanningError, plan_sections


class TestPlanSections:
    def test_indices_are_dense(self, sample_outline):
        plan = plan_sections(sample_outline, sections_per_topic=3, min_sections=6)
        assert [s.index for s in plan.sections] == list(range(6))
        assert len(plan) == 6

    def test_subtopics_fill_slots_first(self, sample_outline):
        plan = plan_sections(sample_outline, sections_per_topic=3, min_sections=6)
        titles = [s.title for s in plan.sections]
        assert titles[:3] == [
            "1-1. Market size",
            "1-2. Competitors",
            "1-3. Market Analysis (part 3)",
        ]
        assert titles[3] == "2-1. Technical Approach (part 1)"

    def test_parent_topic_and_brief(self, sample_outline):
        plan = plan_sections(sample_outline, sections_per_topic=3, min_sections=6)
        assert plan[0].parent_topic == "Market Analysis"
        assert plan[0].brief == "Use recent figures."
        assert plan[5].parent_topic == "Technical Approach"

    def test_length_hints(self, sample_outline):
        plan = plan_sections(
            sample_outline, sections_per_topic=3, min_sections=6, default_target_words=800,
        )
        assert plan[0].target_length_hint == 500
        assert plan[4].target_length_hint == 800
        assert plan.total_target_words == 3 * 500 + 3 * 800

    def test_more_subtopics_than_multiplier(self):
        outline = Outline(topics=[OutlineTopic(title="A", subtopics=["x", "y", "z", "w"])])
        plan = plan_sections(outline, sections_per_topic=2, min_sections=1)
        assert len(plan) == 4

    def test_default_minimum_is_enforced(self):
        outline = Outline(topics=[OutlineTopic(title=f"Topic {i}") for i in range(40)])
        plan = plan_sections(outline)
        assert len(plan) == 120

    def test_below_minimum_raises(self, sample_outline):
        with pytest.raises(PlanningError, match="below the minimum"):
            plan_sections(sample_outline, sections_per_topic=3, min_sections=120)

    def test_empty_outline_raises(self):
        with pytest.raises(PlanningError):
            plan_sections(Outline(), min_sections=1)

    def test_blank_topic_raises(self):
        outline = Outline(topics=[OutlineTopic(title="  ")])
        with pytest.raises(PlanningError, match="empty title"):
            plan_sections(outline, min_sections=1)

    def test_invalid_multiplier_raises(self, sample_outline):
        with pytest.raises(PlanningError):
            plan_sections(sample_outline, sections_per_topic=0, min_sections=1)

    def test_deterministic(self, sample_outline):
        a = plan_sections(sample_outline, sections_per_topic=3, min_sections=6)
        b = plan_sections(sample_outline, sections_per_topic=3, min_sections=6)
        assert a == b
        assert a.fingerprint() == b.fingerprint()


class TestSectionPlan:
    def test_fingerprint_changes_with_plan(self, sample_outline):
        a = plan_sections(sample_outline, sections_per_topic=3, min_sections=6)
        b = plan_sections(sample_outline, sections_per_topic=4, min_sections=6)
        assert a.fingerprint() != b.fingerprint()

    def test_plan_is_immutable(self, small_plan):
        with pytest.raises(ValidationError):
            small_plan.sections[0].title = "changed"  # type: ignore[misc]

    def test_descriptor_rejects_zero_length(self):
        with pytest.raises(ValidationError):
            SectionDescriptor(index=0, title="t", parent_topic="p", target_length_hint=0)
