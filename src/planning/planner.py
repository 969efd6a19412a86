# src/planning/planner.py
"""Expand a coarse outline into an ordered SectionPlan.

Each topic yields ``max(sections_per_topic, len(subtopics))`` sections.
Sub-topic titles fill the slots first, in order; remaining slots are
numbered parts of the topic itself. The expansion is a pure function of
its inputs, so re-planning the same outline yields the same plan.
"""

from __future__ import annotations

import logging

from docforge.planning.models import Outline, OutlineTopic, SectionDescriptor, SectionPlan

logger = logging.getLogger(__name__)


class PlanningError(Exception):
    """Outline cannot produce a valid plan."""


def plan_sections(
    outline: Outline,
    sections_per_topic: int = 3,
    min_sections: int = 120,
    default_target_words: int = 1000,
) -> SectionPlan:
    """Build the section plan for ``outline``.

    Args:
        outline: Coarse outline (topics with optional sub-topics).
        sections_per_topic: Minimum sections each topic expands into.
        min_sections: Lower bound on the total section count.
        default_target_words: Length hint when a topic declares no total.

    Raises:
        PlanningError: Empty outline, blank topic title, or the expansion
            falls short of ``min_sections``.
    """
    if not outline.topics:
        raise PlanningError("Outline has no topics")
    if sections_per_topic < 1:
        raise PlanningError("sections_per_topic must be >= 1")

    sections: list[SectionDescriptor] = []
    for topic_no, topic in enumerate(outline.topics, start=1):
        if not topic.title.strip():
            raise PlanningError(f"Topic {topic_no} has an empty title")
        for sub_no, title in enumerate(_expand_titles(topic, sections_per_topic), start=1):
            sections.append(
                SectionDescriptor(
                    index=len(sections),
                    title=f"{topic_no}-{sub_no}. {title}",
                    parent_topic=topic.title.strip(),
                    target_length_hint=_length_hint(topic, sections_per_topic, default_target_words),
                    brief=topic.brief,
                )
            )

    if len(sections) < min_sections:
        raise PlanningError(
            f"Outline expands to {len(sections)} sections, "
            f"below the minimum of {min_sections} "
            f"({len(outline.topics)} topics x {sections_per_topic})"
        )

    logger.info(
        "Planned %d sections from %d topics (~%d words)",
        len(sections), len(outline.topics),
        sum(s.target_length_hint for s in sections),
    )
    return SectionPlan(sections=tuple(sections))


def _expand_titles(topic: OutlineTopic, sections_per_topic: int) -> list[str]:
    subtopics = [s.strip() for s in topic.subtopics if s.strip()]
    count = max(sections_per_topic, len(subtopics))
    titles = list(subtopics)
    for part in range(len(subtopics) + 1, count + 1):
        titles.append(f"{topic.title.strip()} (part {part})")
    return titles


def _length_hint(topic: OutlineTopic, sections_per_topic: int, default: int) -> int:
    count = max(sections_per_topic, len([s for s in topic.subtopics if s.strip()]))
    if topic.target_words:
        return max(1, topic.target_words // count)
    return default
