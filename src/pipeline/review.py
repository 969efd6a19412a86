# src/pipeline/review.py
"""Reviewer pass: flag sections much shorter than their length hint.

Length is the only check; flagged sections are reported, never rewritten.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from docforge.checkpoint.models import SectionOutput
from docforge.planning.models import SectionPlan

logger = logging.getLogger(__name__)

DEFAULT_MIN_RATIO = 0.5


class ReviewFlag(BaseModel):
    index: int
    title: str
    word_count: int
    target_words: int


class ReviewReport(BaseModel):
    """Result of the length review over all committed sections."""

    reviewed: int = 0
    min_ratio: float = DEFAULT_MIN_RATIO
    flagged: list[ReviewFlag] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.flagged


def review_sections(
    plan: SectionPlan,
    outputs: list[SectionOutput],
    min_ratio: float = DEFAULT_MIN_RATIO,
) -> ReviewReport:
    """Flag every output below ``min_ratio`` of its section's target length."""
    report = ReviewReport(min_ratio=min_ratio)
    for output in sorted(outputs, key=lambda o: o.index):
        if output.index >= len(plan):
            continue
        target = plan[output.index].target_length_hint
        report.reviewed += 1
        if output.word_count < target * min_ratio:
            report.flagged.append(ReviewFlag(
                index=output.index,
                title=output.title,
                word_count=output.word_count,
                target_words=target,
            ))
    if report.flagged:
        logger.warning(
            "Review flagged %d/%d short sections", len(report.flagged), report.reviewed,
        )
    return report
