# src/tracking/stats.py
"""Per-project statistics: sections, words, spend and remaining time."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from docforge.checkpoint.models import CheckpointRecord, SectionOutput
from docforge.storage.assembler import estimate_pages
from docforge.tracking.cost_calculator import compute_total_cost
from docforge.tracking.models import LLMCallRecord, ProjectStats

logger = logging.getLogger(__name__)


def build_project_stats(
    record: CheckpointRecord,
    outputs: list[SectionOutput],
    calls: list[LLMCallRecord] | None = None,
    min_interval_s: float = 0.0,
    now: datetime | None = None,
) -> ProjectStats:
    """Summarize a project's checkpoint and committed outputs.

    The ETA assumes each remaining section costs the mean observed call
    latency plus the gate interval; it is None until one section exists.
    """
    calls = calls or []
    now = now or datetime.now(timezone.utc)
    committed = set(record.completed_sections)
    done = [o for o in outputs if o.index in committed]

    total_words = sum(o.word_count for o in done)
    if calls:
        total_tokens = sum(c.total_tokens for c in calls)
        cost = compute_total_cost(calls)
    else:
        total_tokens = sum(o.input_tokens + o.output_tokens for o in done)
        cost = 0.0

    remaining = record.total_sections - record.completed_count
    eta: float | None = None
    if remaining == 0:
        eta = 0.0
    elif done:
        mean_latency_s = sum(o.latency_ms for o in done) / len(done) / 1000
        eta = remaining * (mean_latency_s + min_interval_s)

    return ProjectStats(
        project_id=record.project_id,
        total_sections=record.total_sections,
        completed_sections=record.completed_count,
        total_words=total_words,
        estimated_pages=estimate_pages(total_words),
        total_tokens=total_tokens,
        estimated_cost_usd=round(cost, 6),
        elapsed_seconds=max(0.0, (now - record.created_at).total_seconds()),
        eta_seconds=eta,
    )


def format_stats(stats: ProjectStats) -> str:
    """One-block human summary used by the CLI."""
    eta = "-" if stats.eta_seconds is None else f"{stats.eta_seconds / 60:.1f} min"
    return "\n".join([
        f"Project:   {stats.project_id}",
        f"Sections:  {stats.completed_sections}/{stats.total_sections} ({stats.percent:.1f}%)",
        f"Words:     {stats.total_words} (~{stats.estimated_pages} pages)",
        f"Tokens:    {stats.total_tokens}",
        f"Cost:      ${stats.estimated_cost_usd:.4f}",
        f"Elapsed:   {stats.elapsed_seconds / 60:.1f} min",
        f"ETA:       {eta}",
    ])
