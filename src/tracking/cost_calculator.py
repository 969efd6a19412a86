# src/tracking/cost_calculator.py
"""Cost estimation from LLM call records."""

from __future__ import annotations

from collections import defaultdict

from docforge.tracking.models import LLMCallRecord, ModelPricing

# Price per 1M tokens
DEFAULT_PRICING: dict[str, ModelPricing] = {
    "claude-3-haiku-20240307": ModelPricing(
        model="claude-3-haiku-20240307",
        input_price_per_1m=0.25, output_price_per_1m=1.25,
    ),
    "claude-haiku-4-5-20251001": ModelPricing(
        model="claude-haiku-4-5-20251001",
        input_price_per_1m=1.0, output_price_per_1m=5.0,
    ),
    "claude-sonnet-4-20250514": ModelPricing(
        model="claude-sonnet-4-20250514",
        input_price_per_1m=3.0, output_price_per_1m=15.0,
    ),
    "claude-opus-4-20250514": ModelPricing(
        model="claude-opus-4-20250514",
        input_price_per_1m=15.0, output_price_per_1m=75.0,
    ),
    "gpt-4o": ModelPricing(
        model="gpt-4o",
        input_price_per_1m=2.50, output_price_per_1m=10.0,
    ),
    "gpt-4o-mini": ModelPricing(
        model="gpt-4o-mini",
        input_price_per_1m=0.15, output_price_per_1m=0.60,
    ),
}


def compute_call_cost(
    record: LLMCallRecord, pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Estimated USD cost of one call; 0.0 for unpriced models."""
    p = (pricing or DEFAULT_PRICING).get(record.model)
    if p is None:
        return 0.0
    return (record.input_tokens * p.input_price_per_1m
            + record.output_tokens * p.output_price_per_1m) / 1_000_000


def compute_total_cost(
    records: list[LLMCallRecord],
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    return sum(compute_call_cost(r, pricing) for r in records)


def cost_by_model(
    records: list[LLMCallRecord],
    pricing: dict[str, ModelPricing] | None = None,
) -> dict[str, float]:
    """Total estimated cost grouped by model."""
    totals: dict[str, float] = defaultdict(float)
    for r in records:
        totals[r.model] += compute_call_cost(r, pricing)
    return dict(totals)
