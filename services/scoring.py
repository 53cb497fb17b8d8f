"""Round scoring helpers built on top of per-item evaluation scores."""
from __future__ import annotations

from typing import Dict, List, Mapping, Optional

from interview_session.models import Item, Round


def _round2(value: float) -> float:
    """Round a float to two decimal places with stable formatting."""
    return float(f"{value:.2f}")


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def scored_items(items: List[Item]) -> List[Item]:
    """Items that contribute to a round score: answered ones only."""

    return [item for item in items if item.answered]


def category_scores(items: List[Item]) -> Dict[str, float]:
    """Mean item score per category; answered items without a score count 0."""

    buckets: Dict[str, List[float]] = {}
    for item in scored_items(items):
        buckets.setdefault(item.category, []).append(float(item.score or 0.0))
    return {
        category: _round2(sum(values) / len(values))
        for category, values in buckets.items()
    }


def weighted_mean(
    per_category: Mapping[str, float],
    weights: Optional[Mapping[str, float]] = None,
    default_weight: float = 0.10,
) -> float:
    """Weighted mean of category scores, normalised over the categories present."""

    if not per_category:
        return 0.0
    if not weights:
        return _round2(_clamp(sum(per_category.values()) / len(per_category)))
    applied = {category: float(weights.get(category, default_weight)) for category in per_category}
    total_weight = sum(applied.values())
    if total_weight <= 0:
        return _round2(_clamp(sum(per_category.values()) / len(per_category)))
    total = sum(per_category[category] * weight for category, weight in applied.items())
    return _round2(_clamp(total / total_weight))


def score_round(
    round_: Round,
    weights: Optional[Mapping[str, float]] = None,
    default_weight: float = 0.10,
) -> float:
    """Recompute ``category_scores`` and ``score`` on ``round_`` in place."""

    per_category = category_scores(round_.items)
    round_.category_scores = per_category
    round_.score = weighted_mean(per_category, weights, default_weight)
    return round_.score


def coding_score(pass_rate: float, review_overall: float, test_weight: float = 0.5) -> float:
    """Blend sandbox pass rate (0-100) with a 0-10 code review into 0-100."""

    review = max(0.0, min(10.0, review_overall)) * 10.0
    blended = _clamp(pass_rate) * test_weight + review * (1.0 - test_weight)
    return _round2(blended)


def scale_ten(score: float) -> float:
    """Map an evaluator's 0-10 score onto 0-100."""

    return _round2(_clamp(float(score) * 10.0))


__all__ = [
    "scored_items",
    "category_scores",
    "weighted_mean",
    "score_round",
    "coding_score",
    "scale_ten",
]
