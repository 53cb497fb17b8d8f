"""Weighted aggregation of round scores into a hiring decision."""
from __future__ import annotations

import datetime as dt
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from config.app_config import DecisionBracket, ScoringSettings
from interview_session.models import HiringReport, IntegritySignal


def _round2(value: float) -> float:
    return float(f"{value:.2f}")


def count_signals(signals: Iterable[IntegritySignal]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for signal in signals:
        counts[signal.signal_type] = counts.get(signal.signal_type, 0) + 1
    return counts


def integrity_penalty(counts: Mapping[str, int], policy: ScoringSettings) -> float:
    """Points per signal type, capped; never decreases as counts grow."""

    points = policy.integrity_points
    raw = sum(points.get(kind, points.get("other", 0.0)) * count for kind, count in counts.items())
    return _round2(min(policy.max_integrity_penalty, max(0.0, raw)))


def decide(score: float, brackets: List[DecisionBracket]) -> DecisionBracket:
    for bracket in brackets:
        if score >= bracket.min_score:
            return bracket
    return brackets[-1]


def _strengths_and_gaps(
    category_scores: Mapping[str, Mapping[str, float]],
    policy: ScoringSettings,
) -> Tuple[List[str], List[str], List[str]]:
    flat: List[Tuple[str, str, float]] = []
    for kind in sorted(category_scores):
        for category in sorted(category_scores[kind]):
            flat.append((kind, category, float(category_scores[kind][category])))

    strengths = [
        f"{kind}: {category} ({score:.0f})"
        for kind, category, score in sorted(flat, key=lambda entry: (-entry[2], entry[0], entry[1]))
        if score >= policy.strength_threshold
    ]
    gaps = sorted(
        (entry for entry in flat if entry[2] < policy.weakness_threshold),
        key=lambda entry: (entry[2], entry[0], entry[1]),
    )
    weaknesses = [f"{kind}: {category} ({score:.0f})" for kind, category, score in gaps]
    plan = [
        f"Raise {category} in the {kind} round by {policy.weakness_threshold - score:.0f} points "
        f"through targeted practice"
        for kind, category, score in gaps
    ]
    return strengths, weaknesses, plan


def aggregate(
    technical: float,
    hr: float,
    coding: float,
    signals: Iterable[IntegritySignal],
    weights: Mapping[str, float],
    *,
    policy: Optional[ScoringSettings] = None,
    category_scores: Optional[Mapping[str, Mapping[str, float]]] = None,
    provisional: bool = False,
    session_id: str = "",
    generated_at: Optional[dt.datetime] = None,
) -> HiringReport:
    """Combine round scores, weights and integrity signals into a report.

    Pure apart from the timestamp; weights are expected to be validated already.
    """

    policy = policy or ScoringSettings()
    round_scores = {"technical": float(technical), "hr": float(hr), "coding": float(coding)}
    raw = _round2(sum(round_scores[kind] * float(weights.get(kind, 0.0)) for kind in round_scores))
    counts = count_signals(signals)
    penalty = integrity_penalty(counts, policy)
    overall = _round2(max(0.0, raw - penalty))
    bracket = decide(overall, policy.decision_brackets)
    per_category = {kind: dict(values) for kind, values in (category_scores or {}).items()}
    strengths, weaknesses, plan = _strengths_and_gaps(per_category, policy)
    return HiringReport(
        session_id=session_id,
        round_scores=round_scores,
        weights={kind: float(weights.get(kind, 0.0)) for kind in round_scores},
        raw_score=raw,
        integrity_penalty=penalty,
        signal_counts=counts,
        overall_score=overall,
        decision=bracket.decision,
        probability=bracket.probability,
        role_readiness=bracket.role_readiness,
        strengths=strengths,
        weaknesses=weaknesses,
        improvement_plan=plan,
        category_scores=per_category,
        provisional=provisional,
        generated_at=generated_at or dt.datetime.now(dt.timezone.utc),
    )


__all__ = ["count_signals", "integrity_penalty", "decide", "aggregate"]
