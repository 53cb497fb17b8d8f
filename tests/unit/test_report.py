from datetime import datetime, timezone

from config.app_config import ScoringSettings
from interview_session.models import IntegritySignal
from services.report import aggregate, count_signals, decide, integrity_penalty

WEIGHTS = {"technical": 0.4, "hr": 0.25, "coding": 0.35}
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _signals(kind: str, count: int):
    return [
        IntegritySignal(session_id="s1", signal_type=kind, timestamp=NOW)
        for _ in range(count)
    ]


def test_aggregate_is_deterministic_weighted_sum():
    first = aggregate(70, 80, 60, [], WEIGHTS, generated_at=NOW)
    second = aggregate(70, 80, 60, [], WEIGHTS, generated_at=NOW)
    assert first.overall_score == 69.0
    assert first.raw_score == 69.0
    assert first.decision == "Consider"
    assert first == second


def test_decision_brackets_follow_defaults():
    brackets = ScoringSettings().decision_brackets
    assert decide(85, brackets).decision == "Strong Hire"
    assert decide(84.99, brackets).decision == "Hire"
    assert decide(70, brackets).decision == "Hire"
    assert decide(55, brackets).decision == "Consider"
    assert decide(0, brackets).decision == "Reject"


def test_integrity_penalty_is_capped_and_monotonic():
    policy = ScoringSettings()
    penalties = [integrity_penalty({"paste": n}, policy) for n in range(6)]
    assert penalties == sorted(penalties)
    assert penalties[1] == 5.0
    assert penalties[-1] == 15.0
    assert integrity_penalty({"tab_switch": 2, "other": 1}, policy) == 5.0


def test_penalty_reduces_overall_but_never_below_zero():
    report = aggregate(70, 80, 60, _signals("paste", 2), WEIGHTS, generated_at=NOW)
    assert report.signal_counts == {"paste": 2}
    assert report.integrity_penalty == 10.0
    assert report.overall_score == 59.0
    assert report.raw_score == 69.0

    floor = aggregate(5, 5, 5, _signals("paste", 10), WEIGHTS, generated_at=NOW)
    assert floor.overall_score == 0.0
    assert floor.decision == "Reject"


def test_strengths_weaknesses_and_plan_ordered_by_gap():
    report = aggregate(
        70,
        60,
        50,
        [],
        WEIGHTS,
        category_scores={
            "technical": {"DSA": 90.0, "System Design": 40.0},
            "hr": {"Teamwork": 50.0, "Behavioral": 75.0},
        },
        generated_at=NOW,
    )
    assert report.strengths == ["technical: DSA (90)", "hr: Behavioral (75)"]
    assert report.weaknesses == ["technical: System Design (40)", "hr: Teamwork (50)"]
    assert report.improvement_plan[0].startswith("Raise System Design in the technical round by 15 points")
    assert len(report.improvement_plan) == 2


def test_count_signals_groups_by_type():
    signals = _signals("paste", 2) + _signals("tab_switch", 1)
    assert count_signals(signals) == {"paste": 2, "tab_switch": 1}
