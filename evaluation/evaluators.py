from __future__ import annotations  # Grading of answers and code through bound providers

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from config.app_config import ScoringSettings
from config.registry import ANSWER_EVALUATOR_KEY, CODE_REVIEWER_KEY, CODE_SANDBOX_KEY, get_model, is_bound
from interview_session.models import EvaluationPayload, EvaluationResult, SandboxCaseResult, SandboxSummary
from services.scoring import coding_score, scale_ten


class AnswerEvaluation(BaseModel):  # Provider verdict on a free-text answer (0-10)
    score: float = Field(ge=0.0, le=10.0)
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    sub_scores: Dict[str, float] = Field(default_factory=dict)


class CodeReview(BaseModel):  # Provider review of submitted code (0-10)
    correctness: float = Field(default=0.0, ge=0.0, le=10.0)
    efficiency: float = Field(default=0.0, ge=0.0, le=10.0)
    readability: float = Field(default=0.0, ge=0.0, le=10.0)
    edge_cases: float = Field(default=0.0, ge=0.0, le=10.0)
    overall: float = Field(ge=0.0, le=10.0)
    time_complexity: str = ""
    space_complexity: str = ""
    strengths: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    bugs: List[str] = Field(default_factory=list)
    feedback: str = ""


class SandboxRun(BaseModel):  # Raw sandbox provider output
    results: List[SandboxCaseResult] = Field(default_factory=list)


def _validated(model: type[BaseModel], raw: Any) -> Any:
    return raw if isinstance(raw, model) else model.model_validate(raw)


def skipped_result() -> EvaluationResult:
    return EvaluationResult(score=0.0, feedback="Item skipped; no answer to grade.", weaknesses=["Skipped"])


def neutral_result(policy: ScoringSettings, warning: str, feedback: str = "") -> EvaluationResult:
    return EvaluationResult(
        score=policy.neutral_score,
        feedback=feedback or "Evaluation unavailable; a neutral score was applied.",
        neutral=True,
        warning=warning,
    )


def evaluate_answer(payload: EvaluationPayload, policy: ScoringSettings) -> EvaluationResult:
    """Grade a technical or HR answer; skips follow ``policy.skip_policy``."""

    if payload.skipped and policy.skip_policy == "auto_zero":
        return skipped_result()
    evaluator = get_model(ANSWER_EVALUATOR_KEY)
    raw = evaluator(
        round_kind=payload.round_kind,
        question=payload.prompt,
        answer=payload.answer,
        expected_answer=payload.expected_answer,
        evaluation_focus=payload.evaluation_focus,
        category=payload.category,
        skipped=payload.skipped,
    )
    verdict: AnswerEvaluation = _validated(AnswerEvaluation, raw)
    return EvaluationResult(
        score=scale_ten(verdict.score),
        feedback=verdict.feedback,
        strengths=verdict.strengths,
        weaknesses=verdict.weaknesses,
        sub_scores={name: scale_ten(min(10.0, max(0.0, value))) for name, value in verdict.sub_scores.items()},
    )


def summarise_sandbox(results: List[SandboxCaseResult]) -> SandboxSummary:
    total = len(results)
    passed = sum(1 for result in results if result.passed)
    rate = float(f"{(passed / total * 100.0):.2f}") if total else 0.0
    return SandboxSummary(total=total, passed=passed, failed=total - passed, pass_rate=rate, results=results)


def run_sandbox(payload: EvaluationPayload) -> Optional[SandboxSummary]:
    """Execute the item's test cases, or ``None`` when no sandbox is bound."""

    if not payload.test_cases or not is_bound(CODE_SANDBOX_KEY):
        return None
    sandbox = get_model(CODE_SANDBOX_KEY)
    raw = sandbox(
        code=payload.code or "",
        language=payload.language or "javascript",
        test_cases=[case.model_dump() for case in payload.test_cases],
    )
    run: SandboxRun = _validated(SandboxRun, raw)
    return summarise_sandbox(run.results)


def evaluate_code(payload: EvaluationPayload, policy: ScoringSettings) -> EvaluationResult:
    """Run tests first, then the code review, and blend both into one score."""

    if payload.skipped and policy.skip_policy == "auto_zero":
        return skipped_result()
    sandbox = run_sandbox(payload)
    reviewer = get_model(CODE_REVIEWER_KEY)
    raw = reviewer(
        problem={"title": payload.prompt.splitlines()[0] if payload.prompt else "", "description": payload.prompt},
        code=payload.code or "",
        language=payload.language or "javascript",
        test_results=[result.model_dump() for result in sandbox.results] if sandbox else [],
    )
    review: CodeReview = _validated(CodeReview, raw)
    # Without a sandbox the reviewer's correctness stands in for the pass rate.
    pass_rate = sandbox.pass_rate if sandbox is not None else review.correctness * 10.0
    return EvaluationResult(
        score=coding_score(pass_rate, review.overall, policy.test_weight),
        feedback=review.feedback,
        strengths=review.strengths,
        weaknesses=review.improvements + review.bugs,
        sub_scores={
            "test_pass_rate": float(f"{pass_rate:.2f}"),
            "code_quality": scale_ten(review.overall),
            "correctness": scale_ten(review.correctness),
            "efficiency": scale_ten(review.efficiency),
            "readability": scale_ten(review.readability),
            "edge_cases": scale_ten(review.edge_cases),
        },
        sandbox=sandbox,
    )


def evaluate(payload: EvaluationPayload, policy: ScoringSettings) -> EvaluationResult:
    if payload.round_kind == "coding":
        return evaluate_code(payload, policy)
    return evaluate_answer(payload, policy)


__all__ = [
    "AnswerEvaluation",
    "CodeReview",
    "SandboxRun",
    "skipped_result",
    "neutral_result",
    "evaluate_answer",
    "summarise_sandbox",
    "run_sandbox",
    "evaluate_code",
    "evaluate",
]
