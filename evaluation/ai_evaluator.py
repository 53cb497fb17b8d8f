from __future__ import annotations  # LLM-backed answer evaluator and code reviewer providers

import json
from textwrap import dedent
from typing import Any, Callable, Dict, List, Optional

from config.app_config import LlmRoute
from llm_gateway import HttpClient, call

from .evaluators import AnswerEvaluation, CodeReview

ANSWER_ROUTE = "evaluation.answer"
CODE_REVIEW_ROUTE = "evaluation.code_review"

_PERSONAS = {
    "technical": "a Senior Software Engineer evaluating a technical interview answer",
    "hr": "an HR Manager evaluating a behavioral interview response",
}

_CRITERIA = {
    "technical": "technical_accuracy, completeness, clarity, depth",
    "hr": "confidence, clarity, relevance, authenticity",
}


def make_answer_evaluator(route: LlmRoute, *, client: Optional[HttpClient] = None) -> Callable[..., AnswerEvaluation]:
    def _evaluate(
        *,
        round_kind: str,
        question: str,
        answer: str,
        expected_answer: str = "",
        evaluation_focus: Optional[List[str]] = None,
        category: str = "general",
        skipped: bool = False,
    ) -> AnswerEvaluation:
        task = _answer_task(round_kind, question, answer, expected_answer, evaluation_focus or [], category, skipped)
        return call(task, AnswerEvaluation, cfg=route, client=client, options={"temperature": 0.0})

    return _evaluate


def make_code_reviewer(route: LlmRoute, *, client: Optional[HttpClient] = None) -> Callable[..., CodeReview]:
    def _review(*, problem: Dict[str, Any], code: str, language: str, test_results: List[Dict[str, Any]]) -> CodeReview:
        return call(_review_task(problem, code, language, test_results), CodeReview, cfg=route, client=client)

    return _review


def _answer_task(
    round_kind: str,
    question: str,
    answer: str,
    expected_answer: str,
    evaluation_focus: List[str],
    category: str,
    skipped: bool,
) -> str:  # Build evaluation prompt for a single answer
    persona = _PERSONAS.get(round_kind, _PERSONAS["technical"])
    reply = "(the candidate skipped this question)" if skipped or not answer.strip() else answer
    focus = ", ".join(evaluation_focus) if evaluation_focus else "overall quality"
    return dedent(
        f"""
        You are {persona}.
        Category: {category}
        Question:
        {question}

        Key points a strong answer covers:
        {expected_answer or "(not provided)"}
        Evaluation focus: {focus}

        Candidate answer:
        {reply}

        Respond with a JSON object:
        - score: number from 0 to 10. A skipped or empty answer scores 0.
        - feedback: two or three constructive sentences addressed to the candidate.
        - strengths: up to three specific strengths.
        - weaknesses: up to three areas to improve.
        - sub_scores: object with 0-10 values for {_CRITERIA.get(round_kind, _CRITERIA["technical"])}.
        Return only JSON without markdown fences or commentary.
        """
    ).strip()


def _review_task(problem: Dict[str, Any], code: str, language: str, test_results: List[Dict[str, Any]]) -> str:
    return dedent(
        f"""
        You are a Senior Software Engineer reviewing a coding interview solution.
        Problem:
        {json.dumps(problem, indent=2)}

        Candidate code ({language}):
        {code or "(no code submitted)"}

        Test execution results:
        {json.dumps(test_results, indent=2) if test_results else "(not executed)"}

        Score each criterion from 0 to 10: correctness, efficiency, readability, edge_cases.
        overall = correctness*0.35 + efficiency*0.30 + readability*0.20 + edge_cases*0.15.
        Also report time_complexity, space_complexity, strengths, improvements, bugs and feedback.
        Return only JSON without markdown fences or commentary.
        """
    ).strip()


__all__ = ["ANSWER_ROUTE", "CODE_REVIEW_ROUTE", "make_answer_evaluator", "make_code_reviewer"]
