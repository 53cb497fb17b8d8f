from __future__ import annotations  # LLM-backed item generator provider

from textwrap import dedent
from typing import Callable, List, Optional

from config.app_config import LlmRoute
from llm_gateway import HttpClient, call

from .generator import GeneratedItems

GENERATOR_ROUTE = "question_gen.items"

_ROUND_BRIEFS = {
    "technical": (
        "technical interview questions",
        "Each item needs prompt, category, difficulty, expected_answer (key points of a strong answer) "
        "and evaluation_focus (two or three concepts to look for).",
    ),
    "hr": (
        "behavioral (HR) interview questions answerable with the STAR method",
        "Each item needs prompt, category and evaluation_focus (two or three soft skills to assess).",
    ),
    "coding": (
        "coding problems solvable in 30-45 minutes",
        "Each item needs title, prompt (statement with input/output format and constraints), category, "
        "difficulty, language and test_cases: two visible cases with explanation and at least three "
        "cases marked hidden=true covering edge cases.",
    ),
}


def make_item_generator(route: LlmRoute, *, client: Optional[HttpClient] = None) -> Callable[..., GeneratedItems]:
    def _generate(
        *,
        round_kind: str,
        role: str,
        difficulty: str,
        count: int,
        category_mix: List[str],
        context: str = "",
    ) -> GeneratedItems:
        task = _build_task(round_kind, role, difficulty, count, category_mix, context)
        return call(task, GeneratedItems, cfg=route, client=client, options={"temperature": 0.7})

    return _generate


def _build_task(round_kind: str, role: str, difficulty: str, count: int, category_mix: List[str], context: str) -> str:
    what, shape = _ROUND_BRIEFS.get(round_kind, _ROUND_BRIEFS["technical"])
    slots = "\n".join(f"{index + 1}. {category}" for index, category in enumerate(category_mix))
    return dedent(
        f"""
        Create {count} {what} for a {role} candidate at {difficulty} difficulty.
        Candidate background:
        {context or "(not provided)"}

        Use these categories, one item per line, in this order:
        {slots}

        Respond with a JSON object {{"items": [...]}}. {shape}
        Do not repeat questions. Return only JSON without markdown fences or commentary.
        """
    ).strip()


__all__ = ["GENERATOR_ROUTE", "make_item_generator"]
