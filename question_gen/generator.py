"""Item generation for a round: provider first, built-in bank as fallback."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from config.app_config import RoundSettings
from config.registry import ITEM_GENERATOR_KEY, get_model, is_bound
from interview_session.errors import EvaluationError
from interview_session.models import CodeTestCase, Item, RoundKind
from llm_gateway import LlmGatewayError

from .fallback import fallback_item

logger = logging.getLogger(__name__)

ID_PREFIXES: Dict[str, str] = {"technical": "q", "hr": "hr", "coding": "cp"}

GENERATION_ERRORS = (LlmGatewayError, ValidationError, EvaluationError, httpx.HTTPError, TimeoutError)


class GeneratedItem(BaseModel):  # One item as returned by a generator provider
    prompt: str = Field(min_length=1)
    title: str = ""
    category: Optional[str] = None
    difficulty: Optional[str] = None
    expected_answer: str = ""
    evaluation_focus: List[str] = Field(default_factory=list)
    test_cases: List[CodeTestCase] = Field(default_factory=list)
    language: Optional[str] = None


class GeneratedItems(BaseModel):  # Provider output envelope
    items: List[GeneratedItem] = Field(min_length=1)


def plan_categories(category_mix: List[str], count: int) -> List[str]:
    """Assign a category to each slot by cycling through the mix."""

    if not category_mix:
        return ["general"] * count
    return [category_mix[index % len(category_mix)] for index in range(count)]


def _fallback_items(kind: RoundKind, plan: List[str], difficulty: str) -> List[GeneratedItem]:
    seen: Dict[str, int] = {}
    items: List[GeneratedItem] = []
    for category in plan:
        seen[category] = seen.get(category, 0) + 1
        items.append(GeneratedItem.model_validate(fallback_item(kind, category, seen[category], difficulty)))
    return items


def _from_provider(
    kind: RoundKind,
    *,
    role: str,
    difficulty: str,
    context: str,
    plan: List[str],
) -> List[GeneratedItem]:
    generator = get_model(ITEM_GENERATOR_KEY)
    raw = generator(
        round_kind=kind,
        role=role,
        difficulty=difficulty,
        count=len(plan),
        category_mix=plan,
        context=context,
    )
    parsed = raw if isinstance(raw, GeneratedItems) else GeneratedItems.model_validate(raw)
    return parsed.items


def generate_items(
    kind: RoundKind,
    round_cfg: RoundSettings,
    *,
    role: str,
    difficulty: str = "medium",
    context: str = "",
) -> List[Item]:
    """Produce exactly ``round_cfg.item_count`` items for a round.

    Provider failures and short answers are topped up from the fallback bank,
    so starting a round never fails on generation.
    """

    plan = plan_categories(round_cfg.category_mix, round_cfg.item_count)
    generated: List[GeneratedItem] = []
    if is_bound(ITEM_GENERATOR_KEY):
        try:
            generated = _from_provider(kind, role=role, difficulty=difficulty, context=context, plan=plan)
        except GENERATION_ERRORS as exc:
            logger.warning("item generation failed for %s round, using fallback bank: %s", kind, exc)
    generated = generated[: len(plan)]
    if len(generated) < len(plan):
        generated += _fallback_items(kind, plan[len(generated):], difficulty)

    prefix = ID_PREFIXES[kind]
    return [
        Item(
            item_id=f"{prefix}{position + 1}",
            position=position,
            prompt=entry.prompt,
            title=entry.title,
            category=entry.category or plan[position],
            difficulty=entry.difficulty or difficulty,
            expected_answer=entry.expected_answer,
            evaluation_focus=entry.evaluation_focus,
            test_cases=entry.test_cases,
            language=entry.language if kind == "coding" else None,
        )
        for position, entry in enumerate(generated)
    ]


__all__ = ["ID_PREFIXES", "GeneratedItem", "GeneratedItems", "plan_categories", "generate_items"]
