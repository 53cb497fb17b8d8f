import pytest

from config.app_config import RoundSettings
from config.registry import ITEM_GENERATOR_KEY, bind_model
from llm_gateway import LlmGatewayError
from question_gen import fallback_item, generate_items, plan_categories


def test_plan_cycles_category_mix():
    assert plan_categories(["A", "B"], 5) == ["A", "B", "A", "B", "A"]
    assert plan_categories([], 2) == ["general", "general"]


def test_fallback_bank_covers_unknown_categories():
    entry = fallback_item("hr", "Culture Fit", 1)
    assert entry["category"] == "Culture Fit"
    assert entry["prompt"]
    coding = fallback_item("coding", "DSA", 3)
    assert coding["title"] == "Two Sum"
    assert coding["language"] == "javascript"


def test_fallback_used_without_provider():
    items = generate_items("technical", RoundSettings(item_count=3, category_mix=["Core CS", "DSA"]), role="Backend")
    assert [item.item_id for item in items] == ["q1", "q2", "q3"]
    assert [item.category for item in items] == ["Core CS", "DSA", "Core CS"]
    assert [item.position for item in items] == [0, 1, 2]


def test_provider_items_topped_up_from_bank():
    calls = []

    def generator(**kwargs):
        calls.append(kwargs)
        return {"items": [{"prompt": "Describe a conflict you resolved.", "category": "Teamwork"}]}

    bind_model(ITEM_GENERATOR_KEY, generator)
    items = generate_items("hr", RoundSettings(item_count=2, category_mix=["Teamwork", "Leadership"]), role="PM", difficulty="hard")
    assert calls[0]["count"] == 2
    assert calls[0]["category_mix"] == ["Teamwork", "Leadership"]
    assert items[0].prompt == "Describe a conflict you resolved."
    assert items[0].difficulty == "hard"
    assert items[1].category == "Leadership"
    assert [item.item_id for item in items] == ["hr1", "hr2"]


def test_provider_failure_falls_back():
    def generator(**_):
        raise LlmGatewayError("down")

    bind_model(ITEM_GENERATOR_KEY, generator)
    items = generate_items("coding", RoundSettings(item_count=2, category_mix=["DSA"]), role="SWE")
    assert [item.title for item in items] == ["Two Sum", "Valid Parentheses"]
    assert items[0].language == "javascript"
    assert any(case.hidden for case in items[0].test_cases)


def test_unexpected_provider_errors_propagate():
    def generator(**_):
        raise RuntimeError("bug")

    bind_model(ITEM_GENERATOR_KEY, generator)
    with pytest.raises(RuntimeError):
        generate_items("technical", RoundSettings(item_count=1), role="SWE")
