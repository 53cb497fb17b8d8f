"""Configuration package for the interview round pipeline."""
from .app_config import (
    AppConfig,
    DecisionBracket,
    LlmRoute,
    RoundSettings,
    ScoringSettings,
    load_config,
    resolve_registry,
    round_settings,
    validate_app_config,
)
from .registry import (
    ANSWER_EVALUATOR_KEY,
    CODE_REVIEWER_KEY,
    CODE_SANDBOX_KEY,
    ITEM_GENERATOR_KEY,
    bind_model,
    get_model,
    is_bound,
    unbind_model,
)
from .settings import Settings, settings

__all__ = [
    "AppConfig",
    "DecisionBracket",
    "LlmRoute",
    "RoundSettings",
    "ScoringSettings",
    "load_config",
    "resolve_registry",
    "round_settings",
    "validate_app_config",
    "ANSWER_EVALUATOR_KEY",
    "CODE_REVIEWER_KEY",
    "CODE_SANDBOX_KEY",
    "ITEM_GENERATOR_KEY",
    "bind_model",
    "get_model",
    "is_bound",
    "unbind_model",
    "Settings",
    "settings",
]
