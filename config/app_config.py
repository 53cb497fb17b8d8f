from __future__ import annotations  # Configuration schema for interview rounds, scoring and LLM routing

from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from interview_session.errors import ConfigurationError
from interview_session.models import ROUND_ORDER, Navigation, RoundKind, SignalType

WEIGHT_TOLERANCE = 1e-6


class LlmRoute(BaseModel):  # LLM endpoint configuration
    name: str
    base_url: str
    endpoint: str
    model: str
    timeout_s: float = Field(ge=0.1)
    max_retries: int = Field(default=2, ge=0)
    api_key_env: str | None = None
    response_format: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False
    enforce_json: bool = True


class RoundSettings(BaseModel):  # Per-round item generation and timing
    item_count: int = Field(default=5, ge=1)
    category_mix: List[str] = Field(default_factory=list)
    category_weights: Dict[str, float] = Field(default_factory=dict)
    default_category_weight: float = Field(default=0.10, ge=0.0)
    deadline_minutes: Optional[float] = Field(default=None, gt=0)
    item_time_limit_s: Optional[int] = Field(default=None, gt=0)
    navigation: Navigation = "review_answered"


class DecisionBracket(BaseModel):  # Lower bound of a categorical hiring outcome
    min_score: float = Field(ge=0.0, le=100.0)
    decision: str
    probability: int = Field(default=0, ge=0, le=100)
    role_readiness: str = ""


def _default_brackets() -> List[DecisionBracket]:
    return [
        DecisionBracket(min_score=85, decision="Strong Hire", probability=95, role_readiness="Immediately Ready"),
        DecisionBracket(min_score=70, decision="Hire", probability=80, role_readiness="Ready with Minor Onboarding"),
        DecisionBracket(min_score=55, decision="Consider", probability=50, role_readiness="Needs Development"),
        DecisionBracket(min_score=0, decision="Reject", probability=20, role_readiness="Not Ready"),
    ]


class ScoringSettings(BaseModel):  # Report aggregation and grading policy
    weights: Dict[RoundKind, float] = Field(
        default_factory=lambda: {"technical": 0.40, "hr": 0.25, "coding": 0.35}
    )
    decision_brackets: List[DecisionBracket] = Field(default_factory=_default_brackets)
    integrity_points: Dict[SignalType, float] = Field(
        default_factory=lambda: {"tab_switch": 2.0, "paste": 5.0, "other": 1.0}
    )
    max_integrity_penalty: float = Field(default=15.0, ge=0.0)
    neutral_score: float = Field(default=50.0, ge=0.0, le=100.0)
    skip_policy: Literal["ai_graded", "auto_zero"] = "ai_graded"
    test_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    strength_threshold: float = Field(default=70.0, ge=0.0, le=100.0)
    weakness_threshold: float = Field(default=55.0, ge=0.0, le=100.0)


def _default_rounds() -> Dict[RoundKind, RoundSettings]:
    return {
        "technical": RoundSettings(
            item_count=10,
            category_mix=["Core CS", "DSA", "System Design", "Framework", "Projects"],
            category_weights={
                "Core CS": 0.25,
                "DSA": 0.30,
                "System Design": 0.25,
                "Framework": 0.10,
                "Projects": 0.10,
            },
        ),
        "hr": RoundSettings(
            item_count=8,
            category_mix=["Behavioral", "Situational", "Communication", "Teamwork", "Leadership", "Career Goals", "Culture Fit"],
        ),
        "coding": RoundSettings(
            item_count=2,
            category_mix=["DSA"],
            deadline_minutes=45,
            navigation="current_only",
        ),
    }


class AppConfig(BaseModel):  # Application configuration root
    llm_routes: Dict[str, LlmRoute] = Field(default_factory=dict)
    registry: Dict[str, str] = Field(default_factory=dict)
    rounds: Dict[RoundKind, RoundSettings] = Field(default_factory=_default_rounds)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)
    auto_advance: bool = True


def validate_app_config(cfg: AppConfig) -> AppConfig:  # Reject configurations that must not silently default
    missing = [kind for kind in ROUND_ORDER if kind not in cfg.rounds]
    if missing:
        raise ConfigurationError(f"Missing round configuration: {', '.join(missing)}")
    weights = cfg.scoring.weights
    absent = [kind for kind in ROUND_ORDER if kind not in weights]
    if absent:
        raise ConfigurationError(f"Missing round weights: {', '.join(absent)}")
    total = sum(weights.values())
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise ConfigurationError(f"Round weights must sum to 1.0 (got {total:.4f})")
    brackets = cfg.scoring.decision_brackets
    if not brackets:
        raise ConfigurationError("At least one decision bracket is required")
    bounds = [bracket.min_score for bracket in brackets]
    if any(later >= earlier for earlier, later in zip(bounds, bounds[1:])):
        raise ConfigurationError("Decision brackets must be strictly descending by min_score")
    if bounds[-1] != 0:
        raise ConfigurationError("The lowest decision bracket must start at 0")
    if cfg.scoring.weakness_threshold > cfg.scoring.strength_threshold:
        raise ConfigurationError("weakness_threshold cannot exceed strength_threshold")
    return cfg


def load_config(path: Path) -> AppConfig:  # Load and validate configuration from disk
    try:
        data = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration at {path}") from exc
    try:
        cfg = AppConfig.model_validate_json(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration at {path}: {exc}") from exc
    return validate_app_config(cfg)


def resolve_registry(cfg: AppConfig, targets: List[str]) -> Dict[str, LlmRoute]:  # Map registry targets to routes
    resolved: Dict[str, LlmRoute] = {}
    for target in targets:
        if target not in cfg.registry:
            continue
        route_id = cfg.registry[target]
        if route_id not in cfg.llm_routes:
            raise ConfigurationError(f"Route '{route_id}' missing for '{target}'")
        resolved[target] = cfg.llm_routes[route_id]
    return resolved


def round_settings(cfg: AppConfig, kind: RoundKind) -> RoundSettings:
    try:
        return cfg.rounds[kind]
    except KeyError as exc:
        raise ConfigurationError(f"Missing round configuration: {kind}") from exc
