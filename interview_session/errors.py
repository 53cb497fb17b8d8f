"""Error taxonomy for the interview round pipeline."""
from __future__ import annotations


class InterviewError(RuntimeError):  # Base interview pipeline error
    pass


class SessionNotFound(InterviewError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"session not found: {session_id}")
        self.session_id = session_id


class InvalidTransition(InterviewError):
    """Rejected state change; session state is left untouched."""


class InvalidItem(InvalidTransition):
    def __init__(self, item_id: str, expected: str | None) -> None:
        super().__init__(f"item {item_id} is not the current item (expected {expected})")
        self.item_id = item_id
        self.expected = expected


class DeadlineExceeded(InvalidTransition):
    def __init__(self, round_kind: str) -> None:
        super().__init__(f"{round_kind} round deadline exceeded")
        self.round_kind = round_kind


class StaleSession(InvalidTransition):
    def __init__(self, session_id: str, version: int) -> None:
        super().__init__(f"session {session_id} changed since version {version}")
        self.session_id = session_id
        self.version = version


class ConfigurationError(ValueError):
    """Invalid interview configuration, fatal at startup."""


class EvaluationError(InterviewError):
    """Transient evaluator or sandbox failure; retried by the dispatcher."""


class EvaluationTimeout(InterviewError):
    """Evaluation exhausted its retry budget and resolved to a neutral score."""

    warning = "evaluation_timeout"


__all__ = [
    "InterviewError",
    "SessionNotFound",
    "InvalidTransition",
    "InvalidItem",
    "DeadlineExceeded",
    "StaleSession",
    "ConfigurationError",
    "EvaluationError",
    "EvaluationTimeout",
]
