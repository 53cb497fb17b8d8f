from __future__ import annotations  # Interview session domain models

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

RoundKind = Literal["technical", "hr", "coding"]
ROUND_ORDER: Tuple[RoundKind, ...] = ("technical", "hr", "coding")

RoundStatus = Literal["not_started", "in_progress", "completed"]
SessionStatus = Literal[
    "not_started",
    "technical_in_progress",
    "technical_completed",
    "hr_in_progress",
    "hr_completed",
    "coding_in_progress",
    "coding_completed",
    "completed",
    "abandoned",
]
Difficulty = Literal["easy", "medium", "hard"]
JobStatus = Literal["queued", "evaluating", "done", "failed"]
TERMINAL_JOB_STATUSES: Tuple[str, ...] = ("done", "failed")
SignalType = Literal["tab_switch", "paste", "other"]
Navigation = Literal["current_only", "review_answered"]
NextAction = Literal["start_round", "answer", "view_report", "none"]


class CodeTestCase(BaseModel):  # Executable test case attached to a coding problem
    input: str = ""
    output: str = ""
    explanation: str = ""
    hidden: bool = False


class Item(BaseModel):  # Question or coding problem inside a round
    item_id: str
    position: int = Field(ge=0)
    prompt: str
    title: str = ""
    category: str = "general"
    difficulty: str = "medium"
    expected_answer: str = ""
    evaluation_focus: List[str] = Field(default_factory=list)
    test_cases: List[CodeTestCase] = Field(default_factory=list)
    language: Optional[str] = None

    answer: Optional[str] = None
    code: Optional[str] = None
    skipped: bool = False
    time_spent: Optional[int] = None
    submitted_at: Optional[datetime] = None
    presented_at: Optional[datetime] = None
    pending_answer: Optional[str] = None

    evaluation_id: Optional[str] = None
    score: Optional[float] = None

    @property
    def answered(self) -> bool:
        return self.submitted_at is not None

    @property
    def evaluated(self) -> bool:
        return self.evaluation_id is not None

    def public_view(self) -> Dict[str, Any]:  # Candidate-facing fields only
        return {
            "item_id": self.item_id,
            "position": self.position,
            "title": self.title,
            "prompt": self.prompt,
            "category": self.category,
            "difficulty": self.difficulty,
            "language": self.language,
            "sample_tests": [
                case.model_dump() for case in self.test_cases if not case.hidden
            ],
            "answered": self.answered,
            "skipped": self.skipped,
            "score": self.score,
        }


class Round(BaseModel):  # One interview stage and its ordered items
    kind: RoundKind
    status: RoundStatus = "not_started"
    items: List[Item] = Field(default_factory=list)
    current_index: int = Field(default=0, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    deadline_at: Optional[datetime] = None
    deadline_exceeded: bool = False
    category_scores: Dict[str, float] = Field(default_factory=dict)
    score: float = 0.0

    def item(self, item_id: str) -> Optional[Item]:
        return next((entry for entry in self.items if entry.item_id == item_id), None)

    @property
    def answered_count(self) -> int:
        return sum(1 for entry in self.items if entry.answered)


def _empty_rounds() -> Dict[RoundKind, Round]:
    return {kind: Round(kind=kind) for kind in ROUND_ORDER}


class Session(BaseModel):  # One candidate attempt spanning all rounds
    session_id: str
    candidate_id: str
    role: str
    difficulty: Difficulty = "medium"
    context: str = ""
    status: SessionStatus = "not_started"
    current_round: Optional[RoundKind] = None
    rounds: Dict[RoundKind, Round] = Field(default_factory=_empty_rounds)
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    version: int = 0

    def round(self, kind: RoundKind) -> Round:
        return self.rounds[kind]


class EvaluationPayload(BaseModel):  # Submission snapshot handed to the evaluator
    round_kind: RoundKind
    item_id: str
    prompt: str
    category: str = "general"
    answer: str = ""
    skipped: bool = False
    expected_answer: str = ""
    evaluation_focus: List[str] = Field(default_factory=list)
    code: Optional[str] = None
    language: Optional[str] = None
    test_cases: List[CodeTestCase] = Field(default_factory=list)

    @classmethod
    def from_item(cls, kind: RoundKind, item: Item) -> "EvaluationPayload":
        return cls(
            round_kind=kind,
            item_id=item.item_id,
            prompt=item.prompt,
            category=item.category,
            answer=item.answer or "",
            skipped=item.skipped,
            expected_answer=item.expected_answer,
            evaluation_focus=list(item.evaluation_focus),
            code=item.code,
            language=item.language,
            test_cases=list(item.test_cases),
        )


class SandboxCaseResult(BaseModel):  # Single executed test case
    name: str
    passed: bool
    input: str = ""
    expected_output: str = ""
    actual_output: str = ""
    execution_time: float = 0.0
    memory: float = 0.0
    error: Optional[str] = None
    status: str = ""


class SandboxSummary(BaseModel):  # Aggregated test execution outcome
    total: int = 0
    passed: int = 0
    failed: int = 0
    pass_rate: float = 0.0
    results: List[SandboxCaseResult] = Field(default_factory=list)


class EvaluationResult(BaseModel):  # Graded outcome on a 0-100 scale
    score: float = Field(ge=0.0, le=100.0)
    feedback: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    sub_scores: Dict[str, float] = Field(default_factory=dict)
    sandbox: Optional[SandboxSummary] = None
    neutral: bool = False
    warning: Optional[str] = None


class EvaluationJob(BaseModel):  # Persisted grading job for one item
    job_id: str
    session_id: str
    item_id: str
    status: JobStatus = "queued"
    payload: EvaluationPayload
    result: Optional[EvaluationResult] = None
    attempts: int = 0
    last_error: Optional[str] = None
    enqueued_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES


class IntegritySignal(BaseModel):  # Append-only behavioural anomaly record
    signal_id: Optional[int] = None
    session_id: str
    item_id: Optional[str] = None
    round_kind: Optional[RoundKind] = None
    signal_type: SignalType
    detail: str = ""
    timestamp: datetime


class HiringReport(BaseModel):  # Final weighted aggregation of all rounds
    session_id: str
    round_scores: Dict[str, float]
    weights: Dict[str, float]
    raw_score: float
    integrity_penalty: float = 0.0
    signal_counts: Dict[str, int] = Field(default_factory=dict)
    overall_score: float
    decision: str
    probability: int = 0
    role_readiness: str = ""
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    improvement_plan: List[str] = Field(default_factory=list)
    category_scores: Dict[str, Dict[str, float]] = Field(default_factory=dict)
    provisional: bool = False
    generated_at: datetime


class Progress(BaseModel):  # Round progress counters
    answered: int
    total: int
    remaining: int
    percentage: int
    is_complete: bool


class RoundSnapshot(BaseModel):  # Read-only view of a round
    kind: RoundKind
    status: RoundStatus
    current_index: int
    current_item: Optional[Dict[str, Any]] = None
    progress: Progress
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    deadline_at: Optional[datetime] = None
    deadline_exceeded: bool = False
    score: float = 0.0
    category_scores: Dict[str, float] = Field(default_factory=dict)


class SubmitResult(BaseModel):  # Outcome of an accepted submission
    item_id: str
    job_id: str
    next_item: Optional[Dict[str, Any]] = None
    progress: Progress
    round_status: RoundStatus


class CurrentView(BaseModel):  # What the client should see next
    session_id: str
    status: SessionStatus
    current_round: Optional[RoundKind] = None
    next_round: Optional[RoundKind] = None
    round: Optional[RoundSnapshot] = None
    current_item: Optional[Dict[str, Any]] = None
    pending_evaluations: List[str] = Field(default_factory=list)
    next_action: NextAction = "none"
    report_ready: bool = False
    poll: Dict[str, float] = Field(default_factory=dict)


__all__ = [
    "RoundKind",
    "ROUND_ORDER",
    "RoundStatus",
    "SessionStatus",
    "Difficulty",
    "JobStatus",
    "TERMINAL_JOB_STATUSES",
    "SignalType",
    "Navigation",
    "CodeTestCase",
    "Item",
    "Round",
    "Session",
    "EvaluationPayload",
    "SandboxCaseResult",
    "SandboxSummary",
    "EvaluationResult",
    "EvaluationJob",
    "IntegritySignal",
    "HiringReport",
    "Progress",
    "RoundSnapshot",
    "SubmitResult",
    "CurrentView",
]
