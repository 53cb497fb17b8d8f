import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.app_config import AppConfig, RoundSettings
from config.registry import (
    ANSWER_EVALUATOR_KEY,
    CODE_REVIEWER_KEY,
    CODE_SANDBOX_KEY,
    ITEM_GENERATOR_KEY,
    bind_model,
    unbind_model,
)
from config.settings import settings
from evaluation.dispatcher import EvaluationDispatcher
from interview_session.orchestrator import SessionOrchestrator
from services.drafts import DraftBuffer
from storage.migrate import migrate

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> datetime:
        self.current = self.current + timedelta(**delta)
        return self.current


class ManualQueue:
    """Collects sent job ids and grades them only when told to.

    A retry is graded straight away; its countdown is appended to ``sleeps``.
    """

    def __init__(self, sleeps: list) -> None:
        self.calls = []
        self.sleeps = sleeps
        self.worker = None
        self.closed = False

    def send(self, job_id: str) -> None:
        self.calls.append(job_id)

    def run_all(self, *, reverse: bool = False) -> int:
        ran = 0
        while self.calls:
            batch, self.calls = self.calls, []
            for job_id in reversed(batch) if reverse else batch:
                retries = 0
                countdown = self.worker.attempt(job_id, retries)
                while countdown is not None:
                    self.sleeps.append(countdown)
                    retries += 1
                    countdown = self.worker.attempt(job_id, retries)
                ran += 1
        return ran

    def close(self) -> None:
        self.closed = True


def fake_answer_evaluator(**kwargs):
    if kwargs.get("skipped") or not kwargs.get("answer", "").strip():
        return {"score": 0, "feedback": "No answer given.", "weaknesses": ["Skipped"]}
    return {
        "score": 7,
        "feedback": "Solid answer.",
        "strengths": ["Clear"],
        "weaknesses": ["Could go deeper"],
        "sub_scores": {"clarity": 8, "depth": 6},
    }


def fake_code_reviewer(**kwargs):
    return {
        "correctness": 8,
        "efficiency": 7,
        "readability": 8,
        "edge_cases": 6,
        "overall": 8,
        "time_complexity": "O(n)",
        "space_complexity": "O(n)",
        "feedback": "Works for the common cases.",
    }


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch, tmp_path):
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    yield db_path


@pytest.fixture(autouse=True)
def fake_providers():
    bind_model(ANSWER_EVALUATOR_KEY, fake_answer_evaluator)
    bind_model(CODE_REVIEWER_KEY, fake_code_reviewer)
    unbind_model(ITEM_GENERATOR_KEY)
    unbind_model(CODE_SANDBOX_KEY)
    yield
    for key in (ANSWER_EVALUATOR_KEY, CODE_REVIEWER_KEY, ITEM_GENERATOR_KEY, CODE_SANDBOX_KEY):
        unbind_model(key)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app_config():
    return AppConfig(
        rounds={
            "technical": RoundSettings(item_count=3, category_mix=["Core CS", "DSA", "System Design"]),
            "hr": RoundSettings(item_count=2, category_mix=["Behavioral", "Teamwork"]),
            "coding": RoundSettings(
                item_count=2,
                category_mix=["DSA"],
                deadline_minutes=5,
                navigation="current_only",
            ),
        }
    )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def queue(sleeps):
    return ManualQueue(sleeps)


@pytest.fixture
def dispatcher(app_config, queue, clock):
    dispatcher = EvaluationDispatcher(
        app_config.scoring,
        queue=queue,
        max_retries=3,
        backoff_s=2.0,
        stale_after_s=3600.0,
        clock=clock,
    )
    queue.worker = dispatcher.worker
    return dispatcher


@pytest.fixture
def drafts():
    buffer = DraftBuffer(debounce_s=60.0)
    yield buffer
    for timer in list(buffer._timers.values()):
        timer.cancel()


@pytest.fixture
def orchestrator(app_config, dispatcher, clock, drafts):
    return SessionOrchestrator(app_config, dispatcher, clock=clock, drafts=drafts)
