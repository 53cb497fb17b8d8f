"""One grading attempt of a persisted evaluation job."""
from __future__ import annotations

import logging
import sqlite3
from typing import Callable, Optional, Tuple, Type

import httpx
from pydantic import ValidationError

from config.app_config import ScoringSettings
from config.settings import settings
from interview_session.clock import Clock, SystemClock
from interview_session.errors import EvaluationError, EvaluationTimeout
from interview_session.models import EvaluationJob, EvaluationPayload, EvaluationResult
from llm_gateway import LlmGatewayError
from observability.logger import log_event
from storage.jobs import complete_job, load_job, mark_evaluating, record_attempt_error

from .evaluators import evaluate, neutral_result

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    EvaluationError,
    LlmGatewayError,
    ValidationError,
    TimeoutError,
    httpx.HTTPError,
    sqlite3.OperationalError,
)

EvaluateFn = Callable[[EvaluationPayload, ScoringSettings], EvaluationResult]


class EvaluationWorker:
    """Grades a job once per call; scheduling the retry is the queue's job.

    Retry ``n`` (0-based) waits ``backoff_s * 2**n``. Once ``max_retries``
    retries are spent the job is ``failed`` with a neutral result.
    """

    def __init__(
        self,
        policy: Optional[ScoringSettings] = None,
        *,
        max_retries: Optional[int] = None,
        backoff_s: Optional[float] = None,
        clock: Optional[Clock] = None,
        evaluate_fn: EvaluateFn = evaluate,
    ) -> None:
        self.policy = policy or ScoringSettings()
        self.max_retries = settings.EVAL_MAX_RETRIES if max_retries is None else max_retries
        self.backoff_s = settings.EVAL_BACKOFF_S if backoff_s is None else backoff_s
        self._clock = clock or SystemClock()
        self._evaluate = evaluate_fn

    def attempt(self, job_id: str, retries: int = 0) -> Optional[float]:
        """Returns the countdown before the next attempt, or ``None`` once settled."""

        job = load_job(job_id)
        if job is None or job.terminal:
            return None
        attempts = job.attempts + 1
        try:
            mark_evaluating(job_id, attempts, self._clock.now())
            result = self._evaluate(job.payload, self.policy)
            complete_job(job_id, "done", result, self._clock.now())
        except TRANSIENT_ERRORS as exc:
            if retries >= self.max_retries:
                self.fail(job, attempts, exc)
                return None
            delay = self.backoff_s * 2**retries
            record_attempt_error(job_id, attempts, str(exc))
            logger.warning("evaluation attempt %d failed for job %s, retrying in %.1fs: %s", attempts, job_id, delay, exc)
            return delay
        except Exception as exc:  # noqa: BLE001
            logger.exception("evaluation failed permanently for job %s", job_id)
            self.fail(job, attempts, exc)
            return None
        log_event(
            "evaluation_done",
            job.session_id,
            item_id=job.item_id,
            job_id=job_id,
            score=result.score,
            attempt=attempts,
        )
        return None

    def fail(self, job: EvaluationJob, attempts: int, exc: BaseException) -> None:
        result = neutral_result(self.policy, EvaluationTimeout.warning)
        complete_job(job.job_id, "failed", result, self._clock.now(), last_error=str(exc) or type(exc).__name__)
        log_event(
            "evaluation_failed",
            job.session_id,
            level=logging.WARNING,
            item_id=job.item_id,
            job_id=job.job_id,
            attempt=attempts,
            error=type(exc).__name__,
        )


__all__ = ["TRANSIENT_ERRORS", "EvaluationWorker"]
