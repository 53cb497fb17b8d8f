"""Out-of-band evaluation jobs with at most one live job per item."""
from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from typing import Optional, Protocol

from config.app_config import ScoringSettings
from config.settings import settings
from interview_session.clock import Clock, SystemClock, elapsed_seconds
from interview_session.errors import EvaluationTimeout
from interview_session.models import EvaluationJob, EvaluationPayload
from observability.logger import log_event
from storage.jobs import insert_job, latest_job, list_jobs_by_status, list_live_jobs, requeue_job

from .evaluators import evaluate
from .tasks import CeleryQueue
from .worker import EvaluateFn, EvaluationWorker

logger = logging.getLogger(__name__)

JobView = EvaluationJob


class JobQueue(Protocol):  # Delivers job ids to whatever runs EvaluationWorker.attempt
    def send(self, job_id: str) -> None: ...

    def close(self) -> None: ...


class EvaluationDispatcher:
    """Persists jobs in ``evaluation_jobs`` and hands their ids to a queue.

    ``enqueue`` and ``status`` never wait on grading. Grading and its retries
    run wherever the queue delivers, by default a Celery worker. Live jobs with
    no progress for ``stale_after_s`` are sent again by ``reap_stale``.
    """

    def __init__(
        self,
        policy: Optional[ScoringSettings] = None,
        *,
        queue: Optional[JobQueue] = None,
        max_retries: Optional[int] = None,
        backoff_s: Optional[float] = None,
        stale_after_s: Optional[float] = None,
        clock: Optional[Clock] = None,
        evaluate_fn: EvaluateFn = evaluate,
    ) -> None:
        self.policy = policy or ScoringSettings()
        self._clock = clock or SystemClock()
        self.worker = EvaluationWorker(
            self.policy,
            max_retries=max_retries,
            backoff_s=backoff_s,
            clock=self._clock,
            evaluate_fn=evaluate_fn,
        )
        self.stale_after_s = settings.EVAL_STALE_AFTER_S if stale_after_s is None else stale_after_s
        self._queue = queue or CeleryQueue(self.policy)
        self._lock = threading.Lock()

    def enqueue(self, session_id: str, item_id: str, payload: EvaluationPayload) -> str:
        """Create a job for the item unless a live or finished one exists."""

        with self._lock:
            existing = latest_job(session_id, item_id)
            if existing is not None and existing.status != "failed":
                return existing.job_id
            job = EvaluationJob(
                job_id=uuid.uuid4().hex,
                session_id=session_id,
                item_id=item_id,
                payload=payload,
                enqueued_at=self._clock.now(),
            )
            try:
                insert_job(job)
            except sqlite3.IntegrityError:
                # Another writer holds the live slot for this item.
                current = latest_job(session_id, item_id)
                if current is None:
                    raise
                return current.job_id
        log_event("evaluation_enqueued", session_id, item_id=item_id, job_id=job.job_id, round=payload.round_kind)
        self._queue.send(job.job_id)
        return job.job_id

    def status(self, session_id: str, item_id: str) -> Optional[JobView]:
        return latest_job(session_id, item_id)

    def recover(self) -> int:
        """Resend jobs left queued or evaluating by a previous process."""

        pending = list_jobs_by_status(["queued", "evaluating"])
        for job in pending:
            self._queue.send(job.job_id)
        if pending:
            logger.info("requeued %d pending evaluation jobs", len(pending))
        return len(pending)

    def reap_stale(self, session_id: str) -> int:
        """Resend the session's stalled jobs; those past the retry budget fail neutral."""

        now = self._clock.now()
        reaped = 0
        for job in list_live_jobs(session_id):
            if elapsed_seconds(job.started_at or job.enqueued_at, now) < self.stale_after_s:
                continue
            reaped += 1
            if job.attempts > self.worker.max_retries:
                self.worker.fail(job, job.attempts, EvaluationTimeout(f"job {job.job_id} stalled"))
                continue
            requeue_job(job.job_id, now)
            log_event(
                "evaluation_requeued",
                session_id,
                level=logging.WARNING,
                item_id=job.item_id,
                job_id=job.job_id,
                attempt=job.attempts,
                status=job.status,
            )
            self._queue.send(job.job_id)
        return reaped

    def shutdown(self) -> None:
        self._queue.close()


__all__ = ["JobView", "JobQueue", "EvaluationDispatcher"]
