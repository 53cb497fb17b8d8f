"""Celery application and the grading task behind the evaluation dispatcher.

Run a worker with::

    celery -A evaluation.tasks worker -Q evaluation --concurrency=4 --loglevel=info
"""
from __future__ import annotations

import logging
from typing import Any, Dict

from celery import Celery, Task
from celery.signals import worker_process_init

from config.app_config import ScoringSettings
from config.settings import settings

from .worker import EvaluationWorker

logger = logging.getLogger(__name__)

GRADE_TASK = "evaluation.grade_item"

celery_app = Celery(
    "interview_rounds",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    enable_utc=True,
    task_track_started=True,
    task_ignore_result=True,
    # Jobs are acknowledged after grading so a lost worker hands them back.
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=int(settings.EVAL_STALE_AFTER_S),
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.EVAL_WORKERS,
    task_routes={GRADE_TASK: {"queue": "evaluation"}},
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    worker_hijack_root_logger=False,
)


@celery_app.task(
    bind=True,
    name=GRADE_TASK,
    max_retries=settings.EVAL_MAX_RETRIES,
    default_retry_delay=settings.EVAL_BACKOFF_S,
)
def grade_item_task(self, job_id: str, policy: Dict[str, Any]) -> None:
    worker = EvaluationWorker(ScoringSettings.model_validate(policy), max_retries=self.max_retries)
    countdown = worker.attempt(job_id, self.request.retries)
    if countdown is not None:
        raise self.retry(countdown=countdown)


class CeleryQueue:  # Publishes job ids to the evaluation queue
    def __init__(self, policy: ScoringSettings, task: Task = grade_item_task) -> None:
        self._policy = policy.model_dump(mode="json")
        self._task = task

    def send(self, job_id: str) -> None:
        self._task.apply_async(args=[job_id, self._policy])

    def close(self) -> None:
        self._task.app.close()


@worker_process_init.connect
def bind_worker_providers(**_: Any) -> None:
    """Worker processes grade with the same providers the API binds at startup."""

    from api_server import bind_providers, load_app_config

    bind_providers(load_app_config())
    logger.info("evaluation worker providers bound")


__all__ = ["GRADE_TASK", "celery_app", "grade_item_task", "CeleryQueue", "bind_worker_providers"]
