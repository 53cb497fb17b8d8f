"""Persistence helpers for evaluation jobs."""
from __future__ import annotations

import datetime as dt
import json
import sqlite3
from typing import Iterable, List, Optional

from interview_session.models import EvaluationJob, EvaluationPayload, EvaluationResult

from .sqlite import get_conn

_COLUMNS = (
    "job_id, session_id, item_id, status, payload_json, result_json, attempts, last_error,"
    " enqueued_at, started_at, completed_at"
)


def _parse_ts(value: Optional[str]) -> Optional[dt.datetime]:
    return dt.datetime.fromisoformat(value) if value else None


def _row_to_job(row: sqlite3.Row) -> EvaluationJob:
    result = row["result_json"]
    return EvaluationJob(
        job_id=row["job_id"],
        session_id=row["session_id"],
        item_id=row["item_id"],
        status=row["status"],
        payload=EvaluationPayload.model_validate_json(row["payload_json"]),
        result=EvaluationResult.model_validate_json(result) if result else None,
        attempts=int(row["attempts"]),
        last_error=row["last_error"],
        enqueued_at=dt.datetime.fromisoformat(row["enqueued_at"]),
        started_at=_parse_ts(row["started_at"]),
        completed_at=_parse_ts(row["completed_at"]),
    )


def insert_job(job: EvaluationJob) -> None:
    """Insert a queued job.

    Raises :class:`sqlite3.IntegrityError` when another live job already exists
    for the same ``(session_id, item_id)``.
    """

    with get_conn() as conn:
        conn.execute(
            f"""INSERT INTO evaluation_jobs ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                job.job_id,
                job.session_id,
                job.item_id,
                job.status,
                job.payload.model_dump_json(),
                job.result.model_dump_json() if job.result else None,
                job.attempts,
                job.last_error,
                job.enqueued_at.isoformat(),
                job.started_at.isoformat() if job.started_at else None,
                job.completed_at.isoformat() if job.completed_at else None,
            ),
        )


def load_job(job_id: str) -> Optional[EvaluationJob]:
    with get_conn() as conn:
        row = conn.execute(f"SELECT {_COLUMNS} FROM evaluation_jobs WHERE job_id = ?", (job_id,)).fetchone()
    return _row_to_job(row) if row else None


def latest_job(session_id: str, item_id: str) -> Optional[EvaluationJob]:
    """Most relevant job for an item: a live or done job wins over failed ones."""

    with get_conn() as conn:
        row = conn.execute(
            f"""SELECT {_COLUMNS} FROM evaluation_jobs
                WHERE session_id = ? AND item_id = ?
                ORDER BY CASE status WHEN 'failed' THEN 1 ELSE 0 END, enqueued_at DESC, rowid DESC
                LIMIT 1""",
            (session_id, item_id),
        ).fetchone()
    return _row_to_job(row) if row else None


def list_jobs(session_id: str) -> List[EvaluationJob]:
    with get_conn() as conn:
        rows = conn.execute(
            f"SELECT {_COLUMNS} FROM evaluation_jobs WHERE session_id = ? ORDER BY enqueued_at, rowid",
            (session_id,),
        ).fetchall()
    return [_row_to_job(row) for row in rows]


def list_jobs_by_status(statuses: Iterable[str], limit: Optional[int] = None) -> List[EvaluationJob]:
    wanted = list(statuses)
    if not wanted:
        return []
    marks = ", ".join("?" for _ in wanted)
    query = f"SELECT {_COLUMNS} FROM evaluation_jobs WHERE status IN ({marks}) ORDER BY enqueued_at, rowid"
    params: list = list(wanted)
    if limit is not None:
        query += " LIMIT ?"
        params.append(limit)
    with get_conn() as conn:
        rows = conn.execute(query, params).fetchall()
    return [_row_to_job(row) for row in rows]


def list_live_jobs(session_id: str) -> List[EvaluationJob]:
    with get_conn() as conn:
        rows = conn.execute(
            f"""SELECT {_COLUMNS} FROM evaluation_jobs
                WHERE session_id = ? AND status IN ('queued', 'evaluating')
                ORDER BY enqueued_at, rowid""",
            (session_id,),
        ).fetchall()
    return [_row_to_job(row) for row in rows]


def requeue_job(job_id: str, enqueued_at: dt.datetime) -> None:
    """Put a live job back to ``queued`` so it can be sent again."""

    with get_conn() as conn:
        conn.execute(
            """UPDATE evaluation_jobs SET status = 'queued', enqueued_at = ?, started_at = NULL
               WHERE job_id = ? AND status IN ('queued', 'evaluating')""",
            (enqueued_at.isoformat(), job_id),
        )


def mark_evaluating(job_id: str, attempts: int, started_at: dt.datetime) -> None:
    with get_conn() as conn:
        conn.execute(
            "UPDATE evaluation_jobs SET status = 'evaluating', attempts = ?, started_at = ? WHERE job_id = ?",
            (attempts, started_at.isoformat(), job_id),
        )


def record_attempt_error(job_id: str, attempts: int, error: str) -> None:
    with get_conn() as conn:
        conn.execute(
            "UPDATE evaluation_jobs SET attempts = ?, last_error = ? WHERE job_id = ?",
            (attempts, error, job_id),
        )


def complete_job(
    job_id: str,
    status: str,
    result: EvaluationResult,
    completed_at: dt.datetime,
    *,
    last_error: Optional[str] = None,
) -> None:
    """Move a job to a terminal status with its result."""

    with get_conn() as conn:
        conn.execute(
            """UPDATE evaluation_jobs
               SET status = ?, result_json = ?, completed_at = ?, last_error = COALESCE(?, last_error)
               WHERE job_id = ?""",
            (status, result.model_dump_json(), completed_at.isoformat(), last_error, job_id),
        )


def count_by_status() -> dict:
    with get_conn() as conn:
        rows = conn.execute("SELECT status, COUNT(*) AS n FROM evaluation_jobs GROUP BY status").fetchall()
    return {row["status"]: int(row["n"]) for row in rows}


def job_summary(job: EvaluationJob) -> str:
    return json.dumps(
        {
            "job_id": job.job_id,
            "session_id": job.session_id,
            "item_id": job.item_id,
            "status": job.status,
            "attempts": job.attempts,
            "score": job.result.score if job.result else None,
            "last_error": job.last_error,
        }
    )


__all__ = [
    "insert_job",
    "load_job",
    "latest_job",
    "list_jobs",
    "list_jobs_by_status",
    "list_live_jobs",
    "requeue_job",
    "mark_evaluating",
    "record_attempt_error",
    "complete_job",
    "count_by_status",
    "job_summary",
]
