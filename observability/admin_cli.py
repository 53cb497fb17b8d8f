"""Lightweight CLI helpers for inspecting sessions, evaluation jobs and integrity signals."""
from __future__ import annotations

import argparse

from storage.jobs import count_by_status, job_summary, list_jobs, list_jobs_by_status
from storage.sessions import list_sessions
from storage.signals import recent_integrity_signals


def tail_jobs(limit: int = 20, status: str | None = None) -> None:
    statuses = [status] if status else ["queued", "evaluating", "done", "failed"]
    for job in list_jobs_by_status(statuses)[-limit:]:
        score = job.result.score if job.result else "-"
        print(
            f"[{job.enqueued_at.isoformat()}] {job.session_id}/{job.item_id} job={job.job_id} "
            f"{job.status} attempts={job.attempts} score={score} error={job.last_error or ''}"
        )


def tail_signals(limit: int = 20) -> None:
    for row in recent_integrity_signals(limit):
        print(
            f"[{row['timestamp']}] {row['session_id']} {row['round_kind'] or '-'}:{row['item_id'] or '-'} "
            f"{row['signal_type']} {row['detail']}"
        )


def tail_sessions(limit: int = 20, status: str | None = None) -> None:
    for row in list_sessions(limit, status):
        print(
            f"[{row['updated_at']}] {row['session_id']} {row['candidate_id']} {row['role']} "
            f"{row['status']} round={row['current_round'] or '-'} v{row['version']}"
        )


def job_counts() -> None:
    counts = count_by_status()
    print(" ".join(f"{status}={counts.get(status, 0)}" for status in ("queued", "evaluating", "done", "failed")))


def session_jobs(session_id: str) -> None:  # One JSON line per job, oldest first
    for job in list_jobs(session_id):
        print(job_summary(job))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-jobs", type=int, help="Show the latest evaluation jobs")
    parser.add_argument("--status", choices=["queued", "evaluating", "done", "failed"], help="Filter --tail-jobs")
    parser.add_argument("--tail-signals", type=int, help="Show the latest integrity signals")
    parser.add_argument("--sessions", type=int, help="Show the most recently updated sessions")
    parser.add_argument("--session-status", help="Filter --sessions by session status")
    parser.add_argument("--counts", action="store_true", help="Show job counts by status")
    parser.add_argument("--session", help="Dump every evaluation job of one session")
    args = parser.parse_args(argv)

    if args.tail_jobs:
        tail_jobs(args.tail_jobs, args.status)
    if args.tail_signals:
        tail_signals(args.tail_signals)
    if args.sessions:
        tail_sessions(args.sessions, args.session_status)
    if args.counts:
        job_counts()
    if args.session:
        session_jobs(args.session)


if __name__ == "__main__":
    main()
