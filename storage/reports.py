"""Persistence helpers for hiring reports."""
from __future__ import annotations

from typing import Optional

from interview_session.models import HiringReport

from .sqlite import get_conn


def save_report(report: HiringReport) -> None:
    """Insert or replace the report for its session."""

    with get_conn() as conn:
        conn.execute(
            """INSERT OR REPLACE INTO hiring_reports
               (session_id, overall_score, decision, provisional, report_json, generated_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                report.session_id,
                report.overall_score,
                report.decision,
                1 if report.provisional else 0,
                report.model_dump_json(),
                report.generated_at.isoformat(),
            ),
        )


def load_report(session_id: str) -> Optional[HiringReport]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT report_json FROM hiring_reports WHERE session_id = ?",
            (session_id,),
        ).fetchone()
    if row is None:
        return None
    return HiringReport.model_validate_json(row["report_json"])


__all__ = ["save_report", "load_report"]
