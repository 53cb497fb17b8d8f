"""Persistence helpers for interview sessions."""
from __future__ import annotations

import sqlite3
from typing import List, Optional

from interview_session.errors import StaleSession
from interview_session.models import Session

from .sqlite import get_conn


def insert_session(session: Session) -> None:
    """Insert a brand new session row at its current version."""

    with get_conn() as conn:
        conn.execute(
            """INSERT INTO interview_sessions
               (session_id, candidate_id, role, status, current_round, version, state_json, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                session.session_id,
                session.candidate_id,
                session.role,
                session.status,
                session.current_round,
                session.version,
                session.model_dump_json(),
                session.created_at.isoformat(),
                session.updated_at.isoformat(),
            ),
        )


def save_session(session: Session) -> int:
    """Persist ``session`` if nobody else saved it since it was loaded.

    The stored version must equal ``session.version``; on success the version is
    bumped in place and returned. Otherwise :class:`StaleSession` is raised and
    the in-memory version is left unchanged.
    """

    expected = session.version
    session.version = expected + 1
    try:
        with get_conn() as conn:
            cur = conn.execute(
                """UPDATE interview_sessions
                   SET status = ?, current_round = ?, version = ?, state_json = ?, updated_at = ?
                   WHERE session_id = ? AND version = ?""",
                (
                    session.status,
                    session.current_round,
                    session.version,
                    session.model_dump_json(),
                    session.updated_at.isoformat(),
                    session.session_id,
                    expected,
                ),
            )
            if cur.rowcount == 0:
                raise StaleSession(session.session_id, expected)
    except (StaleSession, sqlite3.Error):
        session.version = expected
        raise
    return session.version


def load_session(session_id: str) -> Optional[Session]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT state_json, version FROM interview_sessions WHERE session_id = ?",
            (session_id,),
        ).fetchone()
    if row is None:
        return None
    session = Session.model_validate_json(row["state_json"])
    session.version = int(row["version"])
    return session


def list_sessions(limit: int = 50, status: Optional[str] = None) -> List[dict]:
    """Return lightweight session rows, newest first."""

    query = "SELECT session_id, candidate_id, role, status, current_round, version, updated_at FROM interview_sessions"
    params: list = []
    if status:
        query += " WHERE status = ?"
        params.append(status)
    query += " ORDER BY updated_at DESC LIMIT ?"
    params.append(limit)
    with get_conn() as conn:
        rows = conn.execute(query, params).fetchall()
    return [dict(row) for row in rows]


__all__ = ["insert_session", "save_session", "load_session", "list_sessions"]
