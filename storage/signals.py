"""Persistence helpers for integrity signals."""
from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from pydantic import BaseModel

from interview_session.models import IntegritySignal, RoundKind, SignalType

from .sqlite import get_conn


class IntegritySignalPayload(BaseModel):
    session_id: str
    signal_type: SignalType
    item_id: Optional[str] = None
    round_kind: Optional[RoundKind] = None
    detail: str = ""


def insert_integrity_signal(timestamp: dt.datetime, **data: Any) -> int:
    """Append a signal row and return its primary key."""

    payload = IntegritySignalPayload(**data)
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO integrity_signals
               (timestamp, session_id, item_id, round_kind, signal_type, detail)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                timestamp.isoformat(),
                payload.session_id,
                payload.item_id,
                payload.round_kind,
                payload.signal_type,
                payload.detail,
            ),
        )
        return int(cur.lastrowid)


def list_integrity_signals(session_id: str) -> List[IntegritySignal]:
    with get_conn() as conn:
        rows = conn.execute(
            """SELECT id, timestamp, session_id, item_id, round_kind, signal_type, detail
               FROM integrity_signals WHERE session_id = ? ORDER BY id""",
            (session_id,),
        ).fetchall()
    return [
        IntegritySignal(
            signal_id=row["id"],
            session_id=row["session_id"],
            item_id=row["item_id"],
            round_kind=row["round_kind"],
            signal_type=row["signal_type"],
            detail=row["detail"],
            timestamp=dt.datetime.fromisoformat(row["timestamp"]),
        )
        for row in rows
    ]


def recent_integrity_signals(limit: int = 20) -> List[dict]:
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT * FROM integrity_signals ORDER BY id DESC LIMIT ?",
            (limit,),
        ).fetchall()
    return [dict(row) for row in rows]


__all__ = [
    "IntegritySignalPayload",
    "insert_integrity_signal",
    "list_integrity_signals",
    "recent_integrity_signals",
]
