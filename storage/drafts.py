"""Persistence helpers for answer drafts."""
from __future__ import annotations

import datetime as dt
from typing import Optional

from .sqlite import get_conn


def upsert_draft(session_id: str, item_id: str, text: str) -> None:
    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        conn.execute(
            """INSERT INTO item_drafts (session_id, item_id, text, updated_at)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(session_id, item_id) DO UPDATE SET text = excluded.text, updated_at = excluded.updated_at""",
            (session_id, item_id, text, timestamp),
        )


def load_draft(session_id: str, item_id: str) -> Optional[str]:
    with get_conn() as conn:
        row = conn.execute(
            "SELECT text FROM item_drafts WHERE session_id = ? AND item_id = ?",
            (session_id, item_id),
        ).fetchone()
    return row["text"] if row else None


def delete_draft(session_id: str, item_id: str) -> None:
    with get_conn() as conn:
        conn.execute("DELETE FROM item_drafts WHERE session_id = ? AND item_id = ?", (session_id, item_id))


__all__ = ["upsert_draft", "load_draft", "delete_draft"]
