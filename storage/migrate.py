"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable, Optional

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS interview_sessions (
  session_id TEXT PRIMARY KEY,
  candidate_id TEXT NOT NULL,
  role TEXT NOT NULL,
  status TEXT NOT NULL,
  current_round TEXT,
  version INTEGER NOT NULL,
  state_json TEXT NOT NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS evaluation_jobs (
  job_id TEXT PRIMARY KEY,
  session_id TEXT NOT NULL,
  item_id TEXT NOT NULL,
  status TEXT NOT NULL,
  payload_json TEXT NOT NULL,
  result_json TEXT,
  attempts INTEGER NOT NULL DEFAULT 0,
  last_error TEXT,
  enqueued_at TEXT NOT NULL,
  started_at TEXT,
  completed_at TEXT
);
""",
    """
CREATE UNIQUE INDEX IF NOT EXISTS ux_evaluation_jobs_live
  ON evaluation_jobs (session_id, item_id)
  WHERE status IN ('queued', 'evaluating');
""",
    """
CREATE INDEX IF NOT EXISTS ix_evaluation_jobs_item
  ON evaluation_jobs (session_id, item_id);
""",
    """
CREATE TABLE IF NOT EXISTS integrity_signals (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  session_id TEXT NOT NULL,
  item_id TEXT,
  round_kind TEXT,
  signal_type TEXT NOT NULL,
  detail TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS hiring_reports (
  session_id TEXT PRIMARY KEY,
  overall_score REAL NOT NULL,
  decision TEXT NOT NULL,
  provisional INTEGER NOT NULL,
  report_json TEXT NOT NULL,
  generated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS item_drafts (
  session_id TEXT NOT NULL,
  item_id TEXT NOT NULL,
  text TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  PRIMARY KEY (session_id, item_id)
);
""",
]


def migrate(db_path: Optional[str] = None) -> None:
    """Apply schema migrations to the SQLite database."""

    if db_path is None:
        from config.settings import settings

        db_path = settings.DB_PATH
    directory = os.path.dirname(db_path) or "."
    os.makedirs(directory, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cur = conn.cursor()
        for stmt in SCHEMA:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()


if __name__ == "__main__":
    migrate()
