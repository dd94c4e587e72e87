"""SQLite schema migrations."""
from __future__ import annotations

import os
import sqlite3
from typing import Iterable

SCHEMA: Iterable[str] = [
    """
CREATE TABLE IF NOT EXISTS dealers (
  id TEXT PRIMARY KEY,
  name TEXT NOT NULL,
  slug TEXT NOT NULL UNIQUE,
  created_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS dealer_settings (
  dealer_id TEXT PRIMARY KEY REFERENCES dealers(id),
  logo_url TEXT,
  theme_color TEXT,
  contact_email TEXT,
  max_pti_ratio REAL,
  require_valid_driver_license INTEGER,
  min_down_payment REAL,
  min_residence_months INTEGER,
  min_employment_months INTEGER,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE TABLE IF NOT EXISTS assessments (
  id TEXT PRIMARY KEY,
  dealer_id TEXT NOT NULL REFERENCES dealers(id),
  status TEXT NOT NULL,
  mode TEXT NOT NULL,
  flow TEXT NOT NULL,
  customer_name TEXT,
  customer_phone TEXT,
  vehicle_type TEXT,
  vehicle_specific TEXT,
  facts_json TEXT NOT NULL DEFAULT '{}',
  answers_json TEXT NOT NULL DEFAULT '[]',
  pending_topic TEXT,
  pending_question TEXT,
  risk_score TEXT NOT NULL DEFAULT 'pending',
  risk_score_numeric INTEGER,
  reasoning TEXT,
  version INTEGER NOT NULL DEFAULT 0,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
""",
    """
CREATE INDEX IF NOT EXISTS idx_assessments_dealer
  ON assessments (dealer_id, created_at);
""",
    """
CREATE TABLE IF NOT EXISTS interview_turns (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  timestamp TEXT NOT NULL,
  assessment_id TEXT NOT NULL,
  topic TEXT,
  action TEXT NOT NULL,
  next_topic TEXT,
  metadata TEXT
);
""",
]


def migrate(db_path: str = "data/assessments.db") -> None:
    """Apply schema migrations to the SQLite database."""

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
