"""Lightweight CLI helpers for inspecting assessment tables."""
from __future__ import annotations

import argparse
import sqlite3

from config.settings import settings


def tail_turns(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT timestamp, assessment_id, topic, action, next_topic, metadata
            FROM interview_turns
            ORDER BY id DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, assessment_id, topic, action, next_topic, metadata = row
            print(f"[{ts}] {assessment_id} {topic} -> {action} next={next_topic} meta={metadata}")
    finally:
        conn.close()


def recent_assessments(limit: int = 20) -> None:
    conn = sqlite3.connect(settings.DB_PATH)
    try:
        cursor = conn.cursor()
        cursor.execute(
            """
            SELECT a.created_at, a.id, d.name, a.status, a.customer_name, a.risk_score, a.risk_score_numeric
            FROM assessments a LEFT JOIN dealers d ON d.id = a.dealer_id
            ORDER BY a.created_at DESC
            LIMIT ?
            """,
            (limit,),
        )
        for row in cursor.fetchall():
            ts, assessment_id, dealer, status, customer, risk, numeric = row
            print(f"[{ts}] {assessment_id} dealer={dealer} {status} customer={customer} risk={risk}/{numeric}")
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--tail-turns", type=int, help="Show the latest interview turns")
    parser.add_argument("--assessments", type=int, help="Show the most recent assessments")
    args = parser.parse_args()

    if args.tail_turns:
        tail_turns(args.tail_turns)
    if args.assessments:
        recent_assessments(args.assessments)


if __name__ == "__main__":
    main()
