"""Persistence helpers for the interview turn log."""
from __future__ import annotations

import datetime as dt
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .sqlite import get_conn, loads


class TurnEventPayload(BaseModel):
    assessment_id: str
    action: str
    topic: Optional[str] = None
    next_topic: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


def insert_turn_event(**data: Any) -> int:
    """Insert an interview turn row and return its primary key."""

    payload = TurnEventPayload(**data)
    timestamp = dt.datetime.now(dt.timezone.utc).isoformat()
    with get_conn() as conn:
        cur = conn.cursor()
        cur.execute(
            """INSERT INTO interview_turns
               (timestamp, assessment_id, topic, action, next_topic, metadata)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                timestamp,
                payload.assessment_id,
                payload.topic,
                payload.action,
                payload.next_topic,
                json.dumps(payload.metadata),
            ),
        )
        return int(cur.lastrowid)


def list_turn_events(assessment_id: str) -> List[Dict[str, Any]]:
    with get_conn() as conn:
        rows = conn.execute(
            """SELECT id, timestamp, assessment_id, topic, action, next_topic, metadata
               FROM interview_turns WHERE assessment_id = ? ORDER BY id""",
            (assessment_id,),
        ).fetchall()
    events = []
    for row in rows:
        event = dict(row)
        event["metadata"] = loads(event.get("metadata"), {})
        events.append(event)
    return events


__all__ = ["TurnEventPayload", "insert_turn_event", "list_turn_events"]
