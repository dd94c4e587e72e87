"""Persistence helpers for applicant assessments.

Every write bumps ``version``. Session turns write with compare-and-swap on
that column so two tabs answering the same assessment cannot interleave.
"""
from __future__ import annotations

import datetime as dt
import json
import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from config.settings import settings

from .sqlite import get_conn, loads

AssessmentStatus = Literal["started", "in_progress", "interview_complete", "completed"]
AssessmentMode = Literal["device", "qr"]
RiskScore = Literal["pending", "low", "medium", "high"]


class SessionConflictError(RuntimeError):
    """The assessment changed since the caller last read it."""

    def __init__(self, assessment_id: str, expected: int, actual: int):
        super().__init__(
            f"assessment {assessment_id} is at version {actual}, expected {expected}"
        )
        self.assessment_id = assessment_id
        self.expected = expected
        self.actual = actual


class Assessment(BaseModel):
    id: str
    dealer_id: str
    status: AssessmentStatus = "started"
    mode: AssessmentMode = "device"
    flow: str = Field(default_factory=lambda: settings.ASSESSMENT_FLOW)
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    vehicle_type: Optional[str] = None
    vehicle_specific: Optional[str] = None
    facts: Dict[str, Any] = Field(default_factory=dict)
    answers: List[Dict[str, Any]] = Field(default_factory=list)
    pending_topic: Optional[str] = None
    pending_question: Optional[str] = None
    risk_score: RiskScore = "pending"
    risk_score_numeric: Optional[int] = None
    reasoning: Optional[str] = None
    version: int = 0
    created_at: str = ""
    updated_at: str = ""


_COLUMNS = (
    "id, dealer_id, status, mode, flow, customer_name, customer_phone, vehicle_type, "
    "vehicle_specific, facts_json, answers_json, pending_topic, pending_question, risk_score, "
    "risk_score_numeric, reasoning, version, created_at, updated_at"
)


def _now() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _from_row(row: Any) -> Assessment:
    data = dict(row)
    data["facts"] = loads(data.pop("facts_json", None), {})
    data["answers"] = loads(data.pop("answers_json", None), [])
    return Assessment.model_validate(data)


def create_assessment(
    dealer_id: str,
    mode: AssessmentMode = "device",
    customer_name: Optional[str] = None,
    customer_phone: Optional[str] = None,
) -> Assessment:
    """Insert a fresh assessment in ``started`` state with an empty fact record."""

    now = _now()
    assessment = Assessment(
        id=uuid.uuid4().hex,
        dealer_id=dealer_id,
        mode=mode,
        customer_name=customer_name,
        customer_phone=customer_phone,
        created_at=now,
        updated_at=now,
    )
    with get_conn() as conn:
        conn.execute(
            f"""INSERT INTO assessments ({_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                assessment.id,
                assessment.dealer_id,
                assessment.status,
                assessment.mode,
                assessment.flow,
                assessment.customer_name,
                assessment.customer_phone,
                assessment.vehicle_type,
                assessment.vehicle_specific,
                json.dumps(assessment.facts),
                json.dumps(assessment.answers),
                None,
                None,
                assessment.risk_score,
                None,
                None,
                assessment.version,
                now,
                now,
            ),
        )
    return assessment


def load_assessment(assessment_id: str) -> Assessment:
    """Raises ``KeyError`` when no such assessment exists."""

    with get_conn() as conn:
        row = conn.execute(
            f"SELECT {_COLUMNS} FROM assessments WHERE id = ?", (assessment_id,)
        ).fetchone()
    if row is None:
        raise KeyError(f"assessment {assessment_id!r} not found")
    return _from_row(row)


def list_assessments(dealer_id: str, limit: int = 50) -> List[Assessment]:
    """Newest first."""

    with get_conn() as conn:
        rows = conn.execute(
            f"""SELECT {_COLUMNS} FROM assessments WHERE dealer_id = ?
                ORDER BY created_at DESC, rowid DESC LIMIT ?""",
            (dealer_id, int(limit)),
        ).fetchall()
    return [_from_row(row) for row in rows]


def _update(assessment_id: str, fields: Dict[str, Any], expected_version: Optional[int] = None) -> Assessment:
    fields = dict(fields)
    fields["updated_at"] = _now()
    assignments = ", ".join(f"{key} = ?" for key in fields)
    params: List[Any] = list(fields.values())
    sql = f"UPDATE assessments SET {assignments}, version = version + 1 WHERE id = ?"
    params.append(assessment_id)
    if expected_version is not None:
        sql += " AND version = ?"
        params.append(int(expected_version))
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        updated = cur.rowcount
    if not updated:
        current = load_assessment(assessment_id)
        raise SessionConflictError(assessment_id, int(expected_version or 0), current.version)
    return load_assessment(assessment_id)


def save_intro(
    assessment_id: str,
    customer_name: str,
    customer_phone: str,
    vehicle_type: str,
    vehicle_specific: Optional[str] = None,
) -> Assessment:
    """Store the applicant header both as columns and inside the fact record."""

    current = load_assessment(assessment_id)
    facts = dict(current.facts)
    facts.update(
        {
            "customer_name": customer_name,
            "customer_phone": customer_phone,
            "vehicle_type": vehicle_type,
            "vehicle_specific": vehicle_specific,
        }
    )
    return _update(
        assessment_id,
        {
            "customer_name": customer_name,
            "customer_phone": customer_phone,
            "vehicle_type": vehicle_type,
            "vehicle_specific": vehicle_specific,
            "facts_json": json.dumps(facts),
            "status": current.status or "started",
        },
    )


def merge_progress(
    assessment_id: str,
    facts: Optional[Dict[str, Any]] = None,
    answers: Optional[List[Dict[str, Any]]] = None,
    status: Optional[AssessmentStatus] = None,
    expected_version: Optional[int] = None,
) -> Assessment:
    """Shallow-merge ``facts`` into the stored record; ``answers`` replaces the transcript.

    The write is conditional on the version read here, or on ``expected_version``
    when the caller holds one, so a snapshot never overwrites a concurrent turn.
    """

    current = load_assessment(assessment_id)
    merged = dict(current.facts)
    merged.update(facts or {})
    fields: Dict[str, Any] = {
        "facts_json": json.dumps(merged),
        "status": status or "in_progress",
    }
    if answers is not None:
        fields["answers_json"] = json.dumps(answers)
    return _update(assessment_id, fields, current.version if expected_version is None else expected_version)


def save_session_state(
    assessment_id: str,
    expected_version: int,
    *,
    facts: Dict[str, Any],
    answers: List[Dict[str, Any]],
    pending_topic: Optional[str],
    pending_question: Optional[str],
    status: AssessmentStatus,
) -> Assessment:
    """Persist one server-side turn. Raises ``SessionConflictError`` on a stale version."""

    return _update(
        assessment_id,
        {
            "facts_json": json.dumps(facts),
            "answers_json": json.dumps(answers),
            "pending_topic": pending_topic,
            "pending_question": pending_question,
            "status": status,
        },
        expected_version=expected_version,
    )


def save_risk_result(
    assessment_id: str,
    *,
    risk_score: RiskScore,
    risk_score_numeric: int,
    reasoning: str,
    analysis: Dict[str, Any],
    facts: Optional[Dict[str, Any]] = None,
) -> Assessment:
    """Store the scoring outcome; caller facts are merged over the stored ones first."""

    current = load_assessment(assessment_id)
    merged = dict(current.facts)
    merged.update(facts or {})
    merged["analysis"] = analysis
    return _update(
        assessment_id,
        {
            "risk_score": risk_score,
            "risk_score_numeric": risk_score_numeric,
            "reasoning": reasoning,
            "facts_json": json.dumps(merged),
            "status": "completed",
        },
    )


__all__ = [
    "Assessment",
    "AssessmentMode",
    "AssessmentStatus",
    "RiskScore",
    "SessionConflictError",
    "create_assessment",
    "list_assessments",
    "load_assessment",
    "merge_progress",
    "save_intro",
    "save_risk_result",
    "save_session_state",
]
