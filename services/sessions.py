"""Server-owned interview sessions.

The assessment row is the single source of truth for the transcript, the fact
record and the pending topic. Clients send only the applicant's reply together
with the version they last saw; a stale version is rejected instead of merged.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from config.settings import settings
from interview import Facts, Message, TurnDecision, progress, run_turn
from observability import log_event, span, total_ms
from storage.assessments import (
    Assessment,
    SessionConflictError,
    load_assessment,
    save_session_state,
)
from storage.dealers import resolve_dealer
from storage.turns import insert_turn_event

logger = logging.getLogger(__name__)

FINISHED_STATUSES = ("interview_complete", "completed")


class AssessmentStateError(RuntimeError):
    """The assessment is not in a state that accepts this operation."""


class SessionView(BaseModel):
    assessment_id: str
    status: str
    version: int
    messages: List[Dict[str, Any]] = Field(default_factory=list)
    pending_topic: Optional[str] = None
    pending_question: Optional[str] = None
    answered: int = 0
    total: int = 0


class TurnResult(SessionView):
    decision: TurnDecision
    appended: List[Dict[str, Any]] = Field(default_factory=list)


def intro_message(customer_name: Optional[str], dealer_name: Optional[str]) -> str:
    first = (customer_name or "").strip().split(" ")[0] or "there"
    biz = (dealer_name or "").strip() or "the dealership"
    return (
        f"Hey {first} — I’m {settings.ASSISTANT_NAME}. I’ll ask a few quick questions so {biz} "
        "can understand your situation before you drive off today. Reply “ok” when you’re ready."
    )


def _message(role: str, content: str, kind: Optional[str] = None, topic: Optional[str] = None) -> Dict[str, Any]:
    return Message(role=role, content=content, kind=kind, topic=topic).model_dump(exclude_none=True)


def _dealer_name(dealer_id: str) -> Optional[str]:
    try:
        return resolve_dealer(dealer_id)["name"]
    except KeyError:
        logger.warning("Assessment references unknown dealer %s", dealer_id)
        return None


def _view(assessment: Assessment) -> Dict[str, Any]:
    answered, total = progress(Facts.model_validate(assessment.facts))
    return {
        "assessment_id": assessment.id,
        "status": assessment.status,
        "version": assessment.version,
        "messages": assessment.answers,
        "pending_topic": assessment.pending_topic,
        "pending_question": assessment.pending_question,
        "answered": answered,
        "total": total,
    }


def open_session(assessment_id: str) -> SessionView:
    """Greet the applicant once; reopening an existing session returns it unchanged."""

    assessment = load_assessment(assessment_id)
    if assessment.answers or assessment.status in FINISHED_STATUSES:
        return SessionView(**_view(assessment))

    intro = intro_message(assessment.customer_name, _dealer_name(assessment.dealer_id))
    facts = Facts.model_validate(assessment.facts).to_payload()
    saved = save_session_state(
        assessment.id,
        assessment.version,
        facts=facts,
        answers=[_message("assistant", intro, kind="sys")],
        pending_topic=None,
        pending_question=None,
        status=assessment.status,
    )
    log_event("session_open", saved.id, status=saved.status, version=saved.version)
    return SessionView(**_view(saved))


def _assistant_messages(decision: TurnDecision) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    if decision.action == "clarify":
        if decision.explain:
            out.append(_message("assistant", decision.explain, kind="clarify", topic=decision.topic))
        out.append(_message("assistant", decision.next_question, kind="q", topic=decision.topic))
    elif decision.action == "stop":
        if decision.ack:
            out.append(_message("assistant", decision.ack, kind="ack"))
        out.append(_message("assistant", decision.next_question, kind="sys"))
    else:
        if decision.ack:
            out.append(_message("assistant", decision.ack, kind="ack"))
        if decision.next_question:
            out.append(_message("assistant", decision.next_question, kind="q", topic=decision.topic))
    return out


def take_turn(assessment_id: str, user_msg: str, expected_version: int) -> TurnResult:
    """Append the applicant's reply, advance the interview and persist the outcome.

    Raises:
        KeyError: unknown assessment.
        AssessmentStateError: the interview already finished.
        SessionConflictError: ``expected_version`` is stale.
    """

    events: List[Dict[str, Any]] = []
    assessment = load_assessment(assessment_id)
    if assessment.status in FINISHED_STATUSES:
        raise AssessmentStateError(f"assessment {assessment_id} is {assessment.status}")
    if assessment.version != expected_version:
        raise SessionConflictError(assessment_id, expected_version, assessment.version)

    transcript = list(assessment.answers)
    transcript.append(_message("user", user_msg or ""))

    with span(events, "run_turn"):
        decision = run_turn(
            transcript,
            Facts.model_validate(assessment.facts),
            last_question_asked=assessment.pending_question or "",
            last_topic=assessment.pending_topic,
        )

    appended = _assistant_messages(decision)
    transcript.extend(appended)
    status = "interview_complete" if decision.action == "stop" else "in_progress"
    pending_question = decision.next_question if decision.action != "stop" else None

    with span(events, "persist"):
        saved = save_session_state(
            assessment.id,
            expected_version,
            facts=decision.facts.to_payload(),
            answers=transcript,
            pending_topic=decision.topic,
            pending_question=pending_question,
            status=status,
        )
        insert_turn_event(
            assessment_id=saved.id,
            topic=assessment.pending_topic,
            action=decision.action,
            next_topic=decision.topic,
            metadata={"version": saved.version, "events": events},
        )

    log_event(
        "turn",
        saved.id,
        topic=assessment.pending_topic,
        action=decision.action,
        next_topic=decision.topic,
        status=saved.status,
        version=saved.version,
        ms=total_ms(events),
    )
    return TurnResult(**_view(saved), decision=decision, appended=appended)


__all__ = [
    "AssessmentStateError",
    "SessionView",
    "TurnResult",
    "intro_message",
    "open_session",
    "take_turn",
]
