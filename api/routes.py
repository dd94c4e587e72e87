"""FastAPI routes for the applicant interview."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, HTTPException

from api.schemas import ChatTurnReq, ChatTurnResp, SessionResp, SessionTurnReq, SessionTurnResp
from interview import TurnDecision, run_turn
from services.sessions import AssessmentStateError, SessionView, open_session, take_turn
from storage.assessments import SessionConflictError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _decision_fields(decision: TurnDecision) -> Dict[str, Any]:
    return {
        "action": decision.action,
        "ack": decision.ack,
        "explain": decision.explain,
        "nextQuestion": decision.next_question,
        "topic": decision.topic,
        "facts": decision.facts.to_payload(),
    }


def _session_fields(view: SessionView) -> Dict[str, Any]:
    return {
        "assessmentId": view.assessment_id,
        "status": view.status,
        "version": view.version,
        "messages": view.messages,
        "pendingTopic": view.pending_topic,
        "pendingQuestion": view.pending_question,
        "answered": view.answered,
        "total": view.total,
    }


@router.post("/chat/turn", response_model=ChatTurnResp)
def chat_turn(req: ChatTurnReq) -> ChatTurnResp:
    # preferences and dealer ride along for the client; the turn logic ignores them
    decision = run_turn(
        req.messages,
        req.memory.facts,
        last_question_asked=req.lastQuestionAsked,
        last_topic=req.lastTopic,
    )
    return ChatTurnResp(**_decision_fields(decision))


@router.post("/assessments/{assessment_id}/session", response_model=SessionResp)
def open_assessment_session(assessment_id: str) -> SessionResp:
    try:
        view = open_session(assessment_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Assessment not found") from exc
    except SessionConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return SessionResp(**_session_fields(view))


@router.post("/assessments/{assessment_id}/turn", response_model=SessionTurnResp)
def assessment_turn(assessment_id: str, req: SessionTurnReq) -> SessionTurnResp:
    try:
        result = take_turn(assessment_id, req.userMsg, req.version)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Assessment not found") from exc
    except SessionConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except AssessmentStateError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error while advancing assessment %s", assessment_id)
        raise HTTPException(status_code=500, detail="Unable to advance interview") from exc
    return SessionTurnResp(
        **_session_fields(result),
        **_decision_fields(result.decision),
        appended=result.appended,
    )
