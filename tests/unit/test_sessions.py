from __future__ import annotations

import pytest

from interview.topics import CLOSING_LINE, FLOW, question_for
from services.sessions import AssessmentStateError, intro_message, open_session, take_turn
from storage.assessments import SessionConflictError, create_assessment, load_assessment
from storage.dealers import create_dealer
from storage.turns import list_turn_events


@pytest.fixture
def assessment():
    dealer = create_dealer(name="Sunrise Motors")
    return create_assessment(dealer["id"], customer_name="Jordan Price", customer_phone="555-0100")


def test_intro_message_uses_first_name_and_dealer():
    text = intro_message("Jordan Price", "Sunrise Motors")
    assert text.startswith("Hey Jordan — I’m Vetta.")
    assert "so Sunrise Motors can understand" in text
    assert intro_message(None, None).startswith("Hey there")
    assert "the dealership" in intro_message("", "")


def test_open_session_greets_once(assessment):
    view = open_session(assessment.id)
    assert view.version == 1
    assert len(view.messages) == 1
    assert view.messages[0]["kind"] == "sys"
    assert view.messages[0]["content"].startswith("Hey Jordan")
    assert view.pending_topic is None
    assert view.total == len(FLOW)

    again = open_session(assessment.id)
    assert again.version == 1
    assert again.messages == view.messages


def test_open_session_unknown_assessment():
    with pytest.raises(KeyError):
        open_session("missing")


def test_first_turn_asks_job_title(assessment):
    view = open_session(assessment.id)
    result = take_turn(assessment.id, "ok", view.version)
    assert result.decision.action == "ask"
    assert result.pending_topic == "job_title"
    assert result.pending_question == question_for("job_title")
    assert result.status == "in_progress"
    assert result.version == view.version + 1
    assert [m["kind"] for m in result.appended] == ["ack", "q"]
    assert result.appended[1]["topic"] == "job_title"
    assert [m["role"] for m in result.messages] == ["assistant", "user", "assistant", "assistant"]


def test_answer_then_clarify(assessment):
    view = open_session(assessment.id)
    result = take_turn(assessment.id, "ok", view.version)
    result = take_turn(assessment.id, "Line cook", result.version)
    assert load_assessment(assessment.id).facts["job_title"] == "Line cook"
    assert result.pending_topic == "employer_name"

    result = take_turn(assessment.id, "idk", result.version)
    assert result.decision.action == "clarify"
    assert [m["kind"] for m in result.appended] == ["clarify", "q"]
    assert result.pending_topic == "employer_name"
    assert result.answered == 1


def test_stale_version_is_rejected(assessment):
    view = open_session(assessment.id)
    take_turn(assessment.id, "ok", view.version)
    with pytest.raises(SessionConflictError):
        take_turn(assessment.id, "Line cook", view.version)
    assert "job_title" not in load_assessment(assessment.id).facts


def test_full_session_completes(assessment, scripted_answers):
    view = open_session(assessment.id)
    result = take_turn(assessment.id, "ok", view.version)
    for _ in range(len(FLOW)):
        if result.status == "interview_complete":
            break
        result = take_turn(assessment.id, scripted_answers[result.pending_topic], result.version)

    assert result.status == "interview_complete"
    assert result.decision.action == "stop"
    assert result.appended[-1] == {"role": "assistant", "content": CLOSING_LINE, "kind": "sys"}
    assert result.pending_topic is None
    assert result.pending_question is None
    assert result.answered == result.total

    with pytest.raises(AssessmentStateError):
        take_turn(assessment.id, "hello?", result.version)

    events = list_turn_events(assessment.id)
    assert events[0]["action"] == "ask"
    assert events[-1]["action"] == "stop"
    assert events[-1]["topic"] == "vehicle_reference_relation"
    assert all("version" in e["metadata"] for e in events)
