from __future__ import annotations

from interview.facts import Facts
from interview.topics import (
    CHOICE_LABELS,
    CLOSING_LINE,
    FLOW,
    QUESTIONS,
    allowed_letters,
    choice_value,
    is_topic,
    question_for,
)


def test_flow_covers_every_topic_once():
    assert len(FLOW) == 32
    assert len(set(FLOW)) == len(FLOW)
    assert FLOW[0] == "job_title"
    assert FLOW[-1] == "vehicle_reference_relation"
    for topic in FLOW:
        assert topic in QUESTIONS or topic in CHOICE_LABELS


def test_choice_question_lists_options_and_reply_hint():
    text = question_for("vehicle_priority")
    lines = text.split("\n")
    assert lines[0] == "When getting a vehicle, what matters most to you?"
    assert lines[1] == ""
    assert lines[2].startswith("A) Having reliable transportation")
    assert lines[6].startswith("E) Getting approved today")
    assert lines[-1] == "Reply with A, B, C, D, or E."
    assert question_for("vehicle_benefit").endswith("Reply with A, B, C, or D.")


def test_question_for_unknown_topic_is_empty():
    assert question_for("favorite_color") == ""
    assert question_for("job_title", Facts()) == "What’s your current job title?"


def test_choice_value_and_letters():
    assert choice_value("vehicle_priority", "B") == "B - Being able to keep the vehicle long term"
    assert allowed_letters("vehicle_priority") == ["A", "B", "C", "D", "E"]
    assert allowed_letters("job_title") == []


def test_is_topic():
    assert is_topic("water_bill")
    assert not is_topic(None)
    assert not is_topic("closing")
    assert CLOSING_LINE.startswith("Thanks")
