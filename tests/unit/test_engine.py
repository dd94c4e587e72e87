from __future__ import annotations

from typing import Any, Dict, List

import pytest
from pydantic import ValidationError

from interview.engine import Message, TurnDecision, apply_answer, coerce_messages, resolve_topic, run_turn
from interview.facts import Facts
from interview.topics import CLOSING_LINE, FLOW, SCENARIO_INTRO, question_for


def _user(text: str) -> Dict[str, Any]:
    return {"role": "user", "content": text}


def _question(topic: str, facts: Facts | None = None) -> Dict[str, Any]:
    return {"role": "assistant", "content": question_for(topic, facts), "kind": "q"}


def test_no_messages_asks_with_empty_prompts():
    decision = run_turn([], {})
    assert decision.action == "ask"
    assert decision.ack == ""
    assert decision.next_question == ""
    assert decision.topic is None


def test_first_reply_without_pending_question_asks_job_title():
    decision = run_turn([_user("ok")], {})
    assert decision.action == "ask"
    assert decision.ack == "Got it."
    assert decision.topic == "job_title"
    assert decision.next_question == question_for("job_title")
    assert decision.facts == Facts()


def test_intro_message_is_not_an_answer():
    intro = {"role": "assistant", "content": "Hey Sam — I’m Vetta.", "kind": "sys"}
    decision = run_turn([intro, _user("ready")], {})
    assert decision.topic == "job_title"
    assert decision.facts.job_title is None


def test_answer_is_stored_and_next_topic_asked():
    decision = run_turn([_question("job_title"), _user("Shift Manager")], {}, last_topic="job_title")
    assert decision.action == "ask"
    assert decision.facts.job_title == "Shift Manager"
    assert "job_management_signal" in decision.facts.warnings
    assert decision.topic == "employer_name"


def test_topic_resolved_from_question_text():
    decision = run_turn(
        [_user("20 min")],
        {"job_title": "Cook", "employer_name": "Diner"},
        last_question_asked=question_for("commute_minutes"),
    )
    assert decision.facts.commute_minutes == 20
    assert decision.topic == "employment_months"


def test_topic_resolved_from_tagged_transcript():
    messages = [
        {"role": "assistant", "content": "anything", "kind": "q", "topic": "residence_type"},
        _user("with my mom"),
    ]
    decision = run_turn(messages, {})
    assert decision.facts.residence_type == "family"


def test_explicit_topic_wins_over_question_text():
    topic = resolve_topic(question_for("water_bill"), Facts(), last_topic="wifi_bill")
    assert topic == "wifi_bill"
    assert resolve_topic("What is your favorite color?", Facts()) is None
    assert resolve_topic("", Facts(), last_topic="nonsense") is None


def test_confused_reply_clarifies_same_question():
    facts = {"job_title": "Cook", "employer_name": "Diner"}
    decision = run_turn([_user("idk")], facts, last_topic="commute_minutes")
    assert decision.action == "clarify"
    assert decision.topic == "commute_minutes"
    assert decision.next_question == question_for("commute_minutes")
    assert "15 minutes" in decision.explain
    assert decision.facts.to_payload() == Facts.model_validate(facts).to_payload()


def test_unparseable_reply_clarifies():
    decision = run_turn([_user("forever")], {}, last_topic="employment_months")
    assert decision.action == "clarify"
    assert decision.facts.employment_months is None


def test_zero_income_is_rejected():
    assert run_turn([_user("0")], {}, last_topic="income_amount").action == "clarify"


def test_bill_answers_never_block():
    decision = run_turn([_user("a lot")], {}, last_topic="rent_amount")
    assert decision.action == "ask"
    assert decision.facts.rent_amount == 0
    assert "bill_non_numeric_rent_amount" in decision.facts.warnings

    decision = run_turn([_user("-50")], {}, last_topic="water_bill")
    assert decision.facts.water_bill == 0
    assert "bill_negative_water_bill" in decision.facts.warnings


def test_food_spend_non_numeric_stored_as_zero():
    outcome = apply_answer("groceries_spend_weekly", "not much", Facts(eat_out_frequency="never"))
    assert outcome.ok
    assert outcome.facts.groceries_spend_weekly == 0
    assert "groceries_non_numeric" in outcome.facts.warnings


def test_down_payment_zero_is_accepted_and_flagged(full_facts):
    full_facts.pop("down_payment")
    full_facts.pop("credit_importance")
    decision = run_turn([_user("nothing, $0")], full_facts, last_topic="down_payment")
    assert decision.facts.down_payment == 0
    assert "low_down_payment" in decision.facts.warnings
    assert decision.topic == "credit_importance"


def test_choice_answer_stored_as_letter_and_label():
    decision = run_turn([_user("b")], {}, last_topic="vehicle_priority")
    assert decision.facts.vehicle_priority == "B - Being able to keep the vehicle long term"

    outcome = apply_answer("vehicle_priority", "F", Facts())
    assert not outcome.ok


def test_choice_answer_by_option_text():
    outcome = apply_answer("vehicle_benefit", "help me support my family", Facts())
    assert outcome.facts.vehicle_benefit == "B - Help me support my family"


def test_scenario_is_introduced_by_its_ack(full_facts):
    full_facts.pop("mechanical_failure_plan")
    full_facts.pop("vehicle_benefit")
    decision = run_turn([_user("A")], full_facts, last_topic="vehicle_benefit")
    assert decision.topic == "mechanical_failure_plan"
    assert decision.ack == SCENARIO_INTRO
    assert "Reply with A, B, C, or D." in decision.next_question


def test_softer_ack_before_credit_reason(full_facts):
    full_facts.pop("credit_importance")
    full_facts.pop("credit_below_reason")
    decision = run_turn([_user("9")], full_facts, last_topic="credit_importance")
    assert decision.topic == "credit_below_reason"
    assert decision.ack == "Thanks for sharing."


def test_eating_out_never_moves_to_groceries(full_facts):
    full_facts.pop("eat_out_frequency")
    full_facts.pop("eat_out_spend_weekly")
    decision = run_turn([_user("never")], full_facts, last_topic="eat_out_frequency")
    assert decision.facts.eat_out_frequency == "never"
    assert decision.topic == "groceries_spend_weekly"


def test_short_tenure_warning_added_on_ask():
    decision = run_turn([_user("3 months")], {"job_title": "Cook"}, last_topic="employment_months")
    assert decision.facts.employment_months == 3
    assert "short_job_time" in decision.facts.warnings


def test_last_answer_stops_with_closing_line(full_facts):
    full_facts.pop("vehicle_reference_relation")
    decision = run_turn([_user("my mom")], full_facts, last_topic="vehicle_reference_relation")
    assert decision.action == "stop"
    assert decision.ack == "Got it."
    assert decision.next_question == CLOSING_LINE
    assert decision.topic is None
    assert decision.facts.vehicle_reference_relation == "my mom"


def test_no_reference_finishes_without_relation(full_facts):
    full_facts.pop("vehicle_reference_available")
    full_facts.pop("vehicle_reference_relation")
    decision = run_turn([_user("no")], full_facts, last_topic="vehicle_reference_available")
    assert decision.action == "stop"
    assert decision.facts.vehicle_reference_available is False
    assert decision.facts.vehicle_reference_relation is None


def test_applying_same_answer_twice_is_idempotent():
    once = apply_answer("rent_amount", "a lot", Facts()).facts
    twice = apply_answer("rent_amount", "a lot", once).facts
    assert once == twice


def test_malformed_client_facts_are_reasked():
    facts = {"job_title": "Cook", "employer_name": "Diner", "commute_minutes": "soon"}
    decision = run_turn([_user("ok")], facts)
    assert decision.topic == "commute_minutes"


def test_coerce_messages_drops_garbage():
    messages = coerce_messages([_user("hi"), {"role": "robot"}, "text", None, Message(role="assistant")])
    assert [m.role for m in messages] == ["user", "assistant"]


def test_scripted_interview_reaches_stop(scripted_answers):
    facts: Dict[str, Any] = {}
    messages: List[Dict[str, Any]] = [_user("ready")]
    asked: List[str] = []
    decision = run_turn(messages, facts)
    for _ in range(len(FLOW) + 1):
        if decision.action == "stop":
            break
        assert decision.action == "ask"
        asked.append(decision.topic)
        messages += [{"role": "assistant", "content": decision.next_question, "kind": "q"}]
        messages += [_user(scripted_answers[decision.topic])]
        decision = run_turn(messages, decision.facts, last_topic=decision.topic)
    assert decision.action == "stop"
    # eating out 1-2 times a week skips the groceries question
    assert "groceries_spend_weekly" not in asked
    assert len(asked) == len(set(asked)) == len(FLOW) - 1
    facts_out = decision.facts
    assert facts_out.pay_frequency == "biweekly"
    assert facts_out.income_amount == 1400
    assert facts_out.mechanical_failure_plan.startswith("A - ")
    assert "job_low_wage_title_signal" in facts_out.warnings


def test_option_text_starting_with_article_is_not_option_a():
    outcome = apply_answer("bad_deal_definition", "A vehicle that is unreliable", Facts())
    assert outcome.facts.bad_deal_definition == "B - A vehicle that is unreliable"

    outcome = apply_answer(
        "bad_deal_definition", "A vehicle with a high payment and high interest that I cannot manage", Facts()
    )
    assert outcome.facts.bad_deal_definition == (
        "D - A vehicle with a high payment and high interest that I cannot manage"
    )


def test_ambiguous_option_text_is_clarified():
    # "a vehicle" appears in both B and D
    decision = run_turn([_user("a vehicle")], {}, last_topic="bad_deal_definition")
    assert decision.action == "clarify"
    assert decision.facts.bad_deal_definition is None


def test_scenario_answer_resolved_from_question_text(full_facts):
    unanswered = (
        "mechanical_failure_plan",
        "support_system",
        "vehicle_reference_available",
        "vehicle_reference_relation",
    )
    for topic in unanswered:
        full_facts.pop(topic)
    question = question_for("mechanical_failure_plan")
    decision = run_turn(
        [{"role": "assistant", "content": question, "kind": "q"}, _user("A")],
        full_facts,
        last_question_asked=question,
    )
    assert decision.action == "ask"
    assert decision.facts.mechanical_failure_plan == "A - Take responsibility to get the car fixed"
    assert decision.topic == "support_system"


def test_complete_facts_stop_without_changes(full_facts):
    decision = run_turn([_user("anything else?")], full_facts)
    assert decision.action == "stop"
    assert decision.next_question == CLOSING_LINE
    assert decision.next_question.strip()
    assert decision.facts.to_payload() == Facts.model_validate(full_facts).to_payload()


def test_confused_income_resolved_from_question_text():
    facts = {"pay_frequency": "weekly"}
    question = question_for("income_amount", Facts.model_validate(facts))
    decision = run_turn([_user("idk")], facts, last_question_asked=question)
    assert decision.action == "clarify"
    assert decision.topic == "income_amount"
    assert decision.next_question == question
    assert decision.facts.income_amount is None


def test_non_numeric_water_bill_resolved_from_question_text():
    question = question_for("water_bill")
    decision = run_turn([_user("a lot")], {}, last_question_asked=question)
    assert decision.facts.water_bill == 0
    assert "bill_non_numeric_water_bill" in decision.facts.warnings


def test_decision_topic_is_restricted_to_flow_topics():
    assert TurnDecision(action="ask", topic="water_bill").topic == "water_bill"
    with pytest.raises(ValidationError):
        TurnDecision(action="ask", topic="favorite_color")
