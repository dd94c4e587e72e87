"""Turn orchestration for the applicant interview.

One call to :func:`run_turn` consumes the latest applicant reply and decides
what the assistant says next. The function is pure: all state comes in through
its arguments and goes out in the returned :class:`TurnDecision`.

Per turn:

1. No transcript yet: ``ask`` with empty prompts.
2. Work out which topic the reply answers, preferring the explicit topic id,
   then the pending question text, then the transcript.
3. A confused reply, or one that does not parse, gets ``clarify`` with a hint
   and the same question. Facts stay untouched.
4. A parsed reply is merged; job title and employer answers refresh the job
   signal warnings.
5. Nothing left to ask: ``stop`` with the closing line.
6. Otherwise refresh the tenure/license/down payment warnings and ``ask``
   the next topic. The repair scenario is introduced by its own narrative ack.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from .completeness import next_missing_topic
from .confusion import looks_confused
from .facts import Facts
from .hints import ack_for, clarify_explain
from .parsers import (
    parse_choice_letter,
    parse_choice_text,
    parse_credit_importance,
    parse_eat_out_frequency,
    parse_free_text,
    parse_license_state,
    parse_minutes,
    parse_money,
    parse_months,
    parse_pay_frequency,
    parse_residence_type,
    parse_scenario_choice,
    parse_yes_no,
)
from .signals import job_signal_warnings, merge_warnings, turn_warnings
from .topics import (
    BILL_TOPICS,
    CHOICE_LABELS,
    CLOSING_LINE,
    FLOW,
    SCENARIO_INTRO,
    Topic,
    allowed_letters,
    choice_value,
    is_topic,
    question_for,
)

logger = logging.getLogger(__name__)

Action = Literal["ask", "clarify", "warn", "stop"]
MessageKind = Literal["ack", "q", "sys", "clarify"]


class Message(BaseModel):
    role: Literal["assistant", "user"]
    content: str = ""
    kind: Optional[MessageKind] = None
    topic: Optional[str] = None  # set on questions emitted by this engine


class TurnDecision(BaseModel):
    action: Action
    ack: str = ""
    explain: str = ""
    next_question: str = ""
    topic: Optional[Topic] = None
    facts: Facts = Field(default_factory=Facts)


@dataclass
class ParseOutcome:
    ok: bool
    facts: Facts


# ----------------------------------------------------------------------
# Answer parsing
# ----------------------------------------------------------------------
@dataclass
class _Parsed:
    updates: Dict[str, Any]
    tags: List[str]


def _value(topic: str, value: Any) -> Optional[_Parsed]:
    if value is None:
        return None
    return _Parsed({topic: value}, [])


def _text(min_length: int) -> Callable[[str, str, Facts], Optional[_Parsed]]:
    def handler(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
        return _value(topic, parse_free_text(text, min_length))

    return handler


def _non_negative(parser: Callable[[str], Optional[float]]) -> Callable[[str, str, Facts], Optional[_Parsed]]:
    def handler(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
        value = parser(text)
        if value is None or value < 0:
            return None
        return _Parsed({topic: value}, [])

    return handler


def _using(parser: Callable[[str], Any]) -> Callable[[str, str, Facts], Optional[_Parsed]]:
    def handler(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
        return _value(topic, parser(text))

    return handler


def _income(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
    amount = parse_money(text)
    if amount is None or amount <= 0:
        return None
    return _Parsed({topic: amount}, [])


def _bill(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
    # bills never block the flow; unusable answers are stored as 0 and tagged
    amount = parse_money(text)
    if amount is None:
        return _Parsed({topic: 0}, [f"bill_non_numeric_{topic}"])
    if amount < 0:
        return _Parsed({topic: 0}, [f"bill_negative_{topic}"])
    return _Parsed({topic: amount}, [])


def _food_spend(tag: str) -> Callable[[str, str, Facts], Optional[_Parsed]]:
    def handler(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
        amount = parse_money(text)
        if amount is None:
            return _Parsed({topic: 0}, [tag])
        return _Parsed({topic: max(0, amount)}, [])

    return handler


def _choice(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
    # repeated option wording wins over a leading letter ("A vehicle that is unreliable" is B)
    letter = parse_choice_text(text, CHOICE_LABELS[topic])
    if letter is None and topic == "mechanical_failure_plan":
        letter = parse_scenario_choice(text)
    elif letter is None:
        letter = parse_choice_letter(text, allowed_letters(topic))
    if letter is None:
        return None
    return _Parsed({topic: choice_value(topic, letter)}, [])


def _reference_available(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
    answer = parse_yes_no(text)
    if answer is None:
        return None
    updates: Dict[str, Any] = {topic: answer}
    if answer is False:
        updates["vehicle_reference_relation"] = None
    return _Parsed(updates, [])


def _reference_relation(topic: str, text: str, facts: Facts) -> Optional[_Parsed]:
    if facts.vehicle_reference_available is False:
        return _Parsed({topic: None}, [])
    return _value(topic, parse_free_text(text, 2))


_HANDLERS: Dict[str, Callable[[str, str, Facts], Optional[_Parsed]]] = {
    "job_title": _text(2),
    "employer_name": _text(2),
    "commute_minutes": _non_negative(parse_minutes),
    "employment_months": _non_negative(parse_months),
    "residence_type": _using(parse_residence_type),
    "residence_months": _non_negative(parse_months),
    "has_driver_license": _using(parse_yes_no),
    "license_state_match": _using(parse_license_state),
    "born_in_state": _using(parse_yes_no),
    "spouse_cosigner": _using(parse_yes_no),
    "pay_frequency": _using(parse_pay_frequency),
    "income_amount": _income,
    **{topic: _bill for topic in BILL_TOPICS},
    "eat_out_frequency": _using(parse_eat_out_frequency),
    "eat_out_spend_weekly": _food_spend("eat_out_non_numeric"),
    "groceries_spend_weekly": _food_spend("groceries_non_numeric"),
    "down_payment": _non_negative(parse_money),
    "credit_importance": _using(parse_credit_importance),
    "credit_below_reason": _text(3),
    **{topic: _choice for topic in CHOICE_LABELS},
    "support_system": _using(parse_yes_no),
    "vehicle_reference_available": _reference_available,
    "vehicle_reference_relation": _reference_relation,
}


def apply_answer(topic: str, text: str, facts: Facts) -> ParseOutcome:
    """Parse ``text`` as the answer to ``topic``; on failure facts come back unchanged."""

    handler = _HANDLERS.get(topic)
    parsed = handler(topic, text or "", facts) if handler else None
    if parsed is None:
        return ParseOutcome(ok=False, facts=facts)
    updated = facts.merged(**parsed.updates)
    if parsed.tags:
        updated = merge_warnings(updated, parsed.tags)
    return ParseOutcome(ok=True, facts=updated)


# ----------------------------------------------------------------------
# Topic resolution
# ----------------------------------------------------------------------
def coerce_messages(raw: Optional[Iterable[Any]]) -> List[Message]:
    """Validate transcript entries, dropping anything that is not a message."""

    messages: List[Message] = []
    for entry in raw or []:
        if isinstance(entry, Message):
            messages.append(entry)
            continue
        try:
            messages.append(Message.model_validate(entry))
        except ValidationError:
            logger.debug("Dropping malformed transcript entry: %r", entry)
    return messages


def last_user_message(messages: List[Message]) -> str:
    for message in reversed(messages):
        if message.role == "user":
            return message.content or ""
    return ""


def pending_question(messages: List[Message]) -> Optional[Message]:
    """Last assistant question (kind ``q`` or ``sys``) in the transcript."""

    for message in reversed(messages):
        if message.role == "assistant" and message.kind in ("q", "sys"):
            return message
    return None


def topic_for_question(text: str, facts: Facts) -> Optional[Topic]:
    wanted = (text or "").strip()
    if not wanted:
        return None
    for topic in FLOW:
        if question_for(topic, facts).strip() == wanted:
            return topic
    return None


def resolve_topic(
    last_question: str,
    facts: Facts,
    last_topic: Optional[str] = None,
    messages: Optional[List[Message]] = None,
) -> Optional[str]:
    if is_topic(last_topic):
        return last_topic
    question = (last_question or "").strip()
    if question:
        topic = topic_for_question(question, facts)
        if topic is None:
            logger.warning("Pending question did not match any topic; asking the next missing one")
        return topic
    pending = pending_question(messages or [])
    if pending is None:
        return None
    if is_topic(pending.topic):
        return pending.topic
    # the intro and closing lines are sys messages that answer no topic
    return topic_for_question(pending.content, facts)


# ----------------------------------------------------------------------
# Orchestration
# ----------------------------------------------------------------------
def _clarify(topic: Topic, facts: Facts) -> TurnDecision:
    return TurnDecision(
        action="clarify",
        explain=clarify_explain(topic),
        next_question=question_for(topic, facts),
        topic=topic,
        facts=facts,
    )


def run_turn(
    messages: Optional[Iterable[Any]],
    facts: Any,
    *,
    last_question_asked: str = "",
    last_topic: Optional[str] = None,
) -> TurnDecision:
    """Advance the interview by one applicant reply."""

    current = facts if isinstance(facts, Facts) else Facts.model_validate(facts or {})
    transcript = coerce_messages(messages)
    if not transcript:
        return TurnDecision(action="ask", facts=current)

    reply = last_user_message(transcript)
    topic = resolve_topic(last_question_asked, current, last_topic, transcript)

    if topic is not None:
        if looks_confused(reply):
            return _clarify(topic, current)
        outcome = apply_answer(topic, reply, current)
        if not outcome.ok:
            return _clarify(topic, current)
        current = outcome.facts
        if topic in ("job_title", "employer_name"):
            current = merge_warnings(current, job_signal_warnings(current))

    upcoming = next_missing_topic(current)
    if upcoming is None:
        return TurnDecision(
            action="stop",
            ack="Got it.",
            next_question=CLOSING_LINE,
            facts=current,
        )

    current = merge_warnings(current, turn_warnings(current))
    ack = SCENARIO_INTRO if upcoming == "mechanical_failure_plan" else ack_for(upcoming)
    return TurnDecision(
        action="ask",
        ack=ack,
        next_question=question_for(upcoming, current),
        topic=upcoming,
        facts=current,
    )


__all__ = [
    "Action",
    "Message",
    "ParseOutcome",
    "TurnDecision",
    "apply_answer",
    "coerce_messages",
    "last_user_message",
    "pending_question",
    "resolve_topic",
    "run_turn",
    "topic_for_question",
]
