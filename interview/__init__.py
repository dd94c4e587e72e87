from __future__ import annotations  # Applicant interview engine public API

from .completeness import applicable_topics, is_fact_filled, next_missing_topic, progress, progress_percent
from .confusion import looks_confused
from .engine import (
    Message,
    ParseOutcome,
    TurnDecision,
    apply_answer,
    coerce_messages,
    resolve_topic,
    run_turn,
)
from .facts import CATEGORY_TITLES, FACT_GROUPS, Facts
from .hints import ack_for, clarify_explain
from .signals import WarningSet, merge_warnings, turn_warnings
from .topics import CLOSING_LINE, FLOW, SCENARIO_INTRO, Topic, question_for

__all__ = [
    "CATEGORY_TITLES",
    "CLOSING_LINE",
    "FACT_GROUPS",
    "FLOW",
    "Facts",
    "Message",
    "ParseOutcome",
    "SCENARIO_INTRO",
    "Topic",
    "TurnDecision",
    "WarningSet",
    "ack_for",
    "applicable_topics",
    "apply_answer",
    "clarify_explain",
    "coerce_messages",
    "is_fact_filled",
    "looks_confused",
    "merge_warnings",
    "next_missing_topic",
    "progress",
    "progress_percent",
    "question_for",
    "resolve_topic",
    "run_turn",
    "turn_warnings",
]
