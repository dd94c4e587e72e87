"""Completeness rules deciding which topic still needs an answer."""
from __future__ import annotations

import math
from typing import Any, Optional, Tuple

from .facts import ENUM_FIELDS, Facts
from .topics import CHOICE_LABELS, FLOW, UTILITY_TOPICS, Topic

TEXT_TOPICS = frozenset({"job_title", "employer_name", "credit_below_reason"})
TENURE_TOPICS = frozenset({"commute_minutes", "employment_months", "residence_months"})
AMOUNT_TOPICS = frozenset(
    {
        "income_amount",
        "rent_amount",
        "cell_phone_bill",
        "subscriptions_bill",
        "water_bill",
        "electric_bill",
        "wifi_bill",
        "down_payment",
        "credit_importance",
        "eat_out_spend_weekly",
        "groceries_spend_weekly",
    }
)
BOOL_TOPICS = frozenset(
    {
        "has_driver_license",
        "license_state_match",
        "born_in_state",
        "spouse_cosigner",
        "support_system",
        "vehicle_reference_available",
    }
)


def _finite(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _text_len(value: Any) -> int:
    return len(value.strip()) if isinstance(value, str) else 0


def is_skipped(topic: str, facts: Facts) -> bool:
    """Utility bills are never asked of applicants living with family."""

    return topic in UTILITY_TOPICS and facts.residence_type == "family"


def is_fact_filled(topic: Topic, facts: Facts) -> bool:
    if is_skipped(topic, facts):
        return True
    if topic == "eat_out_spend_weekly" and facts.eat_out_frequency == "never":
        return True
    if topic == "groceries_spend_weekly" and facts.eat_out_frequency not in (None, "never"):
        return True

    value = getattr(facts, topic, None)
    if topic in TEXT_TOPICS:
        return _text_len(value) >= 2
    if topic in CHOICE_LABELS:
        return _text_len(value) >= 1
    if topic in TENURE_TOPICS:
        return _finite(value) and value >= 0
    if topic in AMOUNT_TOPICS:
        return _finite(value)
    if topic in ENUM_FIELDS:
        return value in ENUM_FIELDS[topic]
    if topic in BOOL_TOPICS:
        return isinstance(value, bool)
    if topic == "vehicle_reference_relation":
        if facts.vehicle_reference_available is False:
            return True
        return _text_len(value) >= 2
    return False


def next_missing_topic(facts: Facts) -> Optional[Topic]:
    """First topic in flow order that is neither skipped nor filled."""

    for topic in FLOW:
        if is_skipped(topic, facts):
            continue
        if not is_fact_filled(topic, facts):
            return topic
    return None


def applicable_topics(facts: Facts) -> Tuple[Topic, ...]:
    return tuple(topic for topic in FLOW if not is_skipped(topic, facts))


def progress(facts: Facts) -> Tuple[int, int]:
    """(answered, total) over the topics that apply to this applicant."""

    topics = applicable_topics(facts)
    answered = sum(1 for topic in topics if is_fact_filled(topic, facts))
    return answered, len(topics)


def progress_percent(facts: Facts) -> int:
    answered, total = progress(facts)
    return int(round(100 * answered / total)) if total else 0


__all__ = [
    "applicable_topics",
    "is_fact_filled",
    "is_skipped",
    "next_missing_topic",
    "progress",
    "progress_percent",
]
