"""Acknowledgements and clarification hints shown alongside questions."""
from __future__ import annotations

DEFAULT_HINT = "No worries — quick answer is fine."

_CHOICE_ABCD = "Just reply with A, B, C, or D (or type the option)."

CLARIFY_HINTS = {
    "job_title": "Just a quick title is fine — for example: manager, cashier, driver, warehouse, etc.",
    "employer_name": "Just the company name is fine.",
    "commute_minutes": "Just an estimate like “15 minutes” or “1 hour.”",
    "employment_months": "Quick estimate is fine — like “6 months” or “2 years.”",
    "residence_months": "Quick estimate is fine — like “8 months” or “3 years.”",
    "license_state_match": "Just tell me in-state or out-of-state.",
    "pay_frequency": "Just pick one: weekly, bi-weekly, or monthly.",
    "income_amount": "Just an estimate of your take-home per paycheck.",
    "credit_importance": "Just give me a number from 1 to 10.",
    "mechanical_failure_plan": _CHOICE_ABCD,
    "prior_auto_financing": _CHOICE_ABCD,
    "bad_deal_definition": _CHOICE_ABCD,
    "vehicle_benefit": _CHOICE_ABCD,
    "vehicle_priority": "Just reply with A, B, C, D, or E (or type the option).",
    "vehicle_reference_available": "Just reply Yes or No.",
    "vehicle_reference_relation": "Just tell me how they’re connected to you — parent, spouse, sibling, friend, etc.",
    "eat_out_frequency": "You can answer like: never, 1, 2, 3, 5, daily, etc.",
}


def clarify_explain(topic: str) -> str:
    return CLARIFY_HINTS.get(topic, DEFAULT_HINT)


def ack_for(topic: str) -> str:
    # softer wording before the credit question
    if topic == "credit_below_reason":
        return "Thanks for sharing."
    return "Got it."


__all__ = ["CLARIFY_HINTS", "DEFAULT_HINT", "ack_for", "clarify_explain"]
