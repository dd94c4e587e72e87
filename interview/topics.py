"""Interview flow table and question templates."""
from __future__ import annotations

from typing import Dict, List, Literal, Optional, Tuple, get_args

from .facts import Facts

Topic = Literal[
    "job_title",
    "employer_name",
    "commute_minutes",
    "employment_months",
    "residence_type",
    "residence_months",
    "has_driver_license",
    "license_state_match",
    "born_in_state",
    "spouse_cosigner",
    "pay_frequency",
    "income_amount",
    "rent_amount",
    "cell_phone_bill",
    "subscriptions_bill",
    "water_bill",
    "electric_bill",
    "wifi_bill",
    "eat_out_frequency",
    "eat_out_spend_weekly",
    "groceries_spend_weekly",
    "down_payment",
    "credit_importance",
    "credit_below_reason",
    "prior_auto_financing",
    "vehicle_priority",
    "bad_deal_definition",
    "vehicle_benefit",
    "mechanical_failure_plan",
    "support_system",
    "vehicle_reference_available",
    "vehicle_reference_relation",
]

# Stability-first ordering: employment, residence, license, ties, income,
# bills, food, down payment, credit, intent, scenario, reference.
FLOW: Tuple[Topic, ...] = get_args(Topic)

UTILITY_TOPICS = frozenset({"water_bill", "electric_bill", "wifi_bill"})
BILL_TOPICS = frozenset(
    {"rent_amount", "cell_phone_bill", "subscriptions_bill", *UTILITY_TOPICS}
)

CHOICE_LABELS: Dict[str, Dict[str, str]] = {
    "prior_auto_financing": {
        "A": "Yes — and I paid it off successfully",
        "B": "Yes — but I had some late payments",
        "C": "Yes — but I was unable to finish paying it off and the vehicle was eventually repossessed",
        "D": "No — this would be my first time financing a vehicle",
    },
    "vehicle_priority": {
        "A": "Having reliable transportation so I can work and handle my responsibilities",
        "B": "Being able to keep the vehicle long term",
        "C": "Getting the lowest possible monthly payment",
        "D": "Getting the lowest interest rate possible",
        "E": "Getting approved today so I can move forward with my responsibilities",
    },
    "bad_deal_definition": {
        "A": "Payments I know I cannot realistically keep up with",
        "B": "A vehicle that is unreliable",
        "C": "Something that prevents me from handling my daily responsibilities",
        "D": "A vehicle with a high payment and high interest that I cannot manage",
    },
    "vehicle_benefit": {
        "A": "Help me get to work consistently",
        "B": "Help me support my family",
        "C": "Help me improve my financial stability",
        "D": "Help me handle important daily responsibilities",
    },
    "mechanical_failure_plan": {
        "A": "Take responsibility to get the car fixed",
        "B": "Call us to see if we can fix it",
        "C": "Drive until a tow is needed",
        "D": "Give the car back",
    },
}

CHOICE_HEADERS: Dict[str, str] = {
    "prior_auto_financing": "Have you ever financed a vehicle through a dealership or auto loan before?",
    "vehicle_priority": "When getting a vehicle, what matters most to you?",
    "bad_deal_definition": "What would make a vehicle a bad deal for you personally?",
    "vehicle_benefit": "If you were approved today, how would having this vehicle help you most?",
    # second half of the scenario; the first half is sent as the ack
    "mechanical_failure_plan": "Let’s say your car needs a repair and your payment is due next week. What would you do?",
}

QUESTIONS: Dict[str, str] = {
    "job_title": "What’s your current job title?",
    "employer_name": "What’s the name of your employer (company name)?",
    "commute_minutes": "About how long is your commute from home to work (in minutes)?",
    "employment_months": "How long have you been at this job?",
    "residence_type": "Do you rent, own, or live with family?",
    "residence_months": "How long have you lived at your current place?",
    "has_driver_license": "Do you have a valid driver’s license right now?",
    "license_state_match": "Is your driver’s license in-state or out-of-state?",
    "born_in_state": "Were you born in the same state as this dealership is located?",
    "spouse_cosigner": "If needed, do you have a spouse that can go on the loan with you?",
    "pay_frequency": "Do you get paid weekly, bi-weekly, or monthly?",
    "income_amount": "About how much do you bring home each paycheck after taxes?",
    "rent_amount": "How much is your rent or mortgage each month?",
    "cell_phone_bill": "About how much is your cell phone bill each month?",
    "subscriptions_bill": "About how much do you spend on subscriptions each month?",
    "water_bill": "About how much is your water bill each month?",
    "electric_bill": "About how much is your electric bill each month?",
    "wifi_bill": "About how much is your Wi-Fi bill each month?",
    "eat_out_frequency": "How often do you eat out each week?",
    "eat_out_spend_weekly": "About how much do you spend eating out per week?",
    "groceries_spend_weekly": "About how much do you spend on groceries per week?",
    "down_payment": "How much can you put down today if everything looks good?",
    "credit_importance": "How important is building credit to you on a scale of 1–10?",
    "credit_below_reason": "What would you say is the main reason your credit is below standard?",
    "support_system": (
        "Do you have a support system (family/friends) that could help you stay on track "
        "if something unexpected happened?"
    ),
    "vehicle_reference_available": "Do you have at least one reference contact the dealership could call if needed?",
    "vehicle_reference_relation": "Okay — what is their relationship to you?",
}

SCENARIO_INTRO = (
    "We all know vehicles don’t run forever and they have a funny way of surprising us "
    "when we least expect it."
)
CLOSING_LINE = "Thanks — that’s everything I needed."


def _reply_hint(letters: List[str]) -> str:
    return "Reply with " + ", ".join(letters[:-1]) + f", or {letters[-1]}."


def _render_choice(topic: str) -> str:
    labels = CHOICE_LABELS[topic]
    lines = [CHOICE_HEADERS[topic], ""]
    lines.extend(f"{letter}) {label}" for letter, label in labels.items())
    lines.extend(["", _reply_hint(list(labels))])
    return "\n".join(lines)


def is_topic(value: Optional[str]) -> bool:
    return value in FLOW


def question_for(topic: Topic, facts: Optional[Facts] = None) -> str:
    """Return the question text for ``topic``; unknown topics yield ``""``.

    ``facts`` is accepted for personalization hooks; no template branches on it today.
    """

    if topic in CHOICE_LABELS:
        return _render_choice(topic)
    return QUESTIONS.get(topic, "")


def choice_value(topic: str, letter: str) -> str:
    """Canonical stored form of a multiple-choice answer, e.g. ``"B - ..."``."""

    return f"{letter} - {CHOICE_LABELS[topic][letter]}"


def allowed_letters(topic: str) -> List[str]:
    return list(CHOICE_LABELS.get(topic, {}))


__all__ = [
    "BILL_TOPICS",
    "CHOICE_LABELS",
    "CLOSING_LINE",
    "FLOW",
    "SCENARIO_INTRO",
    "Topic",
    "UTILITY_TOPICS",
    "allowed_letters",
    "choice_value",
    "is_topic",
    "question_for",
]
