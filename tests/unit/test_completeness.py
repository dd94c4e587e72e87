from __future__ import annotations

from interview.completeness import (
    applicable_topics,
    is_fact_filled,
    is_skipped,
    next_missing_topic,
    progress,
    progress_percent,
)
from interview.facts import Facts
from interview.topics import FLOW, UTILITY_TOPICS


def test_empty_facts_start_with_job_title():
    assert next_missing_topic(Facts()) == "job_title"
    assert progress(Facts()) == (0, len(FLOW))
    assert progress_percent(Facts()) == 0


def test_full_facts_have_nothing_missing(full_facts):
    facts = Facts.model_validate(full_facts)
    assert next_missing_topic(facts) is None
    assert progress_percent(facts) == 100


def test_first_gap_in_flow_order(full_facts):
    full_facts.pop("income_amount")
    full_facts.pop("down_payment")
    assert next_missing_topic(Facts.model_validate(full_facts)) == "income_amount"


def test_family_residence_skips_utilities(full_facts):
    for topic in UTILITY_TOPICS:
        full_facts.pop(topic)
    full_facts["residence_type"] = "family"
    facts = Facts.model_validate(full_facts)
    assert all(is_skipped(topic, facts) for topic in UTILITY_TOPICS)
    assert next_missing_topic(facts) is None
    assert len(applicable_topics(facts)) == len(FLOW) - 3


def test_renter_is_asked_utilities(full_facts):
    full_facts.pop("water_bill")
    facts = Facts.model_validate(full_facts)
    assert not is_skipped("water_bill", facts)
    assert next_missing_topic(facts) == "water_bill"


def test_eating_out_never_asks_groceries_instead():
    facts = Facts(eat_out_frequency="never")
    assert is_fact_filled("eat_out_spend_weekly", facts)
    assert not is_fact_filled("groceries_spend_weekly", facts)

    facts = Facts(eat_out_frequency="3-5")
    assert not is_fact_filled("eat_out_spend_weekly", facts)
    assert is_fact_filled("groceries_spend_weekly", facts)


def test_zero_amounts_count_as_answered():
    facts = Facts(rent_amount=0, down_payment=0, eat_out_spend_weekly=0)
    assert is_fact_filled("rent_amount", facts)
    assert is_fact_filled("down_payment", facts)


def test_text_answers_need_two_characters():
    assert not is_fact_filled("job_title", Facts(job_title=" x "))
    assert is_fact_filled("job_title", Facts(job_title="RN"))


def test_reference_relation_not_needed_without_reference():
    assert is_fact_filled("vehicle_reference_relation", Facts(vehicle_reference_available=False))
    assert not is_fact_filled("vehicle_reference_relation", Facts(vehicle_reference_available=True))


def test_malformed_client_values_read_as_unanswered():
    facts = Facts.model_validate(
        {"pay_frequency": "fortnightly", "income_amount": "abc", "has_driver_license": "yes"}
    )
    assert not is_fact_filled("pay_frequency", facts)
    assert not is_fact_filled("income_amount", facts)
    assert not is_fact_filled("has_driver_license", facts)
