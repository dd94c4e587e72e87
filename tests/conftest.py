import json
import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("ENABLE_FILE_LOGS", "0")

from storage.migrate import migrate
from config.settings import settings
from config.registry import RISK_KEY, bind_model, unbind_model
from interview.topics import choice_value


@pytest.fixture(autouse=True)
def tmp_db(monkeypatch):
    td = tempfile.TemporaryDirectory()
    db_path = os.path.join(td.name, "test.db")
    monkeypatch.setattr(settings, "DB_PATH", db_path, raising=False)
    migrate(db_path)
    try:
        yield
    finally:
        td.cleanup()


@pytest.fixture
def full_facts():
    """Every topic answered, as the engine would have stored it."""

    return {
        "job_title": "Warehouse associate",
        "employer_name": "Acme Logistics",
        "commute_minutes": 20,
        "employment_months": 24,
        "residence_type": "rent",
        "residence_months": 36,
        "has_driver_license": True,
        "license_state_match": True,
        "born_in_state": True,
        "spouse_cosigner": False,
        "pay_frequency": "biweekly",
        "income_amount": 1400,
        "rent_amount": 900,
        "cell_phone_bill": 80,
        "subscriptions_bill": 25,
        "water_bill": 40,
        "electric_bill": 120,
        "wifi_bill": 60,
        "eat_out_frequency": "1-2",
        "eat_out_spend_weekly": 40,
        "down_payment": 1500,
        "credit_importance": 9,
        "credit_below_reason": "medical bills",
        "prior_auto_financing": choice_value("prior_auto_financing", "A"),
        "vehicle_priority": choice_value("vehicle_priority", "B"),
        "bad_deal_definition": choice_value("bad_deal_definition", "A"),
        "vehicle_benefit": choice_value("vehicle_benefit", "A"),
        "mechanical_failure_plan": choice_value("mechanical_failure_plan", "A"),
        "support_system": True,
        "vehicle_reference_available": True,
        "vehicle_reference_relation": "my sister",
        "warnings": [],
        "hard_stops": [],
    }


@pytest.fixture
def scripted_answers():
    """One plausible free-text reply per topic."""

    return {
        "job_title": "Warehouse associate",
        "employer_name": "Acme Logistics",
        "commute_minutes": "20 minutes",
        "employment_months": "2 years",
        "residence_type": "I rent",
        "residence_months": "3 years",
        "has_driver_license": "yes",
        "license_state_match": "in state",
        "born_in_state": "yes",
        "spouse_cosigner": "no",
        "pay_frequency": "every two weeks",
        "income_amount": "$1,400",
        "rent_amount": "900",
        "cell_phone_bill": "80",
        "subscriptions_bill": "25",
        "water_bill": "40",
        "electric_bill": "120",
        "wifi_bill": "60",
        "eat_out_frequency": "twice",
        "eat_out_spend_weekly": "40",
        "groceries_spend_weekly": "100",
        "down_payment": "$1,500",
        "credit_importance": "9",
        "credit_below_reason": "medical bills",
        "prior_auto_financing": "A",
        "vehicle_priority": "B",
        "bad_deal_definition": "A",
        "vehicle_benefit": "A",
        "mechanical_failure_plan": "A",
        "support_system": "yes",
        "vehicle_reference_available": "yes",
        "vehicle_reference_relation": "my sister",
    }


@pytest.fixture
def fake_risk_model():
    calls = []

    def _model(system_prompt, user_content, **_):
        calls.append({"system": system_prompt, "payload": json.loads(user_content)})
        return {
            "risk_score": "low",
            "risk_score_numeric": 78,
            "result_summary": "Stable job and housing with a clear plan for repairs.",
            "pros": ["Consistent job tenure and clear employer details", "Has a support system to stay on track"],
            "cons": ["Rent takes a large share of each paycheck", "Limited credit history"],
            "reasoning": "- Two years at current employer\n- Rents for three years",
        }

    bind_model(RISK_KEY, _model)
    try:
        yield calls
    finally:
        unbind_model(RISK_KEY)
