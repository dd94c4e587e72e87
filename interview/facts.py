"""Applicant fact records.

Each category of the interview (employment, residence, income, ...) is its own
small record. :class:`Facts` composes all of them into the flat aggregate that
travels over the wire and is stored in ``assessments.facts_json``.

Values arriving from clients are coerced rather than rejected: an unknown enum
literal, a non-boolean flag or a non-finite number becomes ``None`` so that the
topic simply reads as unanswered.
"""
from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Literal, Optional, Type, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, model_validator

PayFrequency = Literal["weekly", "biweekly", "monthly"]
ResidenceType = Literal["rent", "own", "family"]
EatOutFrequency = Literal["never", "1-2", "3-5", "6+"]

Number = Union[int, float]


class EmploymentFacts(BaseModel):
    job_title: Optional[str] = None
    employer_name: Optional[str] = None
    commute_minutes: Optional[Number] = None
    employment_months: Optional[Number] = None


class ResidenceFacts(BaseModel):
    residence_type: Optional[ResidenceType] = None
    residence_months: Optional[Number] = None


class LicensingFacts(BaseModel):
    has_driver_license: Optional[bool] = None
    license_state_match: Optional[bool] = None  # True means in-state


class HouseholdFacts(BaseModel):
    born_in_state: Optional[bool] = None
    spouse_cosigner: Optional[bool] = None


class IncomeFacts(BaseModel):
    pay_frequency: Optional[PayFrequency] = None
    income_amount: Optional[Number] = None  # take-home per paycheck


class BillFacts(BaseModel):
    rent_amount: Optional[Number] = None
    cell_phone_bill: Optional[Number] = None
    subscriptions_bill: Optional[Number] = None
    water_bill: Optional[Number] = None
    electric_bill: Optional[Number] = None
    wifi_bill: Optional[Number] = None


class FoodFacts(BaseModel):
    eat_out_frequency: Optional[EatOutFrequency] = None
    eat_out_spend_weekly: Optional[Number] = None
    groceries_spend_weekly: Optional[Number] = None


class DownPaymentFacts(BaseModel):
    down_payment: Optional[Number] = None


class CreditFacts(BaseModel):
    credit_importance: Optional[int] = None  # 1-10
    credit_below_reason: Optional[str] = None


class IntentFacts(BaseModel):
    prior_auto_financing: Optional[str] = None
    vehicle_priority: Optional[str] = None
    bad_deal_definition: Optional[str] = None
    vehicle_benefit: Optional[str] = None


class ScenarioFacts(BaseModel):
    mechanical_failure_plan: Optional[str] = None
    support_system: Optional[bool] = None


class ReferenceFacts(BaseModel):
    vehicle_reference_available: Optional[bool] = None
    vehicle_reference_relation: Optional[str] = None


class VehicleFacts(BaseModel):
    vehicle_type: Optional[str] = None
    vehicle_specific: Optional[str] = None


CATEGORY_MODELS: Dict[str, Type[BaseModel]] = {
    "employment": EmploymentFacts,
    "residence": ResidenceFacts,
    "licensing": LicensingFacts,
    "household": HouseholdFacts,
    "income": IncomeFacts,
    "bills": BillFacts,
    "food": FoodFacts,
    "down_payment": DownPaymentFacts,
    "credit": CreditFacts,
    "intent": IntentFacts,
    "scenario": ScenarioFacts,
    "reference": ReferenceFacts,
    "vehicle": VehicleFacts,
}

FACT_GROUPS: Dict[str, List[str]] = {
    name: list(model.model_fields) for name, model in CATEGORY_MODELS.items()
}

CATEGORY_TITLES: Dict[str, str] = {
    "employment": "Employment",
    "residence": "Residence",
    "licensing": "Driver's license",
    "household": "Household & location",
    "income": "Income",
    "bills": "Monthly bills",
    "food": "Weekly food",
    "down_payment": "Down payment",
    "credit": "Credit",
    "intent": "Deal intent",
    "scenario": "Responsibility",
    "reference": "Reference",
    "vehicle": "Vehicle",
}

TEXT_FIELDS = {
    "job_title", "employer_name", "credit_below_reason", "vehicle_reference_relation",
    "prior_auto_financing", "vehicle_priority", "bad_deal_definition", "vehicle_benefit",
    "mechanical_failure_plan", "vehicle_type", "vehicle_specific",
}
BOOL_FIELDS = {
    "has_driver_license", "license_state_match", "born_in_state", "spouse_cosigner",
    "support_system", "vehicle_reference_available",
}
ENUM_FIELDS: Dict[str, tuple] = {
    "pay_frequency": get_args(PayFrequency),
    "residence_type": get_args(ResidenceType),
    "eat_out_frequency": get_args(EatOutFrequency),
}
NUMBER_FIELDS = {
    "commute_minutes", "employment_months", "residence_months", "income_amount",
    "rent_amount", "cell_phone_bill", "subscriptions_bill", "water_bill",
    "electric_bill", "wifi_bill", "eat_out_spend_weekly", "groceries_spend_weekly",
    "down_payment", "credit_importance",
}


def unique_tags(values: Iterable[Any]) -> List[str]:
    """Deduplicate string tags keeping first-seen order."""

    seen: set[str] = set()
    out: List[str] = []
    for value in values:
        if not isinstance(value, str):
            continue
        tag = value.strip()
        if tag and tag not in seen:
            seen.add(tag)
            out.append(tag)
    return out


def coerce_number(value: Any) -> Optional[Number]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        text = value.strip().replace(",", "").lstrip("$")
        if not text:
            return None
        try:
            value = float(text)
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _coerce_field(name: str, value: Any) -> Any:
    if value is None:
        return None
    if name in TEXT_FIELDS:
        return value if isinstance(value, str) else None
    if name in BOOL_FIELDS:
        return value if isinstance(value, bool) else None
    if name in ENUM_FIELDS:
        return value if value in ENUM_FIELDS[name] else None
    if name == "credit_importance":
        number = coerce_number(value)
        return int(number) if number is not None and float(number).is_integer() else None
    if name in NUMBER_FIELDS:
        return coerce_number(value)
    return value


class Facts(
    EmploymentFacts,
    ResidenceFacts,
    LicensingFacts,
    HouseholdFacts,
    IncomeFacts,
    BillFacts,
    FoodFacts,
    DownPaymentFacts,
    CreditFacts,
    IntentFacts,
    ScenarioFacts,
    ReferenceFacts,
    VehicleFacts,
):
    """Flat accumulator of everything collected about one applicant."""

    model_config = ConfigDict(extra="allow")

    warnings: List[str] = Field(default_factory=list)
    hard_stops: List[str] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _coerce_client_values(cls, data: Any) -> Any:
        if isinstance(data, BaseModel):
            data = data.model_dump()
        if not isinstance(data, dict):
            return {}
        cleaned: Dict[str, Any] = {}
        for key, value in data.items():
            if key in ("warnings", "hard_stops"):
                cleaned[key] = unique_tags(value) if isinstance(value, (list, tuple)) else []
            else:
                cleaned[key] = _coerce_field(key, value)
        return cleaned

    def merged(self, **updates: Any) -> "Facts":
        """Return a validated copy with ``updates`` applied."""

        data = self.model_dump()
        data.update(updates)
        return Facts.model_validate(data)

    def by_category(self) -> Dict[str, BaseModel]:
        """Split the aggregate into its per-category records."""

        data = self.model_dump()
        return {
            name: model.model_validate({field: data.get(field) for field in model.model_fields})
            for name, model in CATEGORY_MODELS.items()
        }

    def to_payload(self) -> Dict[str, Any]:
        """Wire/storage form: unanswered fields are omitted."""

        payload = self.model_dump(exclude_none=True)
        payload["warnings"] = list(self.warnings)
        payload["hard_stops"] = list(self.hard_stops)
        return payload


__all__ = [
    "CATEGORY_MODELS",
    "CATEGORY_TITLES",
    "EatOutFrequency",
    "FACT_GROUPS",
    "Facts",
    "PayFrequency",
    "ResidenceType",
    "coerce_number",
    "unique_tags",
]
